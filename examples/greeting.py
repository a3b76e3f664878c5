import asyncio

import streamtree as st

Audience = st.create_context("world", name="Audience")


async def Name(props, context):
    await asyncio.sleep(0.2)
    return st.get_context(context, Audience)


async def Typing(props, context):
    yield st.AppendOnlyStream
    for word in props["text"].split(" "):
        await asyncio.sleep(0.05)
        yield f"{word} "


def Greeting(props, context):
    return [
        "Hello, ",
        st.create_element(Name),
        "! ",
        st.create_element(Typing, text=props["message"]),
    ]


page = st.create_element(
    Audience.Provider,
    st.create_element(Greeting, message="Rendering happens one word at a time."),
    value="Ada",
)

import asyncio
import random

import streamtree as st

NAMES = ["Whiskers", "Mittens", "Tiger", "Shadow"]


async def CatName(props, context):
    await asyncio.sleep(0.1)
    return random.choice(NAMES)  # noqa: S311


def Story(props, context):
    name = context.memo(st.create_element(CatName))
    return [
        "Once upon a time there was a cat called ",
        name,
        ". Everybody loved ",
        name,
        ".",
    ]


def Safe(props, context):
    def broken(props, context):
        msg = "the cat ran away"
        raise RuntimeError(msg)

    return st.create_element(
        st.ErrorBoundary,
        st.create_element(broken),
        fallback=lambda e: f"(story unavailable: {e})",
    )


page = st.create_element(st.Fragment, st.create_element(Story), " ", st.create_element(Safe))

"""Tests for the debugging helpers."""

from pydantic import BaseModel

from streamtree import DebugTree, Fragment, create_element, debug, memo, render_stream


def Greeting(props, context):
    return ["Hello, ", props["name"]]


def Inner(props, context):
    return "done"


def Outer(props, context):
    return create_element(Inner)


class Settings(BaseModel):
    temperature: float
    model: str


class TestDebug:
    """Tests for debug."""

    def test_string(self) -> None:
        assert debug("hi") == '"hi"'

    def test_literals_in_code_position(self) -> None:
        assert debug(None) == "None"
        assert debug(3) == "3"
        assert debug(True) == ""  # noqa: FBT003

    def test_element_without_children(self) -> None:
        assert debug(create_element(Greeting, name="Ada")) == '<Greeting name="Ada" />'

    def test_element_with_children(self) -> None:
        element = create_element(Greeting, "Hello", name="Ada")

        assert debug(element) == '<Greeting name="Ada">\n  {"Hello"}\n</Greeting>'

    def test_children_list(self) -> None:
        element = create_element(Greeting, "a", None, "b")

        assert debug(element) == '<Greeting>\n  {"a"}\n  {"b"}\n</Greeting>'

    def test_nested_elements_are_indented(self) -> None:
        element = create_element(Outer, create_element(Inner, "x"))

        assert debug(element) == '<Outer>\n  <Inner>\n    {"x"}\n  </Inner>\n</Outer>'

    def test_children_not_expanded(self) -> None:
        element = create_element(Outer, create_element(Inner, "x"))

        assert debug(element, expand_children=False) == "<Outer />"

    def test_fragment(self) -> None:
        assert debug(create_element(Fragment)) == "<></>"
        assert debug(create_element(Fragment, "x")) == '<>\n  {"x"}\n</>'

    def test_prop_values(self) -> None:
        element = create_element(Greeting, count=3, flag=None, _private="hidden", settings={"a": 1})

        assert debug(element) == '<Greeting count={3} settings={{"a":1}} />'

    def test_pydantic_model_prop(self) -> None:
        element = create_element(Greeting, settings=Settings(temperature=0.5, model="m"))

        assert debug(element) == '<Greeting settings={{"temperature":0.5,"model":"m"}} />'

    def test_element_and_component_props(self) -> None:
        element = create_element(Outer, fallback=create_element(Inner), render=Greeting)

        assert debug(element) == "<Outer fallback={<Inner />} render={Greeting} />"

    def test_large_prop_is_omitted(self) -> None:
        element = create_element(Greeting, data="x" * 2000)

        assert debug(element) == "<Greeting data=<omitted large object> />"

    def test_memoized_subtree_printed_once(self) -> None:
        shared = memo(create_element(Inner, "x"))

        printed = debug(create_element(Fragment, shared, shared))

        assert printed.count("<Inner>") == 1
        assert printed.count("<Memoized") == 2


class TestDebugTree:
    """Tests for the DebugTree component."""

    async def test_expands_one_element_per_step(self) -> None:
        frames = [frame async for frame in render_stream(create_element(DebugTree, create_element(Outer)))]

        assert frames[0] == "<DebugTree>\n  <Outer />\n</DebugTree>"
        assert "<DebugTree>\n  <Inner />\n</DebugTree>" in frames
        assert '<DebugTree>\n  {"done"}\n</DebugTree>' in frames
        assert frames[-1] == "done"

    async def test_without_elements(self) -> None:
        frames = [frame async for frame in render_stream(create_element(DebugTree, "plain"))]

        assert frames[0] == '<DebugTree>\n  {"plain"}\n</DebugTree>'
        assert frames[-1] == "plain"

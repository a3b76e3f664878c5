"""Helpers for inspecting node trees.

`debug` prints a tree as angle-bracket markup, and `DebugTree` renders a tree one
element at a time, reporting the markup of every intermediate step.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any

from pydantic_core import to_json

from ._memo import is_memoized
from ._node import Element, Fragment, create_element

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Mapping

    from ._node import Node
    from ._render import RenderContext

MAX_STRING_LENGTH = 1000


class _Position(enum.Enum):
    """Where a value appears in the printed tree."""

    CODE = enum.auto()
    CHILDREN = enum.auto()
    PROPS = enum.auto()


def _json(value: Any) -> str:
    return to_json(value, fallback=repr).decode()


def _braced(text: str, position: _Position) -> str:
    if position in (_Position.PROPS, _Position.CHILDREN):
        return f"{{{text}}}"
    return text


def _is_visible_child(value: Any) -> bool:
    return value is not None and not isinstance(value, bool) and value != [] and value != ()


def debug(value: Any, expand_children: bool = True) -> str:  # noqa: C901, FBT001, FBT002
    """Print a node tree as angle-bracket markup.

    Args:
        value: The node (or any value) to print.
        expand_children: Whether to print the children of elements.

    Returns:
        The markup, e.g. `<Greeting name="Ada">\\n  {"Hello"}\\n</Greeting>`.

    """
    previously_memoized_ids: set[str] = set()

    def debug_rec(value: Any, indent: str, position: _Position) -> str:  # noqa: C901, PLR0911, PLR0912
        match value:
            case str():
                jsonified = _json(value)
                if len(jsonified) > MAX_STRING_LENGTH:
                    jsonified = f"{jsonified[:MAX_STRING_LENGTH]}..."
                return jsonified if position is not _Position.CHILDREN else f"{{{jsonified}}}"
            case bool():
                return ""
            case None if position is _Position.CHILDREN:
                return ""
            case None:
                return "None" if position is _Position.CODE else "{None}"
            case int() | float():
                if position is _Position.CODE:
                    return str(value)
                return f"{{{value}}}"
            case Element():
                tag = "" if value.component is Fragment else value.tag
                child_indent = f"{indent}  "

                memoized = is_memoized(value)
                seen_before = memoized and value.props["id"] in previously_memoized_ids
                if memoized and not seen_before:
                    previously_memoized_ids.add(value.props["id"])

                children = ""
                if expand_children and "children" in value.props and not seen_before:
                    children = debug_rec(value.props["children"], child_indent, _Position.CHILDREN)

                props_parts: list[str] = []
                for key, prop_value in value.props.items():
                    if key == "children" or key.startswith("_") or prop_value is None:
                        continue
                    value_str = debug_rec(prop_value, indent, _Position.PROPS)
                    if len(value_str) > MAX_STRING_LENGTH:
                        props_parts.append(f" {key}=<omitted large object>")
                    else:
                        props_parts.append(f" {key}={value_str}")
                props_str = "".join(props_parts)

                if children:
                    rendered = f"<{tag}{props_str}>\n{child_indent}{children}\n{indent}</{tag}>"
                elif value.component is not Fragment:
                    rendered = f"<{tag}{props_str} />"
                else:
                    rendered = "<></>"
                return f"{{{rendered}}}" if position is _Position.PROPS else rendered
            case list() | tuple():
                if position is _Position.CHILDREN:
                    items = [debug_rec(v, indent, _Position.CHILDREN) for v in value if _is_visible_child(v)]
                    return f"\n{indent}".join(items)
                items = [debug_rec(v, indent, _Position.CODE) for v in value]
                return _braced(f"[{', '.join(items)}]", position)
            case _ if callable(value):
                return _braced(getattr(value, "__name__", repr(value)), position)
            case _:
                return _braced(_json(value), position)

    return debug_rec(value, "", _Position.CODE)


async def DebugTree(props: Mapping[str, Any], context: RenderContext) -> AsyncGenerator[Node | str]:  # noqa: N802
    """Render the children one element at a time, yielding the tree after every step.

    Each step stops on every element except the first one encountered, so exactly one
    element is expanded per step. The final value is the fully rendered output.

    Example:
        Frame 0: <DebugTree>\\n  <MyComponent />\\n</DebugTree>
        Frame 1: <DebugTree>\\n  {"the text MyComponent rendered to"}\\n</DebugTree>

    """
    current: Node = props.get("children")
    while True:
        yield debug(create_element(DebugTree, current))

        element_to_render: Element | None = None

        def should_stop(element: Element) -> bool:
            nonlocal element_to_render
            if element_to_render is None:
                element_to_render = element
            return element is not element_to_render

        result = context.render(current, stop=should_stop, map=lambda frame: debug(create_element(DebugTree, frame)))
        async for frame in result:
            yield frame
        current = await result

        if element_to_render is None:
            yield current
            return

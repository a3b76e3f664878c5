"""Node model for streamtree.

A Node is one of:
- Literal: str, int, float, bool or None
- Sequence: a list or tuple of Nodes, rendered concurrently and concatenated in order
- Element: a suspended component invocation (component + props + optional bound context)

A Renderable additionally admits awaitables (Deferred) and async iterables (Stream).
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ._render import RenderContext

type Literal = str | int | float | bool | None
type Node = Literal | Element | list[Node] | tuple[Node, ...]
type Renderable = Node | Awaitable[Renderable] | AsyncIterable[Renderable | AppendOnlyStreamMarker]
type Component = Callable[[Mapping[str, Any], RenderContext], Renderable]
type PartiallyRendered = str | Element
type ElementPredicate = Callable[[Element], bool]

_EMPTY_PROPS: Mapping[str, Any] = MappingProxyType({})


class AppendOnlyStreamMarker:
    """Sentinel type for `AppendOnlyStream`."""

    _instance: AppendOnlyStreamMarker | None = None

    def __new__(cls) -> AppendOnlyStreamMarker:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "AppendOnlyStream"


# Yielded by a Stream to indicate that every subsequent value is appended to,
# rather than replaces, the values yielded before it.
AppendOnlyStream = AppendOnlyStreamMarker()


@dataclass(frozen=True, slots=True, eq=False)
class Element:
    """A suspended invocation of a component.

    Elements compare by identity, so stop predicates can single out one
    particular element of a tree.

    Attributes:
        component: The component function, called as `component(props, context)`.
        props: Read-only mapping of properties passed to the component.
        bound_context: Context this element must be rendered under. When set it takes
            precedence over the ambient context.
        renderer: Overrides how the element is rendered. Used by memoization to cache
            the component result while keeping the original component as the tag.

    """

    component: Component
    props: Mapping[str, Any] = _EMPTY_PROPS
    bound_context: RenderContext | None = field(default=None, repr=False)
    renderer: Callable[[RenderContext], Renderable] | None = field(default=None, repr=False)

    @property
    def tag(self) -> str:
        """Display name of the component."""
        return getattr(self.component, "__name__", type(self.component).__name__)

    def render(self, context: RenderContext) -> Renderable:
        """Invoke the component under the given context."""
        if self.renderer is not None:
            return self.renderer(context)
        return self.component(self.props, context)


def create_element(component: Component, /, *children: Any, **props: Any) -> Element:
    """Create an Element for a component.

    Positional arguments become the `children` prop: a single child is passed as-is,
    several children are passed as a list.

    Example:
        >>> create_element(Fragment, "Hello, ", create_element(Name, first="Ada"))

    """
    if children:
        props["children"] = children[0] if len(children) == 1 else list(children)
    return Element(component=component, props=MappingProxyType(props))


def is_element(value: object) -> bool:
    """Check if a value is an Element."""
    return isinstance(value, Element)


def Fragment(props: Mapping[str, Any], _context: RenderContext) -> Renderable:  # noqa: N802
    """Render the children as-is."""
    return props.get("children")


def SwitchContext(props: Mapping[str, Any], _context: RenderContext) -> Renderable:  # noqa: N802
    """Render the children under the element's bound context."""
    return props.get("children")


def with_context(renderable: Renderable, context: RenderContext) -> Element:
    """Bind a renderable to a context.

    Elements get a copy with `bound_context` set. Any other renderable is wrapped
    in a SwitchContext element bound to the context.
    """
    if isinstance(renderable, Element):
        return replace(renderable, bound_context=context)
    return Element(
        component=SwitchContext,
        props=MappingProxyType({"children": renderable}),
        bound_context=context,
    )

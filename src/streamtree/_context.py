"""Context tokens for scoped dependency injection.

A Context is an opaque, identity-based token with a default value. Its
Provider component renders its children under a RenderContext in which the
token is bound to a new value; everything outside that subtree keeps seeing
the previous binding (or the default).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ._node import Fragment, create_element, with_context

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._node import Element
    from ._render import RenderContext


class Context[T]:
    """A context token.

    Tokens compare by identity: two tokens created with the same name are distinct.

    Attributes:
        default: Value returned by `get_context` when no Provider encloses the caller.
        name: Display name, used in debugging output.
        Provider: Component binding `value` for the `children` subtree.

    """

    __slots__ = ("Provider", "default", "name")

    def __init__(self, default: T, name: str | None = None) -> None:
        self.default = default
        self.name = name or "Context"

        def provider(props: Mapping[str, Any], context: RenderContext) -> Element:
            fragment = create_element(Fragment, props.get("children"))
            return with_context(fragment, context.push_context(self, props["value"]))

        provider.__name__ = f"{self.name}.Provider"
        provider.__qualname__ = provider.__name__
        self.Provider = provider

    def __repr__(self) -> str:
        return f"Context({self.name!r}, default={self.default!r})"


def create_context[T](default: T, name: str | None = None) -> Context[T]:
    """Create a new context token.

    Example:
        >>> Temperature = create_context(0.0, name="Temperature")
        >>> create_element(Temperature.Provider, create_element(Completion), value=0.5)

    """
    return Context(default, name)


def get_context[T](context: RenderContext, token: Context[T]) -> T:
    """Get the nearest value bound to `token`, or its default."""
    return context.get_context(token)

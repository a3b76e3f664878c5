"""Error handling component."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Mapping

    from ._node import Renderable
    from ._render import RenderContext

logger = logging.getLogger(__name__)


async def ErrorBoundary(props: Mapping[str, Any], context: RenderContext) -> AsyncGenerator[Renderable]:  # noqa: N802
    """Stream the rendered children, replacing them with the fallback if rendering raises.

    Props:
        children: The nodes to render.
        fallback: A node rendered in place of the children on failure, or a callable
            receiving the exception and returning that node.

    Output already streamed from the children is discarded on failure. If the fallback
    itself raises, that exception propagates, just like an exception raised from an
    `except` block.

    N.B. The children are rendered to text, so partial rendering cannot stop inside an
    ErrorBoundary: the boundary is atomic.

    Example:
        >>> create_element(
        ...     ErrorBoundary,
        ...     create_element(FetchUserData),
        ...     fallback="User data could not be fetched.",
        ... )

    """
    try:
        async for text in context.render(props.get("children")):
            yield text
    except Exception as e:
        logger.debug("ErrorBoundary caught %r", e)
        fallback = props.get("fallback")
        yield fallback(e) if callable(fallback) else fallback

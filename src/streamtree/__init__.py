"""Streaming tree-evaluation runtime."""

__all__ = [
    "AppendOnlyStream",
    "Component",
    "Context",
    "DebugTree",
    "Element",
    "ElementPredicate",
    "ErrorBoundary",
    "ErrorCode",
    "ErrorKind",
    "Fragment",
    "Frame",
    "LogImplementation",
    "LoggerContext",
    "LoggingLogImplementation",
    "NoOpLogImplementation",
    "Node",
    "PartiallyRendered",
    "RenderContext",
    "RenderResult",
    "Renderable",
    "StreamRenderer",
    "StreamTreeError",
    "create_context",
    "create_element",
    "create_render_context",
    "debug",
    "get_context",
    "is_element",
    "memo",
    "partial_render",
    "partial_render_stream",
    "render",
    "render_frames",
    "render_stream",
    "with_context",
]

from ._context import Context, create_context, get_context
from ._debug import DebugTree, debug
from ._error_boundary import ErrorBoundary
from ._errors import ErrorCode, ErrorKind, StreamTreeError
from ._log import LoggerContext, LoggingLogImplementation, LogImplementation, NoOpLogImplementation
from ._memo import memo
from ._node import (
    AppendOnlyStream,
    Component,
    Element,
    ElementPredicate,
    Fragment,
    Node,
    PartiallyRendered,
    Renderable,
    create_element,
    is_element,
    with_context,
)
from ._render import (
    Frame,
    RenderContext,
    RenderResult,
    StreamRenderer,
    create_render_context,
    partial_render,
    partial_render_stream,
    render,
    render_frames,
    render_stream,
)

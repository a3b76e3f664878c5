"""Memoization of renderables.

`memo` wraps a renderable so that evaluating it repeatedly under the same
RenderContext runs its side effects once, and every consumer observes the same
result. The memoization is fully recursive: whatever a memoized component
returns is memoized as well.

N.B. The memoization applies per RenderContext. Rendering the same memoized
element under two different contexts runs it twice. Use `RenderContext.memo`
to bind the memoized node to a single context.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import AsyncIterable
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from ._errors import ErrorCode, ErrorKind, StreamTreeError
from ._node import AppendOnlyStream, AppendOnlyStreamMarker, Element, create_element

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Generator, Mapping

    from ._node import Node, Renderable
    from ._render import RenderContext

logger = logging.getLogger(__name__)


class _RejectedDeferred:
    """An awaitable that raises the same exception every time it is awaited."""

    __slots__ = ("_exception",)

    def __init__(self, exception: Exception) -> None:
        self._exception = exception

    def __await__(self) -> Generator[Any, None, Renderable]:
        raise self._exception
        yield  # pragma: no cover


class _StreamReplay:
    """Shares one pass over an async iterable between any number of consumers.

    Items pulled from the source are appended to a buffer. Each consumer replays
    the buffer and then waits on the single pending pull, so the source is
    iterated exactly once no matter how many consumers there are or when they start.
    """

    def __init__(self, source: AsyncIterable[Any]) -> None:
        self._source = source
        self._iterator: AsyncIterator[Any] | None = None
        self._sink: list[Any] = []
        self._completed = False
        self._pending: asyncio.Future[None] | None = None

    async def _pull(self) -> None:
        if self._iterator is None:
            self._iterator = aiter(self._source)
        try:
            value = await anext(self._iterator)
        except StopAsyncIteration:
            self._completed = True
        else:
            self._sink.append(value if isinstance(value, AppendOnlyStreamMarker) else memo(value))
        # A failed pull stays pending so every consumer observes the same exception.
        self._pending = None

    async def replay(self) -> AsyncGenerator[Any]:
        index = 0
        while True:
            if index < len(self._sink):
                yield self._sink[index]
                index += 1
                continue
            if self._completed:
                return
            if self._pending is None:
                self._pending = asyncio.ensure_future(self._pull())
            await asyncio.shield(self._pending)


class _SharedResult:
    """Awaits an awaitable once and shares its memoized result."""

    def __init__(self, awaitable: Awaitable[Renderable]) -> None:
        self._awaitable = awaitable
        self._future: asyncio.Future[Node] | None = None

    async def _resolve(self) -> Node:
        return memo(await self._awaitable)

    def result(self) -> Awaitable[Node]:
        if self._future is None:
            self._future = asyncio.ensure_future(self._resolve())
        return asyncio.shield(self._future)


def Memoized(props: Mapping[str, Any], _context: RenderContext) -> Renderable:  # noqa: N802
    """Render a memoized element."""
    return props["children"]


def MemoizedStream(props: Mapping[str, Any], _context: RenderContext) -> Renderable:  # noqa: N802
    """Replay a memoized stream."""
    return props["_source"].replay()


def MemoizedDeferred(props: Mapping[str, Any], _context: RenderContext) -> Renderable:  # noqa: N802
    """Await a memoized deferred value."""
    return props["_source"].result()


_MEMOIZED_COMPONENTS = frozenset({Memoized, MemoizedStream, MemoizedDeferred})


def is_memoized(element: Element) -> bool:
    """Check if an element was produced by `memo`."""
    return element.component in _MEMOIZED_COMPONENTS


def _new_memo_id() -> str:
    return uuid.uuid4().hex


def _memo_element(element: Element) -> Element:
    memo_id = _new_memo_id()

    def render_once(context: RenderContext) -> Renderable:
        # One cached result per RenderContext, keyed by memo id.
        if memo_id in context.memo_cache:
            return context.memo_cache[memo_id]

        try:
            result = memo(element.render(context))
        except Exception as e:  # noqa: BLE001 - re-raised whenever the result is awaited
            result = _RejectedDeferred(e)

        context.memo_cache[memo_id] = result
        return result

    inner = replace(element, renderer=render_once)
    return create_element(Memoized, inner, id=memo_id)


def memo(renderable: Renderable) -> Node:
    """Memoize a renderable so it always renders the same thing.

    For example, a component that asks a model for a cat name and is referenced
    twice in a prompt would normally call the model twice. Wrapping it in `memo`
    makes both references render the same, single result.

    Args:
        renderable: The renderable to memoize.

    Returns:
        A Node rendering identically to `renderable`, whose side effects run at most
        once per RenderContext.

    Raises:
        StreamTreeError: If `renderable` is not a renderable value.

    """
    match renderable:
        case str() | int() | float() | bool() | None:
            return renderable
        case list() | tuple():
            return [memo(child) for child in renderable]
        case Element() if is_memoized(renderable):
            return renderable
        case Element():
            return _memo_element(renderable)

    if isinstance(renderable, AsyncIterable):
        logger.debug("Memoizing stream %r", renderable)
        return create_element(MemoizedStream, id=_new_memo_id(), _source=_StreamReplay(renderable))

    if inspect.isawaitable(renderable):
        return create_element(MemoizedDeferred, id=_new_memo_id(), _source=_SharedResult(renderable))

    msg = f"Unexpected renderable type: {renderable!r}"
    raise StreamTreeError(msg, ErrorCode.UNRENDERABLE_TYPE, ErrorKind.USER)

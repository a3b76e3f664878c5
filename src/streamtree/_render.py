"""Core tree evaluator for streamtree.

The evaluator expands a Renderable into a stream of Frames. Each Frame holds the
current partially-rendered output (strings, plus Elements where expansion was
stopped). Every evaluation yields zero or more intermediate frames followed by
exactly one final frame.

Key types:
- Frame: One snapshot of partially rendered output
- RenderContext: Immutable set of context bindings plus the renderer in use
- RenderResult: Awaitable and async-iterable handle on a render
- render_frames: The evaluator itself (the default StreamRenderer)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from itertools import chain
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ._errors import ErrorCode, ErrorKind, StreamTreeError
from ._log import LoggerContext, LoggingLogImplementation
from ._memo import memo as _memo
from ._node import AppendOnlyStreamMarker, Element, with_context

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator, Callable, Generator, Mapping

    from ._context import Context
    from ._log import LogImplementation
    from ._node import ElementPredicate, Node, PartiallyRendered, Renderable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Frame:
    """A snapshot of partially rendered output.

    Attributes:
        parts: Rendered strings, and Elements at which rendering was stopped.
        final: True for the last frame of an evaluation, which holds its settled output.

    """

    parts: tuple[PartiallyRendered, ...] = ()
    final: bool = False

    def text(self) -> str:
        """Concatenate the string parts, skipping stopped Elements."""
        return "".join(part for part in self.parts if isinstance(part, str))


type StreamRenderer = Callable[
    [RenderContext, Renderable, ElementPredicate, bool],
    AsyncIterator[Frame],
]


def _never_stop(_element: Element) -> bool:
    return False


def _format_number(value: float) -> str:
    if isinstance(value, float):
        if value != value:  # noqa: PLR0124 - NaN check
            return "NaN"
        if value in (float("inf"), float("-inf")):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


async def _settle(frames: AsyncIterator[Frame]) -> tuple[PartiallyRendered, ...]:
    """Drain a frame iterator and return the parts of its final frame."""
    async for frame in frames:
        if frame.final:
            return frame.parts
    msg = "Frame stream ended without a final frame"
    raise StreamTreeError(msg, ErrorCode.UNRENDERABLE_TYPE, ErrorKind.INTERNAL)


async def _next_frame(frames: AsyncIterator[Frame]) -> Frame:
    return await anext(frames)


class _ChildRender:
    """Tracks the latest output and the pending next frame of one Sequence child."""

    __slots__ = ("_frames", "current", "pending")

    def __init__(self, frames: AsyncIterator[Frame]) -> None:
        self._frames = frames
        self.current: tuple[PartiallyRendered, ...] = ()
        self.pending: asyncio.Task[Frame] | None = None

    def advance(self) -> None:
        self.pending = asyncio.ensure_future(_next_frame(self._frames))

    def apply(self) -> None:
        """Apply the resolved pending frame and request the next one if needed."""
        if self.pending is None:
            return
        frame = self.pending.result()
        self.current = frame.parts
        if frame.final:
            self.pending = None
        else:
            self.advance()

    def discard(self) -> None:
        """Cancel the pending frame, or mark its outcome as retrieved."""
        if self.pending is None:
            return
        if not self.pending.done():
            self.pending.cancel()
        elif not self.pending.cancelled():
            self.pending.exception()
        self.pending = None


async def _render_sequence(
    context: RenderContext,
    children: list[Node] | tuple[Node, ...],
    should_stop: ElementPredicate,
    append_only: bool,  # noqa: FBT001
) -> AsyncGenerator[Frame]:
    renders = [_ChildRender(context.render_frames(child, should_stop, append_only)) for child in children]

    def current_value() -> tuple[PartiallyRendered, ...]:
        if append_only:
            parts: list[PartiallyRendered] = []
            for render in renders:
                parts.extend(render.current)
                if render.pending is not None:
                    # This child is still rendering, so nothing after it can be reported yet.
                    break
            return tuple(parts)
        return tuple(chain.from_iterable(render.current for render in renders))

    try:
        for render in renders:
            render.advance()

        # Wait for every child to produce its first frame
        await asyncio.gather(*(render.pending for render in renders if render.pending is not None))
        for render in renders:
            render.apply()

        while pending := [render.pending for render in renders if render.pending is not None]:
            yield Frame(current_value())
            await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            # One recombination pass per resolved child, in declared order
            ready = next(render for render in renders if render.pending is not None and render.pending.done())
            ready.apply()

        yield Frame(current_value(), final=True)
    finally:
        for render in renders:
            render.discard()


async def _render_element(
    context: RenderContext,
    element: Element,
    should_stop: ElementPredicate,
    append_only: bool,  # noqa: FBT001
) -> AsyncGenerator[Frame]:
    if should_stop(element):
        # An element that already has a bound context keeps it, because that context takes
        # precedence over the current one. Otherwise bind the current context so that
        # rendering the element later continues as if it had never stopped.
        stopped = element if element.bound_context is not None else with_context(element, context)
        yield Frame((stopped,), final=True)
        return

    rendering_context = element.bound_context if element.bound_context is not None else context
    if rendering_context is not context:
        async for frame in rendering_context.render_frames(element, should_stop, append_only):
            yield frame
        return

    log_impl = context.get_context(LoggerContext)
    render_id = uuid.uuid4().hex
    log_impl.log(logging.DEBUG, element, render_id, "Start rendering element")
    try:
        async for frame in context.render_frames(element.render(context), should_stop, append_only):
            if frame.final:
                log_impl.log(logging.DEBUG, element, render_id, "Finished rendering element", final_result=frame.parts)
            yield frame
    except Exception as e:
        log_impl.log_exception(element, render_id, e)
        raise


async def _render_async_iterable(
    context: RenderContext,
    stream: AsyncIterable[Any],
    should_stop: ElementPredicate,
    append_only: bool,  # noqa: FBT001
) -> AsyncGenerator[Frame]:
    last_value: tuple[PartiallyRendered, ...] = ()
    is_append_only_stream = False

    async for item in stream:
        if isinstance(item, AppendOnlyStreamMarker):
            is_append_only_stream = True
        elif is_append_only_stream:
            prefix = last_value
            async for frame in context.render_frames(item, should_stop, append_only):
                if frame.final:
                    last_value = prefix + frame.parts
                else:
                    yield Frame(prefix + frame.parts)
        elif append_only:
            # Later items may replace this one, so nothing can be reported until the stream ends.
            last_value = await _settle(context.render_frames(item, should_stop, append_only))
        else:
            async for frame in context.render_frames(item, should_stop, append_only):
                if frame.final:
                    last_value = frame.parts
                else:
                    yield frame

        if not append_only or is_append_only_stream:
            yield Frame(last_value)

    yield Frame(last_value, final=True)


async def render_frames(
    context: RenderContext,
    renderable: Renderable,
    should_stop: ElementPredicate,
    append_only: bool,  # noqa: FBT001
) -> AsyncGenerator[Frame]:
    """Evaluate a renderable into a stream of frames.

    This is the default StreamRenderer. Nested renderables are evaluated through
    `context.render_frames` so that renderer middleware observes every step.

    Args:
        context: The RenderContext to evaluate under.
        renderable: The value to evaluate.
        should_stop: Elements for which this returns True are not expanded.
        append_only: Only report frames that extend the previously reported frame.

    Yields:
        Intermediate frames, then exactly one final frame.

    Raises:
        StreamTreeError: If a value that is not renderable is encountered.

    """
    match renderable:
        case str():
            yield Frame((renderable,), final=True)
        case bool() | None:
            yield Frame((), final=True)
        case int() | float():
            yield Frame((_format_number(renderable),), final=True)
        case list() | tuple():
            async for frame in _render_sequence(context, renderable, should_stop, append_only):
                yield frame
        case Element():
            async for frame in _render_element(context, renderable, should_stop, append_only):
                yield frame
        case AsyncIterable():
            async for frame in _render_async_iterable(context, renderable, should_stop, append_only):
                yield frame
        case _ if inspect.isawaitable(renderable):
            resolved = await renderable
            async for frame in context.render_frames(resolved, should_stop, append_only):
                yield frame
        case _:
            msg = f"Unexpected renderable type: {renderable!r}"
            raise StreamTreeError(msg, ErrorCode.UNRENDERABLE_TYPE, ErrorKind.USER)


class RenderResult[TIntermediate, TFinal]:
    """The result of a render.

    Await it for the final value, or iterate it with `async for` to receive every
    frame as it is produced (the final value comes last). A RenderResult can be
    iterated once; awaiting it after the iteration has finished returns the final value.
    """

    def __init__(
        self,
        frames: AsyncIterator[Frame],
        finalize: Callable[[Frame], TFinal],
        map_frame: Callable[[TFinal], TIntermediate],
    ) -> None:
        self._frames = frames
        self._finalize = finalize
        self._map_frame = map_frame
        self._result: asyncio.Future[TFinal] | None = None
        self._has_returned_iterator = False

    async def _iterate(self) -> AsyncGenerator[TIntermediate]:
        async for frame in self._frames:
            value = self._finalize(frame)
            if frame.final:
                result = asyncio.get_running_loop().create_future()
                result.set_result(value)
                self._result = result
            yield self._map_frame(value)

    async def _flush(self) -> TFinal:
        async for frame in self._frames:
            if frame.final:
                return self._finalize(frame)
        msg = "Frame stream ended without a final frame"
        raise StreamTreeError(msg, ErrorCode.UNRENDERABLE_TYPE, ErrorKind.INTERNAL)

    def __aiter__(self) -> AsyncIterator[TIntermediate]:
        if self._has_returned_iterator:
            msg = "The RenderResult's iterator was already returned and cannot be returned again"
            raise StreamTreeError(msg, ErrorCode.GENERATOR_CANNOT_BE_USED_TWICE, ErrorKind.USER)
        if self._result is not None:
            msg = "The RenderResult was already awaited and can no longer be used as an iterable"
            raise StreamTreeError(
                msg,
                ErrorCode.GENERATOR_CANNOT_BE_USED_AS_ITERABLE_AFTER_AWAITING,
                ErrorKind.USER,
            )
        self._has_returned_iterator = True
        return self._iterate()

    def __await__(self) -> Generator[Any, None, TFinal]:
        if self._result is None:
            if self._has_returned_iterator:
                msg = "The RenderResult's iterator must be fully exhausted before you can await the final result"
                raise StreamTreeError(msg, ErrorCode.GENERATOR_MUST_BE_EXHAUSTED, ErrorKind.USER)
            self._result = asyncio.ensure_future(self._flush())
        return self._result.__await__()


@dataclass(frozen=True, slots=True, eq=False, weakref_slot=True)
class RenderContext:
    """Immutable state threaded through an evaluation.

    Holds the context bindings visible at a point of the tree and the renderer used
    to evaluate nodes. "Modifying" a RenderContext always returns a new one.

    Attributes:
        bindings: Read-only mapping from context token to bound value.
        renderer: The StreamRenderer evaluating nodes under this context.
        memo_cache: Results of memoized elements rendered under this context, by memo id.
            Every new RenderContext starts with an empty cache.

    """

    bindings: Mapping[Context[Any], Any] = field(default_factory=lambda: MappingProxyType({}))
    renderer: StreamRenderer = render_frames
    memo_cache: dict[str, Renderable] = field(default_factory=dict, init=False, repr=False)

    def render_frames(
        self,
        renderable: Renderable,
        should_stop: ElementPredicate = _never_stop,
        append_only: bool = False,  # noqa: FBT001, FBT002
    ) -> AsyncIterator[Frame]:
        """Evaluate a renderable under this context into raw frames."""
        return self.renderer(self, renderable, should_stop, append_only)

    def render(
        self,
        renderable: Renderable,
        *,
        stop: ElementPredicate | None = None,
        map: Callable[[Any], Any] | None = None,  # noqa: A002
        append_only: bool = False,
    ) -> RenderResult[Any, Any]:
        """Render a value.

        Args:
            renderable: The value to render.
            stop: Stop expanding elements for which this returns True. When given, the
                result is a list of strings and Elements rather than a string.
            map: Applied to every value produced while iterating the result.
            append_only: Only produce values that extend the previously produced value.

        Returns:
            A RenderResult that can be awaited or iterated.

        """
        frames = self.render_frames(renderable, stop or _never_stop, append_only)
        if stop is None:
            return RenderResult(frames, Frame.text, map or _identity)
        return RenderResult(frames, _frame_parts, map or _identity)

    def get_context[T](self, token: Context[T]) -> T:
        """Get the value bound to `token` in this context, or its default."""
        if token in self.bindings:
            return self.bindings[token]
        return token.default

    def push_context[T](self, token: Context[T], value: T) -> RenderContext:
        """Return a new RenderContext in which `token` is bound to `value`."""
        return RenderContext(
            bindings=MappingProxyType({**self.bindings, token: value}),
            renderer=self.renderer,
        )

    def wrap_render(self, get_renderer: Callable[[StreamRenderer], StreamRenderer]) -> RenderContext:
        """Return a new RenderContext whose renderer wraps the current one.

        Example:
            >>> def timed(inner):
            ...     async def renderer(context, renderable, stop, append_only):
            ...         started = time.monotonic()
            ...         async for frame in inner(context, renderable, stop, append_only):
            ...             yield frame
            ...         logger.info("Rendered %r in %.3fs", renderable, time.monotonic() - started)
            ...     return renderer
            >>> context = create_render_context().wrap_render(timed)

        """
        return RenderContext(bindings=self.bindings, renderer=get_renderer(self.renderer))

    def memo(self, renderable: Renderable) -> Element:
        """Memoize a renderable and bind it to this context.

        Unlike `streamtree.memo`, the result renders at most once no matter which
        context later renders it, e.g. when it is referenced in several places of a tree.
        """
        return with_context(_memo(renderable), self)


def _identity(value: Any) -> Any:
    return value


def _frame_parts(frame: Frame) -> list[PartiallyRendered]:
    return list(frame.parts)


def create_render_context(*, logger: LogImplementation | None = None) -> RenderContext:
    """Create a root RenderContext.

    Args:
        logger: Receives element render logs. Defaults to a LoggingLogImplementation
            writing to the `streamtree.render` logger.

    """
    log_impl = logger if logger is not None else LoggingLogImplementation()
    return RenderContext(bindings=MappingProxyType({LoggerContext: log_impl}))


async def render(
    renderable: Renderable,
    *,
    logger: LogImplementation | None = None,
    append_only: bool = False,
) -> str:
    """Render a value to a string."""
    return await create_render_context(logger=logger).render(renderable, append_only=append_only)


async def render_stream(
    renderable: Renderable,
    *,
    logger: LogImplementation | None = None,
    append_only: bool = False,
) -> AsyncGenerator[str]:
    """Render a value, yielding the progressively refined output.

    The last value yielded equals the result of `render`.
    """
    async for text in create_render_context(logger=logger).render(renderable, append_only=append_only):
        yield text


async def partial_render(
    renderable: Renderable,
    stop: ElementPredicate,
    *,
    logger: LogImplementation | None = None,
) -> list[PartiallyRendered]:
    """Render a value without expanding the elements selected by `stop`."""
    return await create_render_context(logger=logger).render(renderable, stop=stop)


async def partial_render_stream(
    renderable: Renderable,
    stop: ElementPredicate,
    *,
    logger: LogImplementation | None = None,
) -> AsyncGenerator[list[PartiallyRendered]]:
    """Like `partial_render`, yielding every intermediate snapshot as well."""
    async for parts in create_render_context(logger=logger).render(renderable, stop=stop):
        yield parts

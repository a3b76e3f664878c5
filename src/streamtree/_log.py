"""Logging of element renders.

The evaluator looks up the active LogImplementation through LoggerContext and
reports every element it expands, tagged with a per-render id.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ._context import create_context

if TYPE_CHECKING:
    from ._context import Context
    from ._node import Element

_LOGGED_MARKER = "__streamtree_logged__"


class LogImplementation(ABC):
    """Receives log events emitted while rendering elements."""

    @abstractmethod
    def log(
        self,
        level: int,
        element: Element,
        render_id: str,
        message: str,
        /,
        **metadata: Any,
    ) -> None:
        """Log a message about the render of `element`.

        Args:
            level: A `logging` level (e.g. `logging.DEBUG`).
            element: The element from which the log originated.
            render_id: Unique identifier of this render of the element.
            message: The message to log.
            **metadata: Extra structured data to attach to the record.

        """

    def log_exception(self, element: Element, render_id: str, exception: BaseException) -> None:
        """Log an exception raised while rendering `element`.

        The exception is logged at ERROR level for the element where it was first
        seen and at DEBUG level for every element it propagates through.
        """
        already_logged = getattr(exception, _LOGGED_MARKER, False)
        if not already_logged:
            # HACK: exceptions do not support weak references, so we tag the instance.
            try:
                setattr(exception, _LOGGED_MARKER, True)
            except AttributeError:
                pass

        self.log(
            logging.DEBUG if already_logged else logging.ERROR,
            element,
            render_id,
            f"Rendering element <{element.tag}> failed with exception: {exception!r}",
            exception=exception,
        )


class NoOpLogImplementation(LogImplementation):
    """A LogImplementation that discards everything."""

    def log(self, level: int, element: Element, render_id: str, message: str, /, **metadata: Any) -> None:
        pass


class LoggingLogImplementation(LogImplementation):
    """A LogImplementation that forwards to a standard library logger.

    The render id, element tag and metadata are attached to each record as `extra`
    fields so handlers and formatters can use them.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger if logger is not None else logging.getLogger("streamtree.render")

    def log(self, level: int, element: Element, render_id: str, message: str, /, **metadata: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            "%s [%s] %s",
            f"<{element.tag}>",
            render_id[:8],
            message,
            extra={"render_id": render_id, "element": element.tag, "metadata": metadata},
        )


LoggerContext: Context[LogImplementation] = create_context(NoOpLogImplementation(), name="Logger")

"""Errors raised by the streamtree runtime itself.

Exceptions raised by components are never wrapped: they propagate unchanged
to the nearest ErrorBoundary or out of the render call.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum, auto
from typing import Any


class ErrorKind(StrEnum):
    """Who is most likely responsible for an error."""

    RUNTIME = auto()  # Expected to happen occasionally, e.g. a network failure
    USER = auto()  # Most likely a mistake in the calling code
    INTERNAL = auto()  # Most likely a bug in streamtree


class ErrorCode(IntEnum):
    """Stable numeric codes for errors raised by streamtree."""

    UNRENDERABLE_TYPE = 1000
    GENERATOR_MUST_BE_EXHAUSTED = 1001
    GENERATOR_CANNOT_BE_USED_TWICE = 1002
    GENERATOR_CANNOT_BE_USED_AS_ITERABLE_AFTER_AWAITING = 1003


_KIND_HINTS = {
    ErrorKind.RUNTIME: "This is a runtime error that's expected to occur with some frequency. It may go away on retry.",
    ErrorKind.USER: "This may be due to a mistake in your code.",
    ErrorKind.INTERNAL: "This is most likely a bug in streamtree.",
}


class StreamTreeError(Exception):
    """An error raised by streamtree.

    Attributes:
        message: Human readable description of the problem.
        code: The ErrorCode identifying the failure.
        kind: Whether this is a runtime, user or internal error.
        metadata: Extra details that help diagnose the error.

    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        kind: ErrorKind,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.kind = kind
        self.metadata = metadata or {}

    def __str__(self) -> str:
        message = self.message if self.message.endswith(".") else f"{self.message}."
        return f"StreamTree({int(self.code)}): {message}\n\n{_KIND_HINTS[self.kind]}"

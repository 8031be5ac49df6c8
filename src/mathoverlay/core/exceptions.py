"""Exception hierarchy for the math overlay renderer."""

from __future__ import annotations


class MathRenderError(RuntimeError):
    """Base exception for math rendering failures."""


class ExtractionError(MathRenderError):
    """Raised when the snippet extractor cannot query a buffer."""


class CompileError(MathRenderError):
    """Raised when the LaTeX engine or the image converter fails for a snippet."""


class OverlayCreationError(MathRenderError):
    """Raised when the overlay primitive refuses to create a placement."""


class ConfigurationError(MathRenderError):
    """Raised when a required collaborator or setting is missing at load time."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "CompileError",
    "ConfigurationError",
    "ExtractionError",
    "MathRenderError",
    "OverlayCreationError",
    "exception_hint",
    "exception_messages",
]

"""Protocols implemented by the collaborators the renderer drives."""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from .models import Snippet, SourceRange


@runtime_checkable
class Buffer(Protocol):
    """Minimal view of an editor buffer."""

    @property
    def id(self) -> Hashable: ...

    @property
    def filetype(self) -> str | None: ...


@runtime_checkable
class SnippetExtractor(Protocol):
    """Yield the math snippets currently present in a buffer.

    Implementations must be deterministic for a given buffer state and keep the
    identity of a snippet that has not moved or changed. Raise
    :class:`~mathoverlay.core.exceptions.ExtractionError` when the buffer cannot
    be queried.
    """

    def extract(self, buffer: Buffer) -> Sequence[Snippet]: ...


@runtime_checkable
class CompileExecutor(Protocol):
    """Turn a complete LaTeX document into an image written at ``output``."""

    async def compile(self, source: str, *, output: Path, density: int) -> Path: ...


@runtime_checkable
class OverlayHandle(Protocol):
    """An image overlay anchored in a buffer."""

    def show(self) -> None: ...

    def hide(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class OverlayFactory(Protocol):
    """Create overlay handles; ``None`` signals the overlay could not be placed."""

    def create(
        self,
        buffer: Buffer,
        artifact: Path,
        *,
        range: SourceRange,
        conceal: bool,
    ) -> OverlayHandle | None: ...


@runtime_checkable
class StyleSource(Protocol):
    """Report the foreground color math should be drawn with."""

    def current_foreground_color(self) -> str: ...


__all__ = [
    "Buffer",
    "CompileExecutor",
    "OverlayFactory",
    "OverlayHandle",
    "SnippetExtractor",
    "StyleSource",
]

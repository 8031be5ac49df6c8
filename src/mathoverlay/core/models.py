"""Value objects exchanged between the extractor, cache and placement registry."""

from __future__ import annotations

from dataclasses import dataclass
import enum


@dataclass(frozen=True, slots=True)
class SourceRange:
    """Anchor of a snippet in a buffer (1-based rows, 0-based columns)."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    def covers_row(self, row: int) -> bool:
        return self.start_row <= row <= self.end_row


@dataclass(frozen=True, slots=True)
class Snippet:
    """One math expression found in a buffer."""

    identity: str
    text: str
    range: SourceRange
    inline: bool = True


@dataclass(frozen=True, slots=True)
class StyleParams:
    """Style values baked into a compiled artifact."""

    color: str
    density: int


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Pure value describing what to compile; equal requests are interchangeable."""

    snippet: str
    style: StyleParams


class RenderMode(enum.Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


__all__ = ["RenderMode", "RenderRequest", "Snippet", "SourceRange", "StyleParams"]

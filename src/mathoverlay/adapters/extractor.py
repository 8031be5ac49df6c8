"""Plain-text buffers and a regex-based inline math extractor."""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from hashlib import sha256
from pathlib import Path
import re

from mathoverlay.core.exceptions import ExtractionError
from mathoverlay.core.interfaces import Buffer
from mathoverlay.core.models import Snippet, SourceRange


_INLINE_MATH = re.compile(
    r"""
    (?<!\\)
    (?:
        \$\|.+?\|\$                          # verbatim math, $|...|$
      | \$(?![\s|$])(?:\\.|[^$\\])+?\$       # plain math, $...$
    )
    """,
    re.VERBOSE,
)

IDENTITY_LENGTH = 16


@dataclass(slots=True)
class TextBuffer:
    """In-memory buffer holding lines of text."""

    id: Hashable
    filetype: str | None
    lines: list[str] = field(default_factory=list)
    path: Path | None = None

    @classmethod
    def from_text(cls, id: Hashable, text: str, *, filetype: str | None = "norg") -> TextBuffer:
        return cls(id=id, filetype=filetype, lines=text.splitlines())

    @classmethod
    def from_path(cls, path: Path, *, filetype: str | None = None) -> TextBuffer:
        resolved = Path(path)
        text = resolved.read_text(encoding="utf-8")
        kind = filetype or resolved.suffix.lstrip(".").lower() or None
        return cls(id=str(resolved), filetype=kind, lines=text.splitlines(), path=resolved)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def set_text(self, text: str) -> None:
        self.lines = text.splitlines()


def snippet_identity(text: str, span: SourceRange) -> str:
    """Identity that survives re-extraction while the snippet neither moves nor changes."""
    payload = f"{span.start_row}:{span.start_col}:{span.end_row}:{span.end_col}:{text}"
    return sha256(payload.encode("utf-8")).hexdigest()[:IDENTITY_LENGTH]


class InlineMathExtractor:
    """Find ``$...$`` and ``$|...|$`` snippets line by line."""

    def __init__(self, pattern: re.Pattern[str] | None = None) -> None:
        self._pattern = pattern or _INLINE_MATH

    def extract(self, buffer: Buffer) -> Sequence[Snippet]:
        lines = getattr(buffer, "lines", None)
        if lines is None:
            raise ExtractionError(f"Buffer {buffer.id!r} does not expose its text.")

        snippets: list[Snippet] = []
        for index, line in enumerate(lines):
            if not isinstance(line, str):
                raise ExtractionError(f"Buffer {buffer.id!r} holds a non-text line at {index + 1}.")
            for match in self._pattern.finditer(line):
                span = SourceRange(
                    start_row=index + 1,
                    start_col=match.start(),
                    end_row=index + 1,
                    end_col=match.end(),
                )
                text = match.group(0)
                snippets.append(
                    Snippet(identity=snippet_identity(text, span), text=text, range=span)
                )
        return snippets


__all__ = ["InlineMathExtractor", "TextBuffer", "snippet_identity"]

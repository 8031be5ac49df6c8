"""Default collaborators: text extraction, LaTeX compilation, overlays, style."""

from __future__ import annotations

from .compiler import EngineChoice, LatexCompiler, select_engine
from .extractor import InlineMathExtractor, TextBuffer
from .overlay import ReportOverlay, ReportPlacement
from .style import StaticStyleSource, resolve_foreground


__all__ = [
    "EngineChoice",
    "InlineMathExtractor",
    "LatexCompiler",
    "ReportOverlay",
    "ReportPlacement",
    "StaticStyleSource",
    "TextBuffer",
    "resolve_foreground",
    "select_engine",
]

"""Primary public API for mathoverlay."""

from __future__ import annotations

from mathoverlay.adapters import (
    InlineMathExtractor,
    LatexCompiler,
    ReportOverlay,
    StaticStyleSource,
    TextBuffer,
)
from mathoverlay.core import (
    CompileError,
    ConfigurationError,
    ContentAddressedCache,
    ExtractionError,
    MathRenderer,
    OverlayCreationError,
    RendererConfig,
    RenderMode,
    Snippet,
    SourceRange,
    setup,
)
from mathoverlay.core.user_dir import cache_roots_override, current_cache_roots
from mathoverlay.version import get_version


__version__ = get_version()

__all__ = [
    "CompileError",
    "ConfigurationError",
    "ContentAddressedCache",
    "ExtractionError",
    "InlineMathExtractor",
    "LatexCompiler",
    "MathRenderer",
    "OverlayCreationError",
    "RenderMode",
    "RendererConfig",
    "ReportOverlay",
    "Snippet",
    "SourceRange",
    "StaticStyleSource",
    "TextBuffer",
    "__version__",
    "cache_roots_override",
    "current_cache_roots",
    "setup",
]

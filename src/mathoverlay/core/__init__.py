"""Render scheduling and placement lifecycle for inline math overlays."""

from __future__ import annotations

from .cache import ContentAddressedCache
from .config import RendererConfig, load_config
from .cursor import CursorVisibility
from .diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from .exceptions import (
    CompileError,
    ConfigurationError,
    ExtractionError,
    MathRenderError,
    OverlayCreationError,
)
from .mode import RenderModeController
from .models import RenderMode, RenderRequest, Snippet, SourceRange, StyleParams
from .placements import BufferRenderState, Placement, PlacementRegistry
from .scheduler import PassResult, RenderScheduler
from .session import COMMAND_ACTIONS, MathRenderer, setup


__all__ = [
    "COMMAND_ACTIONS",
    "BufferRenderState",
    "CompileError",
    "ConfigurationError",
    "ContentAddressedCache",
    "CursorVisibility",
    "DiagnosticEmitter",
    "ExtractionError",
    "LoggingEmitter",
    "MathRenderError",
    "MathRenderer",
    "NullEmitter",
    "OverlayCreationError",
    "PassResult",
    "Placement",
    "PlacementRegistry",
    "RenderMode",
    "RenderModeController",
    "RenderRequest",
    "RenderScheduler",
    "RendererConfig",
    "Snippet",
    "SourceRange",
    "StyleParams",
    "load_config",
    "setup",
]

"""CLI command implementations exposed via `mathoverlay.ui.cli`."""

from __future__ import annotations

from .cache import cache_app
from .render import render


__all__ = ["cache_app", "render"]

"""Global enabled/disabled state of the renderer and its transitions."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
import logging

from .cache import ContentAddressedCache
from .diagnostics import DiagnosticEmitter, NullEmitter
from .interfaces import Buffer, StyleSource
from .models import RenderMode
from .placements import PlacementRegistry
from .scheduler import RenderScheduler


_log = logging.getLogger(__name__)


class RenderModeController:
    """State machine gating every scheduling decision.

    ``disable`` tears down every placement but keeps the artifact cache, while
    a theme change empties the cache because colors are baked into artifacts.
    """

    def __init__(
        self,
        *,
        initial: bool,
        registry: PlacementRegistry,
        cache: ContentAddressedCache,
        style: StyleSource,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.mode = RenderMode.ENABLED if initial else RenderMode.DISABLED
        self._registry = registry
        self._cache = cache
        self._style = style
        self._emitter = emitter or NullEmitter()
        self._scheduler: RenderScheduler | None = None
        self.foreground = style.current_foreground_color()

    def bind(self, scheduler: RenderScheduler) -> None:
        self._scheduler = scheduler

    @property
    def scheduler(self) -> RenderScheduler:
        if self._scheduler is None:
            raise RuntimeError("RenderModeController is not bound to a scheduler.")
        return self._scheduler

    def is_enabled(self) -> bool:
        return self.mode is RenderMode.ENABLED

    def enable(self, buffers: Iterable[Buffer] = ()) -> None:
        """Switch rendering on and schedule a pass for each of ``buffers``."""
        if not self.is_enabled():
            self.mode = RenderMode.ENABLED
            self._emitter.event("render_mode", {"state": "enabled"})
        for buffer in buffers:
            self.scheduler.schedule(buffer)

    def disable(self) -> None:
        """Switch rendering off and close every placement in every buffer."""
        was_enabled = self.is_enabled()
        self.mode = RenderMode.DISABLED
        self.scheduler.cancel_all()
        self._registry.disable_everywhere()
        for state in self._registry.states():
            state.failed.clear()
        if was_enabled:
            self._emitter.event("render_mode", {"state": "disabled"})

    def toggle(self, buffers: Iterable[Buffer] = ()) -> None:
        if self.is_enabled():
            self.disable()
        else:
            self.enable(buffers)

    def on_theme_change(self, buffers: Iterable[Buffer] = ()) -> bool:
        """Pick up the new foreground color and rebuild what was visible.

        Returns ``True`` when a rebuild was scheduled.
        """
        try:
            foreground = self._style.current_foreground_color()
        except Exception as exc:
            self._emitter.error(
                f"Unable to read the foreground color, keeping {self.foreground}: {exc}", exc
            )
            return False
        self.foreground = foreground
        self._cache.clear_all()
        _log.debug("foreground color is now %s", self.foreground)
        if not self.is_enabled():
            return False

        targets = list(buffers)
        self.disable()
        asyncio.get_running_loop().call_soon(self.enable, targets)
        return True


__all__ = ["RenderModeController"]

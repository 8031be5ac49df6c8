"""Host-facing facade: event dispatch, the render command, and setup."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any

from .cache import ContentAddressedCache
from .config import RendererConfig, load_config
from .cursor import CursorVisibility
from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .exceptions import ConfigurationError
from .interfaces import Buffer, CompileExecutor, OverlayFactory, SnippetExtractor, StyleSource
from .mode import RenderModeController
from .models import StyleParams
from .placements import PlacementRegistry
from .scheduler import PassResult, RenderScheduler


_log = logging.getLogger(__name__)

COMMAND_ACTIONS = ("render", "enable", "disable", "toggle")

EventHandler = Callable[[Buffer | None, Mapping[str, Any]], None]


class MathRenderer:
    """Wire the cache, registry, scheduler, cursor logic and mode controller together.

    Hosts forward editor events through :meth:`handle_event` and user commands
    through :meth:`command`; nothing here raises into the host.
    """

    def __init__(
        self,
        *,
        config: RendererConfig,
        extractor: SnippetExtractor,
        compiler: CompileExecutor,
        overlay: OverlayFactory,
        style: StyleSource,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.config = config
        self.emitter = emitter or LoggingEmitter()
        self.extractor = extractor
        self.cache = ContentAddressedCache(
            config.resolve_cache_dir(), compiler, emitter=self.emitter
        )
        self.registry = PlacementRegistry(overlay, conceal=config.conceal, emitter=self.emitter)
        self.mode = RenderModeController(
            initial=config.render_on_enter,
            registry=self.registry,
            cache=self.cache,
            style=style,
            emitter=self.emitter,
        )
        self.scheduler = RenderScheduler(
            registry=self.registry,
            extractor=extractor,
            cache=self.cache,
            config=config,
            style=self.style_params,
            is_enabled=self.mode.is_enabled,
            emitter=self.emitter,
        )
        self.mode.bind(self.scheduler)
        self.cursor = CursorVisibility(
            registry=self.registry,
            scheduler=self.scheduler,
            is_enabled=self.mode.is_enabled,
        )
        self.current_buffer: Buffer | None = None
        self._handlers: dict[str, EventHandler] = {
            "buf_enter": self._on_buf_enter,
            "text_changed": self._on_change,
            "insert_leave": self._on_change,
            "cursor_moved": self._on_cursor_moved,
            "colorscheme": self._on_colorscheme,
            "buf_unload": self._on_buf_unload,
        }
        if config.render_on_enter:
            self._handlers["buf_read"] = self._on_change

    @property
    def enabled(self) -> bool:
        return self.mode.is_enabled()

    def style_params(self) -> StyleParams:
        return StyleParams(color=self.mode.foreground, density=self.config.density)

    def accepts(self, buffer: Buffer | None) -> bool:
        return buffer is not None and self.config.accepts_filetype(buffer.filetype)

    # ----------------------------------------------------------------- events

    @property
    def subscribed_events(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def handle_event(self, name: str, buffer: Buffer | None = None, **payload: Any) -> bool:
        """Dispatch an editor event; returns ``False`` when it was ignored."""
        handler = self._handlers.get(name)
        if handler is None:
            return False
        if name != "colorscheme" and not self.accepts(buffer):
            return False
        handler(buffer, payload)
        return True

    def _on_buf_enter(self, buffer: Buffer, payload: Mapping[str, Any]) -> None:
        self.current_buffer = buffer
        if self.enabled:
            self.registry.show_all(buffer)
        self.scheduler.schedule(buffer)

    def _on_change(self, buffer: Buffer, payload: Mapping[str, Any]) -> None:
        self.current_buffer = buffer
        self.scheduler.schedule(buffer)

    def _on_cursor_moved(self, buffer: Buffer, payload: Mapping[str, Any]) -> None:
        row = payload.get("row")
        if isinstance(row, bool) or not isinstance(row, int):
            self.emitter.warning(
                f"Ignoring cursor_moved event without an integer row (got {row!r})."
            )
            return
        self.cursor.on_cursor_moved(buffer, row)

    def _on_colorscheme(self, buffer: Buffer | None, payload: Mapping[str, Any]) -> None:
        targets = [item for item in self.registry.buffers() if self.accepts(item)]
        self.mode.on_theme_change(targets)

    def _on_buf_unload(self, buffer: Buffer, payload: Mapping[str, Any]) -> None:
        self.scheduler.cancel(buffer)
        self.registry.forget(buffer)
        if self.current_buffer is not None and self.current_buffer.id == buffer.id:
            self.current_buffer = None

    # --------------------------------------------------------------- commands

    def command(self, action: str = "render", buffer: Buffer | None = None) -> bool:
        """Run one of the ``render``/``enable``/``disable``/``toggle`` subactions."""
        target = buffer or self.current_buffer
        if not self.accepts(target):
            self.emitter.warning(
                "Math rendering commands are only available in "
                f"{', '.join(self.config.filetypes)} buffers."
            )
            return False
        if action not in COMMAND_ACTIONS:
            self.emitter.warning(
                f"Unknown math rendering action '{action}' "
                f"(expected one of: {', '.join(COMMAND_ACTIONS)})."
            )
            return False

        self.current_buffer = target
        if action == "render":
            self.mode.enable()
            self.scheduler.schedule(target, delay=0)
        elif action == "enable":
            self.mode.enable([target])
        elif action == "disable":
            self.mode.disable()
        else:
            self.mode.toggle([target])
        return True

    async def render_once(self, buffer: Buffer) -> PassResult:
        """Enable rendering and reconcile ``buffer`` immediately, bypassing debounce."""
        self.mode.enable()
        self.current_buffer = buffer
        return await self.scheduler.reconcile(buffer)


def setup(
    config: RendererConfig | Mapping[str, Any] | None = None,
    *,
    extractor: SnippetExtractor | None,
    overlay: OverlayFactory | None,
    style: StyleSource | None,
    compiler: CompileExecutor | None = None,
    compiler_factory: Callable[[RendererConfig], CompileExecutor] | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> MathRenderer | None:
    """Build a renderer, or report once and return ``None`` when it cannot load."""
    emitter = emitter or LoggingEmitter()
    try:
        resolved = load_config(dict(config) if isinstance(config, Mapping) else config)
        missing = [
            name
            for name, value in (("extractor", extractor), ("overlay", overlay), ("style", style))
            if value is None
        ]
        if missing:
            raise ConfigurationError(
                f"Math rendering is missing required collaborator(s): {', '.join(missing)}."
            )
        try:
            style.current_foreground_color()
        except Exception as exc:
            raise ConfigurationError(f"Unable to query the foreground color: {exc}") from exc
        if compiler is None:
            if compiler_factory is None:
                raise ConfigurationError("Math rendering requires a compile executor.")
            compiler = compiler_factory(resolved)
        renderer = MathRenderer(
            config=resolved,
            extractor=extractor,
            compiler=compiler,
            overlay=overlay,
            style=style,
            emitter=emitter,
        )
    except ConfigurationError as exc:
        emitter.error(f"Math rendering disabled: {exc}", exc)
        return None
    except OSError as exc:
        emitter.error(f"Math rendering disabled: cache directory unavailable ({exc})", exc)
        return None

    _log.debug("math renderer ready (cache: %s)", renderer.cache.root)
    return renderer


__all__ = ["COMMAND_ACTIONS", "MathRenderer", "setup"]

"""Debounced reconciliation of buffer snippets against placed overlays."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
import logging

from .cache import ContentAddressedCache
from .config import RendererConfig
from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import ExtractionError, OverlayCreationError, exception_hint
from .interfaces import Buffer, SnippetExtractor
from .models import RenderRequest, Snippet, StyleParams
from .placements import PlacementRegistry
from .template import cache_key, strip_delimiters


_log = logging.getLogger(__name__)


@dataclass(slots=True)
class PassResult:
    """Summary of one reconciliation pass."""

    created: list[str] = field(default_factory=list)
    closed: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    aborted: bool = False
    discarded: bool = False


class RenderScheduler:
    """Debounce change events per buffer and drive reconciliation passes.

    The pending timer of a buffer is the only way into :meth:`reconcile` for
    event-driven work; a timer that fires while a pass is still awaiting
    compiles only flags a rerun, so passes for one buffer never overlap.
    """

    def __init__(
        self,
        *,
        registry: PlacementRegistry,
        extractor: SnippetExtractor,
        cache: ContentAddressedCache,
        config: RendererConfig,
        style: Callable[[], StyleParams],
        is_enabled: Callable[[], bool],
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._registry = registry
        self._extractor = extractor
        self._cache = cache
        self._config = config
        self._style = style
        self._is_enabled = is_enabled
        self._emitter = emitter or NullEmitter()

    # ------------------------------------------------------------ debouncing

    def schedule(self, buffer: Buffer, *, delay: float | None = None) -> None:
        """Restart the quiet-period timer of ``buffer``.

        ``delay`` overrides the configured debounce, ``0`` meaning the next
        loop iteration.
        """
        state = self._registry.state(buffer)
        if not self._is_enabled():
            self.cancel(buffer)
            return
        if state.timer is not None:
            state.timer.cancel()
        seconds = self._config.debounce_seconds if delay is None else delay
        loop = asyncio.get_running_loop()
        state.timer = loop.call_later(seconds, self._fire, buffer)

    def cancel(self, buffer: Buffer) -> None:
        state = self._registry.state(buffer)
        if state.timer is not None:
            state.timer.cancel()
            state.timer = None
        state.rerun = False

    def cancel_all(self) -> None:
        for state in self._registry.states():
            self.cancel(state.buffer)

    def is_pending(self, buffer: Buffer) -> bool:
        return self._registry.state(buffer).timer is not None

    def is_busy(self, buffer: Buffer) -> bool:
        task = self._registry.state(buffer).task
        return task is not None and not task.done()

    async def wait_idle(self, buffer: Buffer) -> None:
        """Wait until ``buffer`` has neither a pending timer nor a running pass."""
        state = self._registry.state(buffer)
        while True:
            if state.timer is not None:
                remaining = state.timer.when() - asyncio.get_running_loop().time()
                await asyncio.sleep(max(remaining, 0))
                continue
            task = state.task
            if task is not None and not task.done():
                await task
                continue
            return

    def _fire(self, buffer: Buffer) -> None:
        state = self._registry.state(buffer)
        state.timer = None
        if not self._is_enabled():
            return
        if state.task is not None and not state.task.done():
            state.rerun = True
            return
        state.task = asyncio.ensure_future(self._run(buffer))

    async def _run(self, buffer: Buffer) -> None:
        state = self._registry.state(buffer)
        try:
            while True:
                state.rerun = False
                try:
                    await self.reconcile(buffer)
                except Exception as exc:
                    self._emitter.error(
                        f"Math rendering failed for buffer {buffer.id}: {exception_hint(exc)}",
                        exc,
                    )
                if not state.rerun or not self._is_enabled():
                    break
        finally:
            if state.task is asyncio.current_task():
                state.task = None

    # -------------------------------------------------------- reconciliation

    async def reconcile(self, buffer: Buffer) -> PassResult:
        """Bring the placements of ``buffer`` in line with its current snippets."""
        result = PassResult()
        if not self._is_enabled():
            result.discarded = True
            return result

        state = self._registry.state(buffer)
        epoch = state.epoch

        try:
            snippets = list(self._extractor.extract(buffer))
        except ExtractionError as exc:
            message = f"Unable to extract math from buffer {buffer.id}: {exception_hint(exc)}"
            if state.last_error != message:
                state.last_error = message
                self._emitter.warning(message, exc)
            result.aborted = True
            return result
        state.last_error = None

        active = {snippet.identity for snippet in snippets}
        style = self._style()
        pending: list[tuple[Snippet, str]] = []
        requests: list[RenderRequest] = []
        queued: set[str] = set()

        for snippet in snippets:
            if snippet.identity in state.placements:
                result.kept.append(snippet.identity)
                continue
            if snippet.identity in queued:
                continue
            if len(strip_delimiters(snippet.text)) < self._config.min_length:
                result.skipped.append(snippet.identity)
                continue
            request = RenderRequest(snippet=snippet.text, style=style)
            key = cache_key(request)
            if key in state.failed:
                result.skipped.append(snippet.identity)
                continue
            queued.add(snippet.identity)
            pending.append((snippet, key))
            requests.append(request)

        outcomes = await asyncio.gather(
            *(self._cache.get_or_compile(request) for request in requests),
            return_exceptions=True,
        )

        if state.epoch != epoch or not self._is_enabled():
            _log.debug("discarding reconciliation results for buffer %s", buffer.id)
            result.discarded = True
            return result

        for (snippet, key), outcome in zip(pending, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                state.failed.add(key)
                hint = exception_hint(outcome) or type(outcome).__name__
                result.failed[snippet.identity] = hint
                self._emitter.warning(
                    f"Failed to render math snippet {snippet.text.strip()!r}: {hint}", outcome
                )
                continue

            placement = self._registry.create(buffer, snippet, outcome)
            if placement is None:
                error = OverlayCreationError(
                    f"Overlay could not be placed for snippet {snippet.text.strip()!r}"
                )
                state.failed.add(key)
                result.failed[snippet.identity] = str(error)
                self._emitter.warning(str(error), error)
                continue
            result.created.append(snippet.identity)

        for identity in list(state.placements):
            if identity not in active:
                self._registry.close(buffer, identity)
                result.closed.append(identity)

        _log.debug(
            "buffer %s reconciled: %d created, %d closed, %d kept, %d failed",
            buffer.id,
            len(result.created),
            len(result.closed),
            len(result.kept),
            len(result.failed),
        )
        return result


__all__ = ["PassResult", "RenderScheduler"]

"""Per-buffer ownership of overlay placements."""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, Iterator
from dataclasses import dataclass, field
import logging
from pathlib import Path

from .diagnostics import DiagnosticEmitter, NullEmitter
from .interfaces import Buffer, OverlayFactory, OverlayHandle
from .models import Snippet, SourceRange


_log = logging.getLogger(__name__)


@dataclass(slots=True)
class Placement:
    """An overlay anchored to a snippet; only the registry touches ``handle``."""

    identity: str
    handle: OverlayHandle
    range: SourceRange
    artifact: Path
    text: str = ""
    hidden_by_cursor: bool = False
    closed: bool = False


@dataclass(slots=True)
class BufferRenderState:
    """Everything the renderer tracks for a single buffer."""

    buffer: Buffer
    placements: dict[str, Placement] = field(default_factory=dict)
    hidden_by_cursor: set[str] = field(default_factory=set)
    timer: asyncio.TimerHandle | None = None
    task: asyncio.Task[None] | None = None
    rerun: bool = False
    epoch: int = 0
    failed: set[str] = field(default_factory=set)
    last_error: str | None = None


class PlacementRegistry:
    """Create, show, hide and close overlays, keyed by (buffer, snippet identity)."""

    def __init__(
        self,
        overlay: OverlayFactory,
        *,
        conceal: bool = True,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._overlay = overlay
        self._conceal = conceal
        self._emitter = emitter or NullEmitter()
        self._states: dict[Hashable, BufferRenderState] = {}

    # ------------------------------------------------------------------ state

    def state(self, buffer: Buffer) -> BufferRenderState:
        """Return the state record for ``buffer``, creating it on first use."""
        current = self._states.get(buffer.id)
        if current is None:
            current = BufferRenderState(buffer=buffer)
            self._states[buffer.id] = current
        else:
            current.buffer = buffer
        return current

    def states(self) -> Iterator[BufferRenderState]:
        return iter(list(self._states.values()))

    def buffers(self) -> list[Buffer]:
        return [state.buffer for state in self._states.values()]

    def get(self, buffer: Buffer, identity: str) -> Placement | None:
        current = self._states.get(buffer.id)
        if current is None:
            return None
        return current.placements.get(identity)

    def identities(self, buffer: Buffer) -> set[str]:
        current = self._states.get(buffer.id)
        return set(current.placements) if current is not None else set()

    # -------------------------------------------------------------- lifecycle

    def create(self, buffer: Buffer, snippet: Snippet, artifact: Path) -> Placement | None:
        """Place ``artifact`` over ``snippet``; returns ``None`` when the overlay refuses."""
        current = self.state(buffer)
        existing = current.placements.get(snippet.identity)
        if existing is not None:
            return existing

        handle = self._overlay.create(
            buffer, artifact, range=snippet.range, conceal=self._conceal
        )
        if handle is None:
            return None

        placement = Placement(
            identity=snippet.identity,
            handle=handle,
            range=snippet.range,
            artifact=artifact,
            text=snippet.text,
        )
        current.placements[snippet.identity] = placement
        self._emitter.event(
            "placement_created",
            {"buffer": buffer.id, "identity": snippet.identity, "artifact": str(artifact)},
        )
        return placement

    def show(self, buffer: Buffer, identity: str) -> None:
        placement = self.get(buffer, identity)
        if placement is None or placement.closed:
            return
        placement.handle.show()
        placement.hidden_by_cursor = False
        self.state(buffer).hidden_by_cursor.discard(identity)

    def hide(self, buffer: Buffer, identity: str) -> None:
        placement = self.get(buffer, identity)
        if placement is None or placement.closed:
            return
        placement.handle.hide()
        placement.hidden_by_cursor = True
        self.state(buffer).hidden_by_cursor.add(identity)

    def close(self, buffer: Buffer, identity: str) -> None:
        """Close and forget a placement; calling it twice is harmless."""
        current = self._states.get(buffer.id)
        if current is None:
            return
        placement = current.placements.pop(identity, None)
        current.hidden_by_cursor.discard(identity)
        if placement is None or placement.closed:
            return
        placement.closed = True
        placement.handle.close()
        self._emitter.event("placement_closed", {"buffer": buffer.id, "identity": identity})

    def show_all(self, buffer: Buffer) -> None:
        """Make every placement of ``buffer`` visible again."""
        current = self.state(buffer)
        for placement in list(current.placements.values()):
            if not placement.closed:
                placement.handle.show()
                placement.hidden_by_cursor = False
        current.hidden_by_cursor.clear()

    def disable_all(self, buffer: Buffer) -> None:
        """Close every placement of ``buffer`` and reset its overlay state."""
        current = self._states.get(buffer.id)
        if current is None:
            return
        for identity in list(current.placements):
            self.close(buffer, identity)
        current.placements.clear()
        current.hidden_by_cursor.clear()
        current.epoch += 1
        _log.debug("closed every placement of buffer %s", buffer.id)

    def disable_everywhere(self) -> None:
        for current in self.states():
            self.disable_all(current.buffer)

    def forget(self, buffer: Buffer) -> BufferRenderState | None:
        """Tear down ``buffer`` entirely, e.g. once it is unloaded."""
        self.disable_all(buffer)
        return self._states.pop(buffer.id, None)


__all__ = ["BufferRenderState", "Placement", "PlacementRegistry"]

"""Hide placements under the cursor line and restore them once it moves away."""

from __future__ import annotations

from collections.abc import Callable
import logging

from .interfaces import Buffer
from .placements import PlacementRegistry
from .scheduler import RenderScheduler


_log = logging.getLogger(__name__)


class CursorVisibility:
    """Set-diff the placements covering the cursor row against the hidden set."""

    def __init__(
        self,
        *,
        registry: PlacementRegistry,
        scheduler: RenderScheduler,
        is_enabled: Callable[[], bool],
    ) -> None:
        self._registry = registry
        self._scheduler = scheduler
        self._is_enabled = is_enabled

    def on_cursor_moved(self, buffer: Buffer, row: int) -> tuple[set[str], set[str]]:
        """Apply visibility for the cursor at ``row``; return (hidden, shown) identities."""
        if not self._is_enabled() or self._scheduler.is_pending(buffer):
            return set(), set()

        state = self._registry.state(buffer)
        if not state.placements:
            return set(), set()

        # Each placement is checked on its own, stacked ranges included.
        covered = {
            identity
            for identity, placement in state.placements.items()
            if placement.range.covers_row(row)
        }
        previously_hidden = set(state.hidden_by_cursor)

        to_hide = covered - previously_hidden
        to_show = previously_hidden - covered

        for identity in to_hide:
            self._registry.hide(buffer, identity)
        for identity in to_show:
            self._registry.show(buffer, identity)

        if to_hide or to_show:
            _log.debug(
                "cursor at row %d in buffer %s: hid %d, showed %d",
                row,
                buffer.id,
                len(to_hide),
                len(to_show),
            )
        return to_hide, to_show


__all__ = ["CursorVisibility"]

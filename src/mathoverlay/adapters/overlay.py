"""Overlay primitive that records placements instead of drawing them."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from pathlib import Path

from mathoverlay.core.interfaces import Buffer
from mathoverlay.core.models import SourceRange


@dataclass(slots=True)
class ReportPlacement:
    """Overlay handle tracking its own visibility."""

    buffer_id: Hashable
    artifact: Path
    range: SourceRange
    conceal: bool
    visible: bool = True
    closed: bool = False
    show_calls: int = 0
    hide_calls: int = 0
    close_calls: int = 0

    def show(self) -> None:
        self.show_calls += 1
        self.visible = True

    def hide(self) -> None:
        self.hide_calls += 1
        self.visible = False

    def close(self) -> None:
        self.close_calls += 1
        self.visible = False
        self.closed = True


class ReportOverlay:
    """Collect every placement created so a caller can list them afterwards."""

    def __init__(self) -> None:
        self.placements: list[ReportPlacement] = []

    def create(
        self,
        buffer: Buffer,
        artifact: Path,
        *,
        range: SourceRange,
        conceal: bool,
    ) -> ReportPlacement | None:
        if not Path(artifact).exists():
            return None
        placement = ReportPlacement(
            buffer_id=buffer.id, artifact=Path(artifact), range=range, conceal=conceal
        )
        self.placements.append(placement)
        return placement

    def active(self) -> list[ReportPlacement]:
        return [placement for placement in self.placements if not placement.closed]


__all__ = ["ReportOverlay", "ReportPlacement"]

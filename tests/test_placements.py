from __future__ import annotations

from pathlib import Path

from conftest import PNG_BYTES, RecordingEmitter
from mathoverlay.adapters.extractor import TextBuffer
from mathoverlay.adapters.overlay import ReportOverlay
from mathoverlay.core.models import Snippet, SourceRange
from mathoverlay.core.placements import PlacementRegistry


def _snippet(identity: str = "a", row: int = 1) -> Snippet:
    return Snippet(identity=identity, text="$x^2$", range=SourceRange(row, 0, row, 5))


def _artifact(tmp_path: Path, name: str = "x.png") -> Path:
    path = tmp_path / name
    path.write_bytes(PNG_BYTES)
    return path


def test_create_registers_one_placement_per_identity(tmp_path: Path) -> None:
    overlay = ReportOverlay()
    emitter = RecordingEmitter()
    registry = PlacementRegistry(overlay, conceal=False, emitter=emitter)
    buffer = TextBuffer.from_text(1, "$x^2$")

    first = registry.create(buffer, _snippet(), _artifact(tmp_path))
    second = registry.create(buffer, _snippet(), _artifact(tmp_path))

    assert first is second
    assert len(overlay.placements) == 1
    assert overlay.placements[0].conceal is False
    assert registry.identities(buffer) == {"a"}
    assert [name for name, _ in emitter.events] == ["placement_created"]


def test_create_returns_none_when_overlay_refuses(tmp_path: Path) -> None:
    registry = PlacementRegistry(ReportOverlay())
    buffer = TextBuffer.from_text(1, "$x^2$")

    assert registry.create(buffer, _snippet(), tmp_path / "missing.png") is None
    assert registry.identities(buffer) == set()


def test_close_is_idempotent(tmp_path: Path) -> None:
    overlay = ReportOverlay()
    registry = PlacementRegistry(overlay)
    buffer = TextBuffer.from_text(1, "$x^2$")
    registry.create(buffer, _snippet(), _artifact(tmp_path))

    registry.close(buffer, "a")
    registry.close(buffer, "a")
    registry.close(TextBuffer.from_text(2, ""), "a")

    assert overlay.placements[0].close_calls == 1
    assert registry.get(buffer, "a") is None


def test_hide_show_and_show_all(tmp_path: Path) -> None:
    overlay = ReportOverlay()
    registry = PlacementRegistry(overlay)
    buffer = TextBuffer.from_text(1, "$x^2$\n$y^2$")
    registry.create(buffer, _snippet("a", 1), _artifact(tmp_path, "a.png"))
    registry.create(buffer, _snippet("b", 2), _artifact(tmp_path, "b.png"))

    registry.hide(buffer, "a")
    registry.hide(buffer, "b")
    assert registry.state(buffer).hidden_by_cursor == {"a", "b"}
    assert registry.get(buffer, "a").hidden_by_cursor is True

    registry.show(buffer, "a")
    assert registry.state(buffer).hidden_by_cursor == {"b"}
    assert overlay.placements[0].visible is True

    registry.show_all(buffer)
    assert registry.state(buffer).hidden_by_cursor == set()
    assert all(placement.visible for placement in overlay.placements)


def test_disable_all_closes_everything_and_bumps_epoch(tmp_path: Path) -> None:
    overlay = ReportOverlay()
    registry = PlacementRegistry(overlay)
    buffer = TextBuffer.from_text(1, "$x^2$\n$y^2$")
    registry.create(buffer, _snippet("a", 1), _artifact(tmp_path, "a.png"))
    registry.create(buffer, _snippet("b", 2), _artifact(tmp_path, "b.png"))
    registry.hide(buffer, "a")
    epoch = registry.state(buffer).epoch

    registry.disable_all(buffer)

    state = registry.state(buffer)
    assert state.placements == {}
    assert state.hidden_by_cursor == set()
    assert state.epoch == epoch + 1
    assert all(placement.closed for placement in overlay.placements)


def test_forget_drops_buffer_state(tmp_path: Path) -> None:
    overlay = ReportOverlay()
    registry = PlacementRegistry(overlay)
    buffer = TextBuffer.from_text(7, "$x^2$")
    registry.create(buffer, _snippet(), _artifact(tmp_path))

    forgotten = registry.forget(buffer)

    assert forgotten is not None
    assert registry.buffers() == []
    assert overlay.placements[0].closed is True

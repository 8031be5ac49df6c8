from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from mathoverlay.adapters.extractor import InlineMathExtractor, TextBuffer
from mathoverlay.adapters.overlay import ReportOverlay
from mathoverlay.adapters.style import StaticStyleSource
from mathoverlay.core.config import RendererConfig
from mathoverlay.core.exceptions import CompileError
from mathoverlay.core.session import MathRenderer


PNG_BYTES = b"\x89PNG\r\n\x1a\n"


class FakeCompiler:
    """Compile executor writing a stub PNG, optionally slow or failing."""

    def __init__(
        self,
        *,
        delay: float = 0.0,
        fail_when: Callable[[str], bool] | None = None,
    ) -> None:
        self.delay = delay
        self.fail_when = fail_when
        self.sources: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.sources)

    async def compile(self, source: str, *, output: Path, density: int) -> Path:
        self.sources.append(source)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_when is not None and self.fail_when(source):
            raise CompileError("! Undefined control sequence.")
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(PNG_BYTES)
        return output


class RecordingEmitter:
    debug_enabled = False

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


class RefusingOverlay(ReportOverlay):
    def create(self, buffer, artifact, *, range, conceal):
        return None


@pytest.fixture
def compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def make_renderer(tmp_path: Path, compiler: FakeCompiler, emitter: RecordingEmitter):
    """Build a renderer over a temporary cache with fast debouncing."""

    def factory(
        *,
        overlay: ReportOverlay | None = None,
        extractor: Any = None,
        style: StaticStyleSource | None = None,
        compiler_override: Any = None,
        **options: Any,
    ) -> MathRenderer:
        settings = {
            "cache_dir": tmp_path / "cache",
            "debounce_ms": 20,
            "render_on_enter": True,
        }
        settings.update(options)
        return MathRenderer(
            config=RendererConfig(**settings),
            extractor=extractor or InlineMathExtractor(),
            compiler=compiler_override or compiler,
            overlay=overlay or ReportOverlay(),
            style=style or StaticStyleSource(color="#FFFFFF"),
            emitter=emitter,
        )

    return factory


@pytest.fixture
def norg_buffer() -> Callable[..., TextBuffer]:
    def factory(text: str, *, id: int = 1, filetype: str = "norg") -> TextBuffer:
        return TextBuffer.from_text(id, text, filetype=filetype)

    return factory

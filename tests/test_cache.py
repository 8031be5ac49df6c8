from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import FakeCompiler, RecordingEmitter
from mathoverlay.core.cache import ContentAddressedCache, purge_directory
from mathoverlay.core.exceptions import CompileError
from mathoverlay.core.models import RenderRequest, StyleParams


def _request(snippet: str = "$x^2$", color: str = "FFFFFF") -> RenderRequest:
    return RenderRequest(snippet=snippet, style=StyleParams(color=color, density=300))


def test_cache_hit_skips_compilation(tmp_path: Path) -> None:
    compiler = FakeCompiler()
    cache = ContentAddressedCache(tmp_path / "cache", compiler)

    async def scenario() -> tuple[Path, Path]:
        first = await cache.get_or_compile(_request())
        second = await cache.get_or_compile(_request())
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second
    assert compiler.calls == 1
    assert first.suffix == ".png"
    assert first.with_suffix(".tex").exists()
    assert len(first.stem) == 12


def test_concurrent_requests_share_one_compile(tmp_path: Path) -> None:
    compiler = FakeCompiler(delay=0.05)
    cache = ContentAddressedCache(tmp_path / "cache", compiler)

    async def scenario() -> list[Path]:
        return await asyncio.gather(
            cache.get_or_compile(_request()),
            cache.get_or_compile(_request()),
            cache.get_or_compile(_request()),
        )

    paths = asyncio.run(scenario())

    assert len(set(paths)) == 1
    assert compiler.calls == 1
    assert cache.stats()["inflight"] == 0


def test_compile_errors_propagate_and_are_not_cached(tmp_path: Path) -> None:
    compiler = FakeCompiler(fail_when=lambda source: "bad" in source)
    cache = ContentAddressedCache(tmp_path / "cache", compiler)

    async def scenario() -> None:
        for _ in range(2):
            with pytest.raises(CompileError):
                await cache.get_or_compile(_request("$\\bad$"))

    asyncio.run(scenario())

    assert compiler.calls == 2
    assert cache.lookup(_request("$\\bad$")) is None


def test_clear_all_empties_directory_and_forces_recompile(tmp_path: Path) -> None:
    compiler = FakeCompiler()
    emitter = RecordingEmitter()
    cache = ContentAddressedCache(tmp_path / "cache", compiler, emitter=emitter)

    asyncio.run(cache.get_or_compile(_request()))
    removed = cache.clear_all()

    assert removed == 2
    assert list(cache.root.iterdir()) == []
    assert ("cache_cleared", {"root": str(cache.root), "removed": 2}) in emitter.events

    asyncio.run(cache.get_or_compile(_request()))
    assert compiler.calls == 2


def test_artifacts_from_previous_session_are_reused(tmp_path: Path) -> None:
    first_compiler = FakeCompiler()
    first = ContentAddressedCache(tmp_path / "cache", first_compiler)
    asyncio.run(first.get_or_compile(_request()))

    second_compiler = FakeCompiler()
    cache = ContentAddressedCache(tmp_path / "cache", second_compiler)

    assert cache.lookup(_request()) is not None
    asyncio.run(cache.get_or_compile(_request()))
    assert second_compiler.calls == 0


def test_missing_artifact_is_recompiled(tmp_path: Path) -> None:
    compiler = FakeCompiler()
    cache = ContentAddressedCache(tmp_path / "cache", compiler)

    artifact = asyncio.run(cache.get_or_compile(_request()))
    artifact.unlink()
    asyncio.run(cache.get_or_compile(_request()))

    assert compiler.calls == 2
    assert artifact.exists()


def test_compile_finishing_after_clear_is_discarded(tmp_path: Path) -> None:
    compiler = FakeCompiler(delay=0.05)
    cache = ContentAddressedCache(tmp_path / "cache", compiler)

    async def scenario() -> None:
        pending = asyncio.ensure_future(cache.get_or_compile(_request()))
        await asyncio.sleep(0.01)
        cache.clear_all()
        with pytest.raises(CompileError, match="cache cleared"):
            await pending

    asyncio.run(scenario())

    assert list(cache.root.iterdir()) == []
    assert cache.lookup(_request()) is None


def test_purge_directory_counts_files_and_recreates_root(tmp_path: Path) -> None:
    root = tmp_path / "latex"
    (root / "nested").mkdir(parents=True)
    (root / "a.tex").write_text("x", encoding="utf-8")
    (root / "a.png").write_bytes(b"png")
    (root / "nested" / "stray.png").write_bytes(b"png")

    assert purge_directory(root) == 2
    assert root.is_dir()
    assert list(root.iterdir()) == []
    assert purge_directory(tmp_path / "absent") == 0
    assert (tmp_path / "absent").is_dir()

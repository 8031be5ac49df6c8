"""Content-addressed cache of compiled math artifacts."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
import shutil

from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import CompileError
from .interfaces import CompileExecutor
from .models import RenderRequest
from .template import artifact_basename, build_document_source, cache_key


_log = logging.getLogger(__name__)

SOURCE_SUFFIX = ".tex"
ARTIFACT_SUFFIX = ".png"


def purge_directory(root: Path) -> int:
    """Empty ``root`` and recreate it; return how many files it held."""
    removed = 0
    if root.exists():
        removed = sum(1 for path in root.iterdir() if path.is_file())
        shutil.rmtree(root)
    root.mkdir(parents=True, exist_ok=True)
    return removed


class ContentAddressedCache:
    """Map render requests to compiled artifacts stored under ``root``.

    Entries are keyed by the digest of the fully materialised document, so they
    never go stale; the only invalidation is :meth:`clear_all`. Concurrent
    requests for the same key share a single compile task.
    """

    def __init__(
        self,
        root: Path,
        compiler: CompileExecutor,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._compiler = compiler
        self._emitter = emitter or NullEmitter()
        self._entries: dict[str, Path] = {}
        self._inflight: dict[str, asyncio.Task[Path]] = {}
        self._generation = 0

    def source_path(self, key: str) -> Path:
        return self.root / f"{artifact_basename(key)}{SOURCE_SUFFIX}"

    def artifact_path(self, key: str) -> Path:
        return self.root / f"{artifact_basename(key)}{ARTIFACT_SUFFIX}"

    def path_for(self, request: RenderRequest) -> Path:
        """Return where the artifact for ``request`` lives once compiled."""
        return self.artifact_path(cache_key(request))

    def lookup(self, request: RenderRequest) -> Path | None:
        """Return the cached artifact for ``request`` without compiling."""
        return self._lookup_key(cache_key(request))

    def _lookup_key(self, key: str) -> Path | None:
        entry = self._entries.get(key)
        if entry is not None:
            if entry.exists():
                return entry
            self._entries.pop(key, None)

        # Artifacts written by an earlier session are still valid.
        candidate = self.artifact_path(key)
        if candidate.exists():
            self._entries[key] = candidate
            return candidate
        return None

    async def get_or_compile(self, request: RenderRequest) -> Path:
        """Return the artifact for ``request``, compiling it on a cache miss."""
        key = cache_key(request)
        cached = self._lookup_key(key)
        if cached is not None:
            self._emitter.event("cache_hit", {"digest": artifact_basename(key)})
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._compile(key, request, self._generation))
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._release(key, done))
        else:
            _log.debug("joining in-flight compile for %s", artifact_basename(key))
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Task[Path]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception as retrieved even when every waiter went away.
            task.exception()

    async def _compile(self, key: str, request: RenderRequest, generation: int) -> Path:
        source = build_document_source(request)
        source_path = self.source_path(key)
        output = self.artifact_path(key)
        try:
            if not source_path.exists():
                source_path.write_text(source, encoding="utf-8")
        except OSError as exc:
            raise CompileError(f"Unable to write LaTeX source '{source_path}': {exc}") from exc

        self._emitter.event(
            "compile_started",
            {"digest": artifact_basename(key), "density": request.style.density},
        )
        artifact = await self._compiler.compile(
            source, output=output, density=request.style.density
        )

        if generation != self._generation:
            # A newer compile of the same key owns these files.
            superseded = key in self._entries or key in self._inflight
            if not superseded:
                for stale in (artifact, source_path):
                    with contextlib.suppress(OSError):
                        stale.unlink(missing_ok=True)
            raise CompileError(
                f"Discarded artifact {artifact_basename(key)}: cache cleared during compilation"
            )
        if not artifact.exists():
            raise CompileError(f"Compiler reported success but '{artifact}' is missing")

        self._entries[key] = artifact
        return artifact

    def clear_all(self) -> int:
        """Remove every persisted artifact and mapping; return the number of files removed."""
        self._generation += 1
        self._entries.clear()
        self._inflight.clear()

        try:
            removed = purge_directory(self.root)
        except OSError as exc:
            self._emitter.warning(f"Unable to clear math cache '{self.root}'", exc)
            removed = 0
        self._emitter.event("cache_cleared", {"root": str(self.root), "removed": removed})
        return removed

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self._entries),
            "inflight": len(self._inflight),
            "generation": self._generation,
        }


__all__ = ["ARTIFACT_SUFFIX", "SOURCE_SUFFIX", "ContentAddressedCache", "purge_directory"]

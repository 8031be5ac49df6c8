"""Locate the directories mathoverlay writes compiled artifacts to.

Resolution order for the cache root:

1. an explicit ``cache_root`` argument, then ``MATHOVERLAY_CACHE_DIR``;
2. ``<home>/cache`` when a home was given explicitly or through
   ``MATHOVERLAY_HOME``;
3. ``$XDG_CACHE_HOME/mathoverlay``;
4. ``~/.cache/mathoverlay``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import os
from pathlib import Path


__all__ = [
    "APP_NAME",
    "CacheRoots",
    "cache_roots_override",
    "current_cache_roots",
    "resolve_cache_roots",
]

APP_NAME = "mathoverlay"
HOME_ENV = "MATHOVERLAY_HOME"
CACHE_ENV = "MATHOVERLAY_CACHE_DIR"

_OVERRIDE: ContextVar[CacheRoots | None] = ContextVar("mathoverlay_cache_roots", default=None)


@dataclass(frozen=True, slots=True)
class CacheRoots:
    """Resolved home and cache directories."""

    home: Path
    cache_root: Path

    def namespace(self, name: str, *, create: bool = True) -> Path:
        """Return the cache subdirectory ``name``, e.g. ``latex`` for compiled math."""
        target = self.cache_root / name
        if create:
            target.mkdir(parents=True, exist_ok=True)
        return target


def _from_env(name: str) -> Path | None:
    value = os.environ.get(name, "").strip()
    return Path(value).expanduser() if value else None


def resolve_cache_roots(
    *,
    home: str | Path | None = None,
    cache_root: str | Path | None = None,
) -> CacheRoots:
    """Resolve the roots from arguments, then the environment, then defaults."""
    explicit_home = Path(home).expanduser() if home is not None else _from_env(HOME_ENV)
    resolved_home = explicit_home or Path.home() / f".{APP_NAME}"

    if cache_root is not None:
        resolved_cache = Path(cache_root).expanduser()
    else:
        resolved_cache = _from_env(CACHE_ENV)
    if resolved_cache is None and explicit_home is not None:
        resolved_cache = explicit_home / "cache"
    if resolved_cache is None:
        xdg = _from_env("XDG_CACHE_HOME")
        resolved_cache = (xdg or Path.home() / ".cache") / APP_NAME

    return CacheRoots(home=resolved_home, cache_root=resolved_cache)


def current_cache_roots() -> CacheRoots:
    """Return the active override, or roots resolved from the current environment."""
    override = _OVERRIDE.get()
    return override if override is not None else resolve_cache_roots()


@contextmanager
def cache_roots_override(
    *,
    home: str | Path | None = None,
    cache_root: str | Path | None = None,
) -> Iterator[CacheRoots]:
    """Pin the cache roots for the duration of the block."""
    roots = resolve_cache_roots(home=home, cache_root=cache_root)
    token = _OVERRIDE.set(roots)
    try:
        yield roots
    finally:
        _OVERRIDE.reset(token)

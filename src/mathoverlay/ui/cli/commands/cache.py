"""Inspect and clear the compiled math artifact cache."""

from __future__ import annotations

from pathlib import Path

import typer

from mathoverlay.core.cache import purge_directory
from mathoverlay.core.config import load_config
from mathoverlay.core.exceptions import ConfigurationError

from .._options import CacheDirOption
from ..state import emit_error, emit_warning, get_cli_state


cache_app = typer.Typer(help="Inspect or clear compiled math artifacts.")


def _resolve(cache_dir: Path | None) -> Path:
    try:
        return load_config({"cache_dir": cache_dir}).resolve_cache_dir()
    except (ConfigurationError, OSError) as exc:
        emit_error(f"Unable to resolve the math cache directory: {exc}", exception=exc)
        raise typer.Exit(code=1) from exc


@cache_app.command("path")
def cache_path(cache_dir: CacheDirOption = None) -> None:
    """Print the directory holding compiled artifacts."""
    typer.echo(str(_resolve(cache_dir)))


@cache_app.command("clear")
def cache_clear(cache_dir: CacheDirOption = None) -> None:
    """Remove every compiled artifact and LaTeX source."""
    root = _resolve(cache_dir)
    try:
        removed = purge_directory(root)
    except OSError as exc:
        emit_warning(f"Unable to clear '{root}'", exception=exc)
        raise typer.Exit(code=1) from exc
    get_cli_state().console.print(f"Removed {removed} file(s) from {root}")


__all__ = ["cache_app", "cache_clear", "cache_path"]

"""Configuration model for the math overlay renderer.

RendererConfig

`conceal` (`bool`)
: When `True`, rendered images cover the source text they were produced from.

`density` (`int`)
: Rasterisation density handed to ImageMagick, similar to DPI. Higher values
  give crisper images at the expense of compile time.

`render_on_enter` (`bool`)
: Start in the enabled state and render as soon as a document buffer is read
  or entered.

`debounce_ms` (`int`)
: Quiet period after the last change event before a reconciliation pass runs.

`min_length` (`int`)
: Only render snippets whose text, once delimiters such as `$|` are removed,
  is at least this many characters long.

`engine` (`str`)
: LaTeX engine used to compile snippets: `auto`, `tectonic` or `pdflatex`.
  `auto` picks the first one found on `PATH`.

`cache_dir` (`Path | None`)
: Directory receiving the `.tex` sources and `.png` artifacts. Defaults to the
  `latex` namespace of the user cache root.

`filetypes` (`list[str]`)
: Buffer filetypes the renderer reacts to.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .user_dir import current_cache_roots


CACHE_NAMESPACE = "latex"


class RendererConfig(BaseModel):
    """Options recognised by the renderer."""

    model_config = ConfigDict(extra="forbid")

    conceal: bool = True
    density: int = Field(default=300, gt=0)
    render_on_enter: bool = False
    debounce_ms: int = Field(default=200, ge=0)
    min_length: int = Field(default=3, ge=0)
    engine: Literal["auto", "tectonic", "pdflatex"] = "auto"
    cache_dir: Path | None = None
    filetypes: list[str] = Field(default_factory=lambda: ["norg"])

    @field_validator("filetypes")
    @classmethod
    def _normalise_filetypes(cls, value: list[str]) -> list[str]:
        return [item.strip().lower() for item in value if item.strip()]

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def resolve_cache_dir(self) -> Path:
        """Return the artifact directory, creating it when missing."""
        if self.cache_dir is not None:
            target = self.cache_dir.expanduser()
            target.mkdir(parents=True, exist_ok=True)
            return target
        return current_cache_roots().namespace(CACHE_NAMESPACE)

    def accepts_filetype(self, filetype: str | None) -> bool:
        return bool(filetype) and filetype.lower() in self.filetypes


def load_config(options: RendererConfig | dict[str, Any] | None = None) -> RendererConfig:
    """Build a configuration, turning validation failures into ConfigurationError."""
    if isinstance(options, RendererConfig):
        return options
    try:
        return RendererConfig.model_validate(options or {})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid renderer configuration: {exc}") from exc


__all__ = ["CACHE_NAMESPACE", "RendererConfig", "load_config"]

"""Foreground color lookup for rendered math."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Literal


_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")

DARK_FOREGROUND = "FFFFFF"
LIGHT_FOREGROUND = "000000"


def resolve_foreground(
    color: int | str | None,
    *,
    background: Literal["dark", "light"] = "dark",
) -> str:
    """Return ``color`` as six upper-case hex digits.

    Falls back to white on dark backgrounds and black on light ones when the
    highlight group defines no foreground.
    """
    if isinstance(color, bool):
        raise TypeError("Foreground color must be an int or a hex string.")
    if isinstance(color, int):
        if not 0 <= color <= 0xFFFFFF:
            raise ValueError(f"Foreground color {color!r} is out of range.")
        return f"{color:06x}".upper()
    if isinstance(color, str) and color.strip():
        match = _HEX_COLOR.match(color.strip())
        if match is None:
            raise ValueError(f"Foreground color {color!r} is not a #RRGGBB value.")
        return match.group(1).upper()
    return DARK_FOREGROUND if background == "dark" else LIGHT_FOREGROUND


@dataclass(slots=True)
class StaticStyleSource:
    """Style source backed by a settable highlight color and background."""

    color: int | str | None = None
    background: Literal["dark", "light"] = "dark"

    def current_foreground_color(self) -> str:
        return resolve_foreground(self.color, background=self.background)

    def apply_theme(
        self,
        color: int | str | None,
        background: Literal["dark", "light"] | None = None,
    ) -> None:
        self.color = color
        if background is not None:
            self.background = background


__all__ = ["DARK_FOREGROUND", "LIGHT_FOREGROUND", "StaticStyleSource", "resolve_foreground"]

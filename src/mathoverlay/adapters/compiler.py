"""Compile standalone LaTeX documents into transparent PNG images."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
import contextlib
from dataclasses import dataclass
import logging
from pathlib import Path
import shutil
import tempfile
from typing import Literal

from mathoverlay.core.config import RendererConfig
from mathoverlay.core.exceptions import CompileError, ConfigurationError


_log = logging.getLogger(__name__)

EngineName = Literal["tectonic", "pdflatex"]

_ENGINE_ORDER: tuple[EngineName, ...] = ("tectonic", "pdflatex")
_DOCUMENT_STEM = "snippet"
_OUTPUT_TAIL = 5


@dataclass(slots=True)
class EngineChoice:
    """Resolved LaTeX engine and converter executables."""

    name: EngineName
    executable: str
    magick: str


def select_engine(preference: str = "auto", *, magick: str = "magick") -> EngineChoice:
    """Locate the LaTeX engine and ImageMagick on ``PATH``."""
    candidates = _ENGINE_ORDER if preference == "auto" else (preference,)
    found: tuple[EngineName, str] | None = None
    for name in candidates:
        if name not in _ENGINE_ORDER:
            raise ConfigurationError(f"Unknown LaTeX engine '{name}'.")
        path = shutil.which(name)
        if path:
            found = (name, path)
            break
    if found is None:
        wanted = " or ".join(candidates)
        raise ConfigurationError(f"Math rendering requires {wanted} on PATH.")

    magick_path = shutil.which(magick)
    if not magick_path:
        raise ConfigurationError("Math rendering requires ImageMagick ('magick') on PATH.")
    return EngineChoice(name=found[0], executable=found[1], magick=magick_path)


def build_engine_command(choice: EngineChoice, source: Path, outdir: Path) -> list[str]:
    if choice.name == "tectonic":
        return [choice.executable, "--chatter", "minimal", "--outdir", str(outdir), str(source)]
    return [
        choice.executable,
        "-interaction=nonstopmode",
        "-halt-on-error",
        f"-output-directory={outdir}",
        str(source),
    ]


def build_convert_command(choice: EngineChoice, pdf: Path, output: Path, density: int) -> list[str]:
    # Only the first page, on a transparent background, cropped to the ink.
    return [
        choice.magick,
        "-density",
        str(density),
        f"{pdf}[0]",
        "-background",
        "none",
        "-trim",
        str(output),
    ]


def summarise_output(output: str) -> str:
    """Return the most useful lines of a failed tool run."""
    lines = [line.rstrip() for line in output.splitlines() if line.strip()]
    errors = [line for line in lines if line.startswith("!") or "error" in line.lower()]
    if errors:
        return errors[0]
    return " | ".join(lines[-_OUTPUT_TAIL:])


class LatexCompiler:
    """Run the LaTeX engine then ImageMagick in a scratch directory."""

    def __init__(self, engine: EngineChoice, *, timeout: float | None = 60.0) -> None:
        self.engine = engine
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: RendererConfig) -> LatexCompiler:
        return cls(select_engine(config.engine))

    async def compile(self, source: str, *, output: Path, density: int) -> Path:
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix="mathoverlay-") as scratch:
            workdir = Path(scratch)
            tex_path = workdir / f"{_DOCUMENT_STEM}.tex"
            tex_path.write_text(source, encoding="utf-8")

            await self._run(
                build_engine_command(self.engine, tex_path, workdir), workdir, self.engine.name
            )
            pdf_path = workdir / f"{_DOCUMENT_STEM}.pdf"
            if not pdf_path.exists():
                raise CompileError(f"{self.engine.name} produced no PDF output.")

            await self._run(
                build_convert_command(self.engine, pdf_path, output, density), workdir, "magick"
            )
        if not output.exists():
            raise CompileError(f"ImageMagick produced no image at '{output}'.")
        return output

    async def _run(self, argv: Sequence[str], workdir: Path, label: str) -> None:
        _log.debug("running %s", " ".join(argv))
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(workdir),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as exc:
            raise CompileError(f"{label} executable could not be located.") from exc
        except OSError as exc:
            raise CompileError(f"Failed to invoke {label}: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            _kill(process)
            await process.wait()
            raise CompileError(f"{label} timed out after {self.timeout:g}s.") from exc
        except asyncio.CancelledError:
            _kill(process)
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.shield(process.wait())
            raise

        if process.returncode != 0:
            detail = summarise_output(stdout.decode("utf-8", errors="replace"))
            message = f"{label} failed with exit code {process.returncode}"
            if detail:
                message = f"{message}: {detail}"
            raise CompileError(message)


def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()


__all__ = [
    "EngineChoice",
    "LatexCompiler",
    "build_convert_command",
    "build_engine_command",
    "select_engine",
    "summarise_output",
]

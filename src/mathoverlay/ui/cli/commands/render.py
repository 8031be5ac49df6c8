"""Render every math snippet of a document once and report the placements."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from mathoverlay.adapters.compiler import LatexCompiler
from mathoverlay.adapters.extractor import InlineMathExtractor, TextBuffer
from mathoverlay.adapters.overlay import ReportOverlay
from mathoverlay.adapters.style import StaticStyleSource
from mathoverlay.core.config import RendererConfig, load_config
from mathoverlay.core.exceptions import ConfigurationError
from mathoverlay.core.scheduler import PassResult
from mathoverlay.core.session import MathRenderer, setup

from .._options import (
    DIAGNOSTICS_PANEL,
    RENDERING_PANEL,
    CacheDirOption,
    DebugOption,
    VerbosityOption,
)
from ..diagnostics import CliEmitter
from ..state import emit_error, get_cli_state, set_cli_state


def _print_report(renderer: MathRenderer, buffer: TextBuffer, result: PassResult) -> None:
    from rich import box
    from rich.table import Table

    console = get_cli_state().console
    state = renderer.registry.state(buffer)
    table = Table(
        title=f"Math placements in {buffer.path or buffer.id}",
        box=box.SIMPLE,
        show_edge=False,
    )
    table.add_column("Line", justify="right")
    table.add_column("Columns")
    table.add_column("Snippet", overflow="fold")
    table.add_column("Artifact", overflow="fold")

    placements = sorted(
        state.placements.values(),
        key=lambda item: (item.range.start_row, item.range.start_col),
    )
    for placement in placements:
        span = placement.range
        table.add_row(
            str(span.start_row),
            f"{span.start_col}-{span.end_col}",
            placement.text,
            str(placement.artifact),
        )

    console.print(table)
    summary = f"{len(result.created)} rendered, {len(result.skipped)} skipped"
    if result.failed:
        summary = f"{summary}, {len(result.failed)} failed"
    console.print(summary)


def render(
    document: Annotated[
        Path,
        typer.Argument(
            metavar="DOCUMENT",
            help="Document whose inline math should be rendered.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    density: Annotated[
        int,
        typer.Option(
            "--density",
            help="Rasterisation density of the rendered images.",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = 300,
    color: Annotated[
        str | None,
        typer.Option(
            "--color",
            help="Foreground color as #RRGGBB (defaults to the background-based fallback).",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = None,
    background: Annotated[
        str,
        typer.Option(
            "--background",
            help="Background the images are drawn on: 'dark' or 'light'.",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = "dark",
    engine: Annotated[
        str,
        typer.Option(
            "--engine",
            help="LaTeX engine: auto, tectonic or pdflatex.",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = "auto",
    min_length: Annotated[
        int,
        typer.Option(
            "--min-length",
            help="Skip snippets shorter than this once delimiters are removed.",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = 3,
    conceal: Annotated[
        bool,
        typer.Option(
            "--conceal/--no-conceal",
            help="Whether rendered images cover their source text.",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = True,
    filetype: Annotated[
        str | None,
        typer.Option(
            "--filetype",
            help="Treat the document as this filetype instead of using its suffix.",
            rich_help_panel=RENDERING_PANEL,
        ),
    ] = None,
    cache_dir: CacheDirOption = None,
    verbose: VerbosityOption = 0,
    debug: DebugOption = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Do not print the placement table.",
            rich_help_panel=DIAGNOSTICS_PANEL,
        ),
    ] = False,
) -> None:
    """Compile the inline math of DOCUMENT and list the resulting images."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    emitter = CliEmitter(state=state)

    if background not in {"dark", "light"}:
        emit_error(f"Invalid background '{background}', expected 'dark' or 'light'.")
        raise typer.Exit(code=2)

    buffer = TextBuffer.from_path(document, filetype=filetype)
    try:
        config: RendererConfig = load_config(
            {
                "density": density,
                "conceal": conceal,
                "engine": engine,
                "min_length": min_length,
                "cache_dir": cache_dir,
                "filetypes": [buffer.filetype or "norg"],
            }
        )
        style = StaticStyleSource(color=color, background=background)
        style.current_foreground_color()
    except (ConfigurationError, ValueError) as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=2) from exc

    renderer = setup(
        config,
        extractor=InlineMathExtractor(),
        overlay=ReportOverlay(),
        style=style,
        compiler_factory=LatexCompiler.from_config,
        emitter=emitter,
    )
    if renderer is None:
        raise typer.Exit(code=1)

    result = asyncio.run(renderer.render_once(buffer))
    if result.aborted:
        raise typer.Exit(code=1)
    if not quiet:
        _print_report(renderer, buffer, result)
    if result.failed:
        raise typer.Exit(code=1)


__all__ = ["render"]

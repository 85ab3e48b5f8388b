"""
Chromatrace CLI - Potrace vectorization with colour recovery

Converts raster images to SVG, either as a single black silhouette or as a
posterized trace recoloured from the original image.
"""

import itertools
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Optional, Set

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import PipelineConfig
from .pipeline import Vectorizer
from .types import BatchResult, ColorMode, UploadedFile

app = typer.Typer(
    name="chromatrace",
    help="🎨 [bold cyan]Chromatrace[/] - Potrace vectorization with colour recovery\n\n"
         "Convert raster images (PNG, JPG, WEBP, GIF, HEIC, SVG) to SVG "
         "in [bold]color[/] or [bold]black-and-white[/] mode.",
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

console = Console()
error_console = Console(stderr=True, style="bold red")
log_console = Console(stderr=True)

logger = logging.getLogger(__name__)

MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.webp': 'image/webp',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.heic': 'image/heic',
}


class Preset(str, Enum):
    """Tracing preset."""
    balanced = "balanced"
    detailed = "detailed"
    smooth = "smooth"


class Executor(str, Enum):
    """Worker pool used for a batch."""
    process = "process"
    thread = "thread"


# Options shared by both commands
FilesArg = Annotated[
    List[Path],
    typer.Argument(
        help="Input images",
        exists=True,
        dir_okay=False,
        readable=True,
        show_default=False,
    ),
]
OutputOpt = Annotated[
    Optional[Path],
    typer.Option(
        "--output", "-o",
        help="Directory for <name>.svg files [dim](default: next to each input)[/]",
        file_okay=False,
        show_default=False,
    ),
]
JsonOpt = Annotated[
    bool,
    typer.Option("--json", help="Print the batch result as JSON"),
]
PresetOpt = Annotated[
    Preset,
    typer.Option(
        "--preset", "-p",
        help="Tracing preset",
        rich_help_panel="Tracing Options",
    ),
]
StepsOpt = Annotated[
    Optional[int],
    typer.Option(
        "--steps", "-s",
        help="Gray levels for posterization [dim](overrides preset)[/]",
        min=2,
        max=255,
        rich_help_panel="Tracing Options",
    ),
]
MaxDimensionOpt = Annotated[
    int,
    typer.Option(
        "--max-dimension",
        help="Cap for the longer image side before tracing",
        min=1,
        rich_help_panel="Tracing Options",
    ),
]
NoOptimizeOpt = Annotated[
    bool,
    typer.Option(
        "--no-optimize",
        help="Skip SVG minification",
        rich_help_panel="Tracing Options",
    ),
]
WorkersOpt = Annotated[
    Optional[int],
    typer.Option(
        "--workers", "-w",
        help="Number of parallel workers [dim](default: CPU count)[/]",
        min=1,
        rich_help_panel="Performance Options",
    ),
]
ExecutorOpt = Annotated[
    Executor,
    typer.Option(
        "--executor",
        help="Run files in processes or threads",
        rich_help_panel="Performance Options",
    ),
]
VerboseOpt = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show detailed progress information"),
]
QuietOpt = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Suppress all output except errors"),
]


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        from chromatrace import __version__
        console.print(f"[bold cyan]Chromatrace[/] version [bold green]{__version__}[/]")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        )
    ] = None,
):
    """Potrace vectorization with colour recovery."""


def setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=log_console, show_path=verbose, rich_tracebacks=True)],
        force=True,
    )


def guess_mime_type(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), 'application/octet-stream')


def load_uploads(files: List[Path]) -> List[UploadedFile]:
    """Read input files into uploads, deriving mime types from suffixes."""
    return [
        UploadedFile(
            field_name="images",
            original_name=path.name,
            mime_type=guess_mime_type(path),
            data=path.read_bytes(),
        )
        for path in files
    ]


def output_path(path: Path, output_dir: Optional[Path], taken: Set[Path]) -> Path:
    """
    Pick where the SVG for an input goes.

    The default is <stem>.svg. A name that would overwrite an input of the batch
    or an SVG already written by it gets the input's extension appended to its stem,
    then a counter.

    Args:
        path: Input file
        output_dir: Output directory (None writes next to the input)
        taken: Resolved paths that must not be written; updated with the result

    Returns:
        Target path
    """
    target_dir = output_dir if output_dir is not None else path.parent
    extension = path.suffix.lstrip('.').lower() or 'out'
    candidates = itertools.chain(
        [f"{path.stem}.svg", f"{path.stem}-{extension}.svg"],
        (f"{path.stem}-{extension}-{n}.svg" for n in itertools.count(2)),
    )

    for name in candidates:
        target = target_dir / name
        if target.resolve() not in taken:
            break
    if target.name != f"{path.stem}.svg":
        logger.warning("Writing %s to %s to avoid overwriting another file", path, target)
    taken.add(target.resolve())
    return target


def write_outputs(batch: BatchResult, files: List[Path], output_dir: Optional[Path]) -> List[Optional[Path]]:
    """Write each successful SVG, returning the path per input (None on failure)."""
    taken = {path.resolve() for path in files}
    written = []
    for path, outcome in zip(files, batch.outcomes):
        if not outcome.ok:
            written.append(None)
            continue
        target = output_path(path, output_dir, taken)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(outcome.result.svg, encoding="utf-8")
        written.append(target)
    return written


def show_results(batch: BatchResult, written: List[Optional[Path]]) -> None:
    table = Table(
        title=f"🖼️  {batch.color_mode.value} ({batch.algorithm})",
        box=box.ROUNDED,
        show_header=True,
        border_style="cyan",
        header_style="bold cyan",
    )
    table.add_column("File", style="bold")
    table.add_column("Status")
    table.add_column("Output / Error")

    for outcome, target in zip(batch.outcomes, written):
        if outcome.ok:
            size = len(outcome.result.svg.encode("utf-8"))
            table.add_row(
                outcome.original_name,
                "[green]✅ done[/]",
                f"{target} [dim]({size / 1024:.1f} KB)[/]",
            )
        else:
            table.add_row(
                outcome.original_name,
                f"[red]❌ {outcome.state.value}[/]",
                f"[yellow]{outcome.error_type}[/]: {outcome.error}",
            )
    console.print(table)

    if batch.failed:
        console.print(Panel(
            f"[bold red]{len(batch.failed)}[/] of {len(batch.outcomes)} file(s) failed",
            border_style="red",
        ))


def _vectorize(
    files: List[Path],
    mode: ColorMode,
    output_dir: Optional[Path],
    as_json: bool,
    preset: Preset,
    steps: Optional[int],
    max_dimension: int,
    no_optimize: bool,
    workers: Optional[int],
    executor: Executor,
    verbose: bool,
    quiet: bool,
) -> None:
    setup_logging(verbose, quiet)

    try:
        config = PipelineConfig.from_preset(
            preset.value,
            posterize_steps=steps,
            max_dimension=max_dimension,
            optimize=not no_optimize,
            max_workers=workers,
            executor=executor.value,
        )
    except ValueError as e:
        error_console.print(f"❌ Invalid settings: {e}")
        raise typer.Exit(2)

    try:
        batch = Vectorizer(config).process_files(load_uploads(files), mode)
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠️ Operation cancelled by user.[/]")
        raise typer.Exit(130)

    written = write_outputs(batch, files, output_dir)

    if as_json:
        typer.echo(json.dumps(batch.to_dict(), indent=2))
    elif not quiet:
        show_results(batch, written)

    if batch.failed:
        raise typer.Exit(1)


@app.command("color", rich_help_panel="Commands")
def color(
    files: FilesArg,
    output_dir: OutputOpt = None,
    as_json: JsonOpt = False,
    preset: PresetOpt = Preset.balanced,
    steps: StepsOpt = None,
    max_dimension: MaxDimensionOpt = 1000,
    no_optimize: NoOptimizeOpt = False,
    workers: WorkersOpt = None,
    executor: ExecutorOpt = Executor.process,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """
    🎨 Posterize, trace and recolour images from their own pixels.

    [bold]Examples:[/]

      $ chromatrace color photo.jpg -o out/

      [dim]# More gray levels, more colours[/]
      $ chromatrace color logo.png --steps 6
    """
    _vectorize(
        files, ColorMode.COLOR, output_dir, as_json, preset, steps,
        max_dimension, no_optimize, workers, executor, verbose, quiet,
    )


@app.command("black-and-white", rich_help_panel="Commands")
def black_and_white(
    files: FilesArg,
    output_dir: OutputOpt = None,
    as_json: JsonOpt = False,
    preset: PresetOpt = Preset.balanced,
    steps: StepsOpt = None,
    max_dimension: MaxDimensionOpt = 1000,
    no_optimize: NoOptimizeOpt = False,
    workers: WorkersOpt = None,
    executor: ExecutorOpt = Executor.process,
    verbose: VerboseOpt = False,
    quiet: QuietOpt = False,
):
    """
    ⚫ Trace images to a single black silhouette.

    [bold]Examples:[/]

      $ chromatrace black-and-white scan.png -o out/
    """
    _vectorize(
        files, ColorMode.BLACK_AND_WHITE, output_dir, as_json, preset, steps,
        max_dimension, no_optimize, workers, executor, verbose, quiet,
    )


def run():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()

"""TrimFlow CLI entry point.

``trimflow trim`` runs the silence-removal pipeline on one file (single mode)
or several (batch mode) with a Rich progress bar. The pipeline runs on a
worker thread and reports through a queue; Ctrl-C requests cancellation,
which kills the running FFmpeg process instead of abandoning it.

``trimflow check`` reports whether FFmpeg and ffprobe can be found.
"""

import logging
import queue
import threading
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from trimflow import events
from trimflow.config import ProcessingRequest, ToolSettings, make_output_path, resolve_settings
from trimflow.errors import TrimFlowError
from trimflow.events import Completion, LogLine, QueueSink, RunState
from trimflow.pipeline import TrimPipeline

app = typer.Typer(
    name="trimflow",
    help="TrimFlow: remove silent stretches from video files with FFmpeg.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

_VALID_VIDEO_EXTS = {".mp4", ".avi", ".mkv", ".mov", ".wmv", ".flv"}

# Exit status for a run the user cancelled (128 + SIGINT, as shells report it)
EXIT_CANCELLED = 130

# Lines of FFmpeg output shown under a failure panel
_DIAGNOSTIC_LINES = 15


def _input_error(message: str) -> None:
    err_console.print(Panel(message, title="[red]Input Error[/red]", border_style="red"))
    raise typer.Exit(1)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )


def _drain_events(
    sink: QueueSink,
    worker: threading.Thread,
    progress: Progress,
    task_id,
    show_log: bool,
) -> Optional[Completion]:
    """Apply queued events to the progress bar until the worker has finished."""
    completion: Optional[Completion] = None
    while True:
        try:
            event = sink.events.get(timeout=0.1)
        except queue.Empty:
            if not worker.is_alive() and sink.events.empty():
                return completion
            continue
        if isinstance(event, events.Progress):
            progress.update(task_id, completed=event.percentage, description=event.status)
        elif isinstance(event, LogLine):
            if show_log or event.level >= logging.WARNING:
                progress.console.print(f"[dim]{event.timestamp:%H:%M:%S}[/dim] {event.message}")
        elif isinstance(event, Completion):
            completion = event


def _run_with_progress(pipeline: TrimPipeline, sink: QueueSink, request: ProcessingRequest, show_log: bool) -> Optional[Completion]:
    worker = threading.Thread(target=pipeline.run, args=(request,), name="trimflow-pipeline", daemon=True)
    worker.start()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task("Starting...", total=100)
        try:
            return _drain_events(sink, worker, progress, task_id, show_log)
        except KeyboardInterrupt:
            progress.console.print("[yellow]Cancellation in progress...[/yellow]")
            pipeline.cancel()
            return _drain_events(sink, worker, progress, task_id, show_log)


def _report(completion: Optional[Completion], request: ProcessingRequest, suffix: str) -> None:
    if completion is None:
        err_console.print(Panel(
            "The pipeline stopped without reporting a result.",
            title="[red]Pipeline Error[/red]",
            border_style="red",
        ))
        raise typer.Exit(1)

    if completion.state is RunState.CANCELLED:
        console.print(Panel(
            "Processing cancelled. Output files for unfinished inputs were not written.",
            title="[yellow]Cancelled[/yellow]",
            border_style="yellow",
        ))
        raise typer.Exit(EXIT_CANCELLED)

    if completion.state is RunState.FAILED:
        body = completion.message
        if completion.diagnostics:
            tail = "\n".join(completion.diagnostics.strip().splitlines()[-_DIAGNOSTIC_LINES:])
            body += f"\n\n[dim]FFmpeg output (last {_DIAGNOSTIC_LINES} lines):[/dim]\n{tail}"
        err_console.print(Panel(body, title="[red]Pipeline Error[/red]", border_style="red"))
        raise typer.Exit(1)

    if request.is_batch:
        outputs = "\n".join(
            f"  [dim]{make_output_path(p, suffix)}[/dim]" for p in request.batch_inputs
        )
        summary = f"  Files:  {len(request.batch_inputs)}\n{outputs}"
    else:
        summary = f"  Output: [dim]{request.output_path}[/dim]"
    console.print(Panel(
        f"[bold green]{completion.message}[/bold green]\n\n{summary}",
        title="[green]Done[/green]",
        border_style="green",
    ))


@app.command()
def trim(
    videos: Annotated[
        list[Path],
        typer.Argument(
            dir_okay=False,
            resolve_path=True,
            help="Input video file(s). More than one file runs batch mode.",
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output", "-o",
            dir_okay=False,
            resolve_path=True,
            help="Output file (single mode only). Default: <name>_trimmed.<ext> next to the input.",
        ),
    ] = None,
    threshold: Annotated[
        float,
        typer.Option("--threshold", "-t", max=0.0, help="Silence threshold in dB (lower = more sensitive)."),
    ] = -30.0,
    min_silence: Annotated[
        float,
        typer.Option("--min-silence", "-d", min=0.01, help="Minimum silence duration in seconds."),
    ] = 0.5,
    suffix: Annotated[
        Optional[str],
        typer.Option("--suffix", help="Filename suffix for generated outputs (default: _trimmed)."),
    ] = None,
    ffmpeg: Annotated[
        Optional[Path],
        typer.Option("--ffmpeg", help="Path to the ffmpeg executable (default: TRIMFLOW_FFMPEG, then PATH)."),
    ] = None,
    ffprobe: Annotated[
        Optional[Path],
        typer.Option("--ffprobe", help="Path to the ffprobe executable."),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", dir_okay=False, resolve_path=True, help="JSON settings file."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Show the detailed processing log."),
    ] = False,
) -> None:
    """Remove silent stretches from one or more video files."""
    _configure_logging(verbose)

    for video in videos:
        if video.suffix.lower() not in _VALID_VIDEO_EXTS:
            _input_error(
                f"Unsupported video format: [bold]{video.name}[/bold]\n"
                f"Supported formats: {', '.join(sorted(_VALID_VIDEO_EXTS))}"
            )

    batch = len(videos) > 1
    if batch and output is not None:
        _input_error(
            "--output cannot be used with several input files.\n"
            "In batch mode output files are generated automatically."
        )

    try:
        settings = resolve_settings(ffmpeg=ffmpeg, ffprobe=ffprobe, config_path=config)
    except TrimFlowError as e:
        err_console.print(Panel(str(e), title="[red]Setup Error[/red]", border_style="red"))
        raise typer.Exit(1)
    if suffix is not None:
        try:
            settings = ToolSettings.model_validate({**settings.model_dump(), "batch_suffix": suffix})
        except ValidationError:
            _input_error("--suffix must not be empty; it would overwrite the input files.")

    if not batch and output is not None and output.resolve() == videos[0].resolve():
        _input_error(
            f"Output path is the input file: [bold]{videos[0].name}[/bold]\n"
            "Choose a different --output path."
        )

    if batch:
        request = ProcessingRequest(
            batch_inputs=tuple(videos),
            silence_threshold_db=threshold,
            min_silence_duration_s=min_silence,
        )
    else:
        request = ProcessingRequest(
            input_path=videos[0],
            output_path=output or make_output_path(videos[0], settings.batch_suffix),
            silence_threshold_db=threshold,
            min_silence_duration_s=min_silence,
        )

    mode = f"batch of {len(videos)}" if batch else videos[0].name
    console.print(
        f"\n[bold cyan]TrimFlow[/bold cyan] [dim]{mode}[/dim]  "
        f"threshold=[bold]{threshold:g}dB[/bold] min-silence=[bold]{min_silence:g}s[/bold]\n"
    )

    sink = QueueSink()
    pipeline = TrimPipeline(settings, sink=sink)
    completion = _run_with_progress(pipeline, sink, request, show_log=verbose)
    _report(completion, request, settings.batch_suffix)


@app.command()
def check(
    ffmpeg: Annotated[
        Optional[Path],
        typer.Option("--ffmpeg", help="Path to the ffmpeg executable."),
    ] = None,
    ffprobe: Annotated[
        Optional[Path],
        typer.Option("--ffprobe", help="Path to the ffprobe executable."),
    ] = None,
) -> None:
    """Check that FFmpeg and ffprobe can be found."""
    try:
        settings = resolve_settings(ffmpeg=ffmpeg, ffprobe=ffprobe)
    except TrimFlowError as e:
        err_console.print(Panel(str(e), title="[red]FFmpeg Not Found[/red]", border_style="red"))
        raise typer.Exit(1)

    probe_line = (
        f"  ffprobe: [dim]{settings.ffprobe_path}[/dim]"
        if settings.ffprobe_path is not None
        else "  ffprobe: [yellow]not found[/yellow] (needed to measure media duration)"
    )
    console.print(Panel(
        f"[bold green]FFmpeg is ready[/bold green]\n\n"
        f"  ffmpeg:  [dim]{settings.ffmpeg_path}[/dim]\n"
        + probe_line,
        title="[green]Check[/green]",
        border_style="green",
    ))
    if settings.ffprobe_path is None:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()

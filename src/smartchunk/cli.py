"""
Command line interface for the smart chunker.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .chunking import supported_extensions
from .errors import DiscoveryError, SinkError
from .logger import configure_logging, get_logger, redirect_logging_to_file, resolve_level
from .services import ChunkPipeline, FileOutcome, PipelineCallbacks, RunSummary
from .settings import settings
from .storage import JsonlSink

app = typer.Typer(name="smartchunk", help="Syntax-aware, token-bounded code chunker.")
configure_logging(enable_console=False)
log = get_logger(__name__)
console = Console()


def _print_summary(summary: RunSummary) -> None:
    table = Table(title="Chunking summary", show_header=False)
    table.add_row("Output file", str(summary.output_path))
    table.add_row("Files scanned", str(summary.files_scanned))
    table.add_row("Files chunked", str(summary.files_chunked))
    table.add_row("Files skipped", str(summary.files_skipped))
    table.add_row("Files failed", str(summary.files_failed))
    table.add_row("Chunks emitted", str(summary.chunks_emitted))
    table.add_row("Tokens measured", str(summary.total_tokens))
    console.print(table)


@app.command()
def chunk(
    path: Path = typer.Argument(..., help="Directory or file to chunk."),
    output: Path = typer.Option(
        settings.output_path, "--output", "-o", help="JSON Lines file to (re)create."
    ),
    since: Optional[str] = typer.Option(
        None,
        "--since",
        "-s",
        help="Only chunk files changed between this git commit and HEAD.",
    ),
    max_tokens: int = typer.Option(
        settings.max_chunk_tokens,
        "--max-tokens",
        "-t",
        min=1,
        help="Maximum tokens per emitted chunk.",
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", min=1, help="Worker threads (defaults to CPU count)."
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log", help="Write detailed logs to this file."
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log threshold (debug, info, warning, error); without --log, logs go to stderr.",
    ),
    log_json: bool = typer.Option(
        False, "--log-json", help="Write the log file as JSON lines."
    ),
) -> None:
    """Chunk every supported source file under PATH into JSON lines."""
    if not path.exists():
        typer.echo(f"[ERROR] Path not found: {path}")
        raise typer.Exit(code=2)

    try:
        level = resolve_level(log_level or settings.log_level)
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=2)

    if log_file:
        redirect_logging_to_file(log_file.resolve(), level=level, json_output=log_json)
        typer.echo(f"Logging detailed output to {log_file.resolve()}")
    elif log_level:
        configure_logging(level, enable_console=True)

    run_settings = settings.model_copy(
        update={
            "max_chunk_tokens": max_tokens,
            "max_workers": workers or settings.max_workers,
        }
    )

    mode = f"git diff since {since}" if since else "full scan"

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        chunk_task = progress.add_task("Discovering files", total=None)

        def on_files_found(count: int) -> None:
            console.print(f"Chunking {count} files from {path} ({mode})")
            progress.update(chunk_task, total=max(count, 1), description="Chunking files")

        def on_file_done(done_path: Path, outcome: FileOutcome) -> None:
            if outcome is FileOutcome.FAILED:
                console.print(f"[yellow]warning[/yellow]: could not chunk {done_path}")
            progress.update(chunk_task, advance=1, description=f"Chunking {done_path.name}")

        callbacks = PipelineCallbacks(files_found=on_files_found, file_done=on_file_done)
        try:
            with JsonlSink(output) as sink:
                pipeline = ChunkPipeline.from_settings(
                    sink, app_settings=run_settings, callbacks=callbacks
                )
                summary = pipeline.run_path(
                    path, since=since, extra_ignore=run_settings.extra_ignore_patterns
                )
        except DiscoveryError as exc:
            typer.echo(f"[ERROR] {exc}")
            raise typer.Exit(code=2)
        except SinkError as exc:
            typer.echo(
                f"[ERROR] {exc} ({exc.records_written} records written before failure)"
            )
            raise typer.Exit(code=1)

    _print_summary(summary)


@app.command()
def languages() -> None:
    """List the file extensions that can be chunked."""
    for extension, label in supported_extensions():
        typer.echo(f".{extension}\t{label}")


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

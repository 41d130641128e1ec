"""
CLI interface for mencoder-command.

This module provides the command-line interface using Typer and Rich.
"""

import asyncio
import sys
import time
from pathlib import Path
from typing import Mapping, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from ..capabilities import CapabilityCatalog
from ..command import CODEC_DATA, PROGRESS, MencoderCommand
from ..config import RunnerConfig, get_config_manager
from ..models import CodecData, ProgressInfo, RunResult
from ..tools import BinaryLocator
from ..utils import TranscoderError, format_duration, format_size, get_logger, setup_logger

app = typer.Typer(
    name="mencoder-command",
    help="Run and supervise mencoder transcodes",
    add_completion=False,
)

console = Console()

logger = get_logger(__name__)


def _load_config(config_file: Optional[Path], verbose: bool, log_file: Optional[Path]) -> RunnerConfig:
    config = get_config_manager(config_file).config
    setup_logger(
        level=config.logging.level,
        log_file=log_file or config.logging.file,
        verbose=verbose,
        console=console,
    )
    return config


@app.command("run")
def run_command(
    input_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Input media file",
    ),
    output_file: Path = typer.Argument(..., dir_okay=False, help="Output media file"),
    video_codec: Optional[str] = typer.Option(None, "--ovc", help="Video codec (e.g. lavc, x264)"),
    audio_codec: Optional[str] = typer.Option(None, "--oac", help="Audio codec (e.g. mp3lame)"),
    container: Optional[str] = typer.Option(None, "--of", help="Container format (e.g. avi, lavf)"),
    video_filters: Optional[list[str]] = typer.Option(
        None, "--vf", help="Video filter, may be repeated"
    ),
    audio_filters: Optional[list[str]] = typer.Option(
        None, "--af", help="Audio filter, may be repeated"
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Timeout in seconds"),
    niceness: Optional[int] = typer.Option(
        None, "--niceness", "-n", help="Process niceness, -20 to 20"
    ),
    flvmeta: bool = typer.Option(
        False, "--flvmeta", help="Update FLV metadata of the output afterwards"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[Path] = typer.Option(None, "--log", help="Log file path"),
) -> None:
    """
    Transcode a file with mencoder, showing progress.
    """
    try:
        config = _load_config(config_file, verbose, log_file)

        command = MencoderCommand(niceness=niceness, timeout=timeout, config=config)
        command.input(input_file)
        if video_codec:
            command.video_codec(video_codec)
        if audio_codec:
            command.audio_codec(audio_codec)
        if container:
            command.format(container)
        if video_filters:
            command.video_filters(*video_filters)
        if audio_filters:
            command.audio_filters(*audio_filters)
        command.output(output_file)
        if flvmeta:
            command.flvmeta()

        started = time.monotonic()
        result = asyncio.run(_run_async(command, input_file.name))
        elapsed = time.monotonic() - started

    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Transcoding cancelled by user[/yellow]")
        sys.exit(130)
    except TranscoderError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)

    console.print(f"[green]✓[/green] Wrote {output_file} in {format_duration(elapsed)}")
    if output_file.exists():
        console.print(f"   Size: {format_size(output_file.stat().st_size)}")
    logger.debug(f"mencoder arguments: {' '.join(result.args)}")


async def _run_async(command: MencoderCommand, label: str) -> RunResult:
    """Run the command with a Rich progress bar fed by progress events."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("{task.fields[fps]}"),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task_id = progress.add_task(label, total=None, fps="")

        def on_progress(info: ProgressInfo) -> None:
            progress.update(
                task_id,
                total=100.0 if info.percent is not None else None,
                completed=info.percent or 0.0,
                fps=f"{info.current_fps:.1f} fps",
            )

        def on_codec_data(data: CodecData) -> None:
            progress.console.print(
                f"   Input: {data.format}, {data.duration}, video {data.video or '-'}, "
                f"audio {data.audio or '-'}"
            )

        command.on(PROGRESS, on_progress)
        command.on(CODEC_DATA, on_codec_data)

        result = await command.run()
        progress.update(task_id, total=100.0, completed=100.0)
        return result


def _show_catalog(title: str, columns: list[str], rows: list[list[str]]) -> None:
    table = Table(title=title, show_header=True)
    for index, column in enumerate(columns):
        table.add_column(column, style="cyan" if index == 0 else "white")
    for row in rows:
        table.add_row(*row)
    console.print(table)
    console.print(f"[dim]{len(rows)} entries[/dim]")


def _query(kind: str, config_file: Optional[Path]) -> Mapping:
    config = _load_config(config_file, verbose=False, log_file=None)
    catalog = CapabilityCatalog(BinaryLocator(config.binaries))
    try:
        return asyncio.run(getattr(catalog, f"available_{kind}")())
    except TranscoderError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        sys.exit(1)


def _flag(value: bool, char: str) -> str:
    return char if value else "."


@app.command("codecs")
def codecs_command(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True),
) -> None:
    """
    List codecs known to the transcoder.
    """
    codecs = _query("codecs", config_file)
    _show_catalog(
        "Codecs",
        ["Name", "Type", "Flags", "Description"],
        [
            [
                name,
                info.type.value,
                _flag(info.can_decode, "D") + _flag(info.can_encode, "E"),
                info.description,
            ]
            for name, info in sorted(codecs.items())
        ],
    )


@app.command("encoders")
def encoders_command(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True),
) -> None:
    """
    List encoders known to the transcoder.
    """
    encoders = _query("encoders", config_file)
    _show_catalog(
        "Encoders",
        ["Name", "Type", "Flags", "Description"],
        [
            [
                name,
                info.type.value,
                _flag(info.frame_mt, "F") + _flag(info.slice_mt, "S") + _flag(info.experimental, "X"),
                info.description,
            ]
            for name, info in sorted(encoders.items())
        ],
    )


@app.command("formats")
def formats_command(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True),
) -> None:
    """
    List container formats known to the transcoder.
    """
    formats = _query("formats", config_file)
    _show_catalog(
        "Formats",
        ["Name", "Flags", "Description"],
        [
            [name, _flag(info.can_demux, "D") + _flag(info.can_mux, "E"), info.description]
            for name, info in sorted(formats.items())
        ],
    )


@app.command("filters")
def filters_command(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True),
) -> None:
    """
    List filters known to the transcoder.
    """
    filters = _query("filters", config_file)
    _show_catalog(
        "Filters",
        ["Name", "Input", "Output", "Description"],
        [
            [name, info.input.value, info.output.value, info.description]
            for name, info in sorted(filters.items())
        ],
    )


@app.command("config")
def config_command(
    action: str = typer.Argument(..., help="Action: init, show"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file for 'init' action",
    ),
) -> None:
    """
    Manage configuration files.

    Actions:
    - init: Create a default configuration file
    - show: Display current configuration
    """
    config_manager = get_config_manager()

    if action == "init":
        output_path = output or Path(".mencoder-command.yaml")
        try:
            config_manager.save(output_path, RunnerConfig.create_default())
            console.print(f"[green]✓[/green] Created config file: {output_path}")
        except TranscoderError as e:
            console.print(f"[red]✗ Error:[/red] {e}")
            sys.exit(1)

    elif action == "show":
        config = config_manager.config

        console.print()
        console.print(Panel("[bold cyan]Current Configuration[/bold cyan]", border_style="cyan"))

        table = Table(show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("mencoder", config.binaries.mencoder or "(auto)")
        table.add_row("ffprobe", config.binaries.ffprobe or "(auto)")
        table.add_row("flvtool", config.binaries.flvtool or "(auto)")
        table.add_row("Niceness", str(config.process.niceness))
        table.add_row("Timeout", f"{config.process.timeout}s" if config.process.timeout else "none")
        table.add_row("Kill signal", config.process.kill_signal)
        table.add_row("Log level", config.logging.level)
        console.print(table)
        console.print()

    else:
        console.print(f"[red]✗ Unknown action:[/red] {action}")
        console.print("Valid actions: init, show")
        sys.exit(1)


@app.command("version")
def version_command() -> None:
    """
    Display version information.
    """
    from .. import __version__

    console.print(f"[bold cyan]mencoder-command[/bold cyan] [dim]{__version__}[/dim]")


def main() -> None:
    """
    Main entry point for CLI.
    """
    app()


if __name__ == "__main__":
    main()

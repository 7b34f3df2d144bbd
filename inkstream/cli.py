"""inkstream CLI: Typer + Rich terminal interface.

Commands: replay, config show, config path.
``replay`` pushes a text file through a StreamSession as a simulated
token stream, so throttle and boundary settings can be tried by eye.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from inkstream import __version__
from inkstream.display import LiveRenderer
from inkstream.schemas.config import AssemblerConfig
from inkstream.session import SessionState, StreamSession
from inkstream.settings import DEFAULT_CONFIG_PATH, load_config
from inkstream.sources import replay_text

console = Console()

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="inkstream",
    help="Incremental streaming-text assembly for LLM chat clients.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show assembler configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"inkstream {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """inkstream: throttled, flicker-free assembly of streamed LLM text."""


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(config_file: str) -> AssemblerConfig:
    """Load assembler config, exit on error."""
    try:
        return load_config(Path(config_file) if config_file else None)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


async def _run_replay(
    text: str,
    config: AssemblerConfig,
    chunk_size: int,
    delay: float,
    plain: bool,
) -> StreamSession:
    async with StreamSession(config) as session:
        if plain:
            session.attach(replay_text(text, chunk_size, delay))
            await session.wait()
            return session

        with LiveRenderer(console) as renderer:
            session.add_listener(renderer.create_listener())
            session.attach(replay_text(text, chunk_size, delay))
            await session.wait()
        return session


def _display_summary(session: StreamSession, elapsed: float) -> None:
    table = Table(title="Replay Summary", show_header=False, show_lines=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value")

    snapshot = session.snapshot
    table.add_row("State", session.state.value)
    table.add_row("Chunks", str(session.chunk_count))
    table.add_row("Emissions", str(session.emission_count))
    table.add_row("Segments", str(session.buffer.segment_count))
    table.add_row("Characters", str(len(snapshot.full_text)))
    table.add_row("Throttle", f"{session.config.throttle_ms:g}ms")
    table.add_row("Elapsed", f"{elapsed:.2f}s")
    if session.error is not None:
        table.add_row("Error", f"[red]{session.error.error_type}[/red]")
    console.print(table)


# ── Commands ─────────────────────────────────────────────────────


@app.command()
def replay(
    file: Path = typer.Argument(..., help="Text file to replay"),
    chunk_size: int = typer.Option(
        4, "--chunk-size", "-n", min=1,
        help="Characters per simulated chunk",
    ),
    delay_ms: float = typer.Option(
        15.0, "--delay-ms", "-d", min=0.0,
        help="Delay between chunks in milliseconds",
    ),
    throttle_ms: float = typer.Option(
        None, "--throttle-ms", "-t",
        help="Override the throttle window in milliseconds",
    ),
    config_file: str = typer.Option(
        "", "--config", "-c",
        help="Path to a TOML config file",
    ),
    plain: bool = typer.Option(
        False, "--plain",
        help="Skip the live display and print the final text",
    ),
    summary: bool = typer.Option(
        True, "--summary/--no-summary",
        help="Print chunk and emission counts afterwards",
    ),
) -> None:
    """Replay a text file through a streaming session."""
    if not file.is_file():
        console.print(f"[red]File not found:[/red] {file}")
        raise typer.Exit(1)

    config = _load_config(config_file)
    if throttle_ms is not None:
        try:
            config = AssemblerConfig.model_validate(
                {**config.model_dump(), "throttle_ms": throttle_ms}
            )
        except ValidationError as e:
            console.print(f"[red]Invalid throttle:[/red] {e}")
            raise typer.Exit(1) from None

    text = file.read_text(encoding="utf-8")
    start = time.monotonic()
    session = asyncio.run(
        _run_replay(text, config, chunk_size, delay_ms / 1000.0, plain)
    )
    elapsed = time.monotonic() - start

    if plain:
        console.print(session.snapshot.full_text, markup=False, highlight=False)
    if summary:
        _display_summary(session, elapsed)
    if session.state is not SessionState.COMPLETED:
        raise typer.Exit(1)


@config_app.command("show")
def config_show(
    config_file: str = typer.Option(
        "", "--config", "-c",
        help="Path to a TOML config file",
    ),
) -> None:
    """Show the effective assembler configuration."""
    config = _load_config(config_file)

    table = Table(title="Assembler Configuration", show_header=False, show_lines=True)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Throttle", f"{config.throttle_ms:g}ms")
    table.add_row("Boundary", config.boundary.value)
    table.add_row("Source", config_file or str(DEFAULT_CONFIG_PATH))

    console.print(table)


@config_app.command("path")
def config_path() -> None:
    """Show the packaged defaults file location."""
    console.print(f"Defaults: [bold]{DEFAULT_CONFIG_PATH}[/bold]")


if __name__ == "__main__":
    app()

"""Command-line interface for rookery."""

from __future__ import annotations

import logging
import sys
from enum import Enum
from pathlib import Path
from time import perf_counter
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from rookery import __version__
from rookery.config import EngineConfig, load_config
from rookery.core.enums import Color, GameResult
from rookery.core.errors import MalformedRecord
from rookery.core.notation import STARTING_FEN, position_from_fen
from rookery.core.perft import divide, perft
from rookery.core.position import Position
from rookery.engine.alphabeta import AlphaBetaEngine
from rookery.engine.random_engine import RandomEngine
from rookery.engine.search import IEngine, SearchLimits, is_mate_score, mate_distance
from rookery.engine.session import EngineSession
from rookery.game.match import DEFAULT_MAX_PLIES, Player, play_match
from rookery.protocol.uci import UciProtocol

_LOGGER = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

app = typer.Typer(
    name="rookery",
    help="rookery: a bitboard chess engine speaking UCI",
    add_completion=False,
)
# stdout is reserved for protocol traffic and command reports; errors go to stderr.
console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str = "WARNING", log_file: Path | None = None) -> None:
    """Log to stderr (stdout carries protocol traffic) and optionally to a file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level.upper(),
        format=_LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="TOML configuration file"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (overrides the configuration)"
    ),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
) -> None:
    """Load configuration and set up logging for every command."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as exc:
        err_console.print(f"[bold red]Invalid configuration:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    configure_logging(log_level or config.log_level, log_file)
    ctx.obj = config


def _config(ctx: typer.Context) -> EngineConfig:
    return ctx.obj if isinstance(ctx.obj, EngineConfig) else EngineConfig()


def _load_position(fen: str) -> Position:
    try:
        return position_from_fen(fen)
    except MalformedRecord as exc:
        err_console.print(f"[bold red]Invalid FEN:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


@app.command()
def version() -> None:
    """Print version information."""
    console.print(f"[bold blue]rookery[/bold blue] v{__version__}")


@app.command()
def uci(ctx: typer.Context) -> None:
    """Speak UCI on stdin/stdout until quit or end of input."""
    config = _config(ctx)
    _LOGGER.info("Starting UCI session (%s)", config.protocol.engine_name)
    UciProtocol(sys.stdout, config=config).run(sys.stdin)


@app.command("perft")
def perft_command(
    depth: int = typer.Argument(..., min=0, help="Depth in plies"),
    fen: str = typer.Option(STARTING_FEN, "--fen", "-f", help="Position to count from"),
    show_divide: bool = typer.Option(False, "--divide", "-d", help="Per root move counts"),
) -> None:
    """Count leaf nodes of the legal move tree."""
    position = _load_position(fen)
    started = perf_counter()
    if show_divide and depth >= 1:
        counts = divide(position, depth)
        for move in sorted(counts, key=str):
            console.print(f"{move}: {counts[move]}")
        total = sum(counts.values())
    else:
        total = perft(position, depth)
    elapsed = perf_counter() - started
    console.print(f"[bold]Nodes:[/bold] {total}")
    console.print(f"[dim]{elapsed:.3f}s, {int(total / max(elapsed, 1e-9))} nps[/dim]")


@app.command("search")
def search_command(
    ctx: typer.Context,
    fen: str = typer.Option(STARTING_FEN, "--fen", "-f", help="Position to search"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=1, help="Maximum depth"),
    movetime: Optional[int] = typer.Option(
        None, "--movetime", "-t", min=1, help="Time budget in milliseconds"
    ),
) -> None:
    """Search a position and print the best move."""
    config = _config(ctx)
    position = _load_position(fen)
    if depth is None:
        depth = config.search.max_depth if movetime is not None else config.search.default_depth
    limits = SearchLimits(max_depth=min(depth, config.search.max_depth), time_limit_ms=movetime)
    session = EngineSession(
        AlphaBetaEngine(tt_max_entries=config.search.tt_max_entries),
        position=position,
    )
    result = session.search(limits)

    if result.best_move is None:
        console.print(f"[bold yellow]No legal moves:[/bold yellow] {result.termination}")
        return

    if is_mate_score(result.score_cp):
        score = f"mate {mate_distance(result.score_cp)}"
    else:
        score = f"{result.score_cp} cp"

    table = Table(title="Search result")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Best move", str(result.best_move))
    table.add_row("Score", score)
    table.add_row("Depth", str(result.depth))
    table.add_row("Nodes", str(result.nodes))
    table.add_row("Time", f"{result.elapsed_ms} ms")
    table.add_row("PV", " ".join(str(m) for m in result.pv))
    console.print(table)


class EngineKind(str, Enum):
    ALPHABETA = "alphabeta"
    RANDOM = "random"


_RESULT_TEXT = {
    GameResult.WHITE_WINS: "1-0",
    GameResult.BLACK_WINS: "0-1",
    GameResult.DRAW: "1/2-1/2",
    GameResult.IN_PROGRESS: "*",
}


def _player(
    color: str, kind: EngineKind, depth: int, seed: Optional[int], config: EngineConfig
) -> Player:
    limits = SearchLimits(max_depth=min(depth, config.search.max_depth))
    engine: IEngine
    if kind == EngineKind.RANDOM:
        engine = RandomEngine(seed=seed)
        name = f"{color} (random)"
    else:
        engine = AlphaBetaEngine(tt_max_entries=config.search.tt_max_entries)
        name = f"{color} (alphabeta, depth {limits.max_depth})"
    return Player(name, engine, limits)


@app.command("match")
def match_command(
    ctx: typer.Context,
    white: EngineKind = typer.Option(EngineKind.ALPHABETA, "--white", "-w", help="White engine"),
    black: EngineKind = typer.Option(EngineKind.RANDOM, "--black", "-b", help="Black engine"),
    white_depth: Optional[int] = typer.Option(
        None, "--white-depth", min=1, help="White search depth"
    ),
    black_depth: Optional[int] = typer.Option(
        None, "--black-depth", min=1, help="Black search depth"
    ),
    fen: str = typer.Option(STARTING_FEN, "--fen", "-f", help="Starting position"),
    max_plies: int = typer.Option(
        DEFAULT_MAX_PLIES, "--max-plies", min=1, help="Stop after this many half-moves"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for random engines"),
    show_moves: bool = typer.Option(False, "--moves", help="Print every move played"),
) -> None:
    """Play two engines against each other and print the result."""
    config = _config(ctx)
    _load_position(fen)
    default_depth = config.search.default_depth
    white_player = _player("White", white, white_depth or default_depth, seed, config)
    # Offset the seed so two random engines do not mirror each other.
    black_seed = seed + 1 if seed is not None else None
    black_player = _player("Black", black, black_depth or default_depth, black_seed, config)

    started = perf_counter()
    outcome = play_match(white_player, black_player, fen=fen, max_plies=max_plies)
    elapsed = perf_counter() - started

    if show_moves:
        for number, record in enumerate(outcome.moves):
            console.print(f"{number + 1:>4}. {record.lan}{'+' if record.was_check else ''}")

    if outcome.finished:
        reason = str(outcome.termination)
    else:
        reason = f"stopped after {max_plies} plies"

    table = Table(title="Match result")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("White", white_player.name)
    table.add_row("Black", black_player.name)
    table.add_row("Result", _RESULT_TEXT[outcome.result])
    table.add_row("Termination", reason)
    table.add_row("Plies", str(outcome.plies))
    table.add_row("Nodes", f"{outcome.nodes[Color.WHITE]} / {outcome.nodes[Color.BLACK]}")
    table.add_row("Time", f"{elapsed:.2f}s")
    table.add_row("Final FEN", outcome.final_fen)
    console.print(table)


if __name__ == "__main__":
    app()

"""Game state facade - move history, undo and game-over tracking for front ends."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, auto
from typing import TYPE_CHECKING

from rookery.core.enums import Color, GameResult, Termination
from rookery.core.errors import InvalidMove
from rookery.core.move_generator import MoveGenerator
from rookery.core.notation import STARTING_FEN, parse_uci_move, position_from_fen, position_to_fen
from rookery.core.position import Position
from rookery.core.rules import Rules

if TYPE_CHECKING:
    from rookery.core.move import Move
    from rookery.core.position import UndoRecord


class GamePhase(IntEnum):
    """Lifecycle of a :class:`GameState`."""

    NOT_STARTED = auto()
    AWAITING_MOVE = auto()
    GAME_OVER = auto()


@dataclass
class MoveRecord:
    """A single entry in the move history."""

    move: Move
    undo: UndoRecord
    fen_after: str
    was_check: bool = False
    was_capture: bool = False

    @property
    def lan(self) -> str:
        return str(self.move)


@dataclass
class GameState:
    """Manages game lifecycle: phase, result, move history.

    This is a pure data/logic class - no threading, no I/O. Unlike the
    engine's own :class:`Position` handling, moves are checked for legality
    here, so front ends can pass through whatever the user picked.
    """

    position: Position = field(default_factory=Position.initial, init=False)
    phase: GamePhase = field(default=GamePhase.NOT_STARTED, init=False)
    result: GameResult = field(default=GameResult.IN_PROGRESS, init=False)
    termination: Termination | None = field(default=None, init=False)
    move_history: list[MoveRecord] = field(default_factory=list, init=False)
    start_fen: str = field(default=STARTING_FEN, init=False)

    # ── Initialisation ────────────────────────────────────────────────────────

    def setup(self, fen: str | None = None) -> None:
        """Initialise (or reset) the game.

        Raises:
            MalformedRecord: *fen* is not a valid FEN record.
        """
        start_fen = fen or STARTING_FEN
        self.position = position_from_fen(start_fen)
        self.start_fen = start_fen
        self.phase = GamePhase.AWAITING_MOVE
        self.move_history.clear()
        self._check_game_over()

    # ── Move application ──────────────────────────────────────────────────────

    def apply_move(self, move: Move) -> MoveRecord:
        """Apply a legal move and return the history record.

        Raises:
            InvalidMove: the game is over or *move* is not legal.
        """
        if self.phase != GamePhase.AWAITING_MOVE:
            raise InvalidMove(f"{move}: game is not awaiting a move")
        if move not in self.legal_moves():
            raise InvalidMove(f"Illegal move in position: {move}")

        was_capture = move.is_capture
        undo = self.position.apply(move)
        record = MoveRecord(
            move=move,
            undo=undo,
            fen_after=position_to_fen(self.position),
            was_check=self.position.in_check(),
            was_capture=was_capture,
        )
        self.move_history.append(record)
        self._check_game_over()
        return record

    def play_uci(self, text: str) -> MoveRecord:
        """Apply a move given in long algebraic notation, e.g. ``e2e4``."""
        if self.phase != GamePhase.AWAITING_MOVE:
            raise InvalidMove(f"{text}: game is not awaiting a move")
        return self.apply_move(parse_uci_move(self.position, text))

    def undo_last_move(self) -> Move | None:
        """Undo the last move. Returns the undone Move, or None if empty."""
        if not self.move_history:
            return None

        record = self.move_history.pop()
        self.position.undo(record.undo)

        # Reset result if we un-did a game-ending move
        self.result = GameResult.IN_PROGRESS
        self.termination = None
        self.phase = GamePhase.AWAITING_MOVE
        return record.move

    # ── Query helpers ─────────────────────────────────────────────────────────

    @property
    def side_to_move(self) -> Color:
        return self.position.side_to_move

    @property
    def is_game_over(self) -> bool:
        return self.phase == GamePhase.GAME_OVER

    @property
    def ply_count(self) -> int:
        """Number of half-moves played."""
        return len(self.move_history)

    @property
    def fen(self) -> str:
        return position_to_fen(self.position)

    def legal_moves(self) -> list[Move]:
        """Legal moves in the current position."""
        return MoveGenerator(self.position).generate_legal_moves()

    # ── Internal ──────────────────────────────────────────────────────────────

    def _check_game_over(self) -> None:
        termination = Rules.termination(self.position)
        if termination is None:
            return
        self.termination = termination
        self.result = Rules.game_result(self.position)
        self.phase = GamePhase.GAME_OVER

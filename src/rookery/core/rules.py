"""High-level chess rules: checkmate, stalemate, draw detection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rookery.core.bitboard import lsb, popcount
from rookery.core.enums import Color, GameResult, PieceType, Termination
from rookery.core.move_generator import MoveGenerator
from rookery.core.types import file_of, rank_of

if TYPE_CHECKING:
    from rookery.core.position import Position

_MINORS = (PieceType.KNIGHT, PieceType.BISHOP)


class Rules:
    """Static rule-checker that operates on a :class:`Position`.

    Draws by the fifty-move rule, threefold repetition and insufficient
    material end the game immediately; nothing is left to a player claim.
    """

    @staticmethod
    def is_in_check(position: Position) -> bool:
        return position.in_check()

    @staticmethod
    def is_checkmate(position: Position) -> bool:
        if not position.in_check():
            return False
        return not MoveGenerator(position).has_legal_moves()

    @staticmethod
    def is_stalemate(position: Position) -> bool:
        if position.in_check():
            return False
        return not MoveGenerator(position).has_legal_moves()

    @staticmethod
    def is_insufficient_material(position: Position) -> bool:
        """K vs K, K+minor vs K, K+B vs K+B with bishops on one square color."""
        board = position.board
        total = popcount(board.occupied)

        if total == 2:
            return True

        if total == 3:
            return any(
                board.has_piece(color, ptype) for color in Color for ptype in _MINORS
            )

        if total == 4:
            wb = board.pieces_bitboard(Color.WHITE, PieceType.BISHOP)
            bb = board.pieces_bitboard(Color.BLACK, PieceType.BISHOP)
            if popcount(wb) == 1 and popcount(bb) == 1:
                w_sq, b_sq = lsb(wb), lsb(bb)
                return (file_of(w_sq) + rank_of(w_sq)) % 2 == (file_of(b_sq) + rank_of(b_sq)) % 2

        return False

    @staticmethod
    def is_fifty_move_rule(position: Position) -> bool:
        return position.halfmove_clock >= 100  # 100 half-moves = 50 full moves

    @staticmethod
    def is_threefold_repetition(position: Position) -> bool:
        return position.repetition_count() >= 3

    @staticmethod
    def termination(position: Position) -> Termination | None:
        """Why the game is over in *position*, or ``None`` while it goes on.

        Mate and stalemate take precedence over the draw rules, so a
        checkmating fiftieth move still wins.
        """
        if not MoveGenerator(position).has_legal_moves():
            return Termination.CHECKMATE if position.in_check() else Termination.STALEMATE
        if Rules.is_fifty_move_rule(position):
            return Termination.FIFTY_MOVES
        if Rules.is_threefold_repetition(position):
            return Termination.REPETITION
        if Rules.is_insufficient_material(position):
            return Termination.INSUFFICIENT_MATERIAL
        return None

    @staticmethod
    def game_result(position: Position) -> GameResult:
        """Determine the current game result."""
        termination = Rules.termination(position)
        if termination is None:
            return GameResult.IN_PROGRESS
        if termination == Termination.CHECKMATE:
            return (
                GameResult.BLACK_WINS
                if position.side_to_move == Color.WHITE
                else GameResult.WHITE_WINS
            )
        return GameResult.DRAW

"""Static evaluation.

Scores are centipawns from the point of view of the side to move. Every term
is computed per color with the tables mirrored for black, so a position and
its color-swapped reflection always evaluate to negated scores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rookery.core.bitboard import FILE_MASKS, iter_squares, piece_attacks, popcount
from rookery.core.enums import Color, PieceType
from rookery.core.types import Square, file_of, mirror_square

if TYPE_CHECKING:
    from rookery.core.position import Position

# Piece-square tables, laid out as seen from white: first row is rank 8.
# fmt: off
_PAWN_TABLE = (
      0,   0,   0,   0,   0,   0,   0,   0,
     30,  30,  30,  40,  40,  30,  30,  30,
     20,  20,  20,  30,  30,  30,  20,  20,
     10,  10,  15,  25,  25,  15,  10,  10,
      5,   5,   5,  20,  20,   5,   5,   5,
      5,   0,   0,   5,   5,   0,   0,   5,
      5,   5,   5, -10, -10,   5,   5,   5,
      0,   0,   0,   0,   0,   0,   0,   0,
)
_KNIGHT_TABLE = (
     -5,  -5,  -5,  -5,  -5,  -5,  -5,  -5,
     -5,   0,   0,  10,  10,   0,   0,  -5,
     -5,   5,  10,  10,  10,  10,   5,  -5,
     -5,   5,  10,  15,  15,  10,   5,  -5,
     -5,   5,  10,  15,  15,  10,   5,  -5,
     -5,   5,  10,  10,  10,  10,   5,  -5,
     -5,   0,   0,   5,   5,   0,   0,  -5,
     -5, -10,  -5,  -5,  -5,  -5, -10,  -5,
)
_BISHOP_TABLE = (
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,  10,   0,   0,   0,   0,  10,   0,
      5,   0,  10,   0,   0,  10,   0,   5,
      0,  10,   0,  10,  10,   0,  10,   0,
      0,  10,   0,  10,  10,   0,  10,   0,
      0,   0, -10,   0,   0, -10,   0,   0,
)
_ROOK_TABLE = (
     10,  10,  10,  10,  10,  10,  10,  10,
     10,  10,  10,  10,  10,  10,  10,  10,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,  10,  10,   0,   0,   0,
      0,   0,   0,  10,  10,   5,   0,   0,
)
_QUEEN_TABLE = (
    -20, -10, -10,  -5,  -5, -10, -10, -20,
    -10,   0,   0,   0,   0,   0,   0, -10,
    -10,   0,   5,   5,   5,   5,   0, -10,
     -5,   0,   5,   5,   5,   5,   0,  -5,
     -5,   0,   5,   5,   5,   5,   0,  -5,
    -10,   5,   5,   5,   5,   5,   0, -10,
    -10,   0,   5,   0,   0,   0,   0, -10,
    -20, -10, -10,   0,   0, -10, -10, -20,
)
_KING_TABLE = (
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,   0,   0,   0,   0,   0,
      0,   0,   0,  -5,  -5,  -5,   0,   0,
      0,   0,  10,  -5,  -5,  -5,  10,   0,
)
# fmt: on

PIECE_SQUARE_TABLES: dict[PieceType, tuple[int, ...]] = {
    PieceType.PAWN: _PAWN_TABLE,
    PieceType.KNIGHT: _KNIGHT_TABLE,
    PieceType.BISHOP: _BISHOP_TABLE,
    PieceType.ROOK: _ROOK_TABLE,
    PieceType.QUEEN: _QUEEN_TABLE,
    PieceType.KING: _KING_TABLE,
}

_MOBILE_PIECES = (PieceType.KNIGHT, PieceType.BISHOP, PieceType.ROOK, PieceType.QUEEN)


def _default_piece_values() -> dict[PieceType, int]:
    return {
        PieceType.PAWN: 100,
        PieceType.KNIGHT: 320,
        PieceType.BISHOP: 330,
        PieceType.ROOK: 500,
        PieceType.QUEEN: 900,
        PieceType.KING: 0,
    }


def _default_mobility() -> dict[PieceType, int]:
    return {
        PieceType.KNIGHT: 4,
        PieceType.BISHOP: 3,
        PieceType.ROOK: 2,
        PieceType.QUEEN: 1,
    }


@dataclass(frozen=True, slots=True)
class EvalWeights:
    """Tunable evaluation weights."""

    piece_values: dict[PieceType, int] = field(default_factory=_default_piece_values)
    mobility: dict[PieceType, int] = field(default_factory=_default_mobility)
    king_shelter_pawn: int = 15


def piece_square_value(piece_type: PieceType, color: Color, sq: Square) -> int:
    """Table bonus for a *color* *piece_type* on *sq*."""
    table = PIECE_SQUARE_TABLES[piece_type]
    # Tables start at rank 8, so white squares need a vertical flip.
    return table[mirror_square(sq)] if color == Color.WHITE else table[sq]


class Evaluator:
    """Deterministic static evaluator."""

    __slots__ = ("weights",)

    def __init__(self, weights: EvalWeights | None = None) -> None:
        self.weights = weights if weights is not None else EvalWeights()

    def score(self, position: Position) -> int:
        """Centipawn score, positive when the side to move is better."""
        white = self.score_side(position, Color.WHITE)
        black = self.score_side(position, Color.BLACK)
        score = white - black
        return score if position.side_to_move == Color.WHITE else -score

    def score_side(self, position: Position, color: Color) -> int:
        return (
            self.material(position, color)
            + self.placement(position, color)
            + self.mobility(position, color)
            + self.king_shelter(position, color)
        )

    # ── Terms ─────────────────────────────────────────────────────────────────

    def material(self, position: Position, color: Color) -> int:
        board = position.board
        values = self.weights.piece_values
        return sum(values[ptype] * board.count(color, ptype) for ptype in PieceType)

    def placement(self, position: Position, color: Color) -> int:
        board = position.board
        total = 0
        for ptype in PieceType:
            for sq in iter_squares(board.pieces_bitboard(color, ptype)):
                total += piece_square_value(ptype, color, sq)
        return total

    def mobility(self, position: Position, color: Color) -> int:
        """Squares attacked by the officers that are not held by own pieces."""
        board = position.board
        occupied = board.occupied
        own = board.color_bitboard(color)
        weights = self.weights.mobility
        total = 0
        for ptype in _MOBILE_PIECES:
            weight = weights.get(ptype, 0)
            if not weight:
                continue
            for sq in iter_squares(board.pieces_bitboard(color, ptype)):
                total += weight * popcount(piece_attacks(ptype, color, sq, occupied) & ~own)
        return total

    def king_shelter(self, position: Position, color: Color) -> int:
        """Own pawns on the king's file and the files next to it."""
        board = position.board
        kings = board.pieces_bitboard(color, PieceType.KING)
        if not kings:
            return 0
        king_file = file_of(board.king_square(color))
        area = 0
        for f in range(max(0, king_file - 1), min(7, king_file + 1) + 1):
            area |= FILE_MASKS[f]
        pawns = board.pieces_bitboard(color, PieceType.PAWN)
        return self.weights.king_shelter_pawn * popcount(area & pawns)

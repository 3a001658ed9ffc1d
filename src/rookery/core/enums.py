"""Core enumerations and flags for the chess domain."""

from __future__ import annotations

from enum import IntEnum, IntFlag, auto


class Color(IntEnum):
    """Side color."""

    WHITE = 0
    BLACK = 1

    @property
    def opposite(self) -> Color:
        return Color(1 - self.value)

    def __str__(self) -> str:
        return self.name.lower()


class PieceType(IntEnum):
    """Closed set of piece kinds, ordered by conventional value."""

    PAWN = 1
    KNIGHT = 2
    BISHOP = 3
    ROOK = 4
    QUEEN = 5
    KING = 6


PIECE_TYPES: tuple[PieceType, ...] = tuple(PieceType)


class MoveFlag(IntEnum):
    """Move tag distinguishing how a move changes the board."""

    NORMAL = 0
    CAPTURE = 1
    DOUBLE_PAWN = 2
    EN_PASSANT = 3
    CASTLE_KINGSIDE = 4
    CASTLE_QUEENSIDE = 5


class CastlingRights(IntFlag):
    """Bitmask for castling availability."""

    NONE = 0
    WHITE_KINGSIDE = auto()
    WHITE_QUEENSIDE = auto()
    BLACK_KINGSIDE = auto()
    BLACK_QUEENSIDE = auto()

    WHITE_BOTH = WHITE_KINGSIDE | WHITE_QUEENSIDE
    BLACK_BOTH = BLACK_KINGSIDE | BLACK_QUEENSIDE
    ALL = WHITE_BOTH | BLACK_BOTH

    def mirrored(self) -> CastlingRights:
        """Swap white and black rights (used for color-mirrored positions)."""
        swapped = CastlingRights.NONE
        if self & CastlingRights.WHITE_KINGSIDE:
            swapped |= CastlingRights.BLACK_KINGSIDE
        if self & CastlingRights.WHITE_QUEENSIDE:
            swapped |= CastlingRights.BLACK_QUEENSIDE
        if self & CastlingRights.BLACK_KINGSIDE:
            swapped |= CastlingRights.WHITE_KINGSIDE
        if self & CastlingRights.BLACK_QUEENSIDE:
            swapped |= CastlingRights.WHITE_QUEENSIDE
        return swapped


class GameResult(IntEnum):
    """Outcome of a game."""

    IN_PROGRESS = 0
    WHITE_WINS = 1
    BLACK_WINS = 2
    DRAW = 3


class Termination(IntEnum):
    """Why a position ends the game."""

    CHECKMATE = auto()
    STALEMATE = auto()
    FIFTY_MOVES = auto()
    REPETITION = auto()
    INSUFFICIENT_MATERIAL = auto()

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

"""Move value object."""

from __future__ import annotations

from dataclasses import dataclass

from rookery.core.enums import MoveFlag, PieceType
from rookery.core.piece import piece_letter
from rookery.core.types import Square, square_name

PROMOTION_TYPES: tuple[PieceType, ...] = (
    PieceType.QUEEN,
    PieceType.ROOK,
    PieceType.BISHOP,
    PieceType.KNIGHT,
)


@dataclass(frozen=True, slots=True)
class Move:
    """A single ply: origin, destination, tag and optional promotion kind."""

    from_sq: Square
    to_sq: Square
    flag: MoveFlag = MoveFlag.NORMAL
    promotion: PieceType | None = None

    @property
    def is_capture(self) -> bool:
        return self.flag == MoveFlag.CAPTURE or self.flag == MoveFlag.EN_PASSANT

    @property
    def is_castle(self) -> bool:
        return self.flag == MoveFlag.CASTLE_KINGSIDE or self.flag == MoveFlag.CASTLE_QUEENSIDE

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None

    @property
    def is_quiet(self) -> bool:
        return not self.is_capture and self.promotion is None

    # ── Display ───────────────────────────────────────────────────────────────

    def __str__(self) -> str:
        text = square_name(self.from_sq) + square_name(self.to_sq)
        if self.promotion is not None:
            text += piece_letter(self.promotion)
        return text

    @property
    def uci(self) -> str:
        """Long algebraic notation, e.g. ``e7e8q``."""
        return str(self)

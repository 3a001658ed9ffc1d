"""Piece value object."""

from __future__ import annotations

from dataclasses import dataclass

from rookery.core.enums import Color, PieceType
from rookery.core.errors import MalformedRecord

_FEN_LETTERS: dict[PieceType, str] = {
    PieceType.PAWN: "p",
    PieceType.KNIGHT: "n",
    PieceType.BISHOP: "b",
    PieceType.ROOK: "r",
    PieceType.QUEEN: "q",
    PieceType.KING: "k",
}
_LETTER_TYPES: dict[str, PieceType] = {v: k for k, v in _FEN_LETTERS.items()}


@dataclass(frozen=True, slots=True)
class Piece:
    """Immutable (color, kind) pair."""

    color: Color
    piece_type: PieceType

    def __str__(self) -> str:
        """FEN character (uppercase = white, lowercase = black)."""
        letter = _FEN_LETTERS[self.piece_type]
        return letter.upper() if self.color == Color.WHITE else letter

    @classmethod
    def from_char(cls, char: str) -> Piece:
        """Create piece from FEN character, e.g. 'N' -> white knight."""
        ptype = _LETTER_TYPES.get(char.lower())
        if ptype is None or len(char) != 1:
            raise MalformedRecord(f"Invalid piece character: {char!r}")
        return PIECES[Color.WHITE if char.isupper() else Color.BLACK][ptype]

    def mirrored(self) -> Piece:
        return PIECES[self.color.opposite][self.piece_type]


# Shared instances, PIECES[color][piece_type]; index 0 of each row is unused.
PIECES: tuple[tuple[Piece, ...], ...] = tuple(
    (None,) + tuple(Piece(color, ptype) for ptype in PieceType)  # type: ignore[misc]
    for color in Color
)


def piece_letter(piece_type: PieceType) -> str:
    """Lowercase FEN letter for *piece_type*, e.g. QUEEN -> 'q'."""
    return _FEN_LETTERS[piece_type]


def piece_type_from_letter(letter: str) -> PieceType:
    ptype = _LETTER_TYPES.get(letter.lower())
    if ptype is None:
        raise MalformedRecord(f"Invalid piece letter: {letter!r}")
    return ptype

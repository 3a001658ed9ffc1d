"""Board - piece placement as bitboards plus a square-indexed mailbox."""

from __future__ import annotations

from collections.abc import Iterator

from rookery.core.bitboard import Bitboard, flip_vertical, iter_squares, lsb, popcount
from rookery.core.enums import Color, PieceType
from rookery.core.piece import PIECES, Piece
from rookery.core.types import Square, make_square

_BACK_RANK = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)


class Board:
    """Mutable 64-square board.

    Keeps one bitboard per (color, piece kind), one per color and the combined
    occupancy in sync with a mailbox so both "what is on e4" and "where are
    the white knights" are O(1).
    """

    __slots__ = ("_squares", "_pieces", "_colors", "occupied")

    def __init__(self) -> None:
        self._squares: list[Piece | None] = [None] * 64
        # [color][piece_type] -> bitboard; index 0 is unused.
        self._pieces: list[list[Bitboard]] = [[0] * 7, [0] * 7]
        self._colors: list[Bitboard] = [0, 0]
        self.occupied: Bitboard = 0

    # -- Element access -----------------------------------------------------

    def __getitem__(self, sq: Square) -> Piece | None:
        return self._squares[sq]

    def __setitem__(self, sq: Square, piece: Piece | None) -> None:
        if self._squares[sq] is not None:
            self.remove(sq)
        if piece is not None:
            self.put(sq, piece)

    def is_empty(self, sq: Square) -> bool:
        return self._squares[sq] is None

    def put(self, sq: Square, piece: Piece) -> None:
        """Place *piece* on the empty square *sq*."""
        mask = 1 << sq
        self._squares[sq] = piece
        self._pieces[piece.color][piece.piece_type] |= mask
        self._colors[piece.color] |= mask
        self.occupied |= mask

    def remove(self, sq: Square) -> Piece:
        """Lift and return the piece on *sq*."""
        piece = self._squares[sq]
        if piece is None:
            raise ValueError(f"No piece on square {sq}")
        mask = ~(1 << sq)
        self._squares[sq] = None
        self._pieces[piece.color][piece.piece_type] &= mask
        self._colors[piece.color] &= mask
        self.occupied &= mask
        return piece

    def relocate(self, from_sq: Square, to_sq: Square) -> None:
        """Move whatever stands on *from_sq* to the empty *to_sq*."""
        self.put(to_sq, self.remove(from_sq))

    # -- Query helpers ------------------------------------------------------

    def pieces_bitboard(self, color: Color, piece_type: PieceType) -> Bitboard:
        return self._pieces[color][piece_type]

    def color_bitboard(self, color: Color) -> Bitboard:
        return self._colors[color]

    def pieces(self, color: Color, piece_type: PieceType) -> list[Square]:
        """Squares occupied by *color*'s *piece_type*."""
        return list(iter_squares(self._pieces[color][piece_type]))

    def has_piece(self, color: Color, piece_type: PieceType) -> bool:
        return bool(self._pieces[color][piece_type])

    def count(self, color: Color, piece_type: PieceType) -> int:
        return popcount(self._pieces[color][piece_type])

    def king_square(self, color: Color) -> Square:
        kings = self._pieces[color][PieceType.KING]
        if not kings:
            raise ValueError(f"No {color.name} king on board")
        return lsb(kings)

    def items(self) -> Iterator[tuple[Square, Piece]]:
        """Occupied squares with their pieces, a1 first."""
        squares = self._squares
        for sq in iter_squares(self.occupied):
            yield sq, squares[sq]  # type: ignore[misc]

    # -- Copying / factories ------------------------------------------------

    def copy(self) -> Board:
        b = Board()
        b._squares = self._squares.copy()
        b._pieces = [row.copy() for row in self._pieces]
        b._colors = self._colors.copy()
        b.occupied = self.occupied
        return b

    def mirrored(self) -> Board:
        """Color-swapped, rank-flipped copy."""
        b = Board()
        for color in Color:
            for ptype in PieceType:
                for sq in iter_squares(flip_vertical(self._pieces[color][ptype])):
                    b.put(sq, PIECES[color.opposite][ptype])
        return b

    @classmethod
    def initial(cls) -> Board:
        """Standard starting position."""
        b = cls()
        for f, ptype in enumerate(_BACK_RANK):
            b.put(make_square(f, 0), PIECES[Color.WHITE][ptype])
            b.put(make_square(f, 1), PIECES[Color.WHITE][PieceType.PAWN])
            b.put(make_square(f, 6), PIECES[Color.BLACK][PieceType.PAWN])
            b.put(make_square(f, 7), PIECES[Color.BLACK][ptype])
        return b

    # -- Dunder helpers -----------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._pieces == other._pieces

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        rows: list[str] = []
        for rank in range(7, -1, -1):
            row = []
            for file in range(8):
                p = self._squares[make_square(file, rank)]
                row.append(str(p) if p else ".")
            rows.append(f"{rank + 1} {' '.join(row)}")
        rows.append("  a b c d e f g h")
        return "\n".join(rows)

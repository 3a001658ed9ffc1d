"""Legal and pseudo-legal move generation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rookery.core.bitboard import PAWN_ATTACKS, iter_squares, piece_attacks
from rookery.core.enums import CastlingRights, Color, MoveFlag, PieceType
from rookery.core.move import PROMOTION_TYPES, Move
from rookery.core.types import (
    A1,
    A8,
    B1,
    B8,
    C1,
    C8,
    D1,
    D8,
    E1,
    E8,
    F1,
    F8,
    G1,
    G8,
    H1,
    H8,
    Square,
    rank_of,
)

if TYPE_CHECKING:
    from rookery.core.position import Position

_OFFICERS: tuple[PieceType, ...] = (
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.ROOK,
    PieceType.QUEEN,
    PieceType.KING,
)

# (right, king from, king to, rook square, squares that must be empty,
#  squares the king passes that must not be attacked)
_CASTLING_OPTIONS: dict[
    Color,
    tuple[tuple[CastlingRights, Square, Square, Square, tuple[Square, ...], tuple[Square, ...], MoveFlag], ...],
] = {
    Color.WHITE: (
        (CastlingRights.WHITE_KINGSIDE, E1, G1, H1, (F1, G1), (E1, F1, G1), MoveFlag.CASTLE_KINGSIDE),
        (CastlingRights.WHITE_QUEENSIDE, E1, C1, A1, (D1, C1, B1), (E1, D1, C1), MoveFlag.CASTLE_QUEENSIDE),
    ),
    Color.BLACK: (
        (CastlingRights.BLACK_KINGSIDE, E8, G8, H8, (F8, G8), (E8, F8, G8), MoveFlag.CASTLE_KINGSIDE),
        (CastlingRights.BLACK_QUEENSIDE, E8, C8, A8, (D8, C8, B8), (E8, D8, C8), MoveFlag.CASTLE_QUEENSIDE),
    ),
}


class MoveGenerator:
    """Generates moves for the side to move of a :class:`Position`.

    Legality is decided by trial: every pseudo-legal move is applied, the
    mover's king is tested for attacks, and the move is undone. The position
    is always restored before a method returns.
    """

    __slots__ = ("_pos",)

    def __init__(self, position: Position) -> None:
        self._pos = position

    # -- Public API ---------------------------------------------------------

    def generate_legal_moves(self) -> list[Move]:
        """All strictly legal moves for the side to move."""
        return self._legal(self.generate_pseudo_legal_moves())

    def generate_captures(self) -> list[Move]:
        """Legal captures, en-passant captures and promotions."""
        return self._legal(
            [m for m in self.generate_pseudo_legal_moves() if not m.is_quiet]
        )

    def has_legal_moves(self) -> bool:
        pos = self._pos
        us = pos.side_to_move
        for move in self.generate_pseudo_legal_moves():
            record = pos.apply(move)
            try:
                if not pos.in_check(us):
                    return True
            finally:
                pos.undo(record)
        return False

    def generate_pseudo_legal_moves(self) -> list[Move]:
        """All pseudo-legal moves (may leave own king in check)."""
        moves: list[Move] = []
        self._gen_pawns(moves)
        self._gen_officers(moves)
        self._gen_castling(moves)
        return moves

    def is_in_check(self, color: Color) -> bool:
        """Is *color*'s king attacked by the opponent?"""
        return self._pos.in_check(color)

    def is_square_attacked(self, sq: Square, by_color: Color) -> bool:
        return self._pos.is_square_attacked(sq, by_color)

    # -- Internals ------------------------------------------------------------

    def _legal(self, candidates: list[Move]) -> list[Move]:
        pos = self._pos
        us = pos.side_to_move
        them = us.opposite
        legal: list[Move] = []
        for move in candidates:
            record = pos.apply(move)
            try:
                if not pos.is_square_attacked(pos.board.king_square(us), them):
                    legal.append(move)
            finally:
                pos.undo(record)
        return legal

    def _gen_pawns(self, moves: list[Move]) -> None:
        pos = self._pos
        board = pos.board
        us = pos.side_to_move
        them = us.opposite
        occupied = board.occupied
        targets = board.color_bitboard(them) & ~board.pieces_bitboard(them, PieceType.KING)
        ep = pos.en_passant

        if us == Color.WHITE:
            step, home_rank, last_rank = 8, 1, 7
        else:
            step, home_rank, last_rank = -8, 6, 0
        attacks = PAWN_ATTACKS[us]

        for sq in iter_squares(board.pieces_bitboard(us, PieceType.PAWN)):
            one = sq + step
            if not (occupied >> one) & 1:
                if rank_of(one) == last_rank:
                    for pt in PROMOTION_TYPES:
                        moves.append(Move(sq, one, MoveFlag.NORMAL, pt))
                else:
                    moves.append(Move(sq, one))
                    two = one + step
                    if rank_of(sq) == home_rank and not (occupied >> two) & 1:
                        moves.append(Move(sq, two, MoveFlag.DOUBLE_PAWN))

            pawn_attacks = attacks[sq]
            for to_sq in iter_squares(pawn_attacks & targets):
                if rank_of(to_sq) == last_rank:
                    for pt in PROMOTION_TYPES:
                        moves.append(Move(sq, to_sq, MoveFlag.CAPTURE, pt))
                else:
                    moves.append(Move(sq, to_sq, MoveFlag.CAPTURE))
            if ep is not None and (pawn_attacks >> ep) & 1:
                moves.append(Move(sq, ep, MoveFlag.EN_PASSANT))

    def _gen_officers(self, moves: list[Move]) -> None:
        pos = self._pos
        board = pos.board
        us = pos.side_to_move
        them = us.opposite
        occupied = board.occupied
        own = board.color_bitboard(us)
        enemy = board.color_bitboard(them) & ~board.pieces_bitboard(them, PieceType.KING)
        blocked = own | board.pieces_bitboard(them, PieceType.KING)

        for ptype in _OFFICERS:
            for sq in iter_squares(board.pieces_bitboard(us, ptype)):
                reachable = piece_attacks(ptype, us, sq, occupied) & ~blocked
                for to_sq in iter_squares(reachable):
                    if (enemy >> to_sq) & 1:
                        moves.append(Move(sq, to_sq, MoveFlag.CAPTURE))
                    else:
                        moves.append(Move(sq, to_sq))

    def _gen_castling(self, moves: list[Move]) -> None:
        pos = self._pos
        rights = pos.castling
        if not rights:
            return
        board = pos.board
        us = pos.side_to_move
        them = us.opposite
        occupied = board.occupied
        rook = board.pieces_bitboard(us, PieceType.ROOK)
        king = board.pieces_bitboard(us, PieceType.KING)

        for right, king_from, king_to, rook_sq, empty, safe, flag in _CASTLING_OPTIONS[us]:
            if not rights & right:
                continue
            if not (king >> king_from) & 1 or not (rook >> rook_sq) & 1:
                continue
            if any((occupied >> sq) & 1 for sq in empty):
                continue
            if any(pos.is_square_attacked(sq, them) for sq in safe):
                continue
            moves.append(Move(king_from, king_to, flag))

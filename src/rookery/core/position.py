"""Position - complete game state with reversible apply/undo."""

from __future__ import annotations

from dataclasses import dataclass

from rookery.core.bitboard import (
    KING_ATTACKS,
    KNIGHT_ATTACKS,
    PAWN_ATTACKS,
    Bitboard,
    bishop_attacks,
    rook_attacks,
)
from rookery.core.board import Board
from rookery.core.enums import CastlingRights, Color, MoveFlag, PieceType
from rookery.core.errors import InvalidMove
from rookery.core.move import Move
from rookery.core.piece import PIECES, Piece
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
from rookery.core.zobrist import (
    SIDE_KEY,
    castling_key,
    en_passant_key,
    piece_key,
)

# Rights that survive a move touching a given square.
_CASTLING_KEEP: list[CastlingRights] = [CastlingRights.ALL] * 64
_CASTLING_KEEP[A1] = CastlingRights.ALL & ~CastlingRights.WHITE_QUEENSIDE
_CASTLING_KEEP[H1] = CastlingRights.ALL & ~CastlingRights.WHITE_KINGSIDE
_CASTLING_KEEP[E1] = CastlingRights.ALL & ~CastlingRights.WHITE_BOTH
_CASTLING_KEEP[A8] = CastlingRights.ALL & ~CastlingRights.BLACK_QUEENSIDE
_CASTLING_KEEP[H8] = CastlingRights.ALL & ~CastlingRights.BLACK_KINGSIDE
_CASTLING_KEEP[E8] = CastlingRights.ALL & ~CastlingRights.BLACK_BOTH

# King destination -> (rook origin, rook destination, required right, squares that must be empty)
_CASTLING_RULES: dict[Square, tuple[Square, Square, CastlingRights, tuple[Square, ...]]] = {
    G1: (H1, F1, CastlingRights.WHITE_KINGSIDE, (F1, G1)),
    C1: (A1, D1, CastlingRights.WHITE_QUEENSIDE, (D1, C1, B1)),
    G8: (H8, F8, CastlingRights.BLACK_KINGSIDE, (F8, G8)),
    C8: (A8, D8, CastlingRights.BLACK_QUEENSIDE, (D8, C8, B8)),
}
_KING_HOME: tuple[Square, Square] = (E1, E8)
_PROMOTION_RANK: tuple[int, int] = (7, 0)
_PAWN_HOME_RANK: tuple[int, int] = (1, 6)


@dataclass(frozen=True, slots=True)
class UndoRecord:
    """Everything needed to reverse one :meth:`Position.apply`."""

    move: Move
    moved: Piece
    captured: Piece | None
    castling: CastlingRights
    en_passant: Square | None
    halfmove_clock: int
    fullmove_number: int
    key_before: int
    key_after: int


class Position:
    """Full chess position: board, side to move, castling, en passant, clocks.

    Mutated in place with :meth:`apply`, which hands back an
    :class:`UndoRecord`; :meth:`undo` with that record restores the previous
    state exactly. Records must be undone in reverse order of application.
    """

    __slots__ = (
        "board",
        "side_to_move",
        "castling",
        "en_passant",
        "halfmove_clock",
        "fullmove_number",
        "zobrist_hash",
        "_key_stack",
    )

    def __init__(
        self,
        board: Board | None = None,
        side_to_move: Color = Color.WHITE,
        castling: CastlingRights = CastlingRights.ALL,
        en_passant: Square | None = None,
        halfmove_clock: int = 0,
        fullmove_number: int = 1,
    ) -> None:
        self.board = board if board is not None else Board.initial()
        self.side_to_move = side_to_move
        self.castling = castling
        self.en_passant = en_passant
        self.halfmove_clock = halfmove_clock
        self.fullmove_number = fullmove_number
        self.zobrist_hash = self._compute_hash()
        # Hash of every position reached so far, current one last.
        self._key_stack: list[int] = [self.zobrist_hash]

    @classmethod
    def initial(cls) -> Position:
        return cls()

    # ── Mutation ──────────────────────────────────────────────────────────────

    def apply(self, move: Move) -> UndoRecord:
        """Play *move* and return the record that reverses it.

        The checks here only guard against callers that skip the move
        generator; they do not decide legality.

        Raises:
            InvalidMove: the move is inconsistent with the board.
        """
        board = self.board
        us = self.side_to_move
        them = us.opposite
        from_sq, to_sq, flag = move.from_sq, move.to_sq, move.flag

        piece = board[from_sq]
        if piece is None or piece.color != us:
            raise InvalidMove(f"{move}: no {us} piece on the origin square")
        target = board[to_sq]
        self._check_move_shape(move, piece, target)

        key = self.zobrist_hash
        key_before = key

        captured: Piece | None = None
        if flag == MoveFlag.EN_PASSANT:
            cap_sq = to_sq - 8 if us == Color.WHITE else to_sq + 8
            captured = board.remove(cap_sq)
            key ^= piece_key(them, PieceType.PAWN, cap_sq)
        elif target is not None:
            captured = board.remove(to_sq)
            key ^= piece_key(them, target.piece_type, to_sq)

        board.remove(from_sq)
        key ^= piece_key(us, piece.piece_type, from_sq)
        placed = piece if move.promotion is None else PIECES[us][move.promotion]
        board.put(to_sq, placed)
        key ^= piece_key(us, placed.piece_type, to_sq)

        if flag == MoveFlag.CASTLE_KINGSIDE or flag == MoveFlag.CASTLE_QUEENSIDE:
            rook_from, rook_to = _CASTLING_RULES[to_sq][:2]
            board.relocate(rook_from, rook_to)
            key ^= piece_key(us, PieceType.ROOK, rook_from)
            key ^= piece_key(us, PieceType.ROOK, rook_to)

        old_castling = self.castling
        new_castling = old_castling & _CASTLING_KEEP[from_sq] & _CASTLING_KEEP[to_sq]
        if new_castling != old_castling:
            key ^= castling_key(old_castling) ^ castling_key(new_castling)
            self.castling = new_castling

        old_ep = self.en_passant
        new_ep = (from_sq + to_sq) // 2 if flag == MoveFlag.DOUBLE_PAWN else None
        key ^= en_passant_key(old_ep) ^ en_passant_key(new_ep)
        self.en_passant = new_ep

        old_halfmove = self.halfmove_clock
        old_fullmove = self.fullmove_number
        if piece.piece_type == PieceType.PAWN or captured is not None:
            self.halfmove_clock = 0
        else:
            self.halfmove_clock = old_halfmove + 1
        if us == Color.BLACK:
            self.fullmove_number = old_fullmove + 1

        self.side_to_move = them
        key ^= SIDE_KEY
        self.zobrist_hash = key
        self._key_stack.append(key)

        return UndoRecord(
            move=move,
            moved=piece,
            captured=captured,
            castling=old_castling,
            en_passant=old_ep,
            halfmove_clock=old_halfmove,
            fullmove_number=old_fullmove,
            key_before=key_before,
            key_after=key,
        )

    def undo(self, record: UndoRecord) -> None:
        """Reverse the most recent :meth:`apply`.

        Raises:
            InvalidMove: *record* does not belong to the last applied move.
        """
        if len(self._key_stack) < 2 or self.zobrist_hash != record.key_after:
            raise InvalidMove(f"{record.move}: undo record does not match the last move")
        self._key_stack.pop()

        board = self.board
        move = record.move
        us = record.moved.color

        board.remove(move.to_sq)
        board.put(move.from_sq, record.moved)

        if move.flag == MoveFlag.CASTLE_KINGSIDE or move.flag == MoveFlag.CASTLE_QUEENSIDE:
            rook_from, rook_to = _CASTLING_RULES[move.to_sq][:2]
            board.relocate(rook_to, rook_from)

        if record.captured is not None:
            cap_sq = move.to_sq
            if move.flag == MoveFlag.EN_PASSANT:
                cap_sq = cap_sq - 8 if us == Color.WHITE else cap_sq + 8
            board.put(cap_sq, record.captured)

        self.side_to_move = us
        self.castling = record.castling
        self.en_passant = record.en_passant
        self.halfmove_clock = record.halfmove_clock
        self.fullmove_number = record.fullmove_number
        self.zobrist_hash = record.key_before

    def _check_move_shape(self, move: Move, piece: Piece, target: Piece | None) -> None:
        us = piece.color
        flag = move.flag
        is_pawn = piece.piece_type == PieceType.PAWN

        if move.from_sq == move.to_sq:
            raise InvalidMove(f"{move}: origin equals destination")
        if target is not None:
            if target.color == us:
                raise InvalidMove(f"{move}: destination holds an own piece")
            if target.piece_type == PieceType.KING:
                raise InvalidMove(f"{move}: kings cannot be captured")
            if flag != MoveFlag.CAPTURE:
                raise InvalidMove(f"{move}: capture not tagged as capture")
        elif flag == MoveFlag.CAPTURE:
            raise InvalidMove(f"{move}: capture of an empty square")

        reaches_last_rank = is_pawn and rank_of(move.to_sq) == _PROMOTION_RANK[us]
        if move.promotion is not None:
            if not reaches_last_rank or move.promotion in (PieceType.PAWN, PieceType.KING):
                raise InvalidMove(f"{move}: invalid promotion")
        elif reaches_last_rank:
            raise InvalidMove(f"{move}: pawn must promote on the last rank")

        if flag == MoveFlag.EN_PASSANT:
            cap_sq = move.to_sq - 8 if us == Color.WHITE else move.to_sq + 8
            if (
                not is_pawn
                or move.to_sq != self.en_passant
                or self.board[cap_sq] != PIECES[us.opposite][PieceType.PAWN]
            ):
                raise InvalidMove(f"{move}: en passant not available")
        elif flag == MoveFlag.DOUBLE_PAWN:
            step = 8 if us == Color.WHITE else -8
            if (
                not is_pawn
                or rank_of(move.from_sq) != _PAWN_HOME_RANK[us]
                or move.to_sq != move.from_sq + 2 * step
                or not self.board.is_empty(move.from_sq + step)
            ):
                raise InvalidMove(f"{move}: invalid double pawn push")
        elif flag == MoveFlag.CASTLE_KINGSIDE or flag == MoveFlag.CASTLE_QUEENSIDE:
            rule = _CASTLING_RULES.get(move.to_sq)
            if (
                rule is None
                or piece.piece_type != PieceType.KING
                or move.from_sq != _KING_HOME[us]
                or rank_of(move.to_sq) != rank_of(move.from_sq)
            ):
                raise InvalidMove(f"{move}: invalid castling move")
            rook_from, _, right, path = rule
            if not self.castling & right:
                raise InvalidMove(f"{move}: castling right lost")
            if self.board[rook_from] != PIECES[us][PieceType.ROOK]:
                raise InvalidMove(f"{move}: castling rook missing")
            if any(not self.board.is_empty(sq) for sq in path):
                raise InvalidMove(f"{move}: castling path blocked")

    # ── Attack queries ────────────────────────────────────────────────────────

    def is_square_attacked(
        self,
        sq: Square,
        by_color: Color,
        occupied: Bitboard | None = None,
    ) -> bool:
        """Is *sq* attacked by any piece of *by_color*?

        Sliding attacks are blocked by *occupied* (the current occupancy by
        default); pass an occupancy without a piece to see attacks through it.
        """
        board = self.board
        occ = board.occupied if occupied is None else occupied
        if PAWN_ATTACKS[by_color.opposite][sq] & board.pieces_bitboard(by_color, PieceType.PAWN):
            return True
        if KNIGHT_ATTACKS[sq] & board.pieces_bitboard(by_color, PieceType.KNIGHT):
            return True
        if KING_ATTACKS[sq] & board.pieces_bitboard(by_color, PieceType.KING):
            return True
        queens = board.pieces_bitboard(by_color, PieceType.QUEEN)
        diagonal = board.pieces_bitboard(by_color, PieceType.BISHOP) | queens
        if diagonal and bishop_attacks(sq, occ) & diagonal:
            return True
        straight = board.pieces_bitboard(by_color, PieceType.ROOK) | queens
        return bool(straight and rook_attacks(sq, occ) & straight)

    def king_square(self, color: Color) -> Square:
        return self.board.king_square(color)

    def in_check(self, color: Color | None = None) -> bool:
        """Is *color* (default: side to move) in check?"""
        if color is None:
            color = self.side_to_move
        return self.is_square_attacked(self.board.king_square(color), color.opposite)

    # ── Utilities ─────────────────────────────────────────────────────────────

    def repetition_count(self) -> int:
        """How many times the current position occurred since the last irreversible move."""
        keys = self._key_stack
        current = keys[-1]
        last = len(keys) - 1
        start = max(0, last - self.halfmove_clock)
        return sum(1 for i in range(last, start - 1, -2) if keys[i] == current)

    def copy(self) -> Position:
        """Independent copy that keeps the repetition history."""
        pos = Position.__new__(Position)
        pos.board = self.board.copy()
        pos.side_to_move = self.side_to_move
        pos.castling = self.castling
        pos.en_passant = self.en_passant
        pos.halfmove_clock = self.halfmove_clock
        pos.fullmove_number = self.fullmove_number
        pos.zobrist_hash = self.zobrist_hash
        pos._key_stack = self._key_stack.copy()
        return pos

    def mirrored(self) -> Position:
        """Color-swapped, rank-flipped reflection with the same side to move.

        Every piece changes color, so the side to move now plays what used to
        be the opponent's army. The en-passant target is dropped because it
        cannot stay valid for the same mover. History is not carried over.
        """
        return Position(
            board=self.board.mirrored(),
            side_to_move=self.side_to_move,
            castling=self.castling.mirrored(),
            en_passant=None,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
        )

    def _compute_hash(self) -> int:
        key = castling_key(self.castling) ^ en_passant_key(self.en_passant)
        if self.side_to_move == Color.BLACK:
            key ^= SIDE_KEY
        for sq, piece in self.board.items():
            key ^= piece_key(piece.color, piece.piece_type, sq)
        return key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return (
            self.board == other.board
            and self.side_to_move == other.side_to_move
            and self.castling == other.castling
            and self.en_passant == other.en_passant
            and self.halfmove_clock == other.halfmove_clock
            and self.fullmove_number == other.fullmove_number
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        from rookery.core.notation.fen import position_to_fen

        return f"Position({position_to_fen(self)!r})"

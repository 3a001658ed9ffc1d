"""FEN parsing and serialization."""

from __future__ import annotations

from rookery.core.board import Board
from rookery.core.enums import CastlingRights, Color, PieceType
from rookery.core.errors import MalformedRecord
from rookery.core.piece import PIECES, Piece
from rookery.core.position import Position
from rookery.core.types import (
    A1,
    A8,
    E1,
    E8,
    H1,
    H8,
    Square,
    make_square,
    parse_square,
    rank_of,
    square_name,
)

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

_CASTLING_LETTERS: dict[str, CastlingRights] = {
    "K": CastlingRights.WHITE_KINGSIDE,
    "Q": CastlingRights.WHITE_QUEENSIDE,
    "k": CastlingRights.BLACK_KINGSIDE,
    "q": CastlingRights.BLACK_QUEENSIDE,
}
_BACK_RANKS = 0xFF00_0000_0000_00FF
_DIGITS = "12345678"

# Each right needs its king and rook on their home squares.
_CASTLING_HOMES: dict[CastlingRights, tuple[Color, Square, Square]] = {
    CastlingRights.WHITE_KINGSIDE: (Color.WHITE, E1, H1),
    CastlingRights.WHITE_QUEENSIDE: (Color.WHITE, E1, A1),
    CastlingRights.BLACK_KINGSIDE: (Color.BLACK, E8, H8),
    CastlingRights.BLACK_QUEENSIDE: (Color.BLACK, E8, A8),
}


def position_from_fen(fen: str) -> Position:
    """Parse a six-field FEN string into a :class:`Position`.

    Raises:
        MalformedRecord: the text is not a well-formed FEN record or describes
            an impossible placement (missing kings, pawns on a back rank, castling
            rights without their king and rook, an en-passant target no pawn
            just jumped over).
    """
    parts = fen.split()
    if len(parts) != 6:
        raise MalformedRecord(f"Invalid FEN (need 6 fields, got {len(parts)}): {fen!r}")

    placement, side_part, castling_part, ep_part, halfmove_part, fullmove_part = parts

    # 1. Piece placement
    board = _parse_placement(placement, fen)

    # 2. Side to move
    if side_part == "w":
        side = Color.WHITE
    elif side_part == "b":
        side = Color.BLACK
    else:
        raise MalformedRecord(f"Invalid FEN side-to-move field: {side_part!r}")

    # 3. Castling
    castling = CastlingRights.NONE
    if castling_part != "-":
        seen: set[str] = set()
        for ch in castling_part:
            right = _CASTLING_LETTERS.get(ch)
            if right is None or ch in seen:
                raise MalformedRecord(f"Invalid FEN castling field: {castling_part!r}")
            seen.add(ch)
            _check_castling_homes(board, right, castling_part)
            castling |= right

    # 4. En passant
    ep: Square | None = None
    if ep_part != "-":
        ep = parse_square(ep_part)
        expected_ep_rank = 5 if side == Color.WHITE else 2
        if rank_of(ep) != expected_ep_rank:
            raise MalformedRecord(
                f"Invalid FEN en-passant square for side-to-move: {ep_part!r}"
            )
        _check_en_passant(board, side, ep, ep_part)

    # 5-6. Clocks
    halfmove = _parse_counter(halfmove_part, "halfmove clock", minimum=0)
    fullmove = _parse_counter(fullmove_part, "fullmove number", minimum=1)

    return Position(board, side, castling, ep, halfmove, fullmove)


def position_to_fen(pos: Position) -> str:
    """Serialise a :class:`Position` to FEN."""
    # 1. Board
    rows: list[str] = []
    for rank in range(7, -1, -1):
        empty = 0
        row = ""
        for file in range(8):
            piece = pos.board[make_square(file, rank)]
            if piece is None:
                empty += 1
            else:
                if empty:
                    row += str(empty)
                    empty = 0
                row += str(piece)
        if empty:
            row += str(empty)
        rows.append(row)
    board_str = "/".join(rows)

    # 2. Side
    side_str = "w" if pos.side_to_move == Color.WHITE else "b"

    # 3. Castling
    castling_str = "".join(
        letter for letter, right in _CASTLING_LETTERS.items() if pos.castling & right
    ) or "-"

    # 4. En passant
    ep_str = square_name(pos.en_passant) if pos.en_passant is not None else "-"

    return f"{board_str} {side_str} {castling_str} {ep_str} {pos.halfmove_clock} {pos.fullmove_number}"


# ── Helpers ───────────────────────────────────────────────────────────────────


def _parse_placement(placement: str, fen: str) -> Board:
    ranks = placement.split("/")
    if len(ranks) != 8:
        raise MalformedRecord(f"Invalid FEN board (must contain 8 ranks): {fen!r}")
    board = Board()
    for rank_idx, rank_text in enumerate(ranks):
        rank = 7 - rank_idx
        file = 0
        for ch in rank_text:
            if ch in _DIGITS:
                file += int(ch)
            elif ch.isdigit():
                raise MalformedRecord(f"Invalid FEN digit {ch!r}: {fen!r}")
            else:
                piece = Piece.from_char(ch)
                if file >= 8:
                    raise MalformedRecord(f"Invalid FEN rank width: {fen!r}")
                board.put(make_square(file, rank), piece)
                file += 1
            if file > 8:
                raise MalformedRecord(f"Invalid FEN rank width: {fen!r}")
        if file != 8:
            raise MalformedRecord(f"Invalid FEN rank width: {fen!r}")

    for color in Color:
        if board.count(color, PieceType.KING) != 1:
            raise MalformedRecord(f"Invalid FEN (need exactly one {color} king): {fen!r}")
    pawns = board.pieces_bitboard(Color.WHITE, PieceType.PAWN) | board.pieces_bitboard(
        Color.BLACK, PieceType.PAWN
    )
    if pawns & _BACK_RANKS:
        raise MalformedRecord(f"Invalid FEN (pawn on first or last rank): {fen!r}")
    return board


def _parse_counter(text: str, what: str, *, minimum: int) -> int:
    if not (text.isascii() and text.isdigit()):
        raise MalformedRecord(f"Invalid FEN {what}: {text!r}")
    value = int(text)
    if value < minimum:
        raise MalformedRecord(f"Invalid FEN {what}: {text!r}")
    return value


def _check_castling_homes(board: Board, right: CastlingRights, field: str) -> None:
    color, king_sq, rook_sq = _CASTLING_HOMES[right]
    if (
        board[king_sq] != PIECES[color][PieceType.KING]
        or board[rook_sq] != PIECES[color][PieceType.ROOK]
    ):
        raise MalformedRecord(
            f"Invalid FEN castling field {field!r}: king or rook not on its home square"
        )


def _check_en_passant(board: Board, side: Color, ep: Square, text: str) -> None:
    """The target must be the square a pawn of the side not to move just jumped over."""
    step = 8 if side == Color.WHITE else -8
    pushed_pawn = PIECES[side.opposite][PieceType.PAWN]
    if board[ep] is not None or board[ep + step] is not None or board[ep - step] != pushed_pawn:
        raise MalformedRecord(
            f"Invalid FEN en-passant square {text!r}: no pawn has just jumped over it"
        )

"""Tests for the Board container."""

import pytest

from rookery.core.board import Board
from rookery.core.enums import Color, PieceType
from rookery.core.piece import PIECES, Piece
from rookery.core.types import A1, D1, E1, E4, E8, H8


class TestInitialBoard:
    def test_piece_counts(self) -> None:
        board = Board.initial()
        assert board.count(Color.WHITE, PieceType.PAWN) == 8
        assert board.count(Color.BLACK, PieceType.PAWN) == 8
        assert board.count(Color.WHITE, PieceType.KNIGHT) == 2
        assert board.occupied.bit_count() == 32

    def test_kings(self) -> None:
        board = Board.initial()
        assert board.king_square(Color.WHITE) == E1
        assert board.king_square(Color.BLACK) == E8
        assert board[E1] == Piece(Color.WHITE, PieceType.KING)
        assert board[D1] == PIECES[Color.WHITE][PieceType.QUEEN]

    def test_color_bitboards_are_disjoint(self) -> None:
        board = Board.initial()
        white = board.color_bitboard(Color.WHITE)
        black = board.color_bitboard(Color.BLACK)
        assert white & black == 0
        assert white | black == board.occupied


class TestMutation:
    def test_put_and_remove_keep_bitboards_in_sync(self) -> None:
        board = Board()
        knight = PIECES[Color.BLACK][PieceType.KNIGHT]
        board.put(E4, knight)
        assert board.pieces(Color.BLACK, PieceType.KNIGHT) == [E4]
        assert board.occupied == 1 << E4

        assert board.remove(E4) == knight
        assert board.is_empty(E4)
        assert board.occupied == 0
        assert not board.has_piece(Color.BLACK, PieceType.KNIGHT)

    def test_remove_empty_square_raises(self) -> None:
        with pytest.raises(ValueError):
            Board().remove(E4)

    def test_setitem_replaces(self) -> None:
        board = Board()
        board[A1] = PIECES[Color.WHITE][PieceType.ROOK]
        board[A1] = PIECES[Color.BLACK][PieceType.QUEEN]
        assert board[A1] == PIECES[Color.BLACK][PieceType.QUEEN]
        assert not board.has_piece(Color.WHITE, PieceType.ROOK)
        board[A1] = None
        assert board.occupied == 0

    def test_relocate(self) -> None:
        board = Board()
        board.put(A1, PIECES[Color.WHITE][PieceType.ROOK])
        board.relocate(A1, H8)
        assert board[H8] == PIECES[Color.WHITE][PieceType.ROOK]
        assert board.is_empty(A1)

    def test_missing_king_raises(self) -> None:
        with pytest.raises(ValueError):
            Board().king_square(Color.WHITE)


class TestCopyAndMirror:
    def test_copy_is_independent(self) -> None:
        board = Board.initial()
        clone = board.copy()
        clone.remove(E1)
        assert board[E1] is not None
        assert board != clone

    def test_initial_board_is_its_own_mirror(self) -> None:
        assert Board.initial().mirrored() == Board.initial()

    def test_mirror_swaps_color_and_rank(self) -> None:
        board = Board()
        board.put(E4, PIECES[Color.WHITE][PieceType.KNIGHT])
        mirrored = board.mirrored()
        assert mirrored[E4 ^ 56] == PIECES[Color.BLACK][PieceType.KNIGHT]
        assert mirrored.is_empty(E4)

"""Tests for bitboard helpers and attack tables."""

from rookery.core.bitboard import (
    KING_ATTACKS,
    KNIGHT_ATTACKS,
    PAWN_ATTACKS,
    bishop_attacks,
    bit,
    flip_vertical,
    iter_squares,
    lsb,
    msb,
    piece_attacks,
    popcount,
    queen_attacks,
    rook_attacks,
)
from rookery.core.enums import Color, PieceType
from rookery.core.types import (
    A1, A2, A8, B3, C2, D1, D2, D3, D4, D5, D6, D7, E1, E2, F1, F3, F4, H1, H8,
)


class TestHelpers:
    def test_lsb_msb(self) -> None:
        bb = bit(D4) | bit(H8) | bit(A2)
        assert lsb(bb) == A2
        assert msb(bb) == H8

    def test_iter_squares_ascending(self) -> None:
        assert list(iter_squares(bit(H8) | bit(A1) | bit(D4))) == [A1, D4, H8]

    def test_flip_vertical(self) -> None:
        assert flip_vertical(bit(A1)) == bit(A8)
        assert flip_vertical(bit(D2) | bit(H1)) == bit(D7) | bit(H8)


class TestLeaperTables:
    def test_knight_in_corner(self) -> None:
        assert KNIGHT_ATTACKS[A1] == bit(B3) | bit(C2)

    def test_knight_in_centre(self) -> None:
        assert popcount(KNIGHT_ATTACKS[D4]) == 8

    def test_king_on_edge(self) -> None:
        assert popcount(KING_ATTACKS[E1]) == 5

    def test_pawn_attacks_by_color(self) -> None:
        assert PAWN_ATTACKS[Color.WHITE][E2] == bit(D3) | bit(F3)
        assert PAWN_ATTACKS[Color.WHITE][A2] == bit(B3)
        assert PAWN_ATTACKS[Color.BLACK][E2] == bit(D1) | bit(F1)


class TestSliders:
    def test_rook_on_empty_board(self) -> None:
        assert popcount(rook_attacks(A1, 0)) == 14

    def test_rook_stops_at_blockers(self) -> None:
        attacks = rook_attacks(D4, bit(D6) | bit(F4))
        assert attacks & bit(D6)
        assert not attacks & bit(D6 + 8)
        assert attacks & bit(F4)
        assert not attacks & bit(F4 + 1)
        assert popcount(attacks) == 10

    def test_bishop_on_empty_board(self) -> None:
        assert popcount(bishop_attacks(D4, 0)) == 13

    def test_queen_is_rook_plus_bishop(self) -> None:
        occ = bit(D5) | bit(F4)
        assert queen_attacks(D4, occ) == rook_attacks(D4, occ) | bishop_attacks(D4, occ)
        assert popcount(queen_attacks(D4, 0)) == 27

    def test_piece_attacks_dispatch(self) -> None:
        assert piece_attacks(PieceType.KNIGHT, Color.WHITE, A1, 0) == KNIGHT_ATTACKS[A1]
        assert piece_attacks(PieceType.PAWN, Color.BLACK, E2, 0) == PAWN_ATTACKS[Color.BLACK][E2]
        assert piece_attacks(PieceType.ROOK, Color.WHITE, A1, 0) == rook_attacks(A1, 0)

"""Bitboard helpers and precomputed attack tables.

A bitboard is a Python ``int`` used as a 64-bit set: bit *n* is set when
square *n* (see :mod:`rookery.core.types`) belongs to the set.

Sliding attacks are computed with the classical ray approach: for every
square and direction the full empty-board ray is precomputed, and the
actual attack set is that ray cut off behind the first blocker found in
the occupancy bitboard.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Final

from rookery.core.enums import Color, PieceType
from rookery.core.types import Square, make_square

Bitboard = int

FILE_MASKS: Final = tuple(0x0101_0101_0101_0101 << f for f in range(8))

KNIGHT_OFFSETS: Final = (
    (-2, -1),
    (-2, 1),
    (-1, -2),
    (-1, 2),
    (1, -2),
    (1, 2),
    (2, -1),
    (2, 1),
)
KING_OFFSETS: Final = (
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
)

# Ray directions as (file step, rank step). The first four point towards
# higher square indexes, so their nearest blocker is the lowest set bit.
NORTH, EAST, NORTH_EAST, NORTH_WEST, SOUTH, WEST, SOUTH_WEST, SOUTH_EAST = range(8)
_DIRECTION_STEPS: Final = (
    (0, 1),
    (1, 0),
    (1, 1),
    (-1, 1),
    (0, -1),
    (-1, 0),
    (-1, -1),
    (1, -1),
)
ROOK_DIRECTIONS: Final = (NORTH, EAST, SOUTH, WEST)
BISHOP_DIRECTIONS: Final = (NORTH_EAST, NORTH_WEST, SOUTH_WEST, SOUTH_EAST)


def bit(sq: Square) -> Bitboard:
    return 1 << sq


def lsb(bb: Bitboard) -> Square:
    """Index of the lowest set bit. *bb* must be non-empty."""
    return (bb & -bb).bit_length() - 1


def msb(bb: Bitboard) -> Square:
    """Index of the highest set bit. *bb* must be non-empty."""
    return bb.bit_length() - 1


def popcount(bb: Bitboard) -> int:
    return bb.bit_count()


def iter_squares(bb: Bitboard) -> Iterator[Square]:
    """Yield the squares of *bb* from a1 towards h8."""
    while bb:
        low = bb & -bb
        yield low.bit_length() - 1
        bb ^= low


def flip_vertical(bb: Bitboard) -> Bitboard:
    """Mirror a bitboard rank-wise (rank 1 <-> rank 8)."""
    return int.from_bytes(bb.to_bytes(8, "little"), "big")


# ── Table construction ────────────────────────────────────────────────────────


def _leaper_table(offsets: tuple[tuple[int, int], ...]) -> tuple[Bitboard, ...]:
    table: list[Bitboard] = []
    for sq in range(64):
        file_idx, rank_idx = sq & 7, sq >> 3
        mask = 0
        for df, dr in offsets:
            f, r = file_idx + df, rank_idx + dr
            if 0 <= f < 8 and 0 <= r < 8:
                mask |= 1 << make_square(f, r)
        table.append(mask)
    return tuple(table)


def _ray_table() -> tuple[tuple[Bitboard, ...], ...]:
    rays: list[tuple[Bitboard, ...]] = []
    for df, dr in _DIRECTION_STEPS:
        per_square: list[Bitboard] = []
        for sq in range(64):
            f, r = (sq & 7) + df, (sq >> 3) + dr
            mask = 0
            while 0 <= f < 8 and 0 <= r < 8:
                mask |= 1 << make_square(f, r)
                f += df
                r += dr
            per_square.append(mask)
        rays.append(tuple(per_square))
    return tuple(rays)


KNIGHT_ATTACKS: Final = _leaper_table(KNIGHT_OFFSETS)
KING_ATTACKS: Final = _leaper_table(KING_OFFSETS)
# PAWN_ATTACKS[color][sq]: squares a pawn of *color* standing on *sq* attacks.
PAWN_ATTACKS: Final = (
    _leaper_table(((-1, 1), (1, 1))),
    _leaper_table(((-1, -1), (1, -1))),
)
RAYS: Final = _ray_table()


# ── Attack queries ────────────────────────────────────────────────────────────


def ray_attacks(sq: Square, occupied: Bitboard, direction: int) -> Bitboard:
    """Squares reached from *sq* along *direction*, up to and including the first blocker."""
    ray = RAYS[direction][sq]
    blockers = ray & occupied
    if blockers:
        blocker = lsb(blockers) if direction < SOUTH else msb(blockers)
        ray ^= RAYS[direction][blocker]
    return ray


def bishop_attacks(sq: Square, occupied: Bitboard) -> Bitboard:
    attacks = 0
    for direction in BISHOP_DIRECTIONS:
        attacks |= ray_attacks(sq, occupied, direction)
    return attacks


def rook_attacks(sq: Square, occupied: Bitboard) -> Bitboard:
    attacks = 0
    for direction in ROOK_DIRECTIONS:
        attacks |= ray_attacks(sq, occupied, direction)
    return attacks


def queen_attacks(sq: Square, occupied: Bitboard) -> Bitboard:
    return bishop_attacks(sq, occupied) | rook_attacks(sq, occupied)


def pawn_attacks(sq: Square, color: Color) -> Bitboard:
    return PAWN_ATTACKS[color][sq]


def piece_attacks(piece_type: PieceType, color: Color, sq: Square, occupied: Bitboard) -> Bitboard:
    """Squares attacked by a *color* *piece_type* on *sq* given *occupied*."""
    if piece_type == PieceType.KNIGHT:
        return KNIGHT_ATTACKS[sq]
    if piece_type == PieceType.BISHOP:
        return bishop_attacks(sq, occupied)
    if piece_type == PieceType.ROOK:
        return rook_attacks(sq, occupied)
    if piece_type == PieceType.QUEEN:
        return queen_attacks(sq, occupied)
    if piece_type == PieceType.KING:
        return KING_ATTACKS[sq]
    return PAWN_ATTACKS[color][sq]

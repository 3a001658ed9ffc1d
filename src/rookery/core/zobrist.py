"""Zobrist keys for incremental position hashing.

Keys are derived from a fixed seed with a splitmix64 stream so hashes are
stable across processes.
"""

from __future__ import annotations

from typing import Final

from rookery.core.enums import CastlingRights, Color, PieceType
from rookery.core.types import Square

_MASK_64: Final = (1 << 64) - 1
_SEED: Final = 0x5EED_C0FF_EE15_BAD5


def _splitmix64_stream(seed: int, count: int) -> list[int]:
    keys: list[int] = []
    state = seed
    for _ in range(count):
        state = (state + 0x9E3779B97F4A7C15) & _MASK_64
        z = state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK_64
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK_64
        keys.append(z ^ (z >> 31))
    return keys


_STREAM: Final = _splitmix64_stream(_SEED, 2 * 7 * 64 + 1 + 16 + 8)

# PIECE_KEYS[color][piece_type][square]; piece_type 0 is unused.
PIECE_KEYS: Final = tuple(
    tuple(
        tuple(_STREAM[(color * 7 + ptype) * 64 + sq] for sq in range(64))
        for ptype in range(7)
    )
    for color in range(2)
)
SIDE_KEY: Final = _STREAM[2 * 7 * 64]
CASTLING_KEYS: Final = tuple(_STREAM[2 * 7 * 64 + 1 + i] for i in range(16))
# En-passant targets are keyed by file only.
EN_PASSANT_KEYS: Final = tuple(_STREAM[2 * 7 * 64 + 17 + f] for f in range(8))


def piece_key(color: Color, piece_type: PieceType, sq: Square) -> int:
    return PIECE_KEYS[color][piece_type][sq]


def castling_key(castling: CastlingRights) -> int:
    return CASTLING_KEYS[int(castling) & 0xF]


def en_passant_key(ep_square: Square | None) -> int:
    if ep_square is None:
        return 0
    return EN_PASSANT_KEYS[ep_square & 7]

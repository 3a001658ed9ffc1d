"""Perft - exhaustive legal move tree counting for move generator verification.

Reference values: https://www.chessprogramming.org/Perft_Results
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rookery.core.move_generator import MoveGenerator

if TYPE_CHECKING:
    from rookery.core.move import Move
    from rookery.core.position import Position


def perft(position: Position, depth: int) -> int:
    """Count leaf nodes at *depth* using apply/undo.

    The position is left exactly as it was passed in.
    """
    if depth < 0:
        raise ValueError(f"perft depth must be >= 0, got {depth}")
    if depth == 0:
        return 1
    moves = MoveGenerator(position).generate_legal_moves()
    if depth == 1:
        return len(moves)
    nodes = 0
    for move in moves:
        record = position.apply(move)
        try:
            nodes += perft(position, depth - 1)
        finally:
            position.undo(record)
    return nodes


def divide(position: Position, depth: int) -> dict[Move, int]:
    """Per root move leaf counts at *depth* (``depth >= 1``)."""
    if depth < 1:
        raise ValueError(f"divide depth must be >= 1, got {depth}")
    counts: dict[Move, int] = {}
    for move in MoveGenerator(position).generate_legal_moves():
        record = position.apply(move)
        try:
            counts[move] = perft(position, depth - 1)
        finally:
            position.undo(record)
    return counts

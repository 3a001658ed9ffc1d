"""Long algebraic move notation as spoken by the UCI protocol."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from rookery.core.errors import InvalidMove, MalformedRecord
from rookery.core.move_generator import MoveGenerator
from rookery.core.piece import piece_type_from_letter
from rookery.core.types import parse_square

if TYPE_CHECKING:
    from rookery.core.move import Move
    from rookery.core.position import Position

_LAN_RE = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")


def move_to_uci(move: Move) -> str:
    """``e2e4``, ``e7e8q``, ``e1g1`` for castling."""
    return str(move)


def parse_uci_move(position: Position, text: str) -> Move:
    """Resolve *text* against the legal moves of *position*.

    Raises:
        MalformedRecord: *text* is not long algebraic notation.
        InvalidMove: the move is well formed but not legal here.
    """
    m = _LAN_RE.match(text.strip())
    if m is None:
        raise MalformedRecord(f"Invalid move notation: {text!r}")
    from_sq = parse_square(m.group(1))
    to_sq = parse_square(m.group(2))
    promotion = piece_type_from_letter(m.group(3)) if m.group(3) else None

    for move in MoveGenerator(position).generate_legal_moves():
        if move.from_sq == from_sq and move.to_sq == to_sq and move.promotion == promotion:
            return move
    raise InvalidMove(f"Illegal move in position: {text!r}")


def parse_uci_moves(position: Position, tokens: Iterable[str]) -> list[Move]:
    """Apply each move of *tokens* to *position* in turn.

    *position* is mutated. On error the moves applied so far stay applied,
    so callers that need all-or-nothing semantics should pass a copy.
    """
    played: list[Move] = []
    for token in tokens:
        move = parse_uci_move(position, token)
        position.apply(move)
        played.append(move)
    return played

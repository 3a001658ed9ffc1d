"""Notation package: FEN and long algebraic (UCI) move text."""

from rookery.core.notation.fen import STARTING_FEN, position_from_fen, position_to_fen
from rookery.core.notation.uci import move_to_uci, parse_uci_move, parse_uci_moves

__all__ = [
    "STARTING_FEN",
    "position_from_fen",
    "position_to_fen",
    "move_to_uci",
    "parse_uci_move",
    "parse_uci_moves",
]

"""Core domain layer - pure chess logic with zero external dependencies.

Quick start::

    from rookery.core import MoveGenerator, position_from_fen, STARTING_FEN

    pos = position_from_fen(STARTING_FEN)
    gen = MoveGenerator(pos)
    for move in gen.generate_legal_moves():
        print(move)
"""

from rookery.core.board import Board
from rookery.core.enums import (
    CastlingRights,
    Color,
    GameResult,
    MoveFlag,
    PieceType,
    Termination,
)
from rookery.core.errors import (
    ChessError,
    EngineBusy,
    InvalidMove,
    MalformedRecord,
    SearchCancelled,
    UnknownCommand,
)
from rookery.core.move import Move
from rookery.core.move_generator import MoveGenerator
from rookery.core.notation import (
    STARTING_FEN,
    move_to_uci,
    parse_uci_move,
    parse_uci_moves,
    position_from_fen,
    position_to_fen,
)
from rookery.core.perft import divide, perft
from rookery.core.piece import Piece
from rookery.core.position import Position, UndoRecord
from rookery.core.rules import Rules
from rookery.core.types import (
    Square,
    file_of,
    make_square,
    parse_square,
    rank_of,
    square_name,
)

__all__ = [
    # Enums / flags
    "CastlingRights",
    "Color",
    "GameResult",
    "MoveFlag",
    "PieceType",
    "Termination",
    # Errors
    "ChessError",
    "EngineBusy",
    "InvalidMove",
    "MalformedRecord",
    "SearchCancelled",
    "UnknownCommand",
    # Types / helpers
    "Square",
    "file_of",
    "make_square",
    "parse_square",
    "rank_of",
    "square_name",
    # Domain objects
    "Board",
    "Move",
    "MoveGenerator",
    "Piece",
    "Position",
    "Rules",
    "UndoRecord",
    # Notation
    "STARTING_FEN",
    "move_to_uci",
    "parse_uci_move",
    "parse_uci_moves",
    "position_from_fen",
    "position_to_fen",
    # Verification
    "divide",
    "perft",
]

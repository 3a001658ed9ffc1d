"""rookery - a bitboard chess engine speaking UCI."""

__version__ = "0.1.0"

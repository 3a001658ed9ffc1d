"""Exception taxonomy shared by every layer of the engine."""

from __future__ import annotations


class ChessError(Exception):
    """Base class for all engine errors."""


class MalformedRecord(ChessError, ValueError):
    """Text input (FEN, move notation, protocol command) could not be parsed."""


class UnknownCommand(MalformedRecord):
    """A protocol line whose verb is not recognised."""


class InvalidMove(ChessError, ValueError):
    """A move the board refuses to apply, or that is illegal in the position."""


class EngineBusy(ChessError, RuntimeError):
    """The session cannot be changed because a search is running."""


class SearchCancelled(ChessError):
    """Raised inside the search to unwind once a stop condition is met.

    Never escapes :meth:`IEngine.search`; the engine converts it into the best
    result from the last completed iteration.
    """

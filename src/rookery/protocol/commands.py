"""UCI command parsing.

Each input line becomes one immutable command object; anything that does not
fit the grammar raises :class:`MalformedRecord` so the caller can reject the
line without touching session state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rookery.core.errors import MalformedRecord, UnknownCommand

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UciCommand:
    """``uci`` handshake."""


@dataclass(frozen=True, slots=True)
class IsReadyCommand:
    """``isready`` synchronisation ping."""


@dataclass(frozen=True, slots=True)
class NewGameCommand:
    """``ucinewgame``."""


@dataclass(frozen=True, slots=True)
class StopCommand:
    """``stop``."""


@dataclass(frozen=True, slots=True)
class QuitCommand:
    """``quit``."""


@dataclass(frozen=True, slots=True)
class SetOptionCommand:
    name: str
    value: str | None = None


@dataclass(frozen=True, slots=True)
class PositionCommand:
    """``position startpos|fen <fen> [moves ...]``; ``fen is None`` means startpos."""

    fen: str | None = None
    moves: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GoCommand:
    depth: int | None = None
    movetime: int | None = None
    nodes: int | None = None
    wtime: int | None = None
    btime: int | None = None
    winc: int | None = None
    binc: int | None = None
    movestogo: int | None = None
    infinite: bool = False


Command = (
    UciCommand
    | IsReadyCommand
    | NewGameCommand
    | StopCommand
    | QuitCommand
    | SetOptionCommand
    | PositionCommand
    | GoCommand
)

_SIMPLE_COMMANDS: dict[str, Command] = {
    "uci": UciCommand(),
    "isready": IsReadyCommand(),
    "ucinewgame": NewGameCommand(),
    "stop": StopCommand(),
    "quit": QuitCommand(),
}

# go parameter -> smallest accepted value; clocks may run negative in time trouble.
_GO_INT_PARAMS: dict[str, int | None] = {
    "depth": 1,
    "movetime": 0,
    "nodes": 1,
    "wtime": None,
    "btime": None,
    "winc": 0,
    "binc": 0,
    "movestogo": 1,
}

# Recognised but not acted upon; skipped so the search still runs.
_GO_IGNORED_FLAGS = frozenset({"ponder"})
_GO_IGNORED_PARAMS = frozenset({"mate"})
_GO_KEYWORDS = (
    frozenset(_GO_INT_PARAMS) | _GO_IGNORED_FLAGS | _GO_IGNORED_PARAMS | {"infinite", "searchmoves"}
)

_FEN_FIELDS = 6


def parse_command(line: str) -> Command:
    """Parse one protocol line.

    Raises:
        UnknownCommand: the verb is not part of the supported command set.
        MalformedRecord: the verb is known but its arguments are not.
    """
    tokens = line.split()
    if not tokens:
        raise MalformedRecord("Empty command line")
    verb, args = tokens[0], tokens[1:]

    simple = _SIMPLE_COMMANDS.get(verb)
    if simple is not None:
        if args:
            raise MalformedRecord(f"{verb!r} takes no arguments: {line!r}")
        return simple
    if verb == "position":
        return _parse_position(args)
    if verb == "go":
        return _parse_go(args)
    if verb == "setoption":
        return _parse_setoption(args)
    raise UnknownCommand(f"Unknown command: {verb!r}")


def _parse_position(args: list[str]) -> PositionCommand:
    if not args:
        raise MalformedRecord("position needs 'startpos' or 'fen'")

    if args[0] == "startpos":
        fen = None
        rest = args[1:]
    elif args[0] == "fen":
        fen_tokens = args[1 : 1 + _FEN_FIELDS]
        if len(fen_tokens) != _FEN_FIELDS or "moves" in fen_tokens:
            raise MalformedRecord(f"position fen needs {_FEN_FIELDS} fields")
        fen = " ".join(fen_tokens)
        rest = args[1 + _FEN_FIELDS :]
    else:
        raise MalformedRecord(f"position needs 'startpos' or 'fen', got {args[0]!r}")

    if not rest:
        return PositionCommand(fen=fen)
    if rest[0] != "moves":
        raise MalformedRecord(f"Expected 'moves', got {rest[0]!r}")
    return PositionCommand(fen=fen, moves=tuple(rest[1:]))


def _parse_go(args: list[str]) -> GoCommand:
    values: dict[str, int | bool] = {}
    i = 0
    while i < len(args):
        token = args[i]
        if token == "infinite":
            values["infinite"] = True
            i += 1
            continue
        if token in _GO_IGNORED_FLAGS:
            _LOGGER.info("Ignoring unsupported go parameter %r", token)
            i += 1
            continue
        if token in _GO_IGNORED_PARAMS:
            _LOGGER.info("Ignoring unsupported go parameter %r", token)
            i += 2
            continue
        if token == "searchmoves":
            # The move list runs up to the next keyword.
            i += 1
            while i < len(args) and args[i] not in _GO_KEYWORDS:
                i += 1
            _LOGGER.info("Ignoring go searchmoves; all legal moves are searched")
            continue
        if token not in _GO_INT_PARAMS:
            _LOGGER.warning("Ignoring unknown go token %r", token)
            i += 1
            continue
        if token in values:
            raise MalformedRecord(f"Duplicate go parameter: {token!r}")
        if i + 1 >= len(args):
            raise MalformedRecord(f"go {token} needs a value")
        values[token] = _parse_int(token, args[i + 1], _GO_INT_PARAMS[token])
        i += 2
    return GoCommand(**values)  # type: ignore[arg-type]


def _parse_int(name: str, text: str, minimum: int | None) -> int:
    try:
        value = int(text)
    except ValueError:
        raise MalformedRecord(f"go {name} must be an integer, got {text!r}") from None
    if minimum is not None and value < minimum:
        raise MalformedRecord(f"go {name} must be >= {minimum}, got {value}")
    return value


def _parse_setoption(args: list[str]) -> SetOptionCommand:
    if not args or args[0] != "name":
        raise MalformedRecord("setoption needs 'name <id>'")
    if "value" in args:
        split = args.index("value")
        name_tokens, value_tokens = args[1:split], args[split + 1 :]
        if not value_tokens:
            raise MalformedRecord("setoption 'value' needs an argument")
        value: str | None = " ".join(value_tokens)
    else:
        name_tokens, value = args[1:], None
    if not name_tokens:
        raise MalformedRecord("setoption needs an option name")
    return SetOptionCommand(name=" ".join(name_tokens), value=value)

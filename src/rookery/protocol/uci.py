"""UCI protocol state machine.

The command loop runs on the caller's thread and consumes an inbox fed by a
reader thread. Searches run on the :class:`EngineSession` thread and report
back through the same inbox, so every state change happens on the command
loop. Commands that would touch the position while a search runs are queued
and replayed, in order, once the search has reported.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TextIO

from rookery.config import EngineConfig
from rookery.core.enums import Color
from rookery.core.errors import ChessError, UnknownCommand
from rookery.core.notation import STARTING_FEN
from rookery.engine.alphabeta import AlphaBetaEngine
from rookery.engine.search import (
    SearchInfo,
    SearchLimits,
    SearchResult,
    is_mate_score,
    mate_distance,
)
from rookery.engine.session import EngineSession
from rookery.protocol.commands import (
    Command,
    GoCommand,
    IsReadyCommand,
    NewGameCommand,
    PositionCommand,
    QuitCommand,
    SetOptionCommand,
    StopCommand,
    UciCommand,
    parse_command,
)
from rookery.protocol.state import ProtocolState

_LOGGER = logging.getLogger(__name__)

MOVE_OVERHEAD_MAX_MS = 5000

_IDLE = ProtocolState.IDLE
_READY = ProtocolState.READY
_POSITION_SET = ProtocolState.POSITION_SET
_SEARCHING = ProtocolState.SEARCHING
_STOPPED = ProtocolState.STOPPED

# States in which each command is acted upon; elsewhere it is logged and dropped.
_ACCEPTED_IN: dict[type, frozenset[ProtocolState]] = {
    UciCommand: frozenset({_IDLE, _READY, _POSITION_SET}),
    IsReadyCommand: frozenset({_IDLE, _READY, _POSITION_SET, _SEARCHING}),
    NewGameCommand: frozenset({_READY, _POSITION_SET}),
    SetOptionCommand: frozenset({_READY, _POSITION_SET}),
    PositionCommand: frozenset({_READY, _POSITION_SET}),
    GoCommand: frozenset({_POSITION_SET}),
    StopCommand: frozenset({_SEARCHING}),
    QuitCommand: frozenset({_IDLE, _READY, _POSITION_SET, _SEARCHING}),
}

# Queued while a search runs instead of interleaving with it.
_DEFERRED_WHILE_SEARCHING = (UciCommand, NewGameCommand, SetOptionCommand, PositionCommand, GoCommand)


@dataclass(frozen=True, slots=True)
class _SearchFinished:
    search_id: int
    result: SearchResult


_END_OF_INPUT = object()


# ── Formatting / time management ──────────────────────────────────────────────


def format_info(info: SearchInfo) -> str:
    """``info depth .. score cp|mate .. nodes .. time .. nps .. pv ..``"""
    if is_mate_score(info.score_cp):
        score = f"mate {mate_distance(info.score_cp)}"
    else:
        score = f"cp {info.score_cp}"
    line = (
        f"info depth {info.depth} score {score} nodes {info.nodes} "
        f"time {info.elapsed_ms} nps {info.nps}"
    )
    if info.pv:
        line += " pv " + " ".join(str(m) for m in info.pv)
    return line


def clock_budget_ms(
    remaining_ms: int,
    increment_ms: int,
    moves_to_go: int,
    move_overhead_ms: int,
) -> int:
    """Per-move budget: an even share of the clock plus most of the increment.

    Never more than half of the remaining time, never less than 1 ms.
    """
    remaining_ms = max(remaining_ms, 0)
    budget = remaining_ms // moves_to_go + increment_ms * 3 // 4 - move_overhead_ms
    budget = min(budget, remaining_ms // 2)
    return max(budget, 1)


def limits_for_go(
    go: GoCommand,
    side_to_move: Color,
    *,
    default_depth: int,
    max_depth: int,
    move_overhead_ms: int,
    default_moves_to_go: int,
) -> SearchLimits:
    """Translate ``go`` parameters into :class:`SearchLimits`.

    Only the mover's clock counts; ``go btime ...`` for white searches to the
    default depth with no time limit.
    """
    if side_to_move == Color.WHITE:
        remaining, increment = go.wtime, go.winc
    else:
        remaining, increment = go.btime, go.binc

    time_limit_ms: int | None = None
    if not go.infinite:
        if go.movetime is not None:
            time_limit_ms = max(1, go.movetime - move_overhead_ms)
        elif remaining is not None:
            time_limit_ms = clock_budget_ms(
                remaining,
                increment or 0,
                go.movestogo or default_moves_to_go,
                move_overhead_ms,
            )

    if go.depth is not None:
        depth = go.depth
    elif go.infinite or time_limit_ms is not None or go.nodes is not None:
        # Time or nodes bound the search; depth only keeps it finite.
        depth = max_depth
    else:
        depth = default_depth
    depth = max(1, min(depth, max_depth))

    return SearchLimits(max_depth=depth, time_limit_ms=time_limit_ms, node_limit=go.nodes)


# ── Protocol ──────────────────────────────────────────────────────────────────


class UciProtocol:
    """Drives an :class:`EngineSession` from UCI command lines.

    Use :meth:`run` to serve a text stream until ``quit`` or end of input.
    Embedders and tests can instead push lines with :meth:`handle_line` and
    let running searches report with :meth:`wait_for_search`.
    """

    def __init__(
        self,
        output: TextIO,
        *,
        config: EngineConfig | None = None,
        session: EngineSession | None = None,
    ) -> None:
        self._config = config if config is not None else EngineConfig()
        search_config = self._config.search
        self._default_depth = search_config.default_depth
        self._move_overhead_ms = search_config.move_overhead_ms
        self._session = (
            session
            if session is not None
            else EngineSession(
                AlphaBetaEngine(tt_max_entries=search_config.tt_max_entries),
                limits=SearchLimits(max_depth=search_config.default_depth),
            )
        )
        self._output = output
        self._output_lock = threading.Lock()
        self._inbox: queue.Queue[Any] = queue.Queue()
        self._deferred: deque[Command] = deque()
        self._state = _IDLE
        self._search_id = 0
        self._handlers: dict[type, Callable[[Any], None]] = {
            UciCommand: self._on_uci,
            IsReadyCommand: self._on_isready,
            NewGameCommand: self._on_new_game,
            SetOptionCommand: self._on_setoption,
            PositionCommand: self._on_position,
            GoCommand: self._on_go,
            StopCommand: self._on_stop,
            QuitCommand: self._on_quit,
        }

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def state(self) -> ProtocolState:
        return self._state

    @property
    def session(self) -> EngineSession:
        return self._session

    @property
    def default_depth(self) -> int:
        return self._default_depth

    @property
    def move_overhead_ms(self) -> int:
        return self._move_overhead_ms

    # ── Driving the loop ──────────────────────────────────────────────────────

    def run(self, input_stream: Iterable[str]) -> None:
        """Serve *input_stream* until ``quit`` or end of input."""
        reader = threading.Thread(
            target=self._read_input,
            args=(input_stream,),
            name="rookery-uci-reader",
            daemon=True,
        )
        reader.start()
        while self._state != _STOPPED:
            self._dispatch(self._inbox.get())
        _LOGGER.debug("Protocol loop finished")

    def handle_line(self, line: str) -> None:
        """Parse and act on one command line."""
        if self._state == _STOPPED:
            return
        text = line.strip()
        if not text:
            return
        _LOGGER.debug("<< %s", text)
        try:
            command = parse_command(text)
        except UnknownCommand as exc:
            _LOGGER.warning("Ignoring unknown command %r: %s", text, exc)
            return
        except ValueError as exc:
            _LOGGER.warning("Ignoring malformed command %r: %s", text, exc)
            return
        self.execute(command)

    def execute(self, command: Command) -> None:
        if self._state == _SEARCHING and isinstance(command, _DEFERRED_WHILE_SEARCHING):
            _LOGGER.debug("Deferring %s until the search reports", command)
            self._deferred.append(command)
            return
        if self._state not in _ACCEPTED_IN[type(command)]:
            _LOGGER.warning("Ignoring %s in state %s", type(command).__name__, self._state.name)
            return
        try:
            self._handlers[type(command)](command)
        except (ChessError, ValueError) as exc:
            # A bad command never ends the session.
            _LOGGER.warning("Command %s failed: %s", command, exc)

    def wait_for_search(self, timeout: float | None = None) -> bool:
        """Process search reports until no search is running.

        Deferred commands are replayed along the way, so a queued ``go``
        keeps this waiting for its own search too. Returns ``False`` on
        timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._state == _SEARCHING:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                message = self._inbox.get(timeout=remaining)
            except queue.Empty:
                return False
            self._dispatch(message)
        return True

    def _read_input(self, stream: Iterable[str]) -> None:
        try:
            for line in stream:
                self._inbox.put(line)
        except (OSError, ValueError):
            _LOGGER.exception("Reading commands failed")
        finally:
            self._inbox.put(_END_OF_INPUT)

    def _dispatch(self, message: Any) -> None:
        if message is _END_OF_INPUT:
            _LOGGER.debug("Input stream closed")
            self._shutdown()
        elif isinstance(message, _SearchFinished):
            self._on_search_finished(message)
        else:
            self.handle_line(message)

    # ── Command handlers ──────────────────────────────────────────────────────

    def _on_uci(self, _command: UciCommand) -> None:
        protocol = self._config.protocol
        max_depth = self._config.search.max_depth
        self._send(f"id name {protocol.engine_name}")
        self._send(f"id author {protocol.engine_author}")
        self._send(
            f"option name Depth type spin default {self._config.search.default_depth} "
            f"min 1 max {max_depth}"
        )
        self._send(
            f"option name Move Overhead type spin default {self._config.search.move_overhead_ms} "
            f"min 0 max {MOVE_OVERHEAD_MAX_MS}"
        )
        self._send("uciok")
        if self._state == _IDLE:
            self._state = _READY

    def _on_isready(self, _command: IsReadyCommand) -> None:
        self._send("readyok")

    def _on_new_game(self, _command: NewGameCommand) -> None:
        self._session.new_game()
        self._state = _READY

    def _on_setoption(self, command: SetOptionCommand) -> None:
        name = command.name.lower()
        if name == "depth":
            value = self._option_int(command, 1, self._config.search.max_depth)
            if value is not None:
                self._default_depth = value
                self._session.limits = SearchLimits(max_depth=value)
        elif name == "move overhead":
            value = self._option_int(command, 0, MOVE_OVERHEAD_MAX_MS)
            if value is not None:
                self._move_overhead_ms = value
        else:
            _LOGGER.warning("Ignoring unknown option %r", command.name)

    def _on_position(self, command: PositionCommand) -> None:
        try:
            self._session.set_position_fen(command.fen or STARTING_FEN, command.moves)
        except (ChessError, ValueError) as exc:
            _LOGGER.warning("Rejected position command, keeping previous position: %s", exc)
            return
        self._state = _POSITION_SET

    def _on_go(self, command: GoCommand) -> None:
        limits = limits_for_go(
            command,
            self._session.side_to_move,
            default_depth=self._default_depth,
            max_depth=self._config.search.max_depth,
            move_overhead_ms=self._move_overhead_ms,
            default_moves_to_go=self._config.search.default_moves_to_go,
        )
        self._search_id += 1
        search_id = self._search_id
        inbox = self._inbox
        self._state = _SEARCHING
        self._session.start_search(
            limits,
            on_info=self._emit_info,
            on_complete=lambda result: inbox.put(_SearchFinished(search_id, result)),
        )

    def _on_stop(self, _command: StopCommand) -> None:
        self._session.stop()

    def _on_quit(self, _command: QuitCommand) -> None:
        self._shutdown()

    # ── Search reports ────────────────────────────────────────────────────────

    def _on_search_finished(self, message: _SearchFinished) -> None:
        if self._state != _SEARCHING or message.search_id != self._search_id:
            _LOGGER.debug("Dropping stale report of search %d", message.search_id)
            return
        self._emit_bestmove(message.result)
        self._state = _POSITION_SET
        # A replayed go starts the next search; whatever follows it stays queued.
        while self._deferred and self._state not in (_SEARCHING, _STOPPED):
            self.execute(self._deferred.popleft())

    def _shutdown(self) -> None:
        if self._state == _SEARCHING:
            self._session.stop()
            result = self._session.wait()
            if result is not None:
                self._emit_bestmove(result)
        self._deferred.clear()
        self._state = _STOPPED

    # ── Output ────────────────────────────────────────────────────────────────

    def _emit_info(self, info: SearchInfo) -> None:
        self._send(format_info(info))

    def _emit_bestmove(self, result: SearchResult) -> None:
        if result.best_move is None:
            if result.termination is not None:
                self._send(f"info string {result.termination}")
            self._send("bestmove (none)")
        else:
            self._send(f"bestmove {result.best_move}")

    def _send(self, line: str) -> None:
        with self._output_lock:
            self._output.write(line + "\n")
            self._output.flush()
        _LOGGER.debug(">> %s", line)

    @staticmethod
    def _option_int(command: SetOptionCommand, low: int, high: int) -> int | None:
        try:
            value = int(command.value or "")
        except ValueError:
            _LOGGER.warning("Option %r needs an integer value, got %r", command.name, command.value)
            return None
        if not low <= value <= high:
            _LOGGER.warning("Option %r must be in %d..%d, got %d", command.name, low, high, value)
            return None
        return value

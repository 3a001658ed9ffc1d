"""Engine session: owns the current position and runs searches on a thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from rookery.core.enums import Color
from rookery.core.errors import EngineBusy, InvalidMove
from rookery.core.move import Move
from rookery.core.move_generator import MoveGenerator
from rookery.core.notation import STARTING_FEN, parse_uci_move, parse_uci_moves, position_from_fen
from rookery.core.position import Position
from rookery.engine.alphabeta import AlphaBetaEngine
from rookery.engine.search import IEngine, IterationCallback, SearchLimits, SearchResult

_LOGGER = logging.getLogger(__name__)

CompletionCallback = Callable[[SearchResult], None]


class EngineSession:
    """Current position plus the lifecycle of at most one running search.

    While a search runs the position belongs to the search thread: every
    method that reads or replaces it raises :class:`EngineBusy` until the
    search has reported. The cancel flag and the "searching" status are the
    only state the two threads share.
    """

    __slots__ = (
        "_engine",
        "_limits",
        "_position",
        "_cancel_event",
        "_lock",
        "_searching",
        "_thread",
        "_last_result",
    )

    def __init__(
        self,
        engine: IEngine | None = None,
        *,
        limits: SearchLimits | None = None,
        position: Position | None = None,
    ) -> None:
        self._engine: IEngine = engine if engine is not None else AlphaBetaEngine()
        self._limits = limits if limits is not None else SearchLimits()
        self._position = position.copy() if position is not None else Position.initial()
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._searching = False
        self._thread: threading.Thread | None = None
        self._last_result: SearchResult | None = None

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def engine(self) -> IEngine:
        return self._engine

    @property
    def limits(self) -> SearchLimits:
        """Limits used when a search is started without explicit ones."""
        return self._limits

    @limits.setter
    def limits(self, limits: SearchLimits) -> None:
        self._limits = limits

    @property
    def is_searching(self) -> bool:
        with self._lock:
            return self._searching

    @property
    def position(self) -> Position:
        """A snapshot of the current position."""
        self._ensure_idle()
        return self._position.copy()

    @property
    def side_to_move(self) -> Color:
        self._ensure_idle()
        return self._position.side_to_move

    @property
    def last_result(self) -> SearchResult | None:
        return self._last_result

    # ── Position management ───────────────────────────────────────────────────

    def set_position(self, position: Position) -> None:
        self._ensure_idle()
        self._position = position.copy()

    def set_position_fen(self, fen: str = STARTING_FEN, moves: Iterable[str] = ()) -> None:
        """Replace the position with *fen* followed by the replay *moves*.

        The session is left untouched when the FEN or any move is rejected.

        Raises:
            EngineBusy: a search is running.
            MalformedRecord: bad FEN or move text.
            InvalidMove: a replay move is illegal.
        """
        self._ensure_idle()
        position = position_from_fen(fen)
        parse_uci_moves(position, moves)
        self._position = position

    def legal_moves(self) -> list[Move]:
        self._ensure_idle()
        return MoveGenerator(self._position).generate_legal_moves()

    def apply_move(self, move: Move | str) -> Move:
        """Play a legal *move* (a :class:`Move` or its long algebraic text)."""
        self._ensure_idle()
        if isinstance(move, str):
            move = parse_uci_move(self._position, move)
        elif move not in MoveGenerator(self._position).generate_legal_moves():
            raise InvalidMove(f"Illegal move in position: {move}")
        self._position.apply(move)
        return move

    def new_game(self) -> None:
        """Back to the starting position with fresh engine tables."""
        self._ensure_idle()
        self._position = Position.initial()
        self._engine.new_game()
        self._last_result = None

    # ── Search lifecycle ──────────────────────────────────────────────────────

    def start_search(
        self,
        limits: SearchLimits | None = None,
        on_info: IterationCallback | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        """Search the current position on a background thread.

        *on_info* and *on_complete* are called from the search thread. By the
        time *on_complete* runs the session already accepts new commands.
        """
        limits = limits if limits is not None else self._limits
        with self._lock:
            if self._searching:
                raise EngineBusy("A search is already running")
            self._searching = True
            self._cancel_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                args=(limits, on_info, on_complete),
                name="rookery-search",
                daemon=True,
            )
        _LOGGER.debug("Starting search with %s", limits)
        self._thread.start()

    def stop(self) -> None:
        """Request cancellation; the search reports its best result so far."""
        self._cancel_event.set()

    def wait(self, timeout: float | None = None) -> SearchResult | None:
        """Block until the current search thread has finished."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                return None
        return self._last_result

    def search(
        self,
        limits: SearchLimits | None = None,
        on_info: IterationCallback | None = None,
    ) -> SearchResult:
        """Run a search and block until it reports."""
        self.start_search(limits, on_info=on_info)
        result = self.wait()
        assert result is not None
        return result

    def _run(
        self,
        limits: SearchLimits,
        on_info: IterationCallback | None,
        on_complete: CompletionCallback | None,
    ) -> None:
        try:
            result = self._engine.search(
                self._position,
                limits,
                is_cancelled=self._cancel_event.is_set,
                on_iteration=on_info,
            )
        except Exception:
            _LOGGER.exception("Search failed")
            result = SearchResult(None, 0, 0, 0)

        _LOGGER.debug(
            "Search finished: move=%s depth=%d nodes=%d cancelled=%s",
            result.best_move,
            result.depth,
            result.nodes,
            self._cancel_event.is_set(),
        )
        self._last_result = result
        with self._lock:
            self._searching = False
        if on_complete is not None:
            on_complete(result)

    def _ensure_idle(self) -> None:
        if self.is_searching:
            raise EngineBusy("The position cannot be used while a search is running")

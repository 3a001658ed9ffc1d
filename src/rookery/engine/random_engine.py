"""Baseline engine that plays a uniformly random legal move."""

from __future__ import annotations

import random
from time import perf_counter

from rookery.core.enums import Termination
from rookery.core.move_generator import MoveGenerator
from rookery.core.position import Position
from rookery.engine.search import (
    MATE_SCORE,
    CancelCheck,
    IEngine,
    IterationCallback,
    SearchInfo,
    SearchLimits,
    SearchResult,
)


class RandomEngine(IEngine):
    """Picks any legal move; useful as a sparring partner and in tests."""

    __slots__ = ("_seed", "_rng")

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    def new_game(self) -> None:
        self._rng = random.Random(self._seed)

    def search(
        self,
        position: Position,
        limits: SearchLimits,
        is_cancelled: CancelCheck | None = None,
        on_iteration: IterationCallback | None = None,
    ) -> SearchResult:
        started = perf_counter()
        gen = MoveGenerator(position)
        moves = gen.generate_legal_moves()
        if not moves:
            in_check = position.in_check()
            return SearchResult(
                None,
                -MATE_SCORE if in_check else 0,
                0,
                0,
                termination=Termination.CHECKMATE if in_check else Termination.STALEMATE,
            )

        move = self._rng.choice(moves)
        elapsed_ms = int((perf_counter() - started) * 1000)
        if on_iteration is not None:
            on_iteration(SearchInfo(1, 0, len(moves), elapsed_ms, (move,)))
        return SearchResult(move, 0, 1, len(moves), pv=(move,), elapsed_ms=elapsed_ms)

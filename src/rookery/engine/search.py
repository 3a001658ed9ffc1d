"""Shared engine search models and protocol."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from rookery.core.enums import Termination
    from rookery.core.move import Move
    from rookery.core.position import Position

CancelCheck = Callable[[], bool]

MATE_SCORE = 100_000
# Scores beyond this bound encode a forced mate.
MATE_THRESHOLD = MATE_SCORE - 1_000


@dataclass(slots=True, frozen=True)
class SearchLimits:
    """Search constraints for a single move computation.

    ``None`` means "no limit" for the time and node budgets. ``max_depth``
    is always finite so an unlimited search still terminates.
    """

    max_depth: int = 4
    time_limit_ms: int | None = None
    node_limit: int | None = None

    def __post_init__(self) -> None:
        if self.max_depth < 1:
            raise ValueError(f"Search depth must be >= 1, got {self.max_depth}")
        if self.time_limit_ms is not None and self.time_limit_ms < 0:
            raise ValueError(f"Time limit must be >= 0, got {self.time_limit_ms}")
        if self.node_limit is not None and self.node_limit < 1:
            raise ValueError(f"Node limit must be >= 1, got {self.node_limit}")


@dataclass(slots=True, frozen=True)
class SearchInfo:
    """Progress report emitted after each completed iteration."""

    depth: int
    score_cp: int
    nodes: int
    elapsed_ms: int
    pv: tuple[Move, ...] = ()

    @property
    def nps(self) -> int:
        return self.nodes * 1000 // max(self.elapsed_ms, 1)


@dataclass(slots=True, frozen=True)
class SearchResult:
    """Result produced by the engine search."""

    best_move: Move | None
    score_cp: int
    depth: int
    nodes: int
    pv: tuple[Move, ...] = field(default=())
    elapsed_ms: int = 0
    termination: Termination | None = None


IterationCallback = Callable[[SearchInfo], None]


class IEngine(Protocol):
    """Protocol for chess engines driven by a session or front end."""

    def search(
        self,
        position: Position,
        limits: SearchLimits,
        is_cancelled: CancelCheck | None = None,
        on_iteration: IterationCallback | None = None,
    ) -> SearchResult: ...

    def new_game(self) -> None: ...


def is_mate_score(score: int) -> bool:
    return abs(score) >= MATE_THRESHOLD


def mate_distance(score: int) -> int:
    """Full moves until mate, positive when the mover mates.

    Only meaningful when :func:`is_mate_score` holds.
    """
    plies = MATE_SCORE - abs(score)
    moves = (plies + 1) // 2
    return moves if score > 0 else -moves

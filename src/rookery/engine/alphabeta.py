"""Alpha-beta searcher: iterative deepening negamax over a transposition table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter, sleep

from rookery.core.enums import Color, PieceType, Termination
from rookery.core.errors import SearchCancelled
from rookery.core.move import Move
from rookery.core.move_generator import MoveGenerator
from rookery.core.position import Position
from rookery.core.rules import Rules
from rookery.engine.evaluation import Evaluator, piece_square_value
from rookery.engine.search import (
    MATE_SCORE,
    MATE_THRESHOLD,
    CancelCheck,
    IEngine,
    IterationCallback,
    SearchInfo,
    SearchLimits,
    SearchResult,
    is_mate_score,
)

_LOGGER = logging.getLogger(__name__)

_INF_SCORE = 1_000_000
_TT_EXACT = 0
_TT_LOWER = 1
_TT_UPPER = 2
_MAX_KILLER_PLY = 128
_KILLER_PRIMARY_BONUS = 9_000
_KILLER_SECONDARY_BONUS = 8_000
_HISTORY_BONUS_FACTOR = 32
_HISTORY_MAX_SCORE = 8_000
_LMR_MIN_DEPTH = 4
_LMR_MIN_MOVE_INDEX = 3
_QUIESCENCE_MAX_DEPTH = 8
# Lets the protocol reader thread run while a search holds the GIL.
_YIELD_EVERY_NODES = 4096

_ORDER_VALUES: dict[PieceType, int] = {
    PieceType.PAWN: 100,
    PieceType.KNIGHT: 320,
    PieceType.BISHOP: 330,
    PieceType.ROOK: 500,
    PieceType.QUEEN: 900,
    PieceType.KING: 0,
}


def _never_cancelled() -> bool:
    return False


@dataclass(slots=True)
class _TTEntry:
    depth: int
    score: int
    bound: int
    best_move: Move | None


def _score_to_tt(score: int, ply: int) -> int:
    # Mate scores are stored relative to the node, not the root.
    if score >= MATE_THRESHOLD:
        return score + ply
    if score <= -MATE_THRESHOLD:
        return score - ply
    return score


def _score_from_tt(score: int, ply: int) -> int:
    if score >= MATE_THRESHOLD:
        return score - ply
    if score <= -MATE_THRESHOLD:
        return score + ply
    return score


class AlphaBetaEngine(IEngine):
    """Negamax engine with quiescence, killer/history ordering and late move reductions."""

    __slots__ = (
        "_evaluator",
        "_cancel_check",
        "_deadline",
        "_node_limit",
        "_nodes",
        "_last_yield_nodes",
        "_tt",
        "_tt_max_entries",
        "_killer_moves",
        "_history_scores",
    )

    def __init__(
        self,
        evaluator: Evaluator | None = None,
        tt_max_entries: int = 200_000,
    ) -> None:
        self._evaluator = evaluator if evaluator is not None else Evaluator()
        self._nodes = 0
        self._last_yield_nodes = 0
        self._deadline: float | None = None
        self._node_limit: int | None = None
        self._cancel_check: CancelCheck = _never_cancelled
        self._tt: dict[int, _TTEntry] = {}
        self._tt_max_entries = tt_max_entries
        self._killer_moves: list[list[Move | None]] = []
        self._history_scores: list[list[list[int]]] = []
        self._reset_move_order_heuristics()

    @property
    def evaluator(self) -> Evaluator:
        return self._evaluator

    def new_game(self) -> None:
        """Forget everything learned from previous searches."""
        self._tt.clear()
        self._reset_move_order_heuristics()

    def search(
        self,
        position: Position,
        limits: SearchLimits,
        is_cancelled: CancelCheck | None = None,
        on_iteration: IterationCallback | None = None,
    ) -> SearchResult:
        """Iteratively deepen until *limits* or *is_cancelled* stop the search.

        *position* is searched in place and restored before returning. The
        result always comes from the deepest fully completed iteration; when
        not even depth 1 completed, the first root move in ordering is
        returned with ``depth == 0``.
        """
        started = perf_counter()
        self._nodes = 0
        self._last_yield_nodes = 0
        self._tt.clear()
        self._reset_move_order_heuristics()
        self._cancel_check = is_cancelled or _never_cancelled
        self._node_limit = limits.node_limit
        self._deadline = None
        if limits.time_limit_ms is not None:
            ms = max(limits.time_limit_ms, 1)
            self._deadline = started + (ms / 1000.0)

        root_gen = MoveGenerator(position)
        root_moves = root_gen.generate_legal_moves()
        if not root_moves:
            if position.in_check():
                return SearchResult(
                    None, -MATE_SCORE, 0, 0,
                    elapsed_ms=self._elapsed_ms(started),
                    termination=Termination.CHECKMATE,
                )
            return SearchResult(
                None, 0, 0, 0,
                elapsed_ms=self._elapsed_ms(started),
                termination=Termination.STALEMATE,
            )

        ordered_root = self._order_moves(position, root_moves, ply=0)
        best_move = ordered_root[0]
        best_score = self._evaluator.score(position)
        best_pv: tuple[Move, ...] = (best_move,)
        completed_depth = 0

        for depth in range(1, limits.max_depth + 1):
            try:
                score, move = self._search_root(position, ordered_root, depth)
            except SearchCancelled:
                _LOGGER.debug("Search stopped during depth %d after %d nodes", depth, self._nodes)
                break

            best_move = move
            best_score = score
            completed_depth = depth
            best_pv = self._principal_variation(position, move, depth)

            info = SearchInfo(
                depth=depth,
                score_cp=score,
                nodes=self._nodes,
                elapsed_ms=self._elapsed_ms(started),
                pv=best_pv,
            )
            _LOGGER.debug(
                "depth %d score %d nodes %d pv %s",
                depth,
                score,
                self._nodes,
                " ".join(str(m) for m in best_pv),
            )
            if on_iteration is not None:
                on_iteration(info)

            # A mate found inside the horizon will not get any shorter.
            if is_mate_score(score) and MATE_SCORE - abs(score) <= depth:
                break

            # Principal variation move first in the next iteration.
            ordered_root = [move] + [m for m in ordered_root if m != move]

        return SearchResult(
            best_move,
            best_score,
            completed_depth,
            self._nodes,
            pv=best_pv,
            elapsed_ms=self._elapsed_ms(started),
        )

    # ── Tree search ───────────────────────────────────────────────────────────

    def _search_root(
        self,
        position: Position,
        root_moves: list[Move],
        depth: int,
    ) -> tuple[int, Move]:
        best_score = -_INF_SCORE
        best_move = root_moves[0]
        alpha = -_INF_SCORE
        beta = _INF_SCORE

        for move in root_moves:
            record = position.apply(move)
            try:
                score = -self._negamax(position, depth - 1, -beta, -alpha, ply=1)
            finally:
                position.undo(record)

            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score

        self._store_tt(position.zobrist_hash, depth, best_score, _TT_EXACT, best_move, ply=0)
        return best_score, best_move

    def _negamax(
        self,
        position: Position,
        depth: int,
        alpha: int,
        beta: int,
        ply: int,
    ) -> int:
        self._check_stop()
        self._nodes += 1

        if self._is_draw(position):
            return 0

        alpha_orig = alpha
        beta_orig = beta
        tt_key = position.zobrist_hash
        tt_entry = self._tt.get(tt_key)
        tt_move = tt_entry.best_move if tt_entry is not None else None

        if tt_entry is not None and tt_entry.depth >= depth:
            tt_score = _score_from_tt(tt_entry.score, ply)
            if tt_entry.bound == _TT_EXACT:
                return tt_score
            if tt_entry.bound == _TT_LOWER:
                alpha = max(alpha, tt_score)
            else:
                beta = min(beta, tt_score)
            if alpha >= beta:
                return tt_score

        if depth <= 0:
            return self._quiescence(position, alpha, beta, ply)

        in_check = position.in_check()
        legal = MoveGenerator(position).generate_legal_moves()
        if not legal:
            if in_check:
                return -MATE_SCORE + ply
            return 0

        ordered = self._order_moves(position, legal, tt_move=tt_move, ply=ply)
        best_score = -_INF_SCORE
        best_move: Move | None = None
        side_to_move = position.side_to_move

        for move_index, move in enumerate(ordered):
            is_quiet = move.is_quiet
            can_try_lmr = self._can_try_lmr(
                depth=depth,
                move_index=move_index,
                in_check=in_check,
                is_quiet=is_quiet,
                move=move,
                tt_move=tt_move,
            )

            record = position.apply(move)
            try:
                if can_try_lmr and not position.in_check():
                    reduced_depth = max(0, depth - 1 - self._lmr_reduction(depth, move_index))
                    score = -self._negamax(position, reduced_depth, -alpha - 1, -alpha, ply + 1)
                    if score > alpha:
                        score = -self._negamax(position, depth - 1, -beta, -alpha, ply + 1)
                else:
                    score = -self._negamax(position, depth - 1, -beta, -alpha, ply + 1)
            finally:
                position.undo(record)

            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score
            if alpha >= beta:
                if is_quiet:
                    self._record_killer(move, ply)
                    self._update_history(side_to_move, move, depth)
                break

        bound = _TT_EXACT
        if best_score <= alpha_orig:
            bound = _TT_UPPER
        elif best_score >= beta_orig:
            bound = _TT_LOWER
        self._store_tt(tt_key, depth, best_score, bound, best_move, ply=ply)
        return best_score

    def _quiescence(
        self,
        position: Position,
        alpha: int,
        beta: int,
        ply: int,
        q_depth: int = 0,
    ) -> int:
        self._check_stop()
        self._nodes += 1

        if self._is_draw(position):
            return 0

        gen = MoveGenerator(position)
        in_check = position.in_check()

        # Hard cap to avoid unbounded recursive capture/check sequences.
        if q_depth >= _QUIESCENCE_MAX_DEPTH:
            return self._evaluator.score(position)

        if in_check:
            candidates = gen.generate_legal_moves()
            if not candidates:
                return -MATE_SCORE + ply
        else:
            stand_pat = self._evaluator.score(position)
            if stand_pat >= beta:
                return beta
            if stand_pat > alpha:
                alpha = stand_pat
            candidates = gen.generate_captures()
            if not candidates:
                return alpha

        for move in self._order_moves(position, candidates, ply=ply):
            record = position.apply(move)
            try:
                score = -self._quiescence(position, -beta, -alpha, ply + 1, q_depth + 1)
            finally:
                position.undo(record)

            if score >= beta:
                return beta
            if score > alpha:
                alpha = score

        return alpha

    def _is_draw(self, position: Position) -> bool:
        return (
            position.halfmove_clock >= 100
            or position.repetition_count() >= 2
            or Rules.is_insufficient_material(position)
        )

    def _check_stop(self) -> None:
        if self._nodes - self._last_yield_nodes >= _YIELD_EVERY_NODES:
            self._last_yield_nodes = self._nodes
            sleep(0)
        if self._node_limit is not None and self._nodes >= self._node_limit:
            raise SearchCancelled("node limit reached")
        if self._cancel_check():
            raise SearchCancelled("stop requested")
        if self._deadline is not None and perf_counter() >= self._deadline:
            raise SearchCancelled("time limit reached")

    # ── Principal variation ───────────────────────────────────────────────────

    def _principal_variation(
        self,
        position: Position,
        first: Move,
        max_length: int,
    ) -> tuple[Move, ...]:
        """Follow transposition-table best moves from *first*."""
        pv = [first]
        records = [position.apply(first)]
        seen = {position.zobrist_hash}
        try:
            while len(pv) < max_length:
                entry = self._tt.get(position.zobrist_hash)
                if entry is None or entry.best_move is None:
                    break
                move = entry.best_move
                if move not in MoveGenerator(position).generate_legal_moves():
                    break
                records.append(position.apply(move))
                pv.append(move)
                if position.zobrist_hash in seen:
                    break
                seen.add(position.zobrist_hash)
        finally:
            for record in reversed(records):
                position.undo(record)
        return tuple(pv)

    # ── Move ordering ─────────────────────────────────────────────────────────

    def _order_moves(
        self,
        position: Position,
        moves: list[Move],
        tt_move: Move | None = None,
        ply: int = 0,
    ) -> list[Move]:
        return sorted(
            moves,
            key=lambda move: self._move_order_score(position, move, tt_move, ply),
            reverse=True,
        )

    def _move_order_score(
        self,
        position: Position,
        move: Move,
        tt_move: Move | None = None,
        ply: int = 0,
    ) -> int:
        moving_piece = position.board[move.from_sq]
        if moving_piece is None:
            return -_INF_SCORE

        score = 0
        if tt_move is not None and move == tt_move:
            score += 100_000

        if move.promotion is not None:
            score += 20_000 + _ORDER_VALUES[move.promotion]

        if move.is_capture:
            target_piece = position.board[move.to_sq]
            victim = PieceType.PAWN if target_piece is None else target_piece.piece_type
            # MVV-LVA: most valuable victim first, cheapest attacker breaks ties.
            score += 10_000
            score += 10 * _ORDER_VALUES[victim]
            score -= _ORDER_VALUES[moving_piece.piece_type]
        elif move.promotion is None:
            score += self._killer_score(move, ply)
            score += self._history_score(position.side_to_move, move)

        if move.is_castle:
            score += 120

        score += piece_square_value(
            moving_piece.piece_type, moving_piece.color, move.to_sq
        ) - piece_square_value(moving_piece.piece_type, moving_piece.color, move.from_sq)
        return score

    def _store_tt(
        self,
        key: int,
        depth: int,
        score: int,
        bound: int,
        best_move: Move | None,
        ply: int,
    ) -> None:
        existing = self._tt.get(key)
        if existing is not None and existing.depth > depth:
            return
        if len(self._tt) >= self._tt_max_entries and key not in self._tt:
            self._tt.clear()
        self._tt[key] = _TTEntry(
            depth=depth, score=_score_to_tt(score, ply), bound=bound, best_move=best_move
        )

    def _can_try_lmr(
        self,
        depth: int,
        move_index: int,
        in_check: bool,
        is_quiet: bool,
        move: Move,
        tt_move: Move | None,
    ) -> bool:
        if in_check:
            return False
        if depth < _LMR_MIN_DEPTH:
            return False
        if move_index < _LMR_MIN_MOVE_INDEX:
            return False
        if not is_quiet:
            return False
        return tt_move is None or move != tt_move

    def _lmr_reduction(self, depth: int, move_index: int) -> int:
        reduction = 1
        if depth >= 8 and move_index >= 8:
            reduction += 1
        return reduction

    def _reset_move_order_heuristics(self) -> None:
        self._killer_moves = [[None, None] for _ in range(_MAX_KILLER_PLY)]
        self._history_scores = [
            [[0 for _ in range(64)] for _ in range(64)] for _ in range(2)
        ]

    def _record_killer(self, move: Move, ply: int) -> None:
        if ply < 0 or ply >= len(self._killer_moves):
            return
        killers = self._killer_moves[ply]
        if killers[0] == move:
            return
        killers[1] = killers[0]
        killers[0] = move

    def _killer_score(self, move: Move, ply: int) -> int:
        if ply < 0 or ply >= len(self._killer_moves):
            return 0
        killers = self._killer_moves[ply]
        if killers[0] == move:
            return _KILLER_PRIMARY_BONUS
        if killers[1] == move:
            return _KILLER_SECONDARY_BONUS
        return 0

    def _history_score(self, side: Color, move: Move) -> int:
        return self._history_scores[int(side)][move.from_sq][move.to_sq]

    def _update_history(self, side: Color, move: Move, depth: int) -> None:
        bonus = max(depth, 1) * max(depth, 1) * _HISTORY_BONUS_FACTOR
        side_scores = self._history_scores[int(side)]
        current = side_scores[move.from_sq][move.to_sq]
        side_scores[move.from_sq][move.to_sq] = min(_HISTORY_MAX_SCORE, current + bonus)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((perf_counter() - started) * 1000)

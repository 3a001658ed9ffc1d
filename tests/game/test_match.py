"""Tests for engine-versus-engine matches."""

import pytest

from rookery.core.enums import Color, GameResult, Termination
from rookery.core.errors import MalformedRecord
from rookery.core.notation import position_from_fen
from rookery.engine import AlphaBetaEngine, RandomEngine, SearchLimits
from rookery.game import Player, play_match

MATE_IN_ONE = "6k1/8/6K1/8/8/8/8/Q7 w - - 0 1"
STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"


def _random(seed: int) -> Player:
    return Player(f"random-{seed}", RandomEngine(seed=seed))


def _alphabeta(depth: int) -> Player:
    return Player(
        f"alphabeta-{depth}",
        AlphaBetaEngine(tt_max_entries=50_000),
        SearchLimits(max_depth=depth),
    )


class TestPlayMatch:
    def test_engine_delivers_mate(self) -> None:
        outcome = play_match(_alphabeta(2), _random(1), fen=MATE_IN_ONE)
        assert outcome.result == GameResult.WHITE_WINS
        assert outcome.termination == Termination.CHECKMATE
        assert outcome.plies == 1
        assert outcome.moves[0].was_check
        assert outcome.finished

    def test_game_over_at_start(self) -> None:
        outcome = play_match(_random(1), _random(2), fen=STALEMATE)
        assert outcome.plies == 0
        assert outcome.result == GameResult.DRAW
        assert outcome.termination == Termination.STALEMATE
        assert outcome.nodes == {Color.WHITE: 0, Color.BLACK: 0}

    def test_ply_cap_leaves_game_in_progress(self) -> None:
        outcome = play_match(_random(3), _random(4), max_plies=6)
        assert outcome.plies <= 6
        if not outcome.finished:
            assert outcome.plies == 6
            assert outcome.termination is None
            assert outcome.result == GameResult.IN_PROGRESS

    def test_seeded_players_repeat_the_game(self) -> None:
        first = play_match(_random(11), _random(12), max_plies=20)
        second = play_match(_random(11), _random(12), max_plies=20)
        assert [r.lan for r in first.moves] == [r.lan for r in second.moves]
        assert first.final_fen == second.final_fen

    def test_players_are_reset_between_games(self) -> None:
        white, black = _random(5), _random(6)
        first = play_match(white, black, max_plies=10)
        second = play_match(white, black, max_plies=10)
        assert [r.lan for r in first.moves] == [r.lan for r in second.moves]

    def test_final_fen_matches_last_record(self) -> None:
        outcome = play_match(_random(7), _random(8), max_plies=8)
        assert outcome.moves
        assert outcome.final_fen == outcome.moves[-1].fen_after
        expected = Color.WHITE if outcome.plies % 2 == 0 else Color.BLACK
        assert position_from_fen(outcome.final_fen).side_to_move == expected

    def test_bad_fen(self) -> None:
        with pytest.raises(MalformedRecord):
            play_match(_random(1), _random(2), fen="not a fen")

    @pytest.mark.slow
    def test_engine_beats_random_mover(self) -> None:
        outcome = play_match(_alphabeta(2), _random(21), max_plies=300)
        assert outcome.result != GameResult.BLACK_WINS
        assert outcome.nodes[Color.WHITE] > outcome.nodes[Color.BLACK]

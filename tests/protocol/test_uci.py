"""Tests for the UCI protocol state machine."""

import io
import logging

import pytest

from rookery.config import EngineConfig, ProtocolConfig, SearchConfig
from rookery.core.enums import Color
from rookery.core.move_generator import MoveGenerator
from rookery.core.notation import STARTING_FEN, parse_uci_move, position_from_fen
from rookery.engine import RandomEngine, SearchInfo, SearchLimits, SearchResult
from rookery.engine.search import MATE_SCORE
from rookery.engine.session import EngineSession
from rookery.protocol.commands import GoCommand
from rookery.protocol.state import ProtocolState
from rookery.protocol.uci import (
    UciProtocol,
    _SearchFinished,
    clock_budget_ms,
    format_info,
    limits_for_go,
)

FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


def _lines(output: io.StringIO) -> list[str]:
    return output.getvalue().splitlines()


def _bestmoves(output: io.StringIO) -> list[str]:
    return [line.split()[1] for line in _lines(output) if line.startswith("bestmove")]


def _handshake(protocol: UciProtocol, output: io.StringIO) -> None:
    protocol.handle_line("uci")
    protocol.handle_line("isready")
    output.seek(0)
    output.truncate()


class TestHandshake:
    def test_uci_identifies_engine(self, protocol: UciProtocol, output: io.StringIO) -> None:
        protocol.handle_line("uci")
        lines = _lines(output)
        assert lines[0].startswith("id name rookery")
        assert lines[1].startswith("id author ")
        assert "option name Depth type spin default 4 min 1 max 64" in lines
        assert "option name Move Overhead type spin default 30 min 0 max 5000" in lines
        assert lines[-1] == "uciok"
        assert protocol.state == ProtocolState.READY

    def test_identity_from_config(self, output: io.StringIO) -> None:
        config = EngineConfig(protocol=ProtocolConfig(engine_name="Sparrow", engine_author="A. N. Other"))
        proto = UciProtocol(output, config=config)
        proto.handle_line("uci")
        assert _lines(output)[:2] == ["id name Sparrow", "id author A. N. Other"]

    def test_isready(self, protocol: UciProtocol, output: io.StringIO) -> None:
        protocol.handle_line("isready")
        assert _lines(output) == ["readyok"]
        assert protocol.state == ProtocolState.IDLE

    def test_position_requires_handshake(self, protocol: UciProtocol) -> None:
        protocol.handle_line("position startpos moves e2e4")
        assert protocol.state == ProtocolState.IDLE
        assert protocol.session.position.side_to_move == Color.WHITE

    def test_garbage_is_ignored(
        self, protocol: UciProtocol, output: io.StringIO, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="rookery.protocol.uci"):
            protocol.handle_line("xyzzy")
            protocol.handle_line("go depth banana")
            protocol.handle_line("")
        assert output.getvalue() == ""
        assert protocol.state == ProtocolState.IDLE
        assert "xyzzy" in caplog.text


class TestPositionAndGo:
    def test_go_depth_reports_bestmove(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos moves e2e4")
        assert protocol.state == ProtocolState.POSITION_SET
        protocol.handle_line("go depth 2")
        assert protocol.wait_for_search(30)

        lines = _lines(output)
        assert lines[0].startswith("info depth 1 score cp ")
        assert lines[1].startswith("info depth 2 ")
        assert lines[-1].startswith("bestmove ")
        assert len(_bestmoves(output)) == 1
        position = protocol.session.position
        parse_uci_move(position, _bestmoves(output)[0])
        assert protocol.state == ProtocolState.POSITION_SET

    def test_go_without_position_is_ignored(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("go depth 1")
        assert protocol.state == ProtocolState.READY
        assert output.getvalue() == ""

    def test_bad_position_keeps_previous(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos moves e2e4")
        protocol.handle_line("position startpos moves e2e5")
        protocol.handle_line("position fen 8/8/8/8/8/8/8/8 w - - 0 1")
        assert protocol.state == ProtocolState.POSITION_SET
        assert protocol.session.position.side_to_move == Color.BLACK

    def test_bad_position_before_any_position(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos moves e2e5")
        assert protocol.state == ProtocolState.READY

    def test_position_fen(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line(f"position fen {STARTING_FEN} moves d2d4 d7d5")
        position = protocol.session.position
        assert position.side_to_move == Color.WHITE
        assert position.fullmove_number == 2

    def test_no_legal_moves(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line(f"position fen {FOOLS_MATE}")
        protocol.handle_line("go depth 3")
        assert protocol.wait_for_search(30)
        assert _lines(output) == ["info string checkmate", "bestmove (none)"]

    def test_en_passant_without_pushed_pawn_rejected(
        self, protocol: UciProtocol, output: io.StringIO
    ) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos moves e2e4")
        protocol.handle_line("position fen 4k3/8/8/3P4/8/8/8/4K3 w - e6 0 1")
        assert protocol.session.side_to_move == Color.BLACK
        protocol.handle_line("go depth 1")
        assert protocol.wait_for_search(30)
        assert _bestmoves(output) != ["(none)"]
        assert len(_bestmoves(output)) == 1

    def test_go_with_unsupported_tokens_still_searches(
        self, protocol: UciProtocol, output: io.StringIO
    ) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos")
        protocol.handle_line("go ponder searchmoves e2e4 d2d4 depth 1")
        assert protocol.wait_for_search(30)
        assert len(_bestmoves(output)) == 1

    def test_new_game_resets_position(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos moves e2e4")
        protocol.handle_line("ucinewgame")
        assert protocol.state == ProtocolState.READY
        assert protocol.session.position.side_to_move == Color.WHITE

    def test_isready_during_search(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos")
        protocol.handle_line("go infinite")
        protocol.handle_line("isready")
        assert "readyok" in _lines(output)
        protocol.handle_line("stop")
        assert protocol.wait_for_search(30)
        assert len(_bestmoves(output)) == 1


class TestStopAndDeferral:
    def test_stop_reports_bestmove(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos")
        protocol.handle_line("go infinite")
        assert protocol.state == ProtocolState.SEARCHING
        protocol.handle_line("stop")
        assert protocol.wait_for_search(30)

        moves = _bestmoves(output)
        assert len(moves) == 1
        parse_uci_move(position_from_fen(STARTING_FEN), moves[0])
        assert protocol.state == ProtocolState.POSITION_SET

    def test_stop_when_idle_is_ignored(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos")
        protocol.handle_line("stop")
        assert output.getvalue() == ""
        assert protocol.state == ProtocolState.POSITION_SET

    def test_commands_during_search_are_replayed(
        self, protocol: UciProtocol, output: io.StringIO
    ) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos")
        protocol.handle_line("go infinite")
        protocol.handle_line("position startpos moves e2e4")
        protocol.handle_line("go depth 1")
        protocol.handle_line("stop")
        assert protocol.wait_for_search(30)

        first, second = _bestmoves(output)
        parse_uci_move(position_from_fen(STARTING_FEN), first)
        after_e4 = protocol.session.position
        assert after_e4.side_to_move == Color.BLACK
        reply = parse_uci_move(after_e4, second)
        assert reply in MoveGenerator(after_e4).generate_legal_moves()

    def test_stale_report_dropped(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos")
        protocol._dispatch(_SearchFinished(42, SearchResult(None, 0, 0, 0)))
        assert output.getvalue() == ""
        assert protocol.state == ProtocolState.POSITION_SET


class TestQuit:
    def test_quit_when_idle(self, protocol: UciProtocol, output: io.StringIO) -> None:
        protocol.handle_line("quit")
        assert protocol.state == ProtocolState.STOPPED
        protocol.handle_line("uci")
        assert output.getvalue() == ""

    def test_quit_during_search_still_reports(
        self, protocol: UciProtocol, output: io.StringIO
    ) -> None:
        _handshake(protocol, output)
        protocol.handle_line("position startpos")
        protocol.handle_line("go infinite")
        protocol.handle_line("position startpos moves e2e4")
        protocol.handle_line("quit")

        assert protocol.state == ProtocolState.STOPPED
        assert len(_bestmoves(output)) == 1
        assert not protocol.session.is_searching


class TestOptions:
    def test_depth_option(self, protocol: UciProtocol, output: io.StringIO) -> None:
        _handshake(protocol, output)
        protocol.handle_line("setoption name Depth value 2")
        assert protocol.default_depth == 2
        protocol.handle_line("position startpos")
        protocol.handle_line("go")
        assert protocol.wait_for_search(30)
        depths = [int(line.split()[2]) for line in _lines(output) if line.startswith("info depth")]
        assert depths == [1, 2]

    @pytest.mark.parametrize("value", ["0", "65", "deep"])
    def test_depth_option_out_of_range(self, protocol: UciProtocol, value: str) -> None:
        protocol.handle_line("uci")
        protocol.handle_line(f"setoption name Depth value {value}")
        assert protocol.default_depth == 4

    def test_move_overhead_option(self, protocol: UciProtocol) -> None:
        protocol.handle_line("uci")
        protocol.handle_line("setoption name Move Overhead value 120")
        assert protocol.move_overhead_ms == 120

    def test_option_names_case_insensitive(self, protocol: UciProtocol) -> None:
        protocol.handle_line("uci")
        protocol.handle_line("setoption name move overhead value 0")
        assert protocol.move_overhead_ms == 0

    def test_unknown_option_ignored(
        self, protocol: UciProtocol, output: io.StringIO, caplog: pytest.LogCaptureFixture
    ) -> None:
        _handshake(protocol, output)
        with caplog.at_level(logging.WARNING, logger="rookery.protocol.uci"):
            protocol.handle_line("setoption name Hash value 64")
        assert output.getvalue() == ""
        assert "Hash" in caplog.text


class _RejectingSession(EngineSession):
    def new_game(self) -> None:
        raise ValueError("cannot reset")


class TestRun:
    def test_serves_stream_until_quit(self, output: io.StringIO) -> None:
        session = EngineSession(RandomEngine(seed=5))
        proto = UciProtocol(output, session=session)
        proto.run(io.StringIO("uci\nisready\nposition startpos\nquit\nisready\n"))

        lines = _lines(output)
        assert lines[-2:] == ["uciok", "readyok"]
        assert proto.state == ProtocolState.STOPPED

    def test_end_of_input_during_search_reports(self, output: io.StringIO) -> None:
        proto = UciProtocol(output)
        proto.run(io.StringIO("uci\nposition startpos\ngo infinite\n"))

        assert len(_bestmoves(output)) == 1
        assert proto.state == ProtocolState.STOPPED

    def test_non_ascii_fen_does_not_end_session(self, output: io.StringIO) -> None:
        proto = UciProtocol(output, session=EngineSession(RandomEngine(seed=5)))
        script = "uci\nposition fen 4k3/8/8/8/8/8/8/3\u00b2K2 w - - 0 1\nisready\nquit\n"
        proto.run(io.StringIO(script))

        assert _lines(output)[-1] == "readyok"
        assert proto.state == ProtocolState.STOPPED

    def test_handler_value_error_does_not_end_session(
        self, output: io.StringIO, caplog: pytest.LogCaptureFixture
    ) -> None:
        proto = UciProtocol(output, session=_RejectingSession(RandomEngine(seed=5)))
        with caplog.at_level(logging.WARNING, logger="rookery.protocol.uci"):
            proto.run(io.StringIO("uci\nucinewgame\nisready\nquit\n"))

        assert _lines(output)[-1] == "readyok"
        assert proto.state == ProtocolState.STOPPED
        assert "cannot reset" in caplog.text

    def test_full_exchange(self, output: io.StringIO) -> None:
        session = EngineSession(RandomEngine(seed=5))
        proto = UciProtocol(output, session=session)
        script = "uci\nisready\nucinewgame\nposition startpos moves e2e4\ngo depth 1\nisready\n"
        proto.run(io.StringIO(script))

        lines = _lines(output)
        assert "uciok" in lines
        assert lines.count("readyok") == 2
        assert len(_bestmoves(output)) == 1


class TestFormatting:
    def test_format_info_cp(self) -> None:
        pos = position_from_fen(STARTING_FEN)
        e4 = parse_uci_move(pos, "e2e4")
        pos.apply(e4)
        e5 = parse_uci_move(pos, "e7e5")
        info = SearchInfo(depth=3, score_cp=25, nodes=1000, elapsed_ms=500, pv=(e4, e5))
        assert format_info(info) == (
            "info depth 3 score cp 25 nodes 1000 time 500 nps 2000 pv e2e4 e7e5"
        )

    def test_format_info_mate(self) -> None:
        info = SearchInfo(depth=1, score_cp=MATE_SCORE - 1, nodes=10, elapsed_ms=1)
        assert format_info(info) == "info depth 1 score mate 1 nodes 10 time 1 nps 10000"

    def test_format_info_mated(self) -> None:
        info = SearchInfo(depth=4, score_cp=-(MATE_SCORE - 4), nodes=10, elapsed_ms=0)
        assert " score mate -2 " in format_info(info)


class TestTimeManagement:
    def _limits(self, go: GoCommand, side: Color = Color.WHITE) -> SearchLimits:
        return limits_for_go(
            go,
            side,
            default_depth=4,
            max_depth=64,
            move_overhead_ms=30,
            default_moves_to_go=30,
        )

    def test_explicit_depth(self) -> None:
        assert self._limits(GoCommand(depth=3)) == SearchLimits(max_depth=3)

    def test_depth_clipped(self) -> None:
        assert self._limits(GoCommand(depth=500)).max_depth == 64

    def test_bare_go_uses_default_depth(self) -> None:
        assert self._limits(GoCommand()) == SearchLimits(max_depth=4)

    def test_movetime(self) -> None:
        assert self._limits(GoCommand(movetime=1000)) == SearchLimits(
            max_depth=64, time_limit_ms=970
        )

    def test_tiny_movetime(self) -> None:
        assert self._limits(GoCommand(movetime=0)).time_limit_ms == 1

    def test_infinite(self) -> None:
        assert self._limits(GoCommand(infinite=True)) == SearchLimits(max_depth=64)

    def test_nodes(self) -> None:
        assert self._limits(GoCommand(nodes=5000)) == SearchLimits(max_depth=64, node_limit=5000)

    def test_white_clock(self) -> None:
        limits = self._limits(GoCommand(wtime=60000, btime=1000, winc=1000))
        assert limits.time_limit_ms == 60000 // 30 + 750 - 30
        assert limits.max_depth == 64

    def test_black_clock(self) -> None:
        limits = self._limits(GoCommand(wtime=60000, btime=1000, movestogo=1), Color.BLACK)
        assert limits.time_limit_ms == 500

    def test_only_opponent_clock(self) -> None:
        assert self._limits(GoCommand(btime=5000, binc=100)) == SearchLimits(max_depth=4)

    def test_clock_budget_floor(self) -> None:
        assert clock_budget_ms(-50, 0, 30, 30) == 1
        assert clock_budget_ms(10, 0, 1, 30) == 1

    def test_clock_budget_capped_at_half(self) -> None:
        assert clock_budget_ms(1000, 5000, 1, 0) == 500


class TestInjectedSession:
    def test_uses_given_session(self, output: io.StringIO) -> None:
        session = EngineSession(RandomEngine(seed=2), limits=SearchLimits(max_depth=1))
        config = EngineConfig(search=SearchConfig(default_depth=1))
        proto = UciProtocol(output, config=config, session=session)
        assert proto.session is session
        proto.handle_line("uci")
        proto.handle_line("position startpos")
        proto.handle_line("go")
        assert proto.wait_for_search(10)
        assert len(_bestmoves(output)) == 1

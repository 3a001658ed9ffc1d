"""Shared pytest fixtures used across the test suite."""

from __future__ import annotations

import io
from collections.abc import Iterator

import pytest

from rookery.core.notation import STARTING_FEN, position_from_fen
from rookery.core.position import Position
from rookery.engine.alphabeta import AlphaBetaEngine
from rookery.engine.session import EngineSession
from rookery.protocol.uci import UciProtocol

KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"


@pytest.fixture
def start_position() -> Position:
    return position_from_fen(STARTING_FEN)


@pytest.fixture
def kiwipete() -> Position:
    return position_from_fen(KIWIPETE)


@pytest.fixture
def session() -> Iterator[EngineSession]:
    """Engine session that is never left searching after a test."""
    sess = EngineSession(AlphaBetaEngine(tt_max_entries=50_000))
    yield sess
    sess.stop()
    sess.wait(5)


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def protocol(output: io.StringIO) -> Iterator[UciProtocol]:
    proto = UciProtocol(output)
    yield proto
    proto.session.stop()
    proto.session.wait(5)

"""Protocol session states."""

from __future__ import annotations

from enum import IntEnum, auto


class ProtocolState(IntEnum):
    """Finite-state-machine states of a UCI session."""

    IDLE = auto()  # waiting for the "uci" handshake
    READY = auto()
    POSITION_SET = auto()
    SEARCHING = auto()
    STOPPED = auto()  # terminal

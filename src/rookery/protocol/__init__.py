"""UCI protocol: command parsing and the session state machine."""

from rookery.protocol.commands import Command, parse_command
from rookery.protocol.state import ProtocolState
from rookery.protocol.uci import UciProtocol, clock_budget_ms, format_info, limits_for_go

__all__ = [
    "Command",
    "ProtocolState",
    "UciProtocol",
    "clock_budget_ms",
    "format_info",
    "limits_for_go",
    "parse_command",
]

"""Engine-versus-engine matches played through :class:`GameState`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from rookery.core.enums import Color, GameResult, Termination
from rookery.engine.search import IEngine, SearchLimits
from rookery.game.state import GameState, MoveRecord

_LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_PLIES = 400


@dataclass(frozen=True, slots=True)
class Player:
    """An engine plus the limits it searches with on each of its turns."""

    name: str
    engine: IEngine
    limits: SearchLimits = field(default_factory=SearchLimits)


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    result: GameResult
    termination: Termination | None
    moves: tuple[MoveRecord, ...]
    final_fen: str
    nodes: dict[Color, int]

    @property
    def plies(self) -> int:
        return len(self.moves)

    @property
    def finished(self) -> bool:
        """False when the ply cap stopped the game before the rules did."""
        return self.result != GameResult.IN_PROGRESS


def play_match(
    white: Player,
    black: Player,
    *,
    fen: str | None = None,
    max_plies: int = DEFAULT_MAX_PLIES,
) -> MatchOutcome:
    """Let *white* and *black* alternate moves until the game ends.

    Each engine searches a copy of the current position, so an engine cannot
    disturb the game record. Play stops at checkmate, stalemate or a draw by
    rule, or after *max_plies* half-moves with the result left in progress.

    Raises:
        MalformedRecord: *fen* is not a valid FEN record.
        InvalidMove: an engine answered with a move that is not legal.
    """
    game = GameState()
    game.setup(fen)
    players = {Color.WHITE: white, Color.BLACK: black}
    for player in players.values():
        player.engine.new_game()
    nodes = {Color.WHITE: 0, Color.BLACK: 0}

    while not game.is_game_over and game.ply_count < max_plies:
        side = game.side_to_move
        player = players[side]
        result = player.engine.search(game.position.copy(), player.limits)
        nodes[side] += result.nodes
        if result.best_move is None:
            # The rules already flag every position without moves.
            break
        record = game.apply_move(result.best_move)
        _LOGGER.debug("%s (%s) played %s", player.name, side, record.lan)

    if not game.is_game_over:
        _LOGGER.info("Match stopped after %d plies without a result", game.ply_count)
    return MatchOutcome(
        result=game.result,
        termination=game.termination,
        moves=tuple(game.move_history),
        final_fen=game.fen,
        nodes=nodes,
    )

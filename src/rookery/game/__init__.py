"""Game layer: a move-history facade over the core for front ends."""

from rookery.game.match import MatchOutcome, Player, play_match
from rookery.game.state import GamePhase, GameState, MoveRecord

__all__ = ["GamePhase", "GameState", "MatchOutcome", "MoveRecord", "Player", "play_match"]

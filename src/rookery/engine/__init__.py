"""Chess engine package: evaluation, search implementations and the session."""

from rookery.engine.alphabeta import AlphaBetaEngine
from rookery.engine.evaluation import EvalWeights, Evaluator
from rookery.engine.random_engine import RandomEngine
from rookery.engine.search import (
    MATE_SCORE,
    IEngine,
    SearchInfo,
    SearchLimits,
    SearchResult,
    is_mate_score,
    mate_distance,
)
from rookery.engine.session import EngineSession

DefaultEngine: type[IEngine] = AlphaBetaEngine

__all__ = [
    "AlphaBetaEngine",
    "DefaultEngine",
    "EngineSession",
    "EvalWeights",
    "Evaluator",
    "IEngine",
    "MATE_SCORE",
    "RandomEngine",
    "SearchInfo",
    "SearchLimits",
    "SearchResult",
    "is_mate_score",
    "mate_distance",
]

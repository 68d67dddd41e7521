from fanhub import db  # noqa: F401 - imported for model imports

from .match import Match, MatchHalf, MatchStatus
from .prediction import Prediction, PredictionOutcome
from .user import User, UserRole

__all__ = [
    "User",
    "UserRole",
    "Match",
    "MatchStatus",
    "MatchHalf",
    "Prediction",
    "PredictionOutcome",
]

from .team import Team
from .fixture import Fixture
from .prediction import Prediction
from .user import UserProfile, UserStats

__all__ = [
    "Team",
    "Fixture",
    "Prediction",
    "UserProfile",
    "UserStats",
]

# SQLAlchemy models
from .base import Base
from .challenges import CHALLENGE_KINDS, DailyChallenge, UserDailyChallenge
from .learning_paths import LearningPath, LearningPathModule
from .preferences import UserPreferences
from .progression import (
    ACHIEVEMENT_METRICS,
    PROGRESS_COUNTERS,
    Achievement,
    UserAchievement,
    UserProgress,
    XpEvent,
)

__all__ = [
    "Base",
    "UserProgress",
    "XpEvent",
    "Achievement",
    "UserAchievement",
    "LearningPath",
    "LearningPathModule",
    "UserPreferences",
    "DailyChallenge",
    "UserDailyChallenge",
    "CHALLENGE_KINDS",
    "PROGRESS_COUNTERS",
    "ACHIEVEMENT_METRICS",
]

"""
Progression - XP ledger, leveling, streaks, daily challenges and achievements.
"""

from learnflow.progression.achievements import (
    DEFAULT_CATALOG,
    AchievementDefinition,
    AchievementEvaluator,
    seed_catalog,
)
from learnflow.progression.challenges import (
    DEFAULT_CHALLENGES,
    ChallengeDefinition,
    ChallengeStatus,
    DailyChallengeTracker,
    seed_challenges,
)
from learnflow.progression.engine import Activity, ActivityKind, ActivityOutcome, ProgressionEngine
from learnflow.progression.ledger import LeaderboardEntry, ProgressLedger, XpResult
from learnflow.progression.leveling import LevelProgress, level_for_xp, level_progress, xp_for_level
from learnflow.progression.streaks import StreakState, StreakTracker, is_at_risk, next_streak

__all__ = [
    "AchievementDefinition",
    "AchievementEvaluator",
    "DEFAULT_CATALOG",
    "seed_catalog",
    "ChallengeDefinition",
    "ChallengeStatus",
    "DailyChallengeTracker",
    "DEFAULT_CHALLENGES",
    "seed_challenges",
    "Activity",
    "ActivityKind",
    "ActivityOutcome",
    "ProgressionEngine",
    "LeaderboardEntry",
    "ProgressLedger",
    "XpResult",
    "LevelProgress",
    "level_for_xp",
    "level_progress",
    "xp_for_level",
    "StreakState",
    "StreakTracker",
    "is_at_risk",
    "next_streak",
]

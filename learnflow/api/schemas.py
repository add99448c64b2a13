"""
Response models shared by several routers.
"""

from __future__ import annotations

from datetime import date, datetime

from learnflow.core.schemas import CamelModel
from learnflow.db.models import Achievement, DailyChallenge
from learnflow.progression.ledger import XpResult
from learnflow.progression.streaks import StreakState


class XpResponse(CamelModel):
    total_xp: int
    level: int
    leveled_up: bool = False
    applied: bool = True

    @classmethod
    def from_result(cls, result: XpResult) -> XpResponse:
        return cls(
            total_xp=result.total_xp,
            level=result.level,
            leveled_up=result.leveled_up,
            applied=result.applied,
        )


class StreakResponse(CamelModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    at_risk: bool = False

    @classmethod
    def from_state(cls, state: StreakState, at_risk: bool = False) -> StreakResponse:
        return cls(
            current_streak=state.current_streak,
            longest_streak=state.longest_streak,
            last_activity_date=state.last_activity_date,
            at_risk=at_risk,
        )


class AchievementResponse(CamelModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    metric: str
    threshold: int
    rarity: str
    xp_reward: int

    @classmethod
    def from_models(cls, achievements: list[Achievement]) -> list[AchievementResponse]:
        return [cls.model_validate(achievement) for achievement in achievements]


class UserAchievementResponse(CamelModel):
    achievement_id: str
    earned_at: datetime
    achievement: AchievementResponse


class DailyChallengeResponse(CamelModel):
    id: str
    title: str
    description: str
    kind: str
    target: int
    xp_reward: int

    @classmethod
    def from_models(cls, challenges: list[DailyChallenge]) -> list[DailyChallengeResponse]:
        return [cls.model_validate(challenge) for challenge in challenges]

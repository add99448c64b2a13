"""
Progression Engine.

Runs one learning activity through the fixed pipeline:

    XP credit (ledger) -> level recompute -> streak update
        -> daily challenges -> achievement scan

Counters and daily challenges only move when the XP event was newly
applied, so a retried activity carrying the same ``activity_id`` changes
nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from sqlalchemy.orm import Session

from config import Settings, get_settings
from learnflow.core.errors import InvalidRequestError
from learnflow.db.models import Achievement, DailyChallenge
from learnflow.progression.achievements import AchievementEvaluator
from learnflow.progression.challenges import DailyChallengeTracker
from learnflow.progression.ledger import ProgressLedger, XpResult
from learnflow.progression.streaks import StreakState, StreakTracker


class ActivityKind(str, Enum):
    """Learning activities that earn XP."""

    MODULE = "module"
    QUIZ = "quiz"
    RESOURCE = "resource"
    STUDY = "study"
    CERTIFICATE = "certificate"


@dataclass
class Activity:
    kind: ActivityKind
    passed: bool = False  # quiz only
    minutes: int = 0  # study only
    path_completed: bool = False  # module only: this completion finished the path
    activity_id: str | None = None  # client id, used as the XP idempotency key
    reason: str | None = None


@dataclass
class ActivityOutcome:
    xp: XpResult
    streak: StreakState
    unlocked: list[Achievement] = field(default_factory=list)
    completed_challenges: list[DailyChallenge] = field(default_factory=list)


class ProgressionEngine:
    """Orchestrates ledger, streak tracker and achievement evaluator."""

    def __init__(self, session: Session, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.ledger = ProgressLedger(session)
        self.streaks = StreakTracker(session, self.ledger)
        self.challenges = DailyChallengeTracker(session, self.ledger)
        self.achievements = AchievementEvaluator(session, self.ledger)

    def xp_for(self, activity: Activity) -> int:
        """XP earned by an activity under the configured reward table."""
        rewards = self.settings.get_xp_rewards()
        if activity.kind is ActivityKind.MODULE:
            return rewards["module"]
        if activity.kind is ActivityKind.QUIZ:
            return rewards["quiz"] + (rewards["quiz_pass_bonus"] if activity.passed else 0)
        if activity.kind is ActivityKind.RESOURCE:
            return rewards["resource"]
        if activity.kind is ActivityKind.STUDY:
            if isinstance(activity.minutes, bool) or not isinstance(activity.minutes, int) or activity.minutes <= 0:
                raise InvalidRequestError("Study sessions need a positive number of minutes")
            return min(rewards["study_max"], activity.minutes * rewards["study_per_minute"])
        return rewards["certificate"]

    @staticmethod
    def counters_for(activity: Activity) -> dict[str, int]:
        if activity.kind is ActivityKind.MODULE:
            return {"lessons_completed": 1, "paths_completed": int(activity.path_completed)}
        if activity.kind is ActivityKind.QUIZ:
            return {"quizzes_completed": 1, "quizzes_passed": int(activity.passed)}
        if activity.kind is ActivityKind.RESOURCE:
            return {"resources_completed": 1}
        if activity.kind is ActivityKind.STUDY:
            return {"total_study_time": activity.minutes}
        return {"certificates_earned": 1}

    @staticmethod
    def challenge_progress_for(activity: Activity) -> dict[str, int]:
        """Daily challenge progress (by challenge kind) earned by an activity."""
        progress = {"streak": 1}
        if activity.kind is ActivityKind.QUIZ:
            progress["quiz"] = 1
        elif activity.kind is ActivityKind.RESOURCE:
            progress["resource"] = 1
        elif activity.kind is ActivityKind.STUDY:
            progress["study_time"] = activity.minutes
        return progress

    def record_activity(
        self,
        user_id: str,
        activity: Activity,
        today: date | None = None,
    ) -> ActivityOutcome:
        """
        Credit an activity and run streak and achievement updates.

        Args:
            user_id: Learner
            activity: What they did
            today: Calendar date override (defaults to server local date)

        Returns:
            ActivityOutcome with XP totals, streak, completed daily challenges
            and newly unlocked achievements
        """
        today = today or date.today()
        amount = self.xp_for(activity)
        xp = self.ledger.add_xp(
            user_id,
            amount,
            reason=activity.reason or activity.kind.value,
            idempotency_key=activity.activity_id,
        )
        if xp.applied:
            self.ledger.increment_counters(user_id, **self.counters_for(activity))

        streak = self.streaks.record_activity(user_id, today=today)
        completed = []
        if xp.applied:
            completed = self.challenges.advance(user_id, self.challenge_progress_for(activity), today)
        unlocked = self.achievements.evaluate(user_id)
        return ActivityOutcome(xp=xp, streak=streak, unlocked=unlocked, completed_challenges=completed)

"""
Achievement Evaluator.

Scans the catalog against a fresh progress snapshot and unlocks every
achievement whose criterion (``progress.<metric> >= threshold``) holds.
Unlocks are guarded by the (user_id, achievement_id) unique constraint, so
racing evaluators can never award the same achievement twice, and the XP
reward is credited only by the evaluator whose insert actually landed.

Reward XP goes through ``ProgressLedger.add_xp``, which has no evaluation
hook. Level thresholds crossed by reward XP are picked up by a rescan
inside the same ``evaluate`` call, so an immediate second call finds
nothing new.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from learnflow.db.database import insert_or_ignore
from learnflow.db.models import ACHIEVEMENT_METRICS, Achievement, UserAchievement, UserProgress
from learnflow.db.models.base import utcnow
from learnflow.progression.ledger import ProgressLedger


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    icon: str
    category: str
    metric: str
    threshold: int
    rarity: str
    xp_reward: int


# ========================================
# Default catalog
# ========================================

DEFAULT_CATALOG: tuple[AchievementDefinition, ...] = (
    # Learning
    AchievementDefinition("first-steps", "First Steps", "Complete your first lesson", "footprints", "learning", "lessons_completed", 1, "common", 50),
    AchievementDefinition("quick-learner", "Quick Learner", "Complete 5 lessons", "zap", "learning", "lessons_completed", 5, "common", 100),
    AchievementDefinition("knowledge-seeker", "Knowledge Seeker", "Complete 25 lessons", "book-open", "learning", "lessons_completed", 25, "rare", 250),
    AchievementDefinition("scholar", "Scholar", "Complete 50 lessons", "graduation-cap", "learning", "lessons_completed", 50, "epic", 500),
    AchievementDefinition("path-finder", "Path Finder", "Complete your first learning path", "map", "learning", "paths_completed", 1, "rare", 300),
    AchievementDefinition("path-master", "Path Master", "Complete 5 learning paths", "compass", "learning", "paths_completed", 5, "epic", 1000),
    AchievementDefinition("resourceful", "Resourceful", "Complete 10 learning resources", "library", "learning", "resources_completed", 10, "common", 100),
    AchievementDefinition("certified", "Certified", "Earn your first certificate", "award", "learning", "certificates_earned", 1, "rare", 250),
    # Quiz
    AchievementDefinition("quiz-novice", "Quiz Novice", "Pass your first quiz", "check-circle", "quiz", "quizzes_passed", 1, "common", 50),
    AchievementDefinition("quiz-master", "Quiz Master", "Pass 10 quizzes", "brain", "quiz", "quizzes_passed", 10, "rare", 200),
    # Streak
    AchievementDefinition("streak-starter", "Streak Starter", "Maintain a 3-day streak", "flame", "streak", "current_streak", 3, "common", 75),
    AchievementDefinition("week-warrior", "Week Warrior", "Maintain a 7-day streak", "calendar", "streak", "current_streak", 7, "rare", 200),
    AchievementDefinition("dedicated-learner", "Dedicated Learner", "Maintain a 30-day streak", "target", "streak", "current_streak", 30, "epic", 1000),
    AchievementDefinition("century-streak", "Century Streak", "Maintain a 100-day streak", "crown", "streak", "current_streak", 100, "legendary", 5000),
    # Level
    AchievementDefinition("level-5", "Level 5", "Reach level 5", "star", "level", "level", 5, "common", 100),
    AchievementDefinition("level-10", "Level 10", "Reach level 10", "stars", "level", "level", 10, "rare", 300),
    AchievementDefinition("level-25", "Level 25", "Reach level 25", "sparkles", "level", "level", 25, "epic", 750),
    AchievementDefinition("legend", "Legend", "Reach level 50", "trophy", "level", "level", 50, "legendary", 2500),
)


def seed_catalog(
    session: Session,
    definitions: tuple[AchievementDefinition, ...] = DEFAULT_CATALOG,
) -> int:
    """
    Insert catalog entries that do not exist yet. Existing rows are left untouched.

    Returns:
        Number of achievements inserted
    """
    inserted = 0
    for definition in definitions:
        if definition.metric not in ACHIEVEMENT_METRICS:
            raise ValueError(f"Achievement {definition.id} uses unknown metric {definition.metric!r}")
        if insert_or_ignore(session, Achievement, asdict(definition), ["id"]):
            inserted += 1
    if inserted:
        logger.info(f"Seeded {inserted} achievements")
    return inserted


def criterion_met(achievement: Achievement, progress: UserProgress) -> bool:
    """True when the progress snapshot satisfies the achievement's threshold."""
    if achievement.metric not in ACHIEVEMENT_METRICS:
        logger.warning(f"Achievement {achievement.id} has unknown metric {achievement.metric!r}; skipped")
        return False
    return getattr(progress, achievement.metric) >= achievement.threshold


class AchievementEvaluator:
    """Unlocks earned achievements and credits their XP rewards."""

    def __init__(self, session: Session, ledger: ProgressLedger | None = None):
        self.session = session
        self.ledger = ledger or ProgressLedger(session)

    def catalog(self) -> list[Achievement]:
        return list(
            self.session.scalars(
                select(Achievement).order_by(Achievement.category, Achievement.threshold, Achievement.id)
            )
        )

    def earned(self, user_id: str) -> list[UserAchievement]:
        return list(
            self.session.scalars(
                select(UserAchievement)
                .where(UserAchievement.user_id == user_id)
                .order_by(UserAchievement.earned_at, UserAchievement.id)
            )
        )

    def evaluate(self, user_id: str) -> list[Achievement]:
        """
        Unlock every satisfied, not-yet-earned achievement.

        Args:
            user_id: User to evaluate

        Returns:
            Achievements newly unlocked by this call (empty on a repeat call)
        """
        catalog = self.catalog()
        earned_ids = set(
            self.session.scalars(
                select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
            )
        )

        unlocked: list[Achievement] = []
        # Reward XP can cross a level threshold, so rescan until a pass unlocks
        # nothing. Bounded by the catalog size: each entry unlocks at most once.
        while True:
            snapshot = self._snapshot(user_id)
            pending = [
                a for a in catalog if a.id not in earned_ids and criterion_met(a, snapshot)
            ]
            if not pending:
                return unlocked

            for achievement in pending:
                earned_ids.add(achievement.id)
                if self._award(user_id, achievement):
                    unlocked.append(achievement)

    def _snapshot(self, user_id: str) -> UserProgress:
        return self.ledger.get_progress(user_id)

    def _award(self, user_id: str, achievement: Achievement) -> bool:
        inserted = insert_or_ignore(
            self.session,
            UserAchievement,
            {"user_id": user_id, "achievement_id": achievement.id, "earned_at": utcnow()},
            ["user_id", "achievement_id"],
        )
        if not inserted:
            # A concurrent evaluation already awarded it (and its XP)
            return False

        if achievement.xp_reward > 0:
            self.ledger.add_xp(
                user_id,
                achievement.xp_reward,
                reason=f"achievement:{achievement.id}",
                idempotency_key=f"achievement:{achievement.id}",
            )
        logger.info(f"User {user_id} unlocked achievement {achievement.id} (+{achievement.xp_reward} XP)")
        return True

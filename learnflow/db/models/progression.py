"""
Progression Models.

SQLAlchemy models for XP, levels, streaks and achievements:
- Per-user progress record (single writer: the progress ledger)
- XP event audit trail with idempotency keys
- Achievement catalog and earned achievements
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

# Counters the ledger may increment and achievements may test against
PROGRESS_COUNTERS = (
    "total_study_time",
    "quizzes_completed",
    "quizzes_passed",
    "resources_completed",
    "certificates_earned",
    "lessons_completed",
    "paths_completed",
)

# Every numeric field an achievement criterion may reference
ACHIEVEMENT_METRICS = PROGRESS_COUNTERS + (
    "total_xp",
    "level",
    "current_streak",
    "longest_streak",
)


class UserProgress(Base):
    """
    Gamification state for one user.

    Mutated only through ProgressLedger. ``level`` always equals
    ``level_for_xp(total_xp)``.
    """

    __tablename__ = "user_progress"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Streak
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date)

    # Activity counters
    total_study_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # minutes
    quizzes_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quizzes_passed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resources_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    certificates_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paths_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_user_progress_total_xp", "total_xp"),)

    def __repr__(self) -> str:
        return f"<UserProgress user={self.user_id} xp={self.total_xp} level={self.level}>"


class XpEvent(Base):
    """One XP credit. A repeated (user, idempotency_key) pair is never applied twice."""

    __tablename__ = "xp_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    idempotency_key: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_xp_event_idempotency"),
    )

    def __repr__(self) -> str:
        return f"<XpEvent user={self.user_id} amount={self.amount} reason={self.reason!r}>"


class Achievement(Base):
    """
    Catalog entry. Unlocks when ``UserProgress.<metric> >= threshold``.
    """

    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(String(64), nullable=False, default="trophy")
    category: Mapped[str] = mapped_column(String(32), nullable=False)  # learning, quiz, streak, level
    metric: Mapped[str] = mapped_column(String(64), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, default="common")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Achievement {self.id} {self.metric}>={self.threshold}>"


class UserAchievement(Base):
    """Earned achievement. Created once, never updated."""

    __tablename__ = "user_achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(
        ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    achievement: Mapped[Achievement] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    def __repr__(self) -> str:
        return f"<UserAchievement user={self.user_id} achievement={self.achievement_id}>"

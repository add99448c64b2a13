"""
Daily Challenge Models.

SQLAlchemy models for per-day challenges:
- Challenge catalog (the same challenges are offered every day)
- Per-user, per-day progress rows
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

# Activity measures a challenge can count
CHALLENGE_KINDS = ("quiz", "study_time", "resource", "streak")


class DailyChallenge(Base):
    """Catalog entry. Completed once ``UserDailyChallenge.progress >= target`` for a day."""

    __tablename__ = "daily_challenges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[str] = mapped_column(String(32), nullable=False)  # quiz, study_time, resource, streak
    target: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<DailyChallenge {self.id} {self.kind}>={self.target}>"


class UserDailyChallenge(Base):
    """A user's progress on one challenge for one calendar day."""

    __tablename__ = "user_daily_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    challenge_id: Mapped[str] = mapped_column(
        ForeignKey("daily_challenges.id", ondelete="CASCADE"), nullable=False
    )
    challenge_date: Mapped[date] = mapped_column(Date, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    challenge: Mapped[DailyChallenge] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", "challenge_date", name="uq_user_daily_challenge"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserDailyChallenge user={self.user_id} challenge={self.challenge_id} "
            f"date={self.challenge_date} progress={self.progress}>"
        )

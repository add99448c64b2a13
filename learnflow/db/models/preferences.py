"""
User preference record, passed explicitly into request handling.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class UserPreferences(Base):
    """Per-user learning preferences and display name."""

    __tablename__ = "user_preferences"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(128))
    daily_goal_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    weekly_goal_days: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    learning_style: Mapped[str | None] = mapped_column(String(32))  # visual, auditory, reading, kinesthetic
    preferred_time: Mapped[str] = mapped_column(String(32), nullable=False, default="flexible")
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<UserPreferences user={self.user_id} name={self.display_name!r}>"

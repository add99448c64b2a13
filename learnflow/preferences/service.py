"""
Preferences service: explicit per-user settings record.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from learnflow.core.errors import InvalidRequestError
from learnflow.db.database import insert_or_ignore
from learnflow.db.models import UserPreferences

EDITABLE_FIELDS = (
    "display_name",
    "daily_goal_minutes",
    "weekly_goal_days",
    "notifications_enabled",
    "learning_style",
    "preferred_time",
    "onboarding_completed",
)
NULLABLE_FIELDS = {"display_name", "learning_style"}


class PreferencesService:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> UserPreferences:
        """Return the user's preferences, creating defaults on first access."""
        if insert_or_ignore(self.session, UserPreferences, {"user_id": user_id}, ["user_id"]):
            logger.debug(f"Created default preferences for {user_id}")
        return self.session.execute(
            select(UserPreferences)
            .where(UserPreferences.user_id == user_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def update(self, user_id: str, changes: dict[str, Any]) -> UserPreferences:
        """
        Upsert preference fields.

        Raises:
            InvalidRequestError: Unknown field or out-of-range goal
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidRequestError(f"Unknown preference fields: {', '.join(sorted(unknown))}")
        cleared = sorted(name for name, value in changes.items() if value is None and name not in NULLABLE_FIELDS)
        if cleared:
            raise InvalidRequestError(f"Preference fields cannot be null: {', '.join(cleared)}")
        if "weekly_goal_days" in changes and not 1 <= changes["weekly_goal_days"] <= 7:
            raise InvalidRequestError("weekly_goal_days must be between 1 and 7")
        if "daily_goal_minutes" in changes and changes["daily_goal_minutes"] < 1:
            raise InvalidRequestError("daily_goal_minutes must be positive")

        prefs = self.get(user_id)
        for name, value in changes.items():
            setattr(prefs, name, value)
        self.session.flush()
        return prefs

"""
Streak Tracker.

Daily streak transitions keyed on calendar dates:

- activity on the same day as the last one: no change
- activity on the day after the last one: streak + 1
- anything else (first activity, or a gap): streak restarts at 1

``longest_streak`` is a high-water mark and never resets.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta

from loguru import logger
from sqlalchemy.orm import Session

from learnflow.progression.ledger import ProgressLedger


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None


def next_streak(state: StreakState, today: date) -> StreakState:
    """
    Apply one day of activity to a streak.

    Args:
        state: Streak before the activity
        today: Calendar date of the activity

    Returns:
        Streak after the activity (``state`` itself when already active today)
    """
    if state.last_activity_date == today:
        return state

    if state.last_activity_date == today - timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    return replace(
        state,
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_activity_date=today,
    )


def is_at_risk(state: StreakState, today: date) -> bool:
    """A live streak with no activity recorded yet today."""
    return state.current_streak > 0 and state.last_activity_date != today


class StreakTracker:
    """Reads and writes streaks through the progress ledger."""

    # One retry is enough: a lost race means another request already wrote today
    MAX_ATTEMPTS = 2

    def __init__(self, session: Session, ledger: ProgressLedger | None = None):
        self.session = session
        self.ledger = ledger or ProgressLedger(session)

    def current(self, user_id: str) -> StreakState:
        progress = self.ledger.get_progress(user_id)
        return StreakState(
            current_streak=progress.current_streak,
            longest_streak=progress.longest_streak,
            last_activity_date=progress.last_activity_date,
        )

    def record_activity(self, user_id: str, today: date | None = None) -> StreakState:
        """
        Register that the user was active ``today`` (server local date by default).

        Returns:
            The streak after the update
        """
        today = today or date.today()

        for _ in range(self.MAX_ATTEMPTS):
            before = self.current(user_id)
            after = next_streak(before, today)
            if after is before:
                return before

            written = self.ledger.apply_streak(
                user_id,
                expected_last_date=before.last_activity_date,
                current_streak=after.current_streak,
                longest_streak=after.longest_streak,
                last_activity_date=today,
            )
            if written:
                if after.current_streak > before.current_streak and after.current_streak > 1:
                    logger.info(f"User {user_id} streak extended to {after.current_streak} days")
                elif before.current_streak > 1:
                    logger.info(f"User {user_id} streak of {before.current_streak} days was broken")
                return after

            logger.debug(f"Streak update for user {user_id} raced another writer; re-reading")

        return self.current(user_id)

"""
Progress Ledger.

The only component that writes XP, level, streak and counter fields of
UserProgress. Every write is a single SQL statement evaluated by the
database (``total_xp = total_xp + :amount``) so concurrent requests for the
same user never lose an update.

Transactions are owned by the caller: the ledger flushes statements into
the session's current transaction and never commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from loguru import logger
from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.orm import Session

from learnflow.core.errors import InvalidRequestError
from learnflow.db.database import insert_or_ignore
from learnflow.db.models import (
    PROGRESS_COUNTERS,
    UserAchievement,
    UserDailyChallenge,
    UserPreferences,
    UserProgress,
    XpEvent,
)
from learnflow.db.models.base import utcnow
from learnflow.progression.leveling import level_for_xp

ANONYMOUS_NAME = "Anonymous"


@dataclass
class XpResult:
    """Outcome of a single XP credit."""

    user_id: str
    amount: int
    total_xp: int
    level: int
    previous_level: int
    applied: bool = True  # False when the idempotency key was already used

    @property
    def leveled_up(self) -> bool:
        return self.level > self.previous_level


@dataclass
class LeaderboardEntry:
    rank: int
    user_id: str
    username: str
    total_xp: int
    level: int
    current_streak: int
    weekly_xp: int = 0
    monthly_xp: int = 0


def _validate_positive_int(value: object, name: str) -> int:
    # bool is an int subclass; True must not count as 1 XP
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidRequestError(f"{name} must be a positive integer, got {value!r}")
    return value


class ProgressLedger:
    """Authoritative per-user progress record."""

    def __init__(self, session: Session):
        self.session = session

    # ========================================
    # Reads
    # ========================================

    def get_progress(self, user_id: str) -> UserProgress:
        """
        Return the user's progress, creating a zeroed record on first access.

        Never raises not-found. Concurrent first accesses are safe: the
        create is an ``INSERT ... ON CONFLICT DO NOTHING``.
        """
        if insert_or_ignore(self.session, UserProgress, {"user_id": user_id}, ["user_id"]):
            logger.info(f"Created progress record for user {user_id}")
        return self._load(user_id)

    def _load(self, user_id: str) -> UserProgress:
        stmt = (
            select(UserProgress)
            .where(UserProgress.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one()

    # ========================================
    # XP
    # ========================================

    def add_xp(
        self,
        user_id: str,
        amount: int,
        reason: str = "",
        idempotency_key: str | None = None,
    ) -> XpResult:
        """
        Credit XP and recompute the level.

        Args:
            user_id: Owner of the progress record
            amount: Positive XP amount
            reason: Free-text audit reason ("quiz", "achievement:first-steps", ...)
            idempotency_key: Optional key; a repeated key is a no-op

        Returns:
            XpResult with the new totals (``applied=False`` on replay)

        Raises:
            InvalidRequestError: If amount is not a positive integer
        """
        amount = _validate_positive_int(amount, "XP amount")
        before = self.get_progress(user_id)
        previous_level = before.level

        event = {"user_id": user_id, "amount": amount, "reason": reason, "idempotency_key": idempotency_key}
        if idempotency_key is not None:
            if not insert_or_ignore(self.session, XpEvent, event, ["user_id", "idempotency_key"]):
                logger.debug(f"XP replay ignored for user {user_id}: {idempotency_key}")
                return XpResult(
                    user_id=user_id,
                    amount=amount,
                    total_xp=before.total_xp,
                    level=before.level,
                    previous_level=previous_level,
                    applied=False,
                )
        else:
            self.session.execute(insert(XpEvent).values(**event))

        self.session.execute(
            update(UserProgress)
            .where(UserProgress.user_id == user_id)
            .values(total_xp=UserProgress.total_xp + amount, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        total_xp = self.session.scalar(
            select(UserProgress.total_xp).where(UserProgress.user_id == user_id)
        )
        new_level = level_for_xp(total_xp)
        # Guarded so a slower writer can never move the level backwards
        self.session.execute(
            update(UserProgress)
            .where(UserProgress.user_id == user_id, UserProgress.level < new_level)
            .values(level=new_level)
            .execution_options(synchronize_session=False)
        )

        progress = self._load(user_id)
        result = XpResult(
            user_id=user_id,
            amount=amount,
            total_xp=progress.total_xp,
            level=progress.level,
            previous_level=previous_level,
        )
        if result.leveled_up:
            logger.info(f"User {user_id} reached level {result.level} ({result.total_xp} XP)")
        return result

    # ========================================
    # Counters & streak
    # ========================================

    def increment_counters(self, user_id: str, **deltas: int) -> UserProgress:
        """
        Atomically increment informational counters.

        Args:
            user_id: Owner of the progress record
            **deltas: counter name -> non-negative increment

        Raises:
            InvalidRequestError: Unknown counter or negative increment
        """
        values = {}
        for name, delta in deltas.items():
            if name not in PROGRESS_COUNTERS:
                raise InvalidRequestError(f"Unknown progress counter: {name}")
            if isinstance(delta, bool) or not isinstance(delta, int) or delta < 0:
                raise InvalidRequestError(f"Counter increment must be a non-negative integer: {name}={delta!r}")
            if delta:
                values[name] = getattr(UserProgress, name) + delta

        self.get_progress(user_id)
        if values:
            self.session.execute(
                update(UserProgress)
                .where(UserProgress.user_id == user_id)
                .values(**values, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
        return self._load(user_id)

    def apply_streak(
        self,
        user_id: str,
        expected_last_date: date | None,
        current_streak: int,
        longest_streak: int,
        last_activity_date: date,
    ) -> bool:
        """
        Write streak fields if ``last_activity_date`` is still what the caller read.

        Returns:
            True if written, False if another writer got there first
        """
        if expected_last_date is None:
            guard = UserProgress.last_activity_date.is_(None)
        else:
            guard = UserProgress.last_activity_date == expected_last_date

        result = self.session.execute(
            update(UserProgress)
            .where(UserProgress.user_id == user_id, guard)
            .values(
                current_streak=current_streak,
                longest_streak=longest_streak,
                last_activity_date=last_activity_date,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ========================================
    # Leaderboard & admin
    # ========================================

    def leaderboard(self, limit: int = 50) -> list[LeaderboardEntry]:
        """Top ``limit`` users by total XP (ties broken by user id)."""
        limit = _validate_positive_int(limit, "limit")
        rows = self.session.execute(
            select(UserProgress, UserPreferences.display_name)
            .outerjoin(UserPreferences, UserPreferences.user_id == UserProgress.user_id)
            .order_by(UserProgress.total_xp.desc(), UserProgress.user_id)
            .limit(limit)
        ).all()

        windows = self._windowed_xp([progress.user_id for progress, _ in rows])
        entries = []
        for index, (progress, display_name) in enumerate(rows):
            weekly, monthly = windows.get(progress.user_id, (0, 0))
            entries.append(
                LeaderboardEntry(
                    rank=index + 1,
                    user_id=progress.user_id,
                    username=display_name or ANONYMOUS_NAME,
                    total_xp=progress.total_xp,
                    level=progress.level,
                    current_streak=progress.current_streak,
                    weekly_xp=weekly,
                    monthly_xp=monthly,
                )
            )
        return entries

    def _windowed_xp(self, user_ids: list[str]) -> dict[str, tuple[int, int]]:
        """XP earned in the last 7 and 30 days per user, from the event log."""
        if not user_ids:
            return {}
        now = utcnow()
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)
        rows = self.session.execute(
            select(
                XpEvent.user_id,
                func.sum(case((XpEvent.created_at >= week_ago, XpEvent.amount), else_=0)),
                func.sum(XpEvent.amount),
            )
            .where(XpEvent.user_id.in_(user_ids), XpEvent.created_at >= month_ago)
            .group_by(XpEvent.user_id)
        ).all()
        return {user_id: (int(weekly or 0), int(monthly or 0)) for user_id, weekly, monthly in rows}

    def reset(self, user_id: str) -> UserProgress:
        """Administrative reset: zero the record and drop its XP events, achievements and challenge progress."""
        self.get_progress(user_id)
        zeroed = {name: 0 for name in PROGRESS_COUNTERS}
        self.session.execute(
            update(UserProgress)
            .where(UserProgress.user_id == user_id)
            .values(
                total_xp=0,
                level=1,
                current_streak=0,
                longest_streak=0,
                last_activity_date=None,
                updated_at=utcnow(),
                **zeroed,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.execute(delete(XpEvent).where(XpEvent.user_id == user_id))
        self.session.execute(delete(UserAchievement).where(UserAchievement.user_id == user_id))
        self.session.execute(delete(UserDailyChallenge).where(UserDailyChallenge.user_id == user_id))
        logger.warning(f"Progress reset for user {user_id}")
        return self._load(user_id)

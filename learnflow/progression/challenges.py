"""
Daily Challenges.

The same small set of challenges is offered every calendar day. Activities
advance a user's per-day progress row with a single
``progress = progress + :delta`` UPDATE; the row flips to completed through
a guarded UPDATE (``WHERE is_completed = false AND progress >= target``), so
only one writer ever sees the transition and credits the reward. The reward
also carries the idempotency key ``challenge:<date>:<id>``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime

from loguru import logger
from sqlalchemy import and_, select, update
from sqlalchemy.orm import Session

from learnflow.db.database import insert_or_ignore
from learnflow.db.models import CHALLENGE_KINDS, DailyChallenge, UserDailyChallenge
from learnflow.db.models.base import utcnow
from learnflow.progression.ledger import ProgressLedger


@dataclass(frozen=True)
class ChallengeDefinition:
    id: str
    title: str
    description: str
    kind: str
    target: int
    xp_reward: int
    position: int


DEFAULT_CHALLENGES: tuple[ChallengeDefinition, ...] = (
    ChallengeDefinition("daily-quiz", "Complete a Quiz", "Take any quiz to earn bonus XP", "quiz", 1, 50, 0),
    ChallengeDefinition("daily-study", "Study for 30 minutes", "Spend time learning today", "study_time", 30, 30, 1),
    ChallengeDefinition("daily-streak", "Maintain your streak", "Keep your learning streak alive", "streak", 1, 25, 2),
)


@dataclass
class ChallengeStatus:
    """One challenge as seen by one user on one day."""

    challenge: DailyChallenge
    challenge_date: date
    progress: int
    is_completed: bool
    completed_at: datetime | None = None

    @property
    def target(self) -> int:
        return self.challenge.target


def seed_challenges(
    session: Session,
    definitions: tuple[ChallengeDefinition, ...] = DEFAULT_CHALLENGES,
) -> int:
    """
    Insert challenges that do not exist yet. Existing rows are left untouched.

    Returns:
        Number of challenges inserted
    """
    inserted = 0
    for definition in definitions:
        if definition.kind not in CHALLENGE_KINDS:
            raise ValueError(f"Challenge {definition.id} uses unknown kind {definition.kind!r}")
        if insert_or_ignore(session, DailyChallenge, asdict(definition), ["id"]):
            inserted += 1
    if inserted:
        logger.info(f"Seeded {inserted} daily challenges")
    return inserted


class DailyChallengeTracker:
    """Per-day challenge progress and rewards."""

    def __init__(self, session: Session, ledger: ProgressLedger | None = None):
        self.session = session
        self.ledger = ledger or ProgressLedger(session)

    def active(self) -> list[DailyChallenge]:
        return list(
            self.session.scalars(
                select(DailyChallenge)
                .where(DailyChallenge.is_active.is_(True))
                .order_by(DailyChallenge.position, DailyChallenge.id)
            )
        )

    def for_day(self, user_id: str, day: date) -> list[ChallengeStatus]:
        """Every active challenge with the user's progress for ``day`` (zero if untouched)."""
        rows = self.session.execute(
            select(DailyChallenge, UserDailyChallenge)
            .outerjoin(
                UserDailyChallenge,
                and_(
                    UserDailyChallenge.challenge_id == DailyChallenge.id,
                    UserDailyChallenge.user_id == user_id,
                    UserDailyChallenge.challenge_date == day,
                ),
            )
            .where(DailyChallenge.is_active.is_(True))
            .order_by(DailyChallenge.position, DailyChallenge.id)
            .execution_options(populate_existing=True)
        ).all()

        return [
            ChallengeStatus(
                challenge=challenge,
                challenge_date=day,
                progress=min(entry.progress, challenge.target) if entry else 0,
                is_completed=entry.is_completed if entry else False,
                completed_at=entry.completed_at if entry else None,
            )
            for challenge, entry in rows
        ]

    def advance(self, user_id: str, deltas: dict[str, int], day: date) -> list[DailyChallenge]:
        """
        Add activity progress to today's challenges.

        Args:
            user_id: Learner
            deltas: challenge kind -> progress to add
            day: Calendar day the activity counts towards

        Returns:
            Challenges completed by this call
        """
        completed: list[DailyChallenge] = []
        for challenge in self.active():
            delta = deltas.get(challenge.kind, 0)
            if delta <= 0:
                continue

            key = {"user_id": user_id, "challenge_id": challenge.id, "challenge_date": day}
            insert_or_ignore(
                self.session,
                UserDailyChallenge,
                {**key, "progress": 0, "is_completed": False},
                ["user_id", "challenge_id", "challenge_date"],
            )
            row = and_(
                UserDailyChallenge.user_id == user_id,
                UserDailyChallenge.challenge_id == challenge.id,
                UserDailyChallenge.challenge_date == day,
            )
            self.session.execute(
                update(UserDailyChallenge)
                .where(row)
                .values(progress=UserDailyChallenge.progress + delta)
                .execution_options(synchronize_session=False)
            )
            finished = self.session.execute(
                update(UserDailyChallenge)
                .where(
                    row,
                    UserDailyChallenge.is_completed.is_(False),
                    UserDailyChallenge.progress >= challenge.target,
                )
                .values(is_completed=True, completed_at=utcnow())
                .execution_options(synchronize_session=False)
            ).rowcount == 1

            if finished:
                self._reward(user_id, challenge, day)
                completed.append(challenge)
        return completed

    def _reward(self, user_id: str, challenge: DailyChallenge, day: date) -> None:
        if challenge.xp_reward > 0:
            self.ledger.add_xp(
                user_id,
                challenge.xp_reward,
                reason=f"challenge:{challenge.id}",
                idempotency_key=f"challenge:{day.isoformat()}:{challenge.id}",
            )
        logger.info(f"User {user_id} completed daily challenge {challenge.id} for {day} (+{challenge.xp_reward} XP)")

"""
Daily Challenges API Router.

Today's challenges with the caller's progress on each.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnflow.api.dependencies import get_current_user_id
from learnflow.core.schemas import CamelModel
from learnflow.db.database import get_session
from learnflow.progression import DailyChallengeTracker

router = APIRouter()


class DailyChallengeStatusResponse(CamelModel):
    id: str
    title: str
    description: str
    kind: str
    xp_reward: int
    challenge_date: date
    progress: int
    target: int
    is_completed: bool


@router.get(
    "/daily-challenges",
    response_model=list[DailyChallengeStatusResponse],
    summary="Get today's challenges",
)
def get_daily_challenges(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> list[DailyChallengeStatusResponse]:
    """Active challenges for the server's current date; untouched ones report zero progress."""
    try:
        statuses = DailyChallengeTracker(db).for_day(user_id, date.today())
        return [
            DailyChallengeStatusResponse(
                id=status.challenge.id,
                title=status.challenge.title,
                description=status.challenge.description,
                kind=status.challenge.kind,
                xp_reward=status.challenge.xp_reward,
                challenge_date=status.challenge_date,
                progress=status.progress,
                target=status.target,
                is_completed=status.is_completed,
            )
            for status in statuses
        ]
    except SQLAlchemyError:
        logger.exception(f"Failed to load daily challenges for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to load daily challenges")

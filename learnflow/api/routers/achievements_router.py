"""
Achievements API Router.

- Achievement catalog (public)
- Caller's earned achievements
- Manual re-evaluation
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnflow.api.dependencies import get_current_user_id
from learnflow.api.schemas import AchievementResponse, UserAchievementResponse
from learnflow.db.database import atomic, get_session
from learnflow.progression import AchievementEvaluator

router = APIRouter()


@router.get("/achievements", response_model=list[AchievementResponse], summary="List achievement catalog")
def list_achievements(db: Session = Depends(get_session)) -> list[AchievementResponse]:
    try:
        return AchievementResponse.from_models(AchievementEvaluator(db).catalog())
    except SQLAlchemyError:
        logger.exception("Failed to load achievement catalog")
        raise HTTPException(status_code=500, detail="Failed to load achievements")


@router.get(
    "/user/achievements",
    response_model=list[UserAchievementResponse],
    summary="List earned achievements",
)
def list_user_achievements(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> list[UserAchievementResponse]:
    try:
        earned = AchievementEvaluator(db).earned(user_id)
        return [UserAchievementResponse.model_validate(item) for item in earned]
    except SQLAlchemyError:
        logger.exception(f"Failed to load achievements for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to load achievements")


@router.post(
    "/user/achievements/evaluate",
    response_model=list[AchievementResponse],
    summary="Evaluate achievements",
)
def evaluate_achievements(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> list[AchievementResponse]:
    """Unlock anything the caller has earned. Returns only new unlocks."""
    try:
        with atomic(db):
            unlocked = AchievementEvaluator(db).evaluate(user_id)
        return AchievementResponse.from_models(unlocked)
    except SQLAlchemyError:
        logger.exception(f"Failed to evaluate achievements for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to evaluate achievements")

"""
Preferences API Router.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnflow.api.dependencies import get_current_user_id, http_error
from learnflow.core.errors import LearnflowError
from learnflow.core.schemas import CamelModel
from learnflow.db.database import atomic, get_session
from learnflow.preferences import PreferencesService

router = APIRouter()

LearningStyle = Literal["visual", "auditory", "reading", "kinesthetic"]


class PreferencesResponse(CamelModel):
    user_id: str
    display_name: str | None
    daily_goal_minutes: int
    weekly_goal_days: int
    notifications_enabled: bool
    learning_style: str | None
    preferred_time: str
    onboarding_completed: bool
    updated_at: datetime | None = None


class PreferencesUpdate(CamelModel):
    display_name: str | None = Field(None, max_length=128)
    daily_goal_minutes: int | None = Field(None, ge=1, le=24 * 60)
    weekly_goal_days: int | None = Field(None, ge=1, le=7)
    notifications_enabled: bool | None = None
    learning_style: LearningStyle | None = None
    preferred_time: Literal["morning", "afternoon", "evening", "flexible"] | None = None
    onboarding_completed: bool | None = None


@router.get("", response_model=PreferencesResponse, summary="Get preferences")
def get_preferences(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> PreferencesResponse:
    try:
        with atomic(db):
            prefs = PreferencesService(db).get(user_id)
        return PreferencesResponse.model_validate(prefs)
    except SQLAlchemyError:
        logger.exception(f"Failed to load preferences for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to load preferences")


@router.put("", response_model=PreferencesResponse, summary="Update preferences")
def update_preferences(
    request: PreferencesUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> PreferencesResponse:
    """Upsert the fields present in the request body."""
    changes = request.model_dump(exclude_unset=True)
    try:
        with atomic(db):
            prefs = PreferencesService(db).update(user_id, changes)
        logger.info(f"Updated preferences for {user_id}: {sorted(changes)}")
        return PreferencesResponse.model_validate(prefs)
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to update preferences for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to update preferences")

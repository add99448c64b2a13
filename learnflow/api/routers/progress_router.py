"""
Progress API Router.

Endpoints for the caller's gamification state:
- Progress record (get-or-create)
- XP credit
- Daily streak check-in
- Activity recording (XP -> level -> streak -> achievements)
- Leaderboard
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from pydantic import Field, StrictBool, StrictInt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import get_settings
from learnflow.api.dependencies import get_current_user_id, http_error
from learnflow.api.schemas import AchievementResponse, DailyChallengeResponse, StreakResponse, XpResponse
from learnflow.core.errors import LearnflowError
from learnflow.core.schemas import CamelModel
from learnflow.db.database import atomic, get_session
from learnflow.progression import (
    Activity,
    ActivityKind,
    ProgressionEngine,
    ProgressLedger,
    StreakState,
    StreakTracker,
    is_at_risk,
    level_progress,
)

router = APIRouter()
settings = get_settings()


# ========================================
# Request/Response Models
# ========================================


class LevelProgressResponse(CamelModel):
    current_level_xp: int
    next_level_xp: int
    xp_into_level: int
    xp_to_next_level: int
    percent: float


class ProgressResponse(CamelModel):
    """Full progress record for the caller."""

    user_id: str
    total_xp: int
    level: int
    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    streak_at_risk: bool
    total_study_time: int
    quizzes_completed: int
    quizzes_passed: int
    resources_completed: int
    certificates_earned: int
    lessons_completed: int
    paths_completed: int
    level_progress: LevelProgressResponse


class XpRequest(CamelModel):
    xp_amount: StrictInt = Field(..., gt=0, description="XP to add (positive integer)")
    reason: str = Field("", max_length=255, description="Audit reason")
    idempotency_key: str | None = Field(None, max_length=255, description="Replay-safe client key")


class ActivityRequest(CamelModel):
    kind: Literal["quiz", "resource", "study", "certificate"] = Field(..., description="Activity type")
    passed: StrictBool = Field(False, description="Quiz was passed (quiz only)")
    minutes: StrictInt = Field(0, ge=0, le=24 * 60, description="Study minutes (study only)")
    activity_id: str | None = Field(None, max_length=255, description="Client id; retries with the same id are no-ops")


class ActivityResponse(CamelModel):
    xp: XpResponse
    streak: StreakResponse
    unlocked_achievements: list[AchievementResponse]
    completed_challenges: list[DailyChallengeResponse]


class LeaderboardEntryResponse(CamelModel):
    rank: int
    user_id: str
    username: str
    total_xp: int
    level: int
    current_streak: int
    weekly_xp: int
    monthly_xp: int


# ========================================
# Endpoints
# ========================================


@router.get("/progress", response_model=ProgressResponse, summary="Get progress")
def get_progress(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> ProgressResponse:
    """Return the caller's progress, creating a zeroed record on first access."""
    try:
        with atomic(db):
            progress = ProgressLedger(db).get_progress(user_id)
        state = StreakState(progress.current_streak, progress.longest_streak, progress.last_activity_date)
        breakdown = level_progress(progress.total_xp)
        return ProgressResponse(
            user_id=progress.user_id,
            total_xp=progress.total_xp,
            level=progress.level,
            current_streak=progress.current_streak,
            longest_streak=progress.longest_streak,
            last_activity_date=progress.last_activity_date,
            streak_at_risk=is_at_risk(state, date.today()),
            total_study_time=progress.total_study_time,
            quizzes_completed=progress.quizzes_completed,
            quizzes_passed=progress.quizzes_passed,
            resources_completed=progress.resources_completed,
            certificates_earned=progress.certificates_earned,
            lessons_completed=progress.lessons_completed,
            paths_completed=progress.paths_completed,
            level_progress=LevelProgressResponse(
                current_level_xp=breakdown.current_level_xp,
                next_level_xp=breakdown.next_level_xp,
                xp_into_level=breakdown.xp_into_level,
                xp_to_next_level=breakdown.xp_to_next_level,
                percent=breakdown.percent,
            ),
        )
    except SQLAlchemyError:
        logger.exception(f"Failed to load progress for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to load progress")


@router.post("/xp", response_model=XpResponse, summary="Add XP")
def add_xp(
    request: XpRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> XpResponse:
    """Credit XP and return the new total and level."""
    try:
        with atomic(db):
            result = ProgressLedger(db).add_xp(
                user_id,
                request.xp_amount,
                reason=request.reason,
                idempotency_key=request.idempotency_key,
            )
        return XpResponse.from_result(result)
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to add XP for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to update XP")


@router.post("/streak", response_model=StreakResponse, summary="Record daily activity")
def update_streak(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> StreakResponse:
    """Apply today's streak transition (no-op if already active today)."""
    try:
        with atomic(db):
            state = StreakTracker(db).record_activity(user_id)
        return StreakResponse.from_state(state)
    except SQLAlchemyError:
        logger.exception(f"Failed to update streak for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to update streak")


@router.post("/activities", response_model=ActivityResponse, summary="Record learning activity")
def record_activity(
    request: ActivityRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> ActivityResponse:
    """
    Record a quiz, resource, study session or certificate.

    Runs XP credit, level recompute, streak update and achievement
    evaluation in one transaction.
    """
    activity = Activity(
        kind=ActivityKind(request.kind),
        passed=request.passed,
        minutes=request.minutes,
        activity_id=request.activity_id,
    )
    try:
        with atomic(db):
            outcome = ProgressionEngine(db, settings).record_activity(user_id, activity)
        return ActivityResponse(
            xp=XpResponse.from_result(outcome.xp),
            streak=StreakResponse.from_state(outcome.streak),
            unlocked_achievements=AchievementResponse.from_models(outcome.unlocked),
            completed_challenges=DailyChallengeResponse.from_models(outcome.completed_challenges),
        )
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to record {request.kind} activity for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to record activity")


@router.get("/leaderboard", response_model=list[LeaderboardEntryResponse], summary="Get leaderboard")
def get_leaderboard(
    limit: int | None = Query(None, ge=1, description="Number of entries (capped by server setting)"),
    db: Session = Depends(get_session),
) -> list[LeaderboardEntryResponse]:
    """Top learners by total XP. Public."""
    limit = min(limit or settings.leaderboard_default_limit, settings.leaderboard_max_limit)
    try:
        entries = ProgressLedger(db).leaderboard(limit)
        return [LeaderboardEntryResponse.model_validate(entry) for entry in entries]
    except SQLAlchemyError:
        logger.exception("Failed to load leaderboard")
        raise HTTPException(status_code=500, detail="Failed to load leaderboard")

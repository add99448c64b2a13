"""
Learning Paths API Router.

Endpoints for owner-scoped learning paths:
- CRUD (list, create, get, partial update, delete)
- Module completion (sequential unlock + XP)
- Lesson open / close / regenerate with cached generated content
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Response, status
from loguru import logger
from pydantic import Field, StrictInt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from learnflow.api.dependencies import get_current_user_id, get_lesson_generator, http_error
from learnflow.api.schemas import AchievementResponse, DailyChallengeResponse, StreakResponse, XpResponse
from learnflow.core.errors import LearnflowError
from learnflow.core.schemas import CamelModel
from learnflow.db.database import atomic, get_session
from learnflow.db.models import LearningPath
from learnflow.learning_paths import (
    LearningPathService,
    LessonContent,
    LessonResult,
    ModuleDraft,
    PathDraft,
    module_states,
)
from learnflow.learning_paths.schemas import LessonGenerator

router = APIRouter()

Difficulty = Literal["beginner", "intermediate", "advanced"]


# ========================================
# Request/Response Models
# ========================================


class ModuleCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    duration: str = ""
    topics: list[str] = Field(default_factory=list)
    difficulty: Difficulty = "beginner"
    learn_url: str | None = None


class LearningPathCreate(CamelModel):
    """Request model for creating a learning path."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: str = "general"
    skill_level: Difficulty = "beginner"
    modules: list[ModuleCreate] = Field(..., min_length=1)


class ActiveLessonPatch(CamelModel):
    module_index: StrictInt = Field(..., ge=0)


class ModuleContentPatch(CamelModel):
    index: StrictInt = Field(..., ge=0)
    generated_content: LessonContent


class LearningPathPatch(CamelModel):
    """
    Partial update. ``progress`` and ``status`` are derived server-side and
    accepted only for client compatibility; their values are ignored.
    """

    completed_modules: StrictInt | None = Field(None, ge=0)
    active_lesson: ActiveLessonPatch | None = None
    modules: list[ModuleContentPatch] | None = None
    progress: float | None = None
    status: str | None = None


class ModuleResponse(CamelModel):
    index: int
    title: str
    description: str
    duration: str
    topics: list[str]
    difficulty: str
    learn_url: str | None
    state: str
    generated_content: LessonContent | None


class ActiveLessonResponse(CamelModel):
    module_index: int
    start_time: str
    state: str


class LearningPathResponse(CamelModel):
    id: str
    title: str
    description: str
    category: str
    skill_level: str
    completed_modules: int
    total_modules: int
    progress: float
    status: str
    active_lesson: ActiveLessonResponse | None
    modules: list[ModuleResponse]
    created_at: datetime | None
    updated_at: datetime | None


class ModuleCompletionResponse(CamelModel):
    path: LearningPathResponse
    module_index: int
    xp: XpResponse
    streak: StreakResponse
    unlocked_achievements: list[AchievementResponse]
    completed_challenges: list[DailyChallengeResponse]


class LessonResponse(CamelModel):
    path_id: str
    module_index: int
    cached: bool
    content: LessonContent
    active_lesson: ActiveLessonResponse | None


# ========================================
# Helpers
# ========================================


def _path_to_response(path: LearningPath) -> LearningPathResponse:
    states = module_states(path)
    return LearningPathResponse(
        id=path.id,
        title=path.title,
        description=path.description,
        category=path.category,
        skill_level=path.skill_level,
        completed_modules=path.completed_modules,
        total_modules=path.total_modules,
        progress=path.progress,
        status=path.status,
        active_lesson=ActiveLessonResponse.model_validate(path.active_lesson) if path.active_lesson else None,
        modules=[
            ModuleResponse(
                index=module.position,
                title=module.title,
                description=module.description,
                duration=module.duration,
                topics=list(module.topics or []),
                difficulty=module.difficulty,
                learn_url=module.learn_url,
                state=states[i].value,
                generated_content=module.generated_content,
            )
            for i, module in enumerate(path.modules)
        ],
        created_at=path.created_at,
        updated_at=path.updated_at,
    )


def _lesson_to_response(path: LearningPath, result: LessonResult) -> LessonResponse:
    return LessonResponse(
        path_id=path.id,
        module_index=result.module_index,
        cached=result.cached,
        content=result.content,
        active_lesson=ActiveLessonResponse.model_validate(path.active_lesson) if path.active_lesson else None,
    )


def _draft_from_request(request: LearningPathCreate) -> PathDraft:
    return PathDraft(
        title=request.title,
        description=request.description,
        category=request.category,
        skill_level=request.skill_level,
        modules=[ModuleDraft(**module.model_dump()) for module in request.modules],
    )


# ========================================
# CRUD
# ========================================


@router.get("", response_model=list[LearningPathResponse], summary="List learning paths")
def list_paths(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> list[LearningPathResponse]:
    try:
        return [_path_to_response(path) for path in LearningPathService(db).list_paths(user_id)]
    except SQLAlchemyError:
        logger.exception(f"Failed to list learning paths for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to load learning paths")


@router.post(
    "",
    response_model=LearningPathResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create learning path",
)
def create_path(
    request: LearningPathCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> LearningPathResponse:
    """Create a path with the first module unlocked and nothing completed."""
    try:
        with atomic(db):
            path = LearningPathService(db).create_path(user_id, _draft_from_request(request))
        return _path_to_response(path)
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to create learning path for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to create learning path")


@router.get("/{path_id}", response_model=LearningPathResponse, summary="Get learning path")
def get_path(
    path_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> LearningPathResponse:
    try:
        return _path_to_response(LearningPathService(db).get_path(user_id, path_id))
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to load learning path {path_id}")
        raise HTTPException(status_code=500, detail="Failed to load learning path")


@router.patch("/{path_id}", response_model=LearningPathResponse, summary="Update learning path")
def update_path(
    path_id: str,
    request: LearningPathPatch,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> LearningPathResponse:
    """
    Partial update.

    - ``completedModules``: the current value (no-op) or current + 1 (completes
      the current module, granting XP)
    - ``activeLesson``: ``null`` closes the lesson; ``{moduleIndex}`` points it at
      an unlocked module
    - ``modules``: ``[{index, generatedContent}]`` writes lesson cache slots
    """
    fields = request.model_fields_set
    lesson_contents: dict[int, dict[str, Any]] | None = None
    if request.modules:
        lesson_contents = {
            item.index: item.generated_content.model_dump(by_alias=True) for item in request.modules
        }

    try:
        with atomic(db):
            path = LearningPathService(db).update_path(
                user_id,
                path_id,
                completed_modules=request.completed_modules,
                active_lesson_index=request.active_lesson.module_index if request.active_lesson else None,
                close_active_lesson="active_lesson" in fields and request.active_lesson is None,
                lesson_contents=lesson_contents,
            )
        return _path_to_response(path)
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to update learning path {path_id}")
        raise HTTPException(status_code=500, detail="Failed to update learning path")


@router.delete("/{path_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete learning path")
def delete_path(
    path_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> Response:
    try:
        with atomic(db):
            LearningPathService(db).delete_path(user_id, path_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to delete learning path {path_id}")
        raise HTTPException(status_code=500, detail="Failed to delete learning path")


# ========================================
# Progression & lessons
# ========================================


@router.post(
    "/{path_id}/modules/{module_index}/complete",
    response_model=ModuleCompletionResponse,
    summary="Complete module",
)
def complete_module(
    path_id: str,
    module_index: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> ModuleCompletionResponse:
    """Complete the current module; out-of-order or repeated completions return 409."""
    try:
        with atomic(db):
            result = LearningPathService(db).complete_module(user_id, path_id, module_index)
        return ModuleCompletionResponse(
            path=_path_to_response(result.path),
            module_index=result.module_index,
            xp=XpResponse.from_result(result.outcome.xp),
            streak=StreakResponse.from_state(result.outcome.streak),
            unlocked_achievements=AchievementResponse.from_models(result.outcome.unlocked),
            completed_challenges=DailyChallengeResponse.from_models(result.outcome.completed_challenges),
        )
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to complete module {module_index} on path {path_id}")
        raise HTTPException(status_code=500, detail="Failed to complete module")


@router.post(
    "/{path_id}/modules/{module_index}/open",
    response_model=LessonResponse,
    summary="Open lesson",
)
async def open_lesson(
    path_id: str,
    module_index: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
    generator: LessonGenerator = Depends(get_lesson_generator),
) -> LessonResponse:
    """Open an unlocked module. Lesson content is generated once and cached."""
    try:
        path, result = await LearningPathService(db).open_lesson(user_id, path_id, module_index, generator)
        return _lesson_to_response(path, result)
    except LearnflowError as exc:
        await asyncio.to_thread(db.rollback)
        raise http_error(exc) from exc
    except SQLAlchemyError:
        await asyncio.to_thread(db.rollback)
        logger.exception(f"Failed to open lesson {module_index} on path {path_id}")
        raise HTTPException(status_code=500, detail="Failed to open lesson")


@router.post(
    "/{path_id}/modules/{module_index}/regenerate",
    response_model=LessonResponse,
    summary="Regenerate lesson",
)
async def regenerate_lesson(
    path_id: str,
    module_index: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
    generator: LessonGenerator = Depends(get_lesson_generator),
) -> LessonResponse:
    """Replace a module's cached lesson with freshly generated content."""
    try:
        path, result = await LearningPathService(db).regenerate_lesson(user_id, path_id, module_index, generator)
        return _lesson_to_response(path, result)
    except LearnflowError as exc:
        await asyncio.to_thread(db.rollback)
        raise http_error(exc) from exc
    except SQLAlchemyError:
        await asyncio.to_thread(db.rollback)
        logger.exception(f"Failed to regenerate lesson {module_index} on path {path_id}")
        raise HTTPException(status_code=500, detail="Failed to regenerate lesson")


@router.delete(
    "/{path_id}/active-lesson",
    response_model=LearningPathResponse,
    summary="Close lesson",
)
def close_lesson(
    path_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_session),
) -> LearningPathResponse:
    try:
        with atomic(db):
            path = LearningPathService(db).close_lesson(user_id, path_id)
        return _path_to_response(path)
    except LearnflowError as exc:
        raise http_error(exc) from exc
    except SQLAlchemyError:
        logger.exception(f"Failed to close lesson on path {path_id}")
        raise HTTPException(status_code=500, detail="Failed to close lesson")

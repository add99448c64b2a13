"""
Learning-Path Progression State Machine.

Per path, modules move strictly in order:

    locked -> current -> completed

Module ``i`` is unlocked iff ``i <= completed_modules`` and completed iff
``i < completed_modules``. The frontier only ever advances by one, through
``complete_module``, using a guarded UPDATE
(``WHERE completed_modules = :module_index``) so a replayed or concurrent
completion of the same module is rejected instead of skipping a module.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from learnflow.core.errors import (
    ConflictError,
    InvalidRequestError,
    ModuleLockedError,
    NotFoundError,
    SequenceConflictError,
)
from learnflow.db.models import LearningPath, LearningPathModule
from learnflow.db.models.base import utcnow
from learnflow.learning_paths.lesson_cache import LessonContentCache, LessonResult, get_module
from learnflow.learning_paths.schemas import LessonContent, LessonGenerator
from learnflow.progression.engine import Activity, ActivityKind, ActivityOutcome, ProgressionEngine


class ModuleState(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    LOCKED = "locked"


@dataclass
class ModuleDraft:
    title: str
    description: str = ""
    duration: str = ""
    topics: list[str] = field(default_factory=list)
    difficulty: str = "beginner"
    learn_url: str | None = None


@dataclass
class PathDraft:
    title: str
    modules: list[ModuleDraft]
    description: str = ""
    category: str = "general"
    skill_level: str = "beginner"


@dataclass
class CompletionResult:
    path: LearningPath
    module_index: int
    outcome: ActivityOutcome

    @property
    def path_completed(self) -> bool:
        return self.path.status == "completed"


def module_states(path: LearningPath) -> list[ModuleState]:
    """Per-module state derived from the completion frontier."""
    states = []
    for index in range(len(path.modules)):
        if index < path.completed_modules:
            states.append(ModuleState.COMPLETED)
        elif index == path.completed_modules:
            states.append(ModuleState.CURRENT)
        else:
            states.append(ModuleState.LOCKED)
    return states


class LearningPathService:
    """Owner-scoped learning path operations."""

    def __init__(
        self,
        session: Session,
        engine: ProgressionEngine | None = None,
        cache: LessonContentCache | None = None,
    ):
        self.session = session
        self.engine = engine or ProgressionEngine(session)
        self.cache = cache or LessonContentCache(session)

    # ========================================
    # CRUD
    # ========================================

    def list_paths(self, user_id: str) -> list[LearningPath]:
        return list(
            self.session.scalars(
                select(LearningPath)
                .where(LearningPath.user_id == user_id)
                .order_by(LearningPath.updated_at.desc(), LearningPath.id)
            )
        )

    def get_path(self, user_id: str, path_id: str) -> LearningPath:
        """
        Load a path owned by ``user_id``.

        Raises:
            NotFoundError: If the path does not exist or belongs to someone else
        """
        path = self.session.scalar(
            select(LearningPath)
            .where(LearningPath.id == path_id, LearningPath.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if path is None:
            raise NotFoundError(f"Learning path {path_id} not found")
        return path

    def create_path(self, user_id: str, draft: PathDraft) -> LearningPath:
        """Create a path with every module locked except the first."""
        if not draft.title.strip():
            raise InvalidRequestError("Learning path title is required")
        if not draft.modules:
            raise InvalidRequestError("A learning path needs at least one module")

        path = LearningPath(
            user_id=user_id,
            title=draft.title.strip(),
            description=draft.description,
            category=draft.category,
            skill_level=draft.skill_level,
            completed_modules=0,
            active_lesson=None,
            modules=[
                LearningPathModule(
                    position=position,
                    title=module.title,
                    description=module.description,
                    duration=module.duration,
                    topics=list(module.topics),
                    difficulty=module.difficulty,
                    learn_url=module.learn_url,
                )
                for position, module in enumerate(draft.modules)
            ],
        )
        self.session.add(path)
        self.session.flush()
        logger.info(f"Created learning path {path.id} '{path.title}' with {len(path.modules)} modules for {user_id}")
        return path

    def delete_path(self, user_id: str, path_id: str) -> None:
        """Owner-checked delete. Deleting an already deleted path raises NotFoundError."""
        path = self.get_path(user_id, path_id)
        self.session.delete(path)
        self.session.flush()
        logger.info(f"Deleted learning path {path_id} for {user_id}")

    # ========================================
    # Progression
    # ========================================

    def complete_module(
        self,
        user_id: str,
        path_id: str,
        module_index: int,
        today: date | None = None,
    ) -> CompletionResult:
        """
        Mark the current module complete and unlock the next one.

        Args:
            user_id: Path owner
            path_id: Path to advance
            module_index: Must equal the path's ``completed_modules``
            today: Calendar date override for the streak update

        Returns:
            CompletionResult with the updated path and the XP/streak/achievement outcome

        Raises:
            NotFoundError: Path missing or not owned
            InvalidRequestError: Index outside the path
            SequenceConflictError: Index is not the current module
        """
        path = self.get_path(user_id, path_id)
        get_module(path, module_index)

        advanced = self.session.execute(
            update(LearningPath)
            .where(
                LearningPath.id == path_id,
                LearningPath.user_id == user_id,
                LearningPath.completed_modules == module_index,
            )
            .values(completed_modules=LearningPath.completed_modules + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        ).rowcount == 1
        self.session.refresh(path)

        if not advanced:
            logger.warning(
                f"Rejected completion of module {module_index} on path {path_id}: "
                f"frontier is {path.completed_modules}"
            )
            raise SequenceConflictError(path_id, module_index, path.completed_modules)

        if path.active_lesson and path.active_lesson.get("moduleIndex") == module_index:
            path.active_lesson = None
            self.session.flush()

        finished = path.completed_modules == path.total_modules
        outcome = self.engine.record_activity(
            user_id,
            Activity(
                kind=ActivityKind.MODULE,
                path_completed=finished,
                activity_id=f"path:{path_id}:module:{module_index}",
                reason=f"module:{path.modules[module_index].title}",
            ),
            today=today,
        )
        logger.info(
            f"User {user_id} completed module {module_index} of path {path_id} "
            f"({path.completed_modules}/{path.total_modules})"
        )
        if finished:
            logger.info(f"User {user_id} completed learning path {path_id} '{path.title}'")
        return CompletionResult(path=path, module_index=module_index, outcome=outcome)

    # ========================================
    # Active lesson
    # ========================================

    def _require_unlocked(self, path: LearningPath, module_index: int) -> LearningPathModule:
        module = get_module(path, module_index)
        if module_index > path.completed_modules:
            raise ModuleLockedError(path.id, module_index, path.completed_modules)
        return module

    def set_active_lesson(self, user_id: str, path_id: str, module_index: int) -> LearningPath:
        """Point the active lesson at an unlocked module without generating content."""
        path = self.get_path(user_id, path_id)
        module = self._require_unlocked(path, module_index)
        path.active_lesson = {
            "moduleIndex": module_index,
            "startTime": utcnow().isoformat(),
            "state": "ready" if module.generated_content is not None else "generating",
        }
        self.session.flush()
        return path

    async def open_lesson(
        self,
        user_id: str,
        path_id: str,
        module_index: int,
        generator: LessonGenerator,
    ) -> tuple[LearningPath, LessonResult]:
        """
        Open an unlocked module's lesson, generating its content on first use.

        Commits: the active-lesson pointer is visible to other requests
        before the generator is awaited. Session work runs in a worker thread
        so the event loop only waits on the generator.
        """
        path = await asyncio.to_thread(self._activate, user_id, path_id, module_index)
        result = await self.cache.get_or_generate(path, module_index, generator)
        await asyncio.to_thread(self._mark_ready, path, module_index)
        return path, result

    def _activate(self, user_id: str, path_id: str, module_index: int) -> LearningPath:
        path = self.set_active_lesson(user_id, path_id, module_index)
        self.session.commit()
        return path

    async def regenerate_lesson(
        self,
        user_id: str,
        path_id: str,
        module_index: int,
        generator: LessonGenerator,
    ) -> tuple[LearningPath, LessonResult]:
        """Explicitly replace a module's cached lesson."""
        path = await asyncio.to_thread(self._load_unlocked, user_id, path_id, module_index)
        result = await self.cache.get_or_generate(path, module_index, generator, force=True)
        logger.info(f"Regenerated lesson for module {module_index} of path {path_id}")
        return path, result

    def _load_unlocked(self, user_id: str, path_id: str, module_index: int) -> LearningPath:
        path = self.get_path(user_id, path_id)
        self._require_unlocked(path, module_index)
        return path

    def _mark_ready(self, path: LearningPath, module_index: int) -> None:
        self.session.refresh(path)
        lesson = path.active_lesson
        if lesson and lesson.get("moduleIndex") == module_index and lesson.get("state") != "ready":
            path.active_lesson = {**lesson, "state": "ready"}
        self.session.commit()

    def close_lesson(self, user_id: str, path_id: str) -> LearningPath:
        """Clear the active lesson. Progress is untouched."""
        path = self.get_path(user_id, path_id)
        path.active_lesson = None
        self.session.flush()
        return path

    # ========================================
    # Partial update
    # ========================================

    def cache_lessons(self, path: LearningPath, contents: dict[int, dict[str, Any]]) -> None:
        """Write client-supplied lesson content into module cache slots by index."""
        for module_index, raw in contents.items():
            module = get_module(path, module_index)
            content = LessonContent.model_validate(raw)
            module.generated_content = content.model_dump(mode="json", by_alias=True)
            module.generation_started_at = None
        self.session.flush()

    def update_path(
        self,
        user_id: str,
        path_id: str,
        *,
        completed_modules: int | None = None,
        active_lesson_index: int | None = None,
        close_active_lesson: bool = False,
        lesson_contents: dict[int, dict[str, Any]] | None = None,
        today: date | None = None,
    ) -> LearningPath:
        """
        Apply a partial update.

        ``completed_modules`` may only repeat the current frontier (no-op) or
        advance it by one, which runs ``complete_module``. Progress and status
        are always derived and cannot be set.

        Raises:
            NotFoundError: Path missing or not owned
            ConflictError: completed_modules would rewind
            SequenceConflictError: completed_modules would skip a module
            ModuleLockedError: active lesson pointed at a locked module
        """
        path = self.get_path(user_id, path_id)

        if lesson_contents:
            self.cache_lessons(path, lesson_contents)

        if completed_modules is not None and completed_modules != path.completed_modules:
            if completed_modules < path.completed_modules:
                raise ConflictError(
                    f"Path {path_id} cannot rewind from {path.completed_modules} to {completed_modules} completed modules"
                )
            if completed_modules != path.completed_modules + 1:
                raise SequenceConflictError(path_id, completed_modules - 1, path.completed_modules)
            path = self.complete_module(user_id, path_id, path.completed_modules, today=today).path

        if close_active_lesson:
            path = self.close_lesson(user_id, path_id)
        elif active_lesson_index is not None:
            path = self.set_active_lesson(user_id, path_id, active_lesson_index)

        return path

"""
Lesson Content Cache.

One cache slot per module. A lesson is generated at most once per module
unless explicitly regenerated; concurrent openers coordinate through a
claim timestamp on the module row:

1. cached content present -> returned, generator not called
2. claim the slot (guarded UPDATE). Losing the claim -> serve fallback
   content without persisting it
3. call the generator with a timeout; any failure -> fallback content
4. persist whatever was produced and release the claim

The claim is committed before the generator is awaited so other requests
can see it. Database steps run in a worker thread (``asyncio.to_thread``);
only the generator is awaited on the event loop. Stale claims (a crashed or cancelled generation) can be taken
over after ``lesson_generation_stale_seconds``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote_plus

from loguru import logger
from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from config import get_settings
from learnflow.core.errors import InvalidRequestError
from learnflow.db.models import LearningPath, LearningPathModule
from learnflow.db.models.base import utcnow
from learnflow.learning_paths.schemas import (
    LessonContent,
    LessonGenerator,
    LessonResource,
    ModuleDescriptor,
    PathContext,
)

FALLBACK_KEY_POINTS = 5


@dataclass
class LessonResult:
    module_index: int
    content: LessonContent
    cached: bool


def fallback_lesson(module: ModuleDescriptor) -> LessonContent:
    """
    Deterministic lesson built only from the module's own fields.

    Used whenever generation fails, times out, or is already in flight
    elsewhere.
    """
    query = quote_plus(f"{module.title} tutorial")
    return LessonContent(
        overview=(
            f"Learn the fundamentals of {module.title}. "
            "This lesson covers essential concepts and practical applications."
        ),
        key_points=[f"Understand {topic}" for topic in module.topics[:FALLBACK_KEY_POINTS]],
        resources=[
            LessonResource(
                title=f"{module.title} - Google Search",
                type="article",
                url=f"https://www.google.com/search?q={query}",
                description="Find tutorials and guides",
                duration="Varies",
            )
        ],
        practice_task=(
            f"Practice the concepts from {module.title} by building a small project "
            "or completing exercises."
        ),
        source="fallback",
    )


def get_module(path: LearningPath, module_index: int) -> LearningPathModule:
    """Return the module at ``module_index`` or raise InvalidRequestError."""
    if isinstance(module_index, bool) or not 0 <= module_index < len(path.modules):
        raise InvalidRequestError(
            f"Module index {module_index} is out of range for path {path.id} "
            f"({len(path.modules)} modules)"
        )
    return path.modules[module_index]


class LessonContentCache:
    """Get-or-generate access to the per-module lesson slot."""

    def __init__(
        self,
        session: Session,
        timeout_seconds: float | None = None,
        stale_after_seconds: float | None = None,
    ):
        settings = get_settings()
        self.session = session
        self.timeout_seconds = timeout_seconds or settings.lesson_generation_timeout_seconds
        self.stale_after_seconds = stale_after_seconds or settings.lesson_generation_stale_seconds

    @staticmethod
    def cached_content(module: LearningPathModule) -> LessonContent | None:
        if module.generated_content is None:
            return None
        return LessonContent.model_validate(module.generated_content)

    async def get_or_generate(
        self,
        path: LearningPath,
        module_index: int,
        generator: LessonGenerator,
        force: bool = False,
    ) -> LessonResult:
        """
        Return the module's lesson, generating and caching it on a miss.

        Args:
            path: Owning path (modules loaded)
            module_index: Position of the module in the path
            generator: async (ModuleDescriptor, PathContext) -> LessonContent
            force: Regenerate even if content is cached

        Returns:
            LessonResult; ``cached`` is True only when no generation was attempted
        """
        module = get_module(path, module_index)
        descriptor = ModuleDescriptor.from_model(module)

        cached = self.cached_content(module)
        if cached is not None and not force:
            return LessonResult(module_index=module_index, content=cached, cached=True)

        if not await asyncio.to_thread(self._claim, module, force):
            await asyncio.to_thread(self.session.refresh, module)
            cached = self.cached_content(module)
            if cached is not None and not force:
                return LessonResult(module_index=module_index, content=cached, cached=True)
            logger.info(f"Lesson for module {module_index} of path {path.id} is already being generated")
            return LessonResult(module_index=module_index, content=fallback_lesson(descriptor), cached=False)

        content = await self._generate(generator, descriptor, PathContext.from_model(path))
        await asyncio.to_thread(self._store, module, content)
        return LessonResult(module_index=module_index, content=content, cached=False)

    def _claim(self, module: LearningPathModule, force: bool) -> bool:
        stale_before = utcnow() - timedelta(seconds=self.stale_after_seconds)
        stmt = (
            update(LearningPathModule)
            .where(
                LearningPathModule.id == module.id,
                or_(
                    LearningPathModule.generation_started_at.is_(None),
                    LearningPathModule.generation_started_at < stale_before,
                ),
            )
            .values(generation_started_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if not force:
            stmt = stmt.where(LearningPathModule.generated_content.is_(None))

        claimed = self.session.execute(stmt).rowcount == 1
        self.session.commit()
        return claimed

    async def _generate(
        self,
        generator: LessonGenerator,
        module: ModuleDescriptor,
        context: PathContext,
    ) -> LessonContent:
        try:
            result = await asyncio.wait_for(generator(module, context), timeout=self.timeout_seconds)
            if not isinstance(result, LessonContent):
                result = LessonContent.model_validate(result)
        except asyncio.TimeoutError:
            logger.warning(
                f"Lesson generation for '{module.title}' timed out after {self.timeout_seconds}s; using fallback"
            )
            return fallback_lesson(module)
        except Exception as e:
            logger.warning(f"Lesson generation for '{module.title}' failed: {e}; using fallback")
            return fallback_lesson(module)
        return result.model_copy(update={"source": "generated"})

    def _store(self, module: LearningPathModule, content: LessonContent) -> None:
        self.session.execute(
            update(LearningPathModule)
            .where(LearningPathModule.id == module.id)
            .values(
                generated_content=content.model_dump(mode="json", by_alias=True),
                generation_started_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.session.refresh(module)
        logger.info(f"Cached {content.source} lesson for module '{module.title}' (path {module.path_id})")

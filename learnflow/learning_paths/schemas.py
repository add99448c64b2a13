"""
Lesson content types shared by the cache, the generator and the API.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal

from pydantic import Field

from learnflow.core.schemas import CamelModel
from learnflow.db.models import LearningPath, LearningPathModule

ResourceType = Literal["article", "video", "tutorial", "documentation"]


class LessonResource(CamelModel):
    title: str
    type: ResourceType = "article"
    url: str
    description: str = ""
    duration: str = ""


class LessonContent(CamelModel):
    """Generated (or fallback) lesson body cached on a module."""

    overview: str
    key_points: list[str] = Field(default_factory=list)
    resources: list[LessonResource] = Field(default_factory=list)
    practice_task: str = ""
    source: Literal["generated", "fallback"] = "generated"


@dataclass(frozen=True)
class ModuleDescriptor:
    """What a generator knows about the module it writes a lesson for."""

    index: int
    title: str
    description: str = ""
    duration: str = ""
    difficulty: str = "beginner"
    topics: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, module: LearningPathModule) -> ModuleDescriptor:
        return cls(
            index=module.position,
            title=module.title,
            description=module.description,
            duration=module.duration,
            difficulty=module.difficulty,
            topics=tuple(module.topics or ()),
        )


@dataclass(frozen=True)
class PathContext:
    path_id: str
    title: str
    category: str = "general"
    skill_level: str = "beginner"

    @classmethod
    def from_model(cls, path: LearningPath) -> PathContext:
        return cls(
            path_id=path.id,
            title=path.title,
            category=path.category,
            skill_level=path.skill_level,
        )


# async (module, context) -> LessonContent; raises on failure
LessonGenerator = Callable[[ModuleDescriptor, PathContext], Awaitable[LessonContent]]

"""
Learning Paths - ordered module progression with cached lesson content.
"""

from learnflow.learning_paths.lesson_cache import LessonContentCache, LessonResult, fallback_lesson
from learnflow.learning_paths.schemas import LessonContent, LessonResource, ModuleDescriptor, PathContext
from learnflow.learning_paths.service import (
    CompletionResult,
    LearningPathService,
    ModuleDraft,
    ModuleState,
    PathDraft,
    module_states,
)

__all__ = [
    "LessonContentCache",
    "LessonResult",
    "fallback_lesson",
    "LessonContent",
    "LessonResource",
    "ModuleDescriptor",
    "PathContext",
    "CompletionResult",
    "LearningPathService",
    "ModuleDraft",
    "ModuleState",
    "PathDraft",
    "module_states",
]

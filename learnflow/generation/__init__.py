"""
Generation Module - AI lesson content for learning-path modules.
"""

from learnflow.generation.lesson_generator import (
    GeminiLessonGenerator,
    LessonGenerationError,
    parse_lesson_response,
)

__all__ = [
    "GeminiLessonGenerator",
    "LessonGenerationError",
    "parse_lesson_response",
]

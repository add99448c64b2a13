"""
Gemini Lesson Generator.

Produces LessonContent for a learning-path module. Failures raise
LessonGenerationError; the lesson cache turns them into fallback content.
"""

from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger
from pydantic import ValidationError

from config import get_settings
from learnflow.generation.prompts import LESSON_SYSTEM_PROMPT, build_lesson_prompt
from learnflow.learning_paths.schemas import LessonContent, ModuleDescriptor, PathContext

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class LessonGenerationError(Exception):
    """Raised when the model cannot produce a usable lesson."""
    pass


def parse_lesson_response(text: str) -> LessonContent:
    """
    Parse a model reply into LessonContent.

    Accepts bare JSON or JSON wrapped in a fenced code block.

    Raises:
        LessonGenerationError: If no valid lesson JSON is present
    """
    cleaned = _FENCE_RE.sub("", text.strip())
    match = re.search(r"\{[\s\S]*\}", cleaned)
    if not match:
        raise LessonGenerationError("No JSON object in lesson response")

    try:
        data: dict[str, Any] = json.loads(match.group(0))
        content = LessonContent.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise LessonGenerationError(f"Malformed lesson JSON: {e}") from e

    if not content.overview.strip():
        raise LessonGenerationError("Lesson response has an empty overview")
    return content.model_copy(update={"source": "generated"})


class GeminiLessonGenerator:
    """Lesson generator backed by Google Gemini."""

    def __init__(self, api_key: str | None = None, model: str | None = None):
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.ai_model
        self._client = None

    @property
    def client(self):
        """Lazy-load Gemini client."""
        if self._client is None:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(
                model_name=self.model,
                system_instruction=LESSON_SYSTEM_PROMPT,
            )
        return self._client

    async def __call__(self, module: ModuleDescriptor, context: PathContext) -> LessonContent:
        if not self.api_key:
            raise LessonGenerationError("Gemini API key is not configured")

        prompt = build_lesson_prompt(module, context)
        logger.debug(f"Generating lesson for '{module.title}' on path {context.path_id}")
        response = await self.client.generate_content_async(
            prompt,
            generation_config={
                "temperature": 0.4,
                "max_output_tokens": 2048,
                "response_mime_type": "application/json",
            },
        )

        text = getattr(response, "text", "")
        if not text:
            raise LessonGenerationError("Empty response from lesson model")
        return parse_lesson_response(text)

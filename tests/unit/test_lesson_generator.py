"""
Unit tests for the Gemini lesson generator.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from learnflow.generation import GeminiLessonGenerator, LessonGenerationError, parse_lesson_response
from learnflow.generation.prompts import build_lesson_prompt
from learnflow.learning_paths import ModuleDescriptor, PathContext

LESSON_JSON = {
    "overview": "Docker packages apps with their dependencies.",
    "keyPoints": ["Images", "Containers", "Volumes"],
    "resources": [
        {
            "title": "Docker docs",
            "type": "documentation",
            "url": "https://docs.docker.com/get-started/",
            "description": "Official guide",
            "duration": "30 min",
        }
    ],
    "practiceTask": "Containerize a hello-world Flask app.",
}


@pytest.fixture
def module():
    return ModuleDescriptor(index=2, title="Docker Basics", description="Containers 101", topics=("images", "volumes"))


@pytest.fixture
def context():
    return PathContext(path_id="p1", title="DevOps", category="devops", skill_level="beginner")


class TestParseLessonResponse:
    def test_plain_json(self):
        content = parse_lesson_response(json.dumps(LESSON_JSON))
        assert content.key_points == ["Images", "Containers", "Volumes"]
        assert content.resources[0].type == "documentation"
        assert content.source == "generated"

    def test_fenced_json(self):
        text = "```json\n" + json.dumps(LESSON_JSON) + "\n```"
        assert parse_lesson_response(text).practice_task.startswith("Containerize")

    def test_no_json(self):
        with pytest.raises(LessonGenerationError):
            parse_lesson_response("Sorry, I cannot help with that.")

    def test_invalid_resource_type(self):
        bad = dict(LESSON_JSON, resources=[dict(LESSON_JSON["resources"][0], type="podcast")])
        with pytest.raises(LessonGenerationError):
            parse_lesson_response(json.dumps(bad))


class TestPrompt:
    def test_includes_module_fields(self, module, context):
        prompt = build_lesson_prompt(module, context)
        assert "Topic: Docker Basics" in prompt
        assert "Category: devops" in prompt
        assert "Topics: images, volumes" in prompt
        assert '"practiceTask"' in prompt


class TestGeminiLessonGenerator:
    @pytest.mark.asyncio
    async def test_missing_api_key(self, module, context):
        generator = GeminiLessonGenerator(model="gemini-2.0-flash")
        generator.api_key = None
        with pytest.raises(LessonGenerationError):
            await generator(module, context)

    @pytest.mark.asyncio
    async def test_parses_model_reply(self, module, context):
        generator = GeminiLessonGenerator(api_key="test-key")
        client = MagicMock()
        client.generate_content_async = AsyncMock(return_value=SimpleNamespace(text=json.dumps(LESSON_JSON)))
        generator._client = client

        content = await generator(module, context)

        assert content.overview.startswith("Docker packages")
        prompt = client.generate_content_async.call_args.args[0]
        assert "Docker Basics" in prompt

    @pytest.mark.asyncio
    async def test_empty_reply(self, module, context):
        generator = GeminiLessonGenerator(api_key="test-key")
        client = MagicMock()
        client.generate_content_async = AsyncMock(return_value=SimpleNamespace(text=""))
        generator._client = client

        with pytest.raises(LessonGenerationError):
            await generator(module, context)

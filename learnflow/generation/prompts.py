"""
Prompt templates for lesson generation.
"""

from __future__ import annotations

from learnflow.learning_paths.schemas import ModuleDescriptor, PathContext

LESSON_SYSTEM_PROMPT = """You are an expert instructor writing concise, practical lessons
for self-directed learners. Respond with a single JSON object and nothing else."""

LESSON_PROMPT_TEMPLATE = """Create a focused lesson for the following module.

Topic: {title}
Category: {category}
Level: {level}
Description: {description}
Topics: {topics}

Return ONLY valid JSON in exactly this shape:
{{
  "overview": "2-3 sentence overview of what the learner will understand",
  "keyPoints": ["key point 1", "key point 2", "key point 3", "key point 4", "key point 5"],
  "resources": [
    {{
      "title": "resource title",
      "type": "article" | "video" | "tutorial" | "documentation",
      "url": "https://...",
      "description": "why this resource helps",
      "duration": "10 min"
    }}
  ],
  "practiceTask": "one hands-on exercise the learner can finish in under an hour"
}}

Prefer official documentation and well-known, stable URLs. Include 3-5 resources."""


def build_lesson_prompt(module: ModuleDescriptor, context: PathContext) -> str:
    """Render the lesson prompt for one module of a path."""
    return LESSON_PROMPT_TEMPLATE.format(
        title=module.title,
        category=context.category,
        level=module.difficulty or context.skill_level,
        description=module.description or context.title,
        topics=", ".join(module.topics) if module.topics else module.title,
    )

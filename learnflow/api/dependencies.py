"""
Shared FastAPI dependencies: caller identity, lesson generator, error mapping.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from learnflow.core.errors import LearnflowError
from learnflow.generation import GeminiLessonGenerator
from learnflow.learning_paths.schemas import LessonGenerator

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """
    Resolve the caller's user id.

    Tokens are issued and verified by the upstream identity gateway; the
    bearer credential this service receives is the opaque user id itself.
    """
    if credentials is None or not credentials.credentials.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials.strip()


@lru_cache(maxsize=1)
def get_lesson_generator() -> LessonGenerator:
    """Process-wide Gemini lesson generator."""
    return GeminiLessonGenerator()


def http_error(exc: LearnflowError) -> HTTPException:
    """Translate a domain error into the matching HTTP error."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)

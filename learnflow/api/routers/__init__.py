"""API routers for the LearnFlow progression service."""

from learnflow.api.routers import (
    achievements_router,
    challenges_router,
    learning_paths_router,
    preferences_router,
    progress_router,
)

__all__ = [
    "progress_router",
    "achievements_router",
    "challenges_router",
    "learning_paths_router",
    "preferences_router",
]

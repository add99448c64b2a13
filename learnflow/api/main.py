"""
FastAPI application for the LearnFlow progression engine.

Provides REST API for:
- XP, levels and daily streaks
- Activity recording and achievement unlocks
- Daily challenges
- Leaderboard
- Learning paths with sequential module unlocking and cached lessons
- User preferences
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import get_settings
from learnflow import __version__
from learnflow.core.logging import setup_logging
from learnflow.db.database import check_database_health, init_db, session_scope
from learnflow.progression import seed_catalog, seed_challenges

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    setup_logging(settings)
    logger.info("Starting LearnFlow progression service...")
    init_db()
    if settings.seed_achievements_on_startup:
        with session_scope() as session:
            seed_catalog(session)
            seed_challenges(session)
    logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info("Shutting down LearnFlow progression service...")


app = FastAPI(
    title="LearnFlow Progression Engine",
    description="""
    Server-side progression engine for the LearnFlow learning platform.

    ## Activity pipeline

    ```
    activity (module / quiz / resource / study)
        -> XP credit (atomic)
        -> level = floor(sqrt(xp / 100)) + 1
        -> daily streak
        -> daily challenges (+ reward XP)
        -> achievement scan (+ reward XP)
    ```
    """,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========================================
# Health & Status Endpoints
# ========================================


@app.get("/", tags=["Health"])
def root() -> dict[str, str]:
    """Root endpoint returning service info."""
    return {
        "service": "learnflow",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, Any]:
    """Health check with a live database round-trip."""
    db_status = check_database_health()
    return {
        "status": "healthy" if db_status == "connected" else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "components": {
            "database": db_status,
            "ai": "configured" if settings.has_ai_configured() else "not_configured",
        },
    }


# ========================================
# Import and mount routers
# ========================================

from learnflow.api.routers import (  # noqa: E402
    achievements_router,
    challenges_router,
    learning_paths_router,
    preferences_router,
    progress_router,
)

app.include_router(progress_router.router, prefix="/api", tags=["Progress"])
app.include_router(achievements_router.router, prefix="/api", tags=["Achievements"])
app.include_router(challenges_router.router, prefix="/api", tags=["Daily Challenges"])
app.include_router(learning_paths_router.router, prefix="/api/learning-paths", tags=["Learning Paths"])
app.include_router(preferences_router.router, prefix="/api/preferences", tags=["Preferences"])

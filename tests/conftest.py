"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
Tests run against an in-memory SQLite database shared through a StaticPool.
"""
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from learnflow.db.models import Base  # noqa: E402
from learnflow.learning_paths import LearningPathService, ModuleDraft, PathDraft  # noqa: E402
from learnflow.progression import seed_catalog, seed_challenges  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (API over SQLite)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def db_engine():
    """Fresh in-memory database with all tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Session without any achievements in the catalog."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded_session(db_session):
    """Session with the default achievement catalog."""
    seed_catalog(db_session)
    db_session.commit()
    return db_session


@pytest.fixture
def challenge_session(db_session):
    """Session with the default daily challenges (no achievements)."""
    seed_challenges(db_session)
    db_session.commit()
    return db_session


@pytest.fixture
def path_draft():
    """Five-module learning path draft."""
    return PathDraft(
        title="Python Foundations",
        description="From syntax to small projects",
        category="programming",
        skill_level="beginner",
        modules=[
            ModuleDraft(
                title=f"Module {i}",
                description=f"Module {i} description",
                duration="1 hour",
                topics=[f"topic {i}.{t}" for t in range(6)],
            )
            for i in range(5)
        ],
    )


@pytest.fixture
def make_path(db_session, path_draft):
    """Factory: create and commit a path for a user."""

    def _make(user_id: str = "learner-1", draft: PathDraft | None = None):
        path = LearningPathService(db_session).create_path(user_id, draft or path_draft)
        db_session.commit()
        return path

    return _make

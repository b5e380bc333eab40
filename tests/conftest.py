"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reelforge.database.models import Base
from reelforge.database.repositories.video_job import JobStore
from reelforge.core.content.video_pipeline.models import OnScreenText, Scene, VideoScript


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database for testing.

    Uses StaticPool and check_same_thread=False to allow
    the connection to be shared across threads (needed for TestClient).
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def db_session_factory(db_engine):
    """Create a session factory for API endpoint tests.

    This fixture returns a factory function that creates new sessions,
    which is needed for the FastAPI dependency override pattern.
    """
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    return SessionLocal


@pytest.fixture
def job_store(db_session_factory):
    """JobStore over the in-memory database."""
    return JobStore(db_session_factory, max_retries=3)


@pytest.fixture
def sample_script():
    """A three-scene script with narration and two image prompts."""
    return VideoScript(
        scenes=[
            Scene(
                id="hook",
                duration=3,
                voiceover="Tired of muddy mixes?",
                on_screen_text=OnScreenText(headline="Mix like a pro"),
                image_prompt="studio mixing desk at night",
            ),
            Scene(
                id="solution",
                duration=4,
                voiceover="Our mixing course fixes that in one weekend.",
                on_screen_text=OnScreenText(
                    headline="The Mixing Course",
                    bullet_points=["EQ basics", "Compression", "Reference tracks", "Bonus"],
                ),
                image_prompt="producer smiling at monitors",
            ),
            Scene(
                id="cta",
                duration=3,
                voiceover="Enroll today.",
                on_screen_text=OnScreenText(headline="Enroll today"),
            ),
        ],
        total_duration=10,
    )

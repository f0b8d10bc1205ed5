"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.progression import (  # noqa: E402
    InMemoryStateStore,
    LearnerProfile,
    LearningRoadmap,
    Lesson,
    ProgressEngine,
    SectionKind,
    Topic,
    TopicCategory,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (engine + storage)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class ManualClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def t0():
    """Fixed starting instant."""
    return datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def clock(t0):
    return ManualClock(t0)


@pytest.fixture
def sample_profile():
    return LearnerProfile(target_language="German", goal="Order food in Berlin")


@pytest.fixture
def sample_roadmap():
    """Three lessons; L1 offers grammar and vocabulary only."""
    return LearningRoadmap(
        introduction="Welcome to German",
        lessons=(
            Lesson(
                id="L1",
                level="A1",
                title="Greetings",
                topics=(
                    Topic("Personal pronouns", TopicCategory.GRAMMAR),
                    Topic("Hello and goodbye", TopicCategory.VOCABULARY),
                ),
                sections=(SectionKind.VOCABULARY, SectionKind.GRAMMAR),
            ),
            Lesson(
                id="L2",
                level="A1",
                title="At the bakery",
                topics=(Topic("Numbers", TopicCategory.VOCABULARY),),
                sections=(SectionKind.NEW_WORDS, SectionKind.READING),
            ),
            Lesson(id="L3", level="A2", title="Travel", sections=(SectionKind.SPEAKING,)),
        ),
        conclusion="Viel Erfolg!",
    )


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def engine(store, clock):
    """Engine over an in-memory store with a manual clock."""
    return ProgressEngine(store, clock=clock)


@pytest.fixture
def onboarded_engine(engine, sample_profile, sample_roadmap):
    """Engine whose learner "anna" already has a profile and roadmap."""
    engine.set_profile("anna", sample_profile)
    engine.set_roadmap("anna", sample_roadmap)
    return engine

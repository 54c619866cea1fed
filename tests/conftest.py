"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from cadence.config import Settings  # noqa: E402
from cadence.core.models import CardState, ScheduleState  # noqa: E402

FIXED_NOW = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full pipeline, no I/O)")
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


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed review/request time."""
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def settings():
    """Settings with defaults only (no .env, no environment overrides)."""
    return Settings(_env_file=None)


@pytest.fixture
def make_state(now):
    """
    Factory for schedule states.

    ``due_in`` is days from ``now`` (negative = overdue); ``interval`` is
    the days between last review and due date.
    """
    def _make(
        item_id: str = "item-1",
        state: CardState = CardState.REVIEW,
        stability: float = 10.0,
        difficulty: float = 5.0,
        due_in: float = 0.0,
        interval: float | None = 5.0,
        reps: int = 5,
        lapses: int = 0,
        **extra,
    ) -> ScheduleState:
        due_at = now + timedelta(days=due_in)
        last_reviewed_at = due_at - timedelta(days=interval) if interval is not None else None
        if state is CardState.NEW:
            last_reviewed_at = None
            reps = 0
        return ScheduleState(
            item_id=item_id,
            stability=stability,
            difficulty=difficulty,
            state=state,
            due_at=due_at,
            reps=reps,
            lapses=lapses,
            last_reviewed_at=last_reviewed_at,
            **extra,
        )

    return _make

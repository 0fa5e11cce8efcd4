"""
Shared fixtures: in-memory dual store, session persistence and a state
manager bound to it.
"""

from datetime import UTC, datetime

import pytest

from admission_portal.modules.applications.state import ApplicationStateManager
from admission_portal.modules.persistence.session import ApplicationPersistence
from admission_portal.modules.persistence.stores import DualStore, MemoryStore

SESSION_ID = "session_1760000000000_abc123xyz"


class FrozenClock:
    """Settable clock for expiry tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def primary_store():
    return MemoryStore(max_value_bytes=4096)


@pytest.fixture
def secondary_store():
    return MemoryStore()


@pytest.fixture
def dual_store(primary_store, secondary_store):
    return DualStore(primary_store, secondary_store, primary_ttl_seconds=30 * 24 * 60 * 60)


@pytest.fixture
def persistence(dual_store, clock):
    return ApplicationPersistence(dual_store, SESSION_ID, form_progress_max_age_days=7, clock=clock)


@pytest.fixture
async def manager(persistence):
    """Initialized state manager on an empty session."""
    state_manager = ApplicationStateManager(persistence)
    await state_manager.initialize()
    return state_manager


@pytest.fixture
async def app():
    """The FastAPI app with overrides and rate limit counters reset after each test."""
    from admission_portal.core import rate_limit
    from admission_portal.main import app as fastapi_app

    rate_limit._memory_store.clear()
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    rate_limit._memory_store.clear()

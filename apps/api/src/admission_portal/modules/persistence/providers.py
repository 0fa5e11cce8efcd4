"""
Store wiring

Builds the dual store from the running infrastructure: Redis as the
primary store when connected (an in-process MemoryStore otherwise) and the
`stored_values` table as the secondary store.
"""

import re

from redis.asyncio import Redis

from admission_portal.core.config import settings
from admission_portal.core.database import async_session_maker

from .session import ApplicationPersistence, generate_session_id
from .stores import DatabaseStore, DualStore, MemoryStore, RedisStore, Store

SESSION_ID_PATTERN = re.compile(r"^session_\d{10,16}_[0-9a-z]{1,16}$")

# Primary store used while Redis is unavailable
fallback_primary_store = MemoryStore(max_value_bytes=settings.primary_value_max_bytes)


def build_primary_store(redis: Redis | None) -> Store:
    if redis is None:
        return fallback_primary_store
    return RedisStore(redis, max_value_bytes=settings.primary_value_max_bytes)


def build_dual_store(redis: Redis | None) -> DualStore:
    return DualStore(
        primary=build_primary_store(redis),
        secondary=DatabaseStore(async_session_maker),
        primary_ttl_seconds=settings.session_cookie_max_age_seconds,
    )


def is_valid_session_id(session_id: str | None) -> bool:
    return bool(session_id) and SESSION_ID_PATTERN.match(session_id) is not None


def build_persistence(redis: Redis | None, session_id: str | None) -> ApplicationPersistence:
    """Persistence for a session; a missing or malformed id starts a new session."""
    if not is_valid_session_id(session_id):
        session_id = generate_session_id()
    return ApplicationPersistence(
        store=build_dual_store(redis),
        session_id=session_id,
        form_progress_max_age_days=settings.form_progress_max_age_days,
    )

"""
Persistence Background Jobs

Form progress envelopes are expired lazily when they are read. This hourly
sweep removes the ones nobody comes back for, and evicts expired entries
from the in-memory primary store used while Redis is down.

The job is idempotent and keeps going when a single key fails.
"""

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from admission_portal.core import redis as redis_module
from admission_portal.core.config import settings
from admission_portal.core.scheduler import register_job

from .providers import build_dual_store
from .session import PROGRESS_MARKER
from .stores import DualStore, MemoryStore

logger = logging.getLogger(__name__)

JOB_ID_SWEEP_PROGRESS = "persistence_sweep_expired_progress"


def _is_expired(raw: str, now: datetime, max_age: timedelta) -> bool:
    envelope = json.loads(raw)
    saved_at = datetime.fromisoformat(envelope["timestamp"])
    if saved_at.tzinfo is None:
        saved_at = saved_at.replace(tzinfo=UTC)
    return now - saved_at > max_age


async def sweep_expired_form_progress(
    store: DualStore | None = None,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> dict[str, Any]:
    """
    Delete form progress envelopes older than the configured max age.

    Returns:
        Counts of scanned and removed progress keys, and of expired
        in-memory entries evicted
    """
    if store is None:
        store = build_dual_store(redis_module.redis_client)

    now = clock()
    max_age = timedelta(days=settings.form_progress_max_age_days)

    # Without Redis TTLs, expired in-memory entries stay until read
    evicted = store.primary.evict_expired() if isinstance(store.primary, MemoryStore) else 0

    keys = [key for key in await store.primary_keys("session_") if PROGRESS_MARKER in key]
    expired = []

    for key in keys:
        try:
            raw = await store.primary.get(key)
        except Exception as e:
            logger.warning(f"Failed to read form progress {key}: {e}")
            continue
        if raw is None:
            continue
        try:
            if _is_expired(raw, now, max_age):
                expired.append(key)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Removing unreadable form progress {key}: {e}")
            expired.append(key)

    await store.remove(expired, [])

    logger.info(
        f"Form progress sweep: scanned={len(keys)}, removed={len(expired)}, evicted={evicted}"
    )
    return {"scanned": len(keys), "removed": len(expired), "evicted": evicted}


def register_persistence_jobs() -> None:
    """Register persistence jobs with the scheduler."""
    register_job(
        job_id=JOB_ID_SWEEP_PROGRESS,
        func=sweep_expired_form_progress,
        trigger=IntervalTrigger(hours=1),
    )

"""
Auto-Save Background Jobs

The registry keeps a saver per (session, step) while drafts are being
typed. Savers with no pending save hold nothing worth keeping, so this job
forgets them periodically; the next draft update simply creates a new one.
"""

import logging
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from admission_portal.core.scheduler import register_job

from .registry import AutoSaveRegistry, autosave_registry

logger = logging.getLogger(__name__)

JOB_ID_PRUNE_AUTOSAVERS = "autosave_prune_idle_savers"


async def prune_idle_autosavers(registry: AutoSaveRegistry | None = None) -> dict[str, Any]:
    """
    Forget auto-savers that have no pending save.

    Returns:
        Counts of removed and remaining savers
    """
    if registry is None:
        registry = autosave_registry

    removed = registry.prune_idle()

    logger.info(f"Auto-saver prune: removed={removed}, remaining={len(registry)}")
    return {"removed": removed, "remaining": len(registry)}


def register_autosave_jobs() -> None:
    """Register auto-save jobs with the scheduler."""
    register_job(
        job_id=JOB_ID_PRUNE_AUTOSAVERS,
        func=prune_idle_autosavers,
        trigger=IntervalTrigger(minutes=10),
    )

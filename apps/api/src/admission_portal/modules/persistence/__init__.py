"""
Persistence Module

Dual persistence for the admission wizard: a primary, expiring store
(Redis, cookie-like) and a durable secondary store (the `stored_values`
table). Writes go to both, reads fall back from primary to secondary.

Background Jobs (via APScheduler):
- sweep_expired_form_progress: Runs hourly, deletes form drafts older than 7 days
"""

from .jobs import register_persistence_jobs
from .session import ApplicationPersistence

__all__ = ["ApplicationPersistence", "register_persistence_jobs"]

"""
Auto-Save Module

Debounced saving of in-progress wizard forms (drafts) to the primary
store. A save happens at most once per debounce window per step, never
when the data is unchanged and never while auto-save is disabled.

Background Jobs (via APScheduler):
- prune_idle_autosavers: Runs every 10 minutes, forgets savers with no pending save
"""

from .jobs import register_autosave_jobs
from .registry import AutoSaveRegistry, autosave_registry, get_autosave_registry
from .saver import FormAutoSaver

__all__ = [
    "AutoSaveRegistry",
    "FormAutoSaver",
    "autosave_registry",
    "get_autosave_registry",
    "register_autosave_jobs",
]

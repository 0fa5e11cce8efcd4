"""
Auto-Saver Registry

Keeps one FormAutoSaver per (session, step) so draft updates sent over
HTTP share a debounce timer across requests.
"""

import logging

from admission_portal.core.config import settings
from admission_portal.modules.persistence.session import ApplicationPersistence

from .saver import FormAutoSaver

logger = logging.getLogger(__name__)


class AutoSaveRegistry:
    def __init__(self, debounce_seconds: float = 1.0):
        self.debounce_seconds = debounce_seconds
        self._savers: dict[tuple[str, str], FormAutoSaver] = {}

    def __len__(self) -> int:
        return len(self._savers)

    def get(self, session_id: str, step_name: str) -> FormAutoSaver | None:
        return self._savers.get((session_id, step_name))

    def get_or_create(self, persistence: ApplicationPersistence, step_name: str) -> FormAutoSaver:
        key = (persistence.session_id, step_name)
        saver = self._savers.get(key)
        if saver is None:
            saver = FormAutoSaver(
                persistence,
                step_name,
                debounce_seconds=self.debounce_seconds,
            )
            self._savers[key] = saver
        return saver

    async def discard_session(self, session_id: str) -> None:
        """Drop a session's savers without saving (used on reset)."""
        for key in [key for key in self._savers if key[0] == session_id]:
            await self._savers.pop(key).aclose(flush=False)

    def prune_idle(self) -> int:
        """Forget savers with no pending save. Returns the number removed."""
        idle = [key for key, saver in self._savers.items() if not saver.has_pending_save]
        for key in idle:
            del self._savers[key]
        return len(idle)

    async def close_all(self) -> None:
        """Flush pending saves and forget every saver (used on shutdown)."""
        savers = list(self._savers.values())
        self._savers.clear()
        for saver in savers:
            await saver.aclose(flush=True)
        if savers:
            logger.info(f"Flushed {len(savers)} auto-saver(s)")


autosave_registry = AutoSaveRegistry(debounce_seconds=settings.autosave_debounce_seconds)


def get_autosave_registry() -> AutoSaveRegistry:
    """FastAPI dependency returning the process-wide registry."""
    return autosave_registry

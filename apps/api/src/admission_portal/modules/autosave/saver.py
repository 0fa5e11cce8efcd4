"""
Form Auto-Saver

Debounced saving of in-progress form data for one wizard step. Each
`update()` restarts the debounce timer; when it fires the latest data is
saved unless it is identical to the last save or saving is disabled.
"""

import asyncio
import json
import logging
from typing import Any

from admission_portal.modules.persistence.session import ApplicationPersistence

logger = logging.getLogger(__name__)


def _snapshot(form_data: dict[str, Any]) -> str:
    return json.dumps(form_data, sort_keys=True, default=str)


class FormAutoSaver:
    def __init__(
        self,
        persistence: ApplicationPersistence,
        step_name: str,
        enabled: bool = True,
        debounce_seconds: float = 1.0,
    ):
        self.persistence = persistence
        self.step_name = step_name
        self.enabled = enabled
        self.debounce_seconds = debounce_seconds
        self._pending: asyncio.Task | None = None
        self._latest: dict[str, Any] | None = None
        self._last_saved: str | None = None

    @property
    def has_pending_save(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def update(self, form_data: dict[str, Any]) -> None:
        """Record new form data and restart the debounce timer."""
        if not self.enabled or not form_data:
            return
        self._latest = form_data
        self._cancel_pending()
        self._pending = asyncio.get_running_loop().create_task(
            self._save_after_delay(form_data),
            name=f"autosave:{self.persistence.session_id}:{self.step_name}",
        )

    async def _save_after_delay(self, form_data: dict[str, Any]) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # Past the debounce window; a new update must not cancel the write
        self._pending = None
        await self._save_if_changed(form_data)

    async def _save_if_changed(self, form_data: dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        snapshot = _snapshot(form_data)
        if snapshot == self._last_saved:
            return False
        return await self._write(form_data, snapshot)

    async def _write(self, form_data: dict[str, Any], snapshot: str) -> bool:
        try:
            await self.persistence.save_form_progress(self.step_name, form_data)
        except Exception as e:
            logger.error(f"Auto-save failed for {self.step_name}: {e}")
            return False
        self._last_saved = snapshot
        logger.debug(f"Auto-saved form progress for {self.step_name}")
        return True

    async def save_now(self, form_data: dict[str, Any] | None = None) -> bool:
        """Save immediately, bypassing the debounce. Saves even if unchanged."""
        self._cancel_pending()
        if form_data is not None:
            self._latest = form_data
        if not self.enabled or self._latest is None:
            return False
        return await self._write(self._latest, _snapshot(self._latest))

    async def load_saved_progress(self) -> dict[str, Any]:
        return await self.persistence.get_form_progress(self.step_name) or {}

    async def has_saved_progress(self) -> bool:
        return bool(await self.persistence.get_form_progress(self.step_name))

    async def aclose(self, flush: bool = False) -> None:
        """Cancel any pending save; with `flush`, save the latest data first."""
        had_pending = self.has_pending_save
        self._cancel_pending()
        if flush and had_pending and self._latest is not None:
            await self._save_if_changed(self._latest)

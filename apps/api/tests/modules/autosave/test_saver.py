"""
Unit tests for the debounced form auto-saver.

These tests cover:
- Debounce: rapid updates collapse into one save of the latest data
- No save when unchanged, empty or disabled
- Immediate saves, loading, closing with and without flush
- Write failures are swallowed
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from admission_portal.modules.autosave.registry import AutoSaveRegistry
from admission_portal.modules.autosave.saver import FormAutoSaver

DEBOUNCE = 0.05


async def settle() -> None:
    await asyncio.sleep(DEBOUNCE * 3)


@pytest.fixture
def saver(persistence):
    return FormAutoSaver(persistence, "personal-info", debounce_seconds=DEBOUNCE)


class TestDebounce:
    """At most one save per debounce window."""

    @pytest.mark.asyncio
    async def test_rapid_updates_save_once_with_latest(self, saver, persistence):
        with patch.object(
            persistence, "save_form_progress", wraps=persistence.save_form_progress
        ) as spy:
            saver.update({"firstName": "A"})
            saver.update({"firstName": "As"})
            saver.update({"firstName": "Asha"})
            assert saver.has_pending_save
            await settle()

        spy.assert_awaited_once_with("personal-info", {"firstName": "Asha"})
        assert await saver.load_saved_progress() == {"firstName": "Asha"}
        assert not saver.has_pending_save

    @pytest.mark.asyncio
    async def test_nothing_saved_before_window_elapses(self, saver, persistence):
        saver.update({"firstName": "Asha"})
        await asyncio.sleep(DEBOUNCE / 5)
        assert await persistence.get_form_progress("personal-info") is None
        await settle()
        assert await persistence.get_form_progress("personal-info") == {"firstName": "Asha"}

    @pytest.mark.asyncio
    async def test_unchanged_data_is_not_saved_again(self, saver, persistence):
        saver.update({"firstName": "Asha"})
        await settle()
        with patch.object(persistence, "save_form_progress", AsyncMock()) as mock_save:
            saver.update({"firstName": "Asha"})
            await settle()
        mock_save.assert_not_called()

    @pytest.mark.asyncio
    async def test_key_order_does_not_count_as_change(self, saver, persistence):
        saver.update({"a": 1, "b": 2})
        await settle()
        with patch.object(persistence, "save_form_progress", AsyncMock()) as mock_save:
            saver.update({"b": 2, "a": 1})
            await settle()
        mock_save.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_data_schedules_nothing(self, saver):
        saver.update({})
        assert not saver.has_pending_save

    @pytest.mark.asyncio
    async def test_disabled_saver_never_saves(self, persistence):
        saver = FormAutoSaver(persistence, "personal-info", enabled=False, debounce_seconds=DEBOUNCE)
        saver.update({"firstName": "Asha"})
        await settle()
        assert await persistence.get_form_progress("personal-info") is None
        assert not await saver.save_now({"firstName": "Asha"})


class TestSaveNow:
    @pytest.mark.asyncio
    async def test_bypasses_debounce(self, saver, persistence):
        saver.update({"firstName": "Asha"})
        assert await saver.save_now()
        assert not saver.has_pending_save
        assert await persistence.get_form_progress("personal-info") == {"firstName": "Asha"}

    @pytest.mark.asyncio
    async def test_nothing_to_save(self, saver):
        assert not await saver.save_now()

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, saver, persistence):
        with patch.object(
            persistence, "save_form_progress", AsyncMock(side_effect=RuntimeError("boom"))
        ):
            assert not await saver.save_now({"firstName": "Asha"})


class TestLoading:
    @pytest.mark.asyncio
    async def test_load_without_progress(self, saver):
        assert await saver.load_saved_progress() == {}
        assert not await saver.has_saved_progress()

    @pytest.mark.asyncio
    async def test_has_saved_progress(self, saver):
        await saver.save_now({"firstName": "Asha"})
        assert await saver.has_saved_progress()


class TestClose:
    @pytest.mark.asyncio
    async def test_close_cancels_pending(self, saver, persistence):
        saver.update({"firstName": "Asha"})
        await saver.aclose()
        await settle()
        assert await persistence.get_form_progress("personal-info") is None

    @pytest.mark.asyncio
    async def test_close_with_flush_saves_latest(self, saver, persistence):
        saver.update({"firstName": "Asha"})
        await saver.aclose(flush=True)
        assert await persistence.get_form_progress("personal-info") == {"firstName": "Asha"}


class TestAutoSaveRegistry:
    """Tests for the per-session saver registry."""

    @pytest.mark.asyncio
    async def test_one_saver_per_session_and_step(self, persistence):
        registry = AutoSaveRegistry(debounce_seconds=DEBOUNCE)
        first = registry.get_or_create(persistence, "personal-info")
        assert registry.get_or_create(persistence, "personal-info") is first
        assert registry.get_or_create(persistence, "academic-details") is not first
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_discard_session_drops_pending(self, persistence):
        registry = AutoSaveRegistry(debounce_seconds=DEBOUNCE)
        registry.get_or_create(persistence, "personal-info").update({"a": 1})
        await registry.discard_session(persistence.session_id)
        await settle()
        assert len(registry) == 0
        assert await persistence.get_form_progress("personal-info") is None

    @pytest.mark.asyncio
    async def test_close_all_flushes(self, persistence):
        registry = AutoSaveRegistry(debounce_seconds=10)
        registry.get_or_create(persistence, "personal-info").update({"a": 1})
        await registry.close_all()
        assert len(registry) == 0
        assert await persistence.get_form_progress("personal-info") == {"a": 1}

    @pytest.mark.asyncio
    async def test_prune_idle(self, persistence):
        registry = AutoSaveRegistry(debounce_seconds=10)
        registry.get_or_create(persistence, "personal-info")
        registry.get_or_create(persistence, "academic-details").update({"a": 1})
        assert registry.prune_idle() == 1
        assert registry.get(persistence.session_id, "academic-details") is not None
        await registry.close_all()

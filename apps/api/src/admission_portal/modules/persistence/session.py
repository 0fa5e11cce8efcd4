"""
Application Persistence

Session-scoped persistence of the admission wizard state on top of a
DualStore. Every key is namespaced by the session id (`<session_id>:<name>`)
and keeps the literal names browsers of the portal have always used, so
data written under either naming stays readable:

    primary (cookie-like)        secondary (durable)
    admission_app_data           admission_application_data
    admission_login_data         admission_login_data
    admission_user_type          admission_user_type
    admission_current_step       admission_current_step
    admission_session_id         -
    admission_user_id            admission_user_id
    admission_form_id            admission_form_id

Form progress envelopes (`admission_app_data_progress_<step>`) live in the
primary store only and expire after `form_progress_max_age_days`.

Reads never raise: storage and parse failures are logged and reported as
"nothing saved".
"""

import json
import logging
import secrets
import string
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel

from admission_portal.modules.applications.schemas import (
    ApplicationData,
    ApplicationStep,
    LoginData,
    UserType,
)

from .stores import DualStore

logger = logging.getLogger(__name__)

APPLICATION_DATA_KEY = "admission_app_data"
LOGIN_DATA_KEY = "admission_login_data"
USER_TYPE_KEY = "admission_user_type"
CURRENT_STEP_KEY = "admission_current_step"
SESSION_ID_KEY = "admission_session_id"
USER_ID_KEY = "admission_user_id"
ADMISSION_FORM_ID_KEY = "admission_form_id"

SECONDARY_APPLICATION_DATA_KEY = "admission_application_data"

# (primary, secondary) literal names
APPLICATION_DATA = (APPLICATION_DATA_KEY, SECONDARY_APPLICATION_DATA_KEY)
LOGIN_DATA = (LOGIN_DATA_KEY, LOGIN_DATA_KEY)
USER_TYPE = (USER_TYPE_KEY, USER_TYPE_KEY)
CURRENT_STEP = (CURRENT_STEP_KEY, CURRENT_STEP_KEY)
USER_ID = (USER_ID_KEY, USER_ID_KEY)
ADMISSION_FORM_ID = (ADMISSION_FORM_ID_KEY, ADMISSION_FORM_ID_KEY)

STATE_KEYS = (APPLICATION_DATA, LOGIN_DATA, USER_TYPE, CURRENT_STEP)

PROGRESS_MARKER = "_progress_"
PROGRESS_KEY_PREFIX = f"{APPLICATION_DATA_KEY}{PROGRESS_MARKER}"

_BASE36 = string.digits + string.ascii_lowercase
SESSION_SUFFIX_LENGTH = 16


def generate_session_id(now_ms: int | None = None) -> str:
    """Build a session id of the form `session_<epoch ms>_<16 base36 chars>`."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(SESSION_SUFFIX_LENGTH))
    return f"session_{now_ms}_{suffix}"


def progress_key(step_name: str) -> str:
    return f"{PROGRESS_KEY_PREFIX}{step_name}"


def _dump(value: Any) -> str:
    if isinstance(value, BaseModel):
        return value.model_dump_json(by_alias=True)
    return json.dumps(value)


def _parse_json(raw: str) -> Any:
    return json.loads(raw)


def _parse_str(raw: str) -> str:
    value = json.loads(raw)
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


class ApplicationPersistence:
    """Typed, session-scoped access to the dual store."""

    def __init__(
        self,
        store: DualStore,
        session_id: str,
        form_progress_max_age_days: int = 7,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.store = store
        self.session_id = session_id
        self.form_progress_max_age = timedelta(days=form_progress_max_age_days)
        self._clock = clock

    def _key(self, name: str) -> str:
        return f"{self.session_id}:{name}"

    def _keys(self, pair: tuple[str, str]) -> tuple[str, str]:
        return self._key(pair[0]), self._key(pair[1])

    async def _save(self, pair: tuple[str, str], value: Any) -> None:
        try:
            serialized = _dump(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize {pair[0]} for session {self.session_id}: {e}")
            return
        primary_key, secondary_key = self._keys(pair)
        await self.store.write(primary_key, secondary_key, serialized)

    async def _get(
        self,
        pair: tuple[str, str],
        parse: Callable[[str], Any],
        primary_only: bool = False,
    ) -> Any | None:
        primary_key, secondary_key = self._keys(pair)
        return await self.store.read(
            primary_key,
            None if primary_only else secondary_key,
            parse,
        )

    # Session

    async def initialize_session(self) -> str:
        """Record the session id in the primary store if it is not there yet."""
        key = self._key(SESSION_ID_KEY)
        existing = await self.store.read(key, None, _parse_str)
        if existing is None:
            await self.store.write(key, None, _dump(self.session_id))
        return self.session_id

    # Application data

    async def save_application_data(self, data: ApplicationData) -> None:
        await self._save(APPLICATION_DATA, data)

    async def get_application_data(self, primary_only: bool = False) -> ApplicationData | None:
        return await self._get(APPLICATION_DATA, ApplicationData.model_validate_json, primary_only)

    # Login data (password is excluded by the model)

    async def save_login_data(self, data: LoginData) -> None:
        await self._save(LOGIN_DATA, data)

    async def get_login_data(self) -> LoginData | None:
        return await self._get(LOGIN_DATA, LoginData.model_validate_json)

    # User type

    async def save_user_type(self, user_type: UserType | None) -> None:
        if user_type is None:
            return
        await self._save(USER_TYPE, user_type.value)

    async def get_user_type(self) -> UserType | None:
        return await self._get(USER_TYPE, lambda raw: UserType(_parse_str(raw)))

    # Current step

    async def save_current_step(self, step: ApplicationStep) -> None:
        await self._save(CURRENT_STEP, step.value)

    async def get_current_step(self, primary_only: bool = False) -> ApplicationStep | None:
        return await self._get(
            CURRENT_STEP, lambda raw: ApplicationStep(_parse_str(raw)), primary_only
        )

    # Remote identifiers

    async def save_user_id(self, user_id: str) -> None:
        await self._save(USER_ID, user_id)

    async def get_user_id(self) -> str | None:
        return await self._get(USER_ID, _parse_str)

    async def clear_user_id(self) -> None:
        primary_key, secondary_key = self._keys(USER_ID)
        await self.store.remove([primary_key], [secondary_key])

    async def save_admission_form_id(self, admission_form_id: str) -> None:
        await self._save(ADMISSION_FORM_ID, admission_form_id)

    async def get_admission_form_id(self) -> str | None:
        return await self._get(ADMISSION_FORM_ID, _parse_str)

    # Arbitrary primary-only values (tab-scoped data such as the student portal)

    async def save_session_value(self, name: str, value: Any) -> None:
        await self.store.write(self._key(name), None, _dump(value))

    async def get_session_value(self, name: str) -> Any | None:
        return await self.store.read(self._key(name), None, _parse_json)

    async def delete_session_value(self, name: str) -> None:
        await self.store.remove([self._key(name)], [])

    # Form progress

    async def save_form_progress(self, step_name: str, data: dict[str, Any]) -> None:
        """Write a `{data, timestamp, step}` envelope to the primary store."""
        envelope = {
            "data": data,
            "timestamp": self._clock().isoformat(),
            "step": step_name,
        }
        try:
            serialized = json.dumps(envelope)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize form progress for {step_name}: {e}")
            return
        await self.store.write(self._key(progress_key(step_name)), None, serialized)

    async def get_form_progress(self, step_name: str) -> dict[str, Any] | None:
        """
        Return saved form data for a step.

        Envelopes older than the max age are deleted and reported as absent.
        An envelope exactly max age old is still returned.
        """
        key = self._key(progress_key(step_name))
        envelope = await self.store.read(key, None, _parse_json)
        if not isinstance(envelope, dict):
            return None

        try:
            saved_at = datetime.fromisoformat(envelope["timestamp"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid form progress envelope for {step_name}: {e}")
            return None
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=UTC)

        if self._clock() - saved_at > self.form_progress_max_age:
            logger.info(f"Form progress for {step_name} expired, removing")
            await self.store.remove([key], [])
            return None

        data = envelope.get("data")
        return data if isinstance(data, dict) else None

    async def clear_form_progress(self) -> None:
        keys = await self.store.primary_keys(self._key(PROGRESS_KEY_PREFIX))
        await self.store.remove(keys, [])

    # Clearing

    async def clear_all(self) -> None:
        """Delete the state keys (and the session marker) from both stores."""
        primary = [self._key(pair[0]) for pair in STATE_KEYS] + [self._key(SESSION_ID_KEY)]
        secondary = [self._key(pair[1]) for pair in STATE_KEYS]
        await self.store.remove(primary, secondary)

    async def clear_application_data(self) -> None:
        """Clear application data, current step and form progress; keep the login."""
        primary = [self._key(APPLICATION_DATA[0]), self._key(CURRENT_STEP[0])]
        secondary = [self._key(APPLICATION_DATA[1]), self._key(CURRENT_STEP[1])]
        await self.store.remove(primary, secondary)
        await self.clear_form_progress()

    # Introspection

    async def has_saved_data(self) -> bool:
        application_data = await self.get_application_data()
        login_data = await self.get_login_data()
        return application_data is not None or login_data is not None

    async def session_info(self) -> dict[str, Any]:
        session_marker = await self.store.read(self._key(SESSION_ID_KEY), None, _parse_str)
        has_data = await self.has_saved_data()
        current_step = await self.get_current_step()
        return {
            "session_id": session_marker,
            "has_data": has_data,
            "current_step": current_step,
            "is_active": bool(session_marker and has_data),
        }

"""
Key/Value Stores

Storage substrates for session state, all speaking the same small async
interface (`Store`):

- MemoryStore: in-process, with expiry and an optional per-value size cap.
  Used as the primary store when Redis is down, and in tests.
- RedisStore: the primary store. Values expire (30 days by default) and are
  capped in size, like cookies in a browser.
- DatabaseStore: the durable secondary store. No expiry.

DualStore composes a primary and a secondary store. It writes to both and
reads from the primary first, falling back to the secondary. Substrate
failures are logged and treated as missing data; they never propagate.
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol, TypeVar

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import repository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Store(Protocol):
    """Minimal async key/value interface shared by all substrates."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> bool: ...

    async def delete(self, *keys: str) -> None: ...

    async def keys(self, prefix: str) -> list[str]: ...


def _exceeds(value: str, max_value_bytes: int | None) -> bool:
    return max_value_bytes is not None and len(value.encode("utf-8")) > max_value_bytes


class MemoryStore:
    """In-process store with per-key expiry."""

    def __init__(
        self,
        max_value_bytes: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_value_bytes = max_value_bytes
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        if _exceeds(value, self.max_value_bytes):
            logger.warning(f"Value for {key} exceeds {self.max_value_bytes} bytes, not stored")
            return False
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._data[key] = (value, expires_at)
        return True

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def keys(self, prefix: str) -> list[str]:
        found = []
        for key in list(self._data):
            if key.startswith(prefix) and await self.get(key) is not None:
                found.append(key)
        return found

    def evict_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._data.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._data[key]
        return len(expired)


class RedisStore:
    """Primary store on Redis; values carry a TTL and a size cap."""

    def __init__(self, redis: Redis, max_value_bytes: int | None = None):
        self._redis = redis
        self.max_value_bytes = max_value_bytes

    async def get(self, key: str) -> str | None:
        return await self._redis.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        if _exceeds(value, self.max_value_bytes):
            logger.warning(f"Value for {key} exceeds {self.max_value_bytes} bytes, not stored")
            return False
        await self._redis.set(key, value, ex=ttl_seconds)
        return True

    async def delete(self, *keys: str) -> None:
        if keys:
            await self._redis.delete(*keys)

    async def keys(self, prefix: str) -> list[str]:
        return [key async for key in self._redis.scan_iter(match=f"{prefix}*")]


class DatabaseStore:
    """
    Durable store on the `stored_values` table.

    Opens a short-lived session per operation so it can outlive the request
    that created it (debounced auto-saves fire after the response is sent).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as db:
            return await repository.get_value(db, key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        # ttl_seconds is ignored: durable values never expire
        async with self._session_factory() as db:
            await repository.upsert_value(db, key, value)
        return True

    async def delete(self, *keys: str) -> None:
        async with self._session_factory() as db:
            await repository.delete_values(db, list(keys))

    async def keys(self, prefix: str) -> list[str]:
        async with self._session_factory() as db:
            return await repository.list_keys(db, prefix)


class DualStore:
    """Write-to-both, read-with-fallback composition of two stores."""

    def __init__(self, primary: Store, secondary: Store, primary_ttl_seconds: int | None = None):
        self.primary = primary
        self.secondary = secondary
        self.primary_ttl_seconds = primary_ttl_seconds

    async def _safe_get(self, store: Store, key: str) -> str | None:
        try:
            return await store.get(key)
        except Exception as e:
            logger.warning(f"Failed to read {key} from {type(store).__name__}: {e}")
            return None

    async def _safe_set(self, store: Store, key: str, value: str, ttl: int | None) -> bool:
        try:
            return await store.set(key, value, ttl_seconds=ttl)
        except Exception as e:
            logger.warning(f"Failed to write {key} to {type(store).__name__}: {e}")
            return False

    async def _safe_delete(self, store: Store, keys: list[str]) -> None:
        if not keys:
            return
        try:
            await store.delete(*keys)
        except Exception as e:
            logger.warning(f"Failed to delete {keys} from {type(store).__name__}: {e}")

    async def write(self, primary_key: str, secondary_key: str | None, value: str) -> None:
        """Write to the primary (with TTL) and, when a key is given, the secondary."""
        await self._safe_set(self.primary, primary_key, value, self.primary_ttl_seconds)
        if secondary_key is not None:
            await self._safe_set(self.secondary, secondary_key, value, None)

    async def read(
        self,
        primary_key: str,
        secondary_key: str | None,
        parse: Callable[[str], T],
    ) -> T | None:
        """
        Read and parse from the primary, falling back to the secondary.

        A value that is missing or fails to parse counts as absent.
        """
        candidates: list[tuple[Store, str]] = [(self.primary, primary_key)]
        if secondary_key is not None:
            candidates.append((self.secondary, secondary_key))

        for store, key in candidates:
            raw = await self._safe_get(store, key)
            if raw is None:
                continue
            try:
                return parse(raw)
            except (ValueError, TypeError) as e:
                logger.warning(f"Discarding unparseable value for {key}: {e}")
        return None

    async def remove(self, primary_keys: list[str], secondary_keys: list[str]) -> None:
        await self._safe_delete(self.primary, primary_keys)
        await self._safe_delete(self.secondary, secondary_keys)

    async def primary_keys(self, prefix: str) -> list[str]:
        try:
            return await self.primary.keys(prefix)
        except Exception as e:
            logger.warning(f"Failed to list keys for {prefix}: {e}")
            return []

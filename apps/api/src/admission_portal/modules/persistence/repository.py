"""
Persistence Repository

Database operations for the durable key/value table. Only data access,
no serialization or fallback logic.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import StoredValue


async def get_value(db: AsyncSession, key: str) -> str | None:
    """Get the stored text for a key."""
    row = await db.get(StoredValue, key)
    return row.value if row else None


async def upsert_value(db: AsyncSession, key: str, value: str) -> None:
    """Insert or replace the value for a key."""
    row = await db.get(StoredValue, key)
    if row is None:
        db.add(StoredValue(key=key, value=value))
    else:
        row.value = value
    await db.commit()


async def delete_values(db: AsyncSession, keys: list[str]) -> int:
    """Delete the given keys. Returns the number of rows removed."""
    if not keys:
        return 0
    result = await db.execute(delete(StoredValue).where(StoredValue.key.in_(keys)))
    await db.commit()
    return result.rowcount or 0


async def list_keys(db: AsyncSession, prefix: str) -> list[str]:
    """List keys that start with the given prefix."""
    result = await db.execute(
        select(StoredValue.key).where(StoredValue.key.startswith(prefix, autoescape=True))
    )
    return list(result.scalars().all())

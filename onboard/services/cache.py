"""Local key-value cache used by the progress and answer stores.

Pluggable backend with get/set/remove semantics. The SQL backend keeps
the cache in a SQLite file so progress survives restarts and works
offline; the in-memory backend is for tests.
"""

from abc import ABC, abstractmethod

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from onboard.models.base import Base, utcnow
from onboard.models.cache import CacheEntry

PROGRESS_KEY_PREFIX = "onboarding_progress"
ANSWERS_KEY_PREFIX = "unified_onboarding_answers"
SYNC_STATE_KEY_PREFIX = "onboarding_sync_state"


def progress_key(user_id: str) -> str:
    return f"{PROGRESS_KEY_PREFIX}_{user_id}"


def answers_key(user_id: str) -> str:
    return f"{ANSWERS_KEY_PREFIX}_{user_id}"


def sync_state_key(user_id: str) -> str:
    return f"{SYNC_STATE_KEY_PREFIX}_{user_id}"


class KeyValueCache(ABC):
    """Abstract key-value persistence layer."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if missing."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key. No-op if not found."""
        ...

    async def aclose(self) -> None:
        """Release backend resources. No-op by default."""


class SqlKeyValueCache(KeyValueCache):
    """Cache rows in the `cache_entries` table, one session per call."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ):
        self._session_factory = session_factory
        # only set when this cache created the engine and so owns it
        self._engine = engine

    @classmethod
    async def from_url(cls, database_url: str) -> "SqlKeyValueCache":
        """Create the engine and make sure the cache table exists."""
        engine = create_async_engine(database_url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=[CacheEntry.__table__])
        return cls(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False), engine=engine)

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(select(CacheEntry.value).where(CacheEntry.key == key))
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            entry = await session.get(CacheEntry, key)
            if entry is None:
                session.add(CacheEntry(key=key, value=value))
            else:
                entry.value = value
                entry.updated_at = utcnow()
            await session.commit()

    async def remove(self, key: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(CacheEntry).where(CacheEntry.key == key))
            await session.commit()

    async def aclose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


class InMemoryKeyValueCache(KeyValueCache):
    """In-memory cache for testing. No disk I/O."""

    def __init__(self):
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str) -> None:
        self._store[key] = value

    async def remove(self, key: str) -> None:
        self._store.pop(key, None)

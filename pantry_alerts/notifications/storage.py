"""Key-value persistence for notification settings and records.

Two backends share the ``KeyValueStore`` protocol:
- InMemoryStore: process-local, used in tests and when no database is set
- SqlAlchemyStore: one ``kv_entries`` table behind an async SQLAlchemy engine
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, runtime_checkable

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


class KeyValueEntry(Base):
    """One JSON document stored under a fixed logical key."""

    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for JSON document stores."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...


class InMemoryStore:
    """Dict-backed store. Values are JSON round-tripped like a real backend."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def keys(self) -> list[str]:
        return list(self._data.keys())


class SqlAlchemyStore:
    """Async SQLAlchemy-backed store.

    The table is created lazily on first access so the store can be
    constructed outside a running event loop.

    Example:
        store = SqlAlchemyStore("sqlite+aiosqlite:///pantry_alerts.db")
        await store.set("notification_settings", {"enabled": True})
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[AsyncEngine] = None,
    ):
        if engine is None and not database_url:
            raise ValueError("SqlAlchemyStore needs a database_url or an engine")
        self._engine = engine or create_async_engine(database_url, pool_pre_ping=True)
        self._session_factory = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        self._schema_ready = False

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._schema_ready = True
        logger.debug("kv_entries table ready")

    async def get(self, key: str) -> Optional[Any]:
        await self._ensure_schema()
        async with self._session_factory() as session:
            entry = await session.get(KeyValueEntry, key)
            if entry is None:
                return None
            return json.loads(entry.value)

    async def set(self, key: str, value: Any) -> None:
        await self._ensure_schema()
        payload = json.dumps(value)
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            async with session.begin():
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=payload, updated_at=now))
                else:
                    entry.value = payload
                    entry.updated_at = now

    async def dispose(self) -> None:
        await self._engine.dispose()

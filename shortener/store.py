"""Async adapter over the two mapping tables.

``MappingStore`` is the only component that touches ``infos`` and ``urls``.
Every mutation is a single statement or a single transaction keyed by the
short key or the long URL, so concurrent callers need no in-process locks.

Operation Overview
==================
::
    find_info(short_key)        SELECT infos WHERE short_url = :k
    find_short_key(long_key)    SELECT urls  WHERE long_url_hash = sha256(:k)
    short_key_exists(short_key) SELECT 1 ...
    insert_mapping(short, long) INSERT infos + INSERT urls (one transaction)
    set_active(short, flag)     UPDATE infos SET is_active WHERE is_active != flag
    increment_count(short)      UPDATE infos SET count = count + 1 WHERE is_active
    clear()                     DELETE FROM infos; DELETE FROM urls

Key Behaviours
===============
- ``insert_mapping`` reports a taken key (or long URL) by returning None;
  the primary keys are the final word on uniqueness.
- ``increment_count`` is a single atomic UPDATE; it returns False when the
  record is missing or inactive so callers never count a hidden mapping.
- Lookups return plain ``MappingRecord`` values, never live ORM objects.
"""

from sqlalchemy import delete, exists, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.database import create_store_engine, init_db, make_session_factory
from shortener.logging_config import get_logger
from shortener.models import LongUrlIndex, MappingInfo, long_url_digest
from shortener.schemas import MappingRecord

__all__ = ["MappingStore"]

logger = get_logger("store")


class MappingStore:
    """Find / insert / atomic-update access to the mapping tables."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._sessions = make_session_factory(engine)

    @classmethod
    async def connect(cls, store_url: str) -> "MappingStore":
        """Build an engine for ``store_url`` and make sure the tables exist."""
        engine = create_store_engine(store_url)
        try:
            await init_db(engine)
        except BaseException:
            await engine.dispose()
            raise
        return cls(engine)

    async def find_info(self, short_key: str) -> MappingRecord | None:
        async with self._sessions() as session:
            result = await session.execute(select(MappingInfo).where(MappingInfo.short_url == short_key))
            row = result.scalar_one_or_none()
        return MappingRecord.model_validate(row) if row is not None else None

    async def find_short_key(self, long_key: str) -> str | None:
        async with self._sessions() as session:
            result = await session.execute(
                select(LongUrlIndex.short_url).where(LongUrlIndex.long_url_hash == long_url_digest(long_key))
            )
            return result.scalar_one_or_none()

    async def short_key_exists(self, short_key: str) -> bool:
        async with self._sessions() as session:
            result = await session.execute(select(exists().where(MappingInfo.short_url == short_key)))
            return bool(result.scalar())

    async def insert_mapping(self, short_key: str, long_key: str) -> MappingRecord | None:
        """Persist a new active record and its index entry.

        Returns:
            The stored record, or None if either key was already taken.
        """
        info = MappingInfo(short_url=short_key, long_url=long_key, count=0, is_active=True)
        try:
            async with self._sessions() as session, session.begin():
                session.add(info)
                # the record must exist before the index points at it
                await session.flush()
                session.add(
                    LongUrlIndex(long_url_hash=long_url_digest(long_key), long_url=long_key, short_url=short_key)
                )
        except IntegrityError:
            logger.debug(f"Insert rejected for {short_key} -> {long_key}")
            return None
        return MappingRecord(long_url=long_key, short_url=short_key, count=0, is_active=True)

    async def set_active(self, short_key: str, status: bool) -> bool:
        """Flip the active flag; returns True only if the row actually changed."""
        async with self._sessions() as session, session.begin():
            result = await session.execute(
                update(MappingInfo)
                .where(MappingInfo.short_url == short_key, MappingInfo.is_active != status)
                .values(is_active=status)
            )
        return result.rowcount > 0

    async def increment_count(self, short_key: str) -> bool:
        async with self._sessions() as session, session.begin():
            result = await session.execute(
                update(MappingInfo)
                .where(MappingInfo.short_url == short_key, MappingInfo.is_active.is_(True))
                .values(count=MappingInfo.count + 1)
            )
        return result.rowcount > 0

    async def clear(self) -> None:
        async with self._sessions() as session, session.begin():
            await session.execute(delete(LongUrlIndex))
            await session.execute(delete(MappingInfo))

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        await self._engine.dispose()

"""Database engine construction for the mapping store.

This module turns a store connection string into a SQLAlchemy async engine
and session factory, and owns the declarative base shared by the models.

Flow Diagram — Store Startup
============================
::
    ┌─────────────┐
    │ store URL   │
    │ (string)    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ make_url()   │──── invalid ──▶ BAD_STORE_URL
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_async │──── no async ─▶ BAD_STORE_URL
    │ _engine()    │     driver
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()    │
    │ create_all   │
    └─────────────┘

How to Use
===========
**Step 1 — Build an engine**::
    engine = create_store_engine("postgresql+asyncpg://u:p@db:5432/shortener")

**Step 2 — Create tables**::
    await init_db(engine)

**Step 3 — Open sessions**::
    sessions = make_session_factory(engine)
    async with sessions() as session:
        ...

Key Behaviours
===============
- No module-level engine; each service owns the engine it was created with.
- Connection pooling options are only passed to dialects that pool.
- Tables are created on startup if they do not exist.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_store_engine():  Validates the URL and builds the engine.
    make_session_factory():  Session factory bound to an engine.
    init_db():  Creates all tables.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, InvalidRequestError, NoSuchModuleError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortener.errors import ErrorKind, ShortenerError

__all__ = ["Base", "create_store_engine", "make_session_factory", "init_db"]


class Base(DeclarativeBase):
    pass


def create_store_engine(store_url: str, echo: bool = False) -> AsyncEngine:
    try:
        url = make_url(store_url)
    except ArgumentError as exc:
        raise ShortenerError(ErrorKind.BAD_STORE_URL, f"bad store URL \"{store_url}\": {exc}") from exc

    options: dict = {"echo": echo}
    if url.get_backend_name() != "sqlite":
        options.update(pool_size=20, max_overflow=10, pool_pre_ping=True)

    try:
        return create_async_engine(url, **options)
    except (ArgumentError, NoSuchModuleError, InvalidRequestError, ImportError) as exc:
        raise ShortenerError(ErrorKind.BAD_STORE_URL, f"unusable store URL \"{store_url}\": {exc}") from exc


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # models must be imported so their tables are registered on Base.metadata
    from shortener import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

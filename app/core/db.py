from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from app.core.config import settings

_engine: AsyncEngine | None = None
_SessionLocal: async_sessionmaker[AsyncSession] | None = None

def _sqlite_url(path: str) -> str:
    # Ensure absolute path works inside container volume, sqlite is file-based
    return f"sqlite+aiosqlite:///{path}"

def utc_now() -> dt.datetime:
    # SQLite drops tzinfo, so timestamps are stored and compared as naive UTC
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)

def _enable_foreign_keys(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)
        _engine = create_async_engine(
            _sqlite_url(settings.db_path),
            echo=False,
            poolclass=NullPool,
        )
        event.listen(_engine.sync_engine, "connect", _enable_foreign_keys)
    return _engine

def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = async_sessionmaker(get_engine(), expire_on_commit=False, class_=AsyncSession)
    return _SessionLocal

async def dispose_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _SessionLocal = None

class Base(DeclarativeBase):
    pass

async def get_db() -> AsyncIterator[AsyncSession]:
    async with get_sessionmaker()() as session:
        yield session

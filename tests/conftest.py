from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from school_data.db.base import Base
from school_data.db import models  # noqa: F401
from school_data.repositories.generic import Repository
from school_data.repositories.unit_of_work import UnitOfWork


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def engine(tmp_path):
    # A file database: every session gets its own connection, so a fresh
    # session only sees what has been committed.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'school.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(session) -> Repository:
    return Repository(session)


@pytest.fixture
def uow(session) -> UnitOfWork:
    return UnitOfWork(session, strict=False)

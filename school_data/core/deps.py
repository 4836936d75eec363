from __future__ import annotations

import logging
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from school_data.db.session import get_async_session
from school_data.repositories.generic import Repository
from school_data.repositories.unit_of_work import UnitOfWork
from school_data.services.teachers import TeacherService


# PUBLIC_INTERFACE
async def get_repository(
    session: AsyncSession = Depends(get_async_session),
) -> Repository:
    """
    Return an auto-flushing Repository bound to the request's session.

    Every write call through it is persisted immediately. FastAPI caches
    dependencies per request, so the repository shares its session with any
    unit of work resolved for the same request.
    """
    return Repository(session, auto_flush=True, logger=logging.getLogger("school_data.repositories"))


# PUBLIC_INTERFACE
async def get_query_repository(
    repo: Repository = Depends(get_repository),
) -> Repository:
    """Return the request's repository for read-only use."""
    return repo


# PUBLIC_INTERFACE
async def get_unit_of_work(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[UnitOfWork, None]:
    """
    Yield a UnitOfWork over the request's session.

    When the request finishes, a transaction left open by the handler is
    rolled back; the session itself is closed by get_async_session.
    """
    async with UnitOfWork(session, logger=logging.getLogger("school_data.unit_of_work")) as uow:
        yield uow


# PUBLIC_INTERFACE
async def get_teacher_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> TeacherService:
    """Return a TeacherService bound to the request's unit of work."""
    return TeacherService(uow)

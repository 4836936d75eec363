from __future__ import annotations

import pytest
from sqlalchemy import exc as sa_exc

from school_data.db.models import StudentInfo, TeacherInfo
from school_data.repositories.generic import Repository
from school_data.repositories.unit_of_work import UnitOfWork
from school_data.schemas.school import StudentCreate, TeacherCreate
from school_data.services.teachers import TeacherNotFoundError, TeacherService


def _payload(name: str = "Ada", email: str | None = None, students: int = 2) -> TeacherCreate:
    return TeacherCreate(
        teacher_name=name,
        age=36,
        course_name="Math",
        email=email,
        students=[StudentCreate(student_name=f"{name}-S{i}", age=10 + i) for i in range(students)],
    )


async def _counts(session_factory) -> tuple[int, int]:
    async with session_factory() as fresh:
        repo = Repository(fresh)
        return await repo.count(TeacherInfo), await repo.count(StudentInfo)


@pytest.fixture
def service(uow) -> TeacherService:
    return TeacherService(uow)


@pytest.mark.anyio("asyncio")
async def test_create_explicit_persists_teacher_and_students(service, session_factory):
    teacher = await service.create_with_students_explicit(_payload(students=3))

    assert teacher.id is not None
    assert await _counts(session_factory) == (1, 3)


@pytest.mark.anyio("asyncio")
async def test_create_wrapped_persists_teacher_and_students(service, session_factory):
    teacher = await service.create_with_students_wrapped(_payload(students=2))

    assert teacher.id is not None
    assert not service.uow.has_active_transaction
    assert await _counts(session_factory) == (1, 2)


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize("method", ["create_with_students_explicit", "create_with_students_wrapped"])
async def test_create_failure_writes_nothing(service, session_factory, method):
    await getattr(service, method)(_payload("First", email="same@example.org", students=1))

    with pytest.raises(sa_exc.IntegrityError):
        await getattr(service, method)(_payload("Second", email="same@example.org", students=2))

    assert not service.uow.has_active_transaction
    assert await _counts(session_factory) == (1, 1)


@pytest.mark.anyio("asyncio")
async def test_update_and_add_students_is_atomic(service, session_factory):
    teacher = await service.create_with_students_explicit(_payload(students=1))

    await service.update_teacher_and_add_students(
        teacher.id, "Physics", [StudentCreate(student_name="New")]
    )

    assert await _counts(session_factory) == (1, 2)
    async with session_factory() as fresh:
        loaded = await Repository(fresh).get_by_id(TeacherInfo, teacher.id)
        assert loaded.course_name == "Physics"


@pytest.mark.anyio("asyncio")
async def test_update_missing_teacher_writes_nothing(service, session_factory):
    with pytest.raises(TeacherNotFoundError):
        await service.update_teacher_and_add_students(999, "Physics", [StudentCreate(student_name="X")])

    assert not service.uow.has_active_transaction
    assert await _counts(session_factory) == (0, 0)


@pytest.mark.anyio("asyncio")
async def test_add_students_outside_transaction_commits(service, session_factory):
    teacher = await service.create_with_students_wrapped(_payload(students=0))

    assert await service.add_students(teacher.id, [StudentCreate(student_name="A"), StudentCreate(student_name="B")]) == 2
    assert await service.add_students(teacher.id, []) == 0
    assert await _counts(session_factory) == (1, 2)


@pytest.mark.anyio("asyncio")
async def test_get_teacher_with_students(session_factory):
    async with session_factory() as session:
        created = await TeacherService(UnitOfWork(session, strict=False)).create_with_students_explicit(
            _payload(students=2)
        )

    async with session_factory() as session:
        service = TeacherService(UnitOfWork(session, strict=False))
        teacher = await service.get_teacher(created.id, with_students=True)
        assert len(teacher.students) == 2
        assert await service.get_teacher(12345) is None


@pytest.mark.anyio("asyncio")
async def test_list_teachers_orders_by_name_and_filters(service):
    for name in ["Carol", "Alice", "Bob", "Alicia"]:
        await service.create_with_students_wrapped(_payload(name, students=0))

    page = await service.list_teachers(0, 3)
    assert [t.teacher_name for t in page.items] == ["Alice", "Alicia", "Bob"]
    assert page.total_count == 4

    filtered = await service.list_teachers(0, 10, name="Ali")
    assert [t.teacher_name for t in filtered.items] == ["Alice", "Alicia"]


@pytest.mark.anyio("asyncio")
async def test_delete_teacher_removes_students(service, session_factory):
    teacher = await service.create_with_students_explicit(_payload(students=2))
    await service.create_with_students_explicit(_payload("Other", students=1))

    assert await service.delete_teacher(teacher.id) is True
    assert await service.delete_teacher(teacher.id) is False
    assert await _counts(session_factory) == (1, 1)

from __future__ import annotations

import logging
from typing import Iterable, Optional

from school_data.db.models.school import StudentInfo, TeacherInfo
from school_data.repositories.generic import Repository
from school_data.repositories.paging import PagedResult
from school_data.schemas.school import StudentCreate, TeacherCreate
from school_data.services.base import BaseService

logger = logging.getLogger(__name__)


class TeacherNotFoundError(LookupError):
    """Raised by service operations that require an existing teacher."""

    def __init__(self, teacher_id: int) -> None:
        super().__init__(f"Teacher {teacher_id} not found")
        self.teacher_id = teacher_id


def _new_student(item: StudentCreate, **owner) -> StudentInfo:
    return StudentInfo(
        student_name=item.student_name,
        age=item.age,
        class_name=item.class_name,
        **owner,
    )


class TeacherService(BaseService):
    """
    Teacher and student use cases, each one a single transaction.

    The create operations show the two ways of driving the unit of work
    (explicit begin/commit/rollback and the wrapped execute_in_transaction);
    update_teacher_and_add_students nests one transactional operation inside
    another on the same unit of work.
    """

    # PUBLIC_INTERFACE
    async def create_with_students_explicit(self, payload: TeacherCreate) -> TeacherInfo:
        """
        Create a teacher and its students, driving the transaction by hand.

        Writes are staged by the deferred repository; commit() flushes them
        and commits. Any failure rolls everything back.
        """
        await self.uow.begin_transaction()
        try:
            teacher = TeacherInfo(
                teacher_name=payload.teacher_name,
                age=payload.age,
                course_name=payload.course_name,
                phone=payload.phone,
                email=payload.email,
            )
            await self.repository.add(teacher)
            for item in payload.students:
                await self.repository.add(_new_student(item, teacher=teacher))
            await self.uow.commit()
        except Exception:
            await self.uow.rollback()
            raise
        logger.info("Created teacher %s with %d student(s)", teacher.id, len(payload.students))
        return teacher

    # PUBLIC_INTERFACE
    async def create_with_students_wrapped(self, payload: TeacherCreate) -> TeacherInfo:
        """Create a teacher and its students inside execute_in_transaction."""
        teacher = TeacherInfo(
            teacher_name=payload.teacher_name,
            age=payload.age,
            course_name=payload.course_name,
            phone=payload.phone,
            email=payload.email,
        )

        async def _create(repo: Repository) -> None:
            await repo.add(teacher)
            if payload.students:
                await repo.add_range(
                    [_new_student(item, teacher=teacher) for item in payload.students]
                )

        await self.uow.execute_in_transaction(_create)
        logger.info("Created teacher %s with %d student(s)", teacher.id, len(payload.students))
        return teacher

    # PUBLIC_INTERFACE
    async def update_teacher_and_add_students(
        self, teacher_id: int, course_name: Optional[str], students: Iterable[StudentCreate]
    ) -> TeacherInfo:
        """
        Update a teacher and add students to it atomically.

        Adding the students is itself a transactional operation; called here it
        joins the outer transaction instead of opening its own.

        Raises:
            TeacherNotFoundError: no teacher with ``teacher_id`` (nothing is written)
        """
        students = list(students)

        async def _update(repo: Repository) -> TeacherInfo:
            teacher = await repo.get_first_or_default(TeacherInfo, TeacherInfo.id == teacher_id)
            if teacher is None:
                raise TeacherNotFoundError(teacher_id)
            if course_name is not None:
                teacher.course_name = course_name
            await repo.update(teacher)
            await self.add_students(teacher_id, students)
            return teacher

        return await self.uow.execute_in_transaction(_update)

    # PUBLIC_INTERFACE
    async def add_students(self, teacher_id: int, students: Iterable[StudentCreate]) -> int:
        """Add students to an existing teacher; returns how many were staged."""
        students = list(students)
        if not students:
            return 0

        async def _add(repo: Repository) -> int:
            await repo.add_range([_new_student(item, teacher_id=teacher_id) for item in students])
            return len(students)

        return await self.uow.execute_in_transaction(_add)

    async def get_teacher(self, teacher_id: int, *, with_students: bool = False) -> Optional[TeacherInfo]:
        includes = [TeacherInfo.students] if with_students else None
        return await self.repository.get_first_or_default(
            TeacherInfo, TeacherInfo.id == teacher_id, includes
        )

    async def list_teachers(
        self, page_index: int, page_size: int, name: Optional[str] = None
    ) -> PagedResult[TeacherInfo]:
        predicate = TeacherInfo.teacher_name.contains(name) if name else None
        return await self.repository.get_paged(
            TeacherInfo,
            page_index,
            page_size,
            predicate=predicate,
            order_by=[TeacherInfo.teacher_name, TeacherInfo.id],
        )

    # PUBLIC_INTERFACE
    async def delete_teacher(self, teacher_id: int) -> bool:
        """Delete a teacher and its students; False when the teacher does not exist."""

        async def _delete(repo: Repository) -> bool:
            teacher = await repo.get_by_id(TeacherInfo, teacher_id)
            if teacher is None:
                return False
            students = await repo.get_list(StudentInfo, StudentInfo.teacher_id == teacher_id)
            if students:
                await repo.delete_range(students)
            await repo.delete(teacher)
            return True

        return await self.uow.execute_in_transaction(_delete)

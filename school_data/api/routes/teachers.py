from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from school_data.core.deps import get_query_repository, get_teacher_service
from school_data.db.models.school import StudentInfo
from school_data.repositories.generic import Repository
from school_data.schemas.common import MessageResponse, PagedResponse
from school_data.schemas.school import (
    StudentRead,
    StudentsAdd,
    TeacherCreate,
    TeacherCreated,
    TeacherDetail,
    TeacherRead,
)
from school_data.services.teachers import TeacherService

router = APIRouter(prefix="/teachers", tags=["Teachers"])


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TeacherCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create teacher with students",
    description="Create a teacher and its students in one explicitly driven transaction.",
)
async def create_teacher(
    payload: TeacherCreate,
    service: TeacherService = Depends(get_teacher_service),
) -> TeacherCreated:
    teacher = await service.create_with_students_explicit(payload)
    return TeacherCreated(teacher_id=teacher.id, mode="explicit")


# PUBLIC_INTERFACE
@router.post(
    "/wrapped",
    response_model=TeacherCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create teacher with students (wrapped)",
    description="Same as POST /teachers, using the wrapped transaction form.",
)
async def create_teacher_wrapped(
    payload: TeacherCreate,
    service: TeacherService = Depends(get_teacher_service),
) -> TeacherCreated:
    teacher = await service.create_with_students_wrapped(payload)
    return TeacherCreated(teacher_id=teacher.id, mode="wrapped")


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=PagedResponse[TeacherRead],
    summary="List teachers",
    description="Page through teachers ordered by name, optionally filtered by a name substring.",
)
async def list_teachers(
    page_index: int = Query(0, ge=0, description="Zero-based page index"),
    page_size: int = Query(20, ge=1, le=500, description="Rows per page"),
    name: str | None = Query(None, description="Filter by teacher name (substring)"),
    service: TeacherService = Depends(get_teacher_service),
) -> PagedResponse[TeacherRead]:
    page = await service.list_teachers(page_index, page_size, name=name)
    return PagedResponse[TeacherRead].from_page(page, TeacherRead.model_validate)


# PUBLIC_INTERFACE
@router.get(
    "/{teacher_id}",
    response_model=TeacherDetail,
    summary="Get teacher",
    description="Return one teacher together with its students.",
)
async def get_teacher(
    teacher_id: int = Path(..., ge=1),
    service: TeacherService = Depends(get_teacher_service),
) -> TeacherDetail:
    teacher = await service.get_teacher(teacher_id, with_students=True)
    if teacher is None:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return TeacherDetail.model_validate(teacher)


# PUBLIC_INTERFACE
@router.get(
    "/{teacher_id}/students",
    response_model=List[StudentRead],
    summary="List a teacher's students",
)
async def list_students(
    teacher_id: int = Path(..., ge=1),
    repo: Repository = Depends(get_query_repository),
) -> List[StudentRead]:
    students = await repo.get_list(StudentInfo, StudentInfo.teacher_id == teacher_id)
    return [StudentRead.model_validate(s) for s in students]


# PUBLIC_INTERFACE
@router.post(
    "/{teacher_id}/students",
    response_model=TeacherRead,
    summary="Add students to a teacher",
    description=(
        "Optionally change the teacher's course and add students. Both steps commit "
        "together or not at all."
    ),
)
async def add_students(
    payload: StudentsAdd,
    teacher_id: int = Path(..., ge=1),
    service: TeacherService = Depends(get_teacher_service),
) -> TeacherRead:
    teacher = await service.update_teacher_and_add_students(
        teacher_id, payload.course_name, payload.students
    )
    return TeacherRead.model_validate(teacher)


# PUBLIC_INTERFACE
@router.delete(
    "/{teacher_id}",
    response_model=MessageResponse,
    summary="Delete teacher",
    description="Delete a teacher and its students.",
)
async def delete_teacher(
    teacher_id: int = Path(..., ge=1),
    service: TeacherService = Depends(get_teacher_service),
) -> MessageResponse:
    if not await service.delete_teacher(teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")
    return MessageResponse(message="Deleted", details={"teacher_id": teacher_id})


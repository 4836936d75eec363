from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StudentCreate(BaseModel):
    """Student to create together with (or for) a teacher."""
    student_name: str = Field(..., min_length=1, max_length=80, description="Student name")
    age: Optional[int] = Field(None, ge=0, le=150)
    class_name: Optional[str] = Field(None, max_length=100)


class TeacherCreate(BaseModel):
    """Create teacher payload, optionally with the teacher's students."""
    teacher_name: str = Field(..., max_length=80, description="Teacher name")
    age: Optional[int] = Field(None, ge=0, le=150)
    course_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=50)
    students: List[StudentCreate] = Field(default_factory=list)

    @field_validator("teacher_name")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("teacher_name must not be blank")
        return v.strip()


class StudentsAdd(BaseModel):
    """Students to add to an existing teacher, with an optional course change."""
    course_name: Optional[str] = Field(None, max_length=100)
    students: List[StudentCreate] = Field(..., min_length=1)


class StudentRead(BaseModel):
    """Student read model."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Student id")
    student_name: str
    age: Optional[int] = None
    class_name: Optional[str] = None
    teacher_id: Optional[int] = None
    class_id: Optional[int] = None
    created_at: datetime


class TeacherRead(BaseModel):
    """Teacher read model (without students)."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Teacher id")
    teacher_name: str
    age: Optional[int] = None
    course_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class TeacherDetail(TeacherRead):
    """Teacher read model including the eagerly loaded students."""
    students: List[StudentRead] = Field(default_factory=list)


class TeacherCreated(BaseModel):
    """Result of a create call: the new teacher id and how the transaction was driven."""
    teacher_id: int
    mode: str = Field(..., description="explicit | wrapped")

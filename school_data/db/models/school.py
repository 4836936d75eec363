from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_data.db.base import Base, IntPkMixin, TimestampMixin, UUIDPkMixin


# Relationships are declared with lazy="raise": related rows are only loaded
# when a query asks for them through an include spec.


class TeacherInfo(IntPkMixin, TimestampMixin, Base):
    """A teacher, owner of classes and (in the demo service) of students."""
    __tablename__ = "teacher_info"

    teacher_name: Mapped[str] = mapped_column(String(80), nullable=False)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    course_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, unique=True)

    students: Mapped[List["StudentInfo"]] = relationship(
        back_populates="teacher", lazy="raise", passive_deletes=True
    )
    classes: Mapped[List["ClassInfo"]] = relationship(
        back_populates="teacher", lazy="raise", passive_deletes=True
    )


class ClassInfo(IntPkMixin, TimestampMixin, Base):
    """A school class with a head teacher."""
    __tablename__ = "class_info"

    class_name: Mapped[str] = mapped_column(String(100), nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    teacher_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("teacher_info.id", ondelete="SET NULL"), nullable=True
    )

    teacher: Mapped[Optional[TeacherInfo]] = relationship(back_populates="classes", lazy="raise")
    students: Mapped[List["StudentInfo"]] = relationship(
        back_populates="class_info", lazy="raise", passive_deletes=True
    )


class StudentInfo(IntPkMixin, TimestampMixin, Base):
    """A student, optionally assigned to a teacher and a class."""
    __tablename__ = "student_info"

    student_name: Mapped[str] = mapped_column(String(80), nullable=False)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    class_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    birthday: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    parent_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    teacher_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("teacher_info.id", ondelete="CASCADE"), nullable=True, index=True
    )
    class_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("class_info.id", ondelete="SET NULL"), nullable=True
    )

    teacher: Mapped[Optional[TeacherInfo]] = relationship(back_populates="students", lazy="raise")
    class_info: Mapped[Optional[ClassInfo]] = relationship(back_populates="students", lazy="raise")


class Course(UUIDPkMixin, TimestampMixin, Base):
    """A course catalogue entry; its UUID identifier may be supplied by the caller."""
    __tablename__ = "courses"

    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

"""
ORM models for the sample school domain.

Importing this package ensures model classes are registered with the Base
metadata for schema creation and runtime usage.
"""

from .school import (  # noqa: F401
    ClassInfo,
    Course,
    StudentInfo,
    TeacherInfo,
)

"""
Child (enfant) model and tenant-scoped parent/teacher link tables
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import date, datetime
from typing import Optional
from enum import Enum
import uuid


class EnrollmentStatus(str, Enum):
    """Enrollment status of a child"""
    PRE_REGISTERED = "pre_inscrit"
    ENROLLED = "inscrit"
    WITHDRAWN = "retire"


class Child(SQLModel, table=True):
    """Student record owned by one school"""

    __tablename__ = "children"

    id: Optional[int] = Field(default=None, primary_key=True)
    school_id: int = Field(foreign_key="schools.id", index=True, description="School ID for multi-tenant isolation")

    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    birth_date: date
    sex: str = Field(max_length=10)

    # Schooling
    class_id: Optional[int] = Field(default=None, index=True)
    school_year: str = Field(default="", max_length=20)
    status: str = Field(default=EnrollmentStatus.PRE_REGISTERED.value, max_length=20, index=True)
    enrolled_at: Optional[datetime] = None
    uses_canteen: bool = Field(default=False)

    is_deleted: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ParentChild(SQLModel, table=True):
    """Parent account <-> child link"""

    __tablename__ = "parent_children"
    __table_args__ = (
        UniqueConstraint("parent_id", "child_id", name="uq_parent_children_parent_child"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    school_id: int = Field(foreign_key="schools.id", index=True)
    parent_id: uuid.UUID = Field(foreign_key="accounts.id", index=True)
    child_id: int = Field(foreign_key="children.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class TeacherChild(SQLModel, table=True):
    """Teacher account <-> child link"""

    __tablename__ = "teacher_children"
    __table_args__ = (
        UniqueConstraint("teacher_id", "child_id", name="uq_teacher_children_teacher_child"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    school_id: int = Field(foreign_key="schools.id", index=True)
    teacher_id: uuid.UUID = Field(foreign_key="accounts.id", index=True)
    child_id: int = Field(foreign_key="children.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

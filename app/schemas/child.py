"""
Pydantic schemas for children and their parent/teacher links
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import date, datetime
import uuid

from app.models.child import EnrollmentStatus


class ChildCreate(BaseModel):
    """Child creation schema"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: date
    sex: str = Field(..., min_length=1, max_length=10)
    class_id: Optional[int] = None
    school_year: str = Field(default="", max_length=20)
    status: EnrollmentStatus = EnrollmentStatus.PRE_REGISTERED
    uses_canteen: bool = False


class ChildUpdate(BaseModel):
    """Partial child update, unset fields are left untouched"""
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    birth_date: Optional[date] = None
    sex: Optional[str] = Field(default=None, min_length=1, max_length=10)
    class_id: Optional[int] = None
    school_year: Optional[str] = Field(default=None, max_length=20)
    status: Optional[EnrollmentStatus] = None
    uses_canteen: Optional[bool] = None

    @field_validator("first_name", "last_name", "birth_date", "sex", "school_year", "status", "uses_canteen")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class ChildResponse(BaseModel):
    """Child projection"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    first_name: str
    last_name: str
    full_name: str
    birth_date: date
    sex: str
    class_id: Optional[int] = None
    school_year: str
    status: str
    uses_canteen: bool
    created_at: datetime


class ChildLinkRequest(BaseModel):
    """Link a parent or teacher account to a child"""
    account_id: uuid.UUID


class LinkedAccountResponse(BaseModel):
    """Parent or teacher linked to a child"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    sex: Optional[str] = None
    birth_date: Optional[date] = None

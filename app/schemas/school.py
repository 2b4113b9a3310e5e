"""
Pydantic schemas for schools
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

SCHOOL_CODE_PATTERN = r"^[A-Z0-9_]+$"


class SchoolCreate(BaseModel):
    """School creation schema"""
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=50, pattern=SCHOOL_CODE_PATTERN)
    email: EmailStr
    address: str = Field(default="", max_length=500)
    commune: str = Field(default="", max_length=100)
    phone: str = Field(default="", max_length=20)
    school_year: Optional[str] = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class SchoolUpdate(BaseModel):
    """Partial school update, unset fields are left untouched"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, min_length=1, max_length=50, pattern=SCHOOL_CODE_PATTERN)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, max_length=500)
    commune: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    school_year: Optional[str] = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class SchoolResponse(BaseModel):
    """School projection"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str
    email: str
    phone: str
    address: str
    commune: str
    school_year: str
    is_active: bool
    created_at: datetime

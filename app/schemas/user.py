"""
Pydantic schemas for accounts
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import date, datetime
import uuid

from app.models.account import RoleName
from app.schemas.child import ChildResponse


class AccountProfile(BaseModel):
    """Credentials and profile shared by every account creation path"""
    email: EmailStr
    # Policy is enforced by the service so violations come back as field errors
    password: str = Field(..., max_length=100)
    confirm_password: str = Field(..., max_length=100)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    birth_date: Optional[date] = None
    sex: Optional[str] = Field(default=None, max_length=10)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class RegisterRequest(AccountProfile):
    """Self-registration into a school"""
    school_id: int = Field(..., gt=0, validation_alias=AliasChoices("school_id", "ecoleId"))


class UserCreate(AccountProfile):
    """Account creation by an administrator of the current school"""
    role: RoleName = RoleName.PARENT


class LoginRequest(BaseModel):
    """User login schema"""
    school_id: int = Field(..., gt=0, validation_alias=AliasChoices("school_id", "ecoleId"))
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()


class UpdateProfileRequest(BaseModel):
    """Partial profile update, unset fields are left untouched"""
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    birth_date: Optional[date] = None
    sex: Optional[str] = Field(default=None, max_length=10)

    @field_validator("first_name", "last_name")
    @classmethod
    def reject_null_name(cls, value: Optional[str]) -> str:
        # Names may be left out but never cleared
        if value is None:
            raise ValueError("must not be null")
        return value


class ChangePasswordRequest(BaseModel):
    """Password change schema"""
    current_password: str = Field(..., min_length=1, max_length=100)
    new_password: str = Field(..., max_length=100)
    confirm_new_password: str = Field(..., max_length=100)


class ResetPasswordRequest(BaseModel):
    """Password set by an administrator, no current password required"""
    new_password: str = Field(..., max_length=100)
    confirm_new_password: str = Field(..., max_length=100)


class AccountResponse(BaseModel):
    """Account projection"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    birth_date: Optional[date] = None
    sex: Optional[str] = None
    school_id: int
    school_name: Optional[str] = None
    school_code: Optional[str] = None
    is_active: bool
    email_confirmed: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None
    roles: List[str] = Field(default_factory=list)
    children: List[ChildResponse] = Field(default_factory=list)

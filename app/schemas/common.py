"""
Structured service results, error taxonomy and pagination schemas
"""

from pydantic import BaseModel, Field, computed_field
from typing import Generic, List, Optional, TypeVar
from enum import Enum
import math

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Failure kinds returned by the service layer"""
    TENANT_NOT_FOUND = "TenantNotFound"
    DUPLICATE_ACCOUNT = "DuplicateAccount"
    DUPLICATE_TENANT = "DuplicateTenant"
    VALIDATION_ERROR = "ValidationError"
    INVALID_CREDENTIALS = "InvalidCredentials"
    ACCOUNT_LOCKED = "AccountLocked"
    INVALID_TOKEN = "InvalidToken"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INTERNAL_ERROR = "InternalError"


class ApiResponse(BaseModel, Generic[T]):
    """Success flag, human-readable message, payload and per-field errors"""
    success: bool
    message: str = ""
    data: Optional[T] = None
    errors: List[str] = Field(default_factory=list)
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "") -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(
        cls,
        error_code: ErrorCode,
        message: str,
        errors: Optional[List[str]] = None,
    ) -> "ApiResponse[T]":
        return cls(success=False, message=message, errors=errors or [], error_code=error_code)


class PagedRequest(BaseModel):
    """Paging, search and sort parameters"""
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_descending: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PagedResult(BaseModel, Generic[T]):
    """One page of items plus totals"""
    items: List[T] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 20

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

"""
Schemas module
"""

from app.schemas.common import ApiResponse, ErrorCode, PagedRequest, PagedResult
from app.schemas.child import ChildCreate, ChildLinkRequest, ChildResponse, ChildUpdate, LinkedAccountResponse
from app.schemas.school import SchoolCreate, SchoolResponse, SchoolUpdate
from app.schemas.user import (
    AccountProfile,
    AccountResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserCreate,
)
from app.schemas.token import AuthResponse, InitializeSystemRequest, RefreshTokenRequest

__all__ = [
    "ApiResponse",
    "ErrorCode",
    "PagedRequest",
    "PagedResult",
    "ChildCreate",
    "ChildLinkRequest",
    "ChildResponse",
    "ChildUpdate",
    "LinkedAccountResponse",
    "SchoolCreate",
    "SchoolResponse",
    "SchoolUpdate",
    "AccountProfile",
    "AccountResponse",
    "ChangePasswordRequest",
    "LoginRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "UpdateProfileRequest",
    "UserCreate",
    "AuthResponse",
    "InitializeSystemRequest",
    "RefreshTokenRequest",
]

"""
Pydantic schemas for authentication and tokens
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.schemas.school import SchoolCreate, SchoolResponse
from app.schemas.user import AccountProfile, AccountResponse


class RefreshTokenRequest(BaseModel):
    """Expired access token plus the refresh token issued with it"""
    token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Token pair with account and school projections"""
    token: str
    refresh_token: str
    token_type: str = "bearer"
    token_expiration: datetime
    account: AccountResponse
    school: Optional[SchoolResponse] = None


class InitializeSystemRequest(BaseModel):
    """First school plus its SuperAdmin"""
    school: SchoolCreate
    super_admin: AccountProfile

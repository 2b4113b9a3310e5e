"""
Authentication API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
import structlog

from app.core.database import get_session
from app.core.dependencies import get_current_account, require_permission, unwrap
from app.core.permissions import Permission
from app.models.account import Account, RoleName
from app.schemas.common import ApiResponse
from app.schemas.token import InitializeSystemRequest, RefreshTokenRequest
from app.schemas.user import ChangePasswordRequest, LoginRequest, RegisterRequest, UpdateProfileRequest
from app.services.auth_service import AuthService

logger = structlog.get_logger(__name__)
router = APIRouter()


def _ensure_can_register_into(account: Account, school_id: int) -> None:
    if account.school_id != school_id and not account.has_role(RoleName.SUPER_ADMIN.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot register accounts in another school",
        )


@router.post("/login", response_model=ApiResponse)
async def login(data: LoginRequest, session: Session = Depends(get_session)):
    """Sign in with school, email and password"""
    return unwrap(AuthService(session).login(data))


@router.post("/register/parent", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register_parent(data: RegisterRequest, session: Session = Depends(get_session)):
    """Self-registration of a parent"""
    return unwrap(AuthService(session).register(data, RoleName.PARENT))


@router.post("/register/teacher", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register_teacher(
    data: RegisterRequest,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.TEACHER_REGISTER)),
):
    _ensure_can_register_into(account, data.school_id)
    return unwrap(AuthService(session).register(data, RoleName.TEACHER))


@router.post("/register/admin", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register_admin(
    data: RegisterRequest,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.ADMIN_REGISTER)),
):
    return unwrap(AuthService(session).register(data, RoleName.ADMIN))


@router.post("/initialize", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def initialize_system(data: InitializeSystemRequest, session: Session = Depends(get_session)):
    """Create the first school and its SuperAdmin, refused once a SuperAdmin exists"""
    return unwrap(AuthService(session).initialize_system(data))


@router.post("/refresh-token", response_model=ApiResponse)
async def refresh_token(data: RefreshTokenRequest, session: Session = Depends(get_session)):
    return unwrap(AuthService(session).refresh_token(data))


@router.post("/logout", response_model=ApiResponse)
async def logout(
    session: Session = Depends(get_session),
    account: Account = Depends(get_current_account),
):
    return unwrap(AuthService(session).logout(account.id))


@router.get("/me", response_model=ApiResponse)
async def get_me(
    session: Session = Depends(get_session),
    account: Account = Depends(get_current_account),
):
    """Current account with school and linked children"""
    return unwrap(AuthService(session).get_current_account(account.id))


@router.put("/me", response_model=ApiResponse)
async def update_me(
    data: UpdateProfileRequest,
    session: Session = Depends(get_session),
    account: Account = Depends(get_current_account),
):
    return unwrap(AuthService(session).update_profile(account.id, data))


@router.delete("/me", response_model=ApiResponse)
async def delete_me(
    session: Session = Depends(get_session),
    account: Account = Depends(get_current_account),
):
    return unwrap(AuthService(session).delete_account(account.id))


@router.post("/change-password", response_model=ApiResponse)
async def change_password(
    data: ChangePasswordRequest,
    session: Session = Depends(get_session),
    account: Account = Depends(get_current_account),
):
    return unwrap(AuthService(session).change_password(account.id, data))


@router.get("/roles", response_model=ApiResponse)
async def get_roles(
    session: Session = Depends(get_session),
    account: Account = Depends(get_current_account),
):
    return unwrap(AuthService(session).get_account_roles(account.id))


@router.get("/schools", response_model=ApiResponse)
async def get_schools(session: Session = Depends(get_session)):
    """Active schools available for registration and login"""
    return unwrap(AuthService(session).get_available_schools())

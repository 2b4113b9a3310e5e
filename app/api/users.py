"""
User management API endpoints, scoped to the resolved school
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import Optional
import uuid

from app.core.database import get_session
from app.core.dependencies import ensure_same_tenant, get_current_tenant, require_permission, unwrap
from app.core.permissions import Permission
from app.core.tenant import ResolvedTenant
from app.models.account import Account
from app.schemas.common import ApiResponse, PagedRequest
from app.schemas.user import ResetPasswordRequest, UpdateProfileRequest, UserCreate
from app.services.user_service import UserService

router = APIRouter()


def _service(session: Session, tenant: ResolvedTenant, account: Account) -> UserService:
    ensure_same_tenant(tenant, account)
    return UserService(session, tenant, actor=account)


@router.get("", response_model=ApiResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_descending: bool = False,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_VIEW)),
):
    request = PagedRequest(
        page=page,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_descending=sort_descending,
    )
    return unwrap(_service(session, tenant, account).list_users(request))


@router.get("/by-role/{role}", response_model=ApiResponse)
async def list_users_by_role(
    role: str,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_VIEW)),
):
    return unwrap(_service(session, tenant, account).list_users_by_role(role))


@router.get("/{account_id}", response_model=ApiResponse)
async def get_user(
    account_id: uuid.UUID,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_VIEW)),
):
    return unwrap(_service(session, tenant, account).get_user(account_id))


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_MANAGE)),
):
    return unwrap(_service(session, tenant, account).create_user(data))


@router.put("/{account_id}", response_model=ApiResponse)
async def update_user(
    account_id: uuid.UUID,
    data: UpdateProfileRequest,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_MANAGE)),
):
    return unwrap(_service(session, tenant, account).update_user(account_id, data))


@router.delete("/{account_id}", response_model=ApiResponse)
async def delete_user(
    account_id: uuid.UUID,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_MANAGE)),
):
    return unwrap(_service(session, tenant, account).delete_user(account_id))


@router.post("/{account_id}/toggle-status", response_model=ApiResponse)
async def toggle_user_status(
    account_id: uuid.UUID,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_MANAGE)),
):
    return unwrap(_service(session, tenant, account).toggle_user_status(account_id))


@router.post("/{account_id}/reset-password", response_model=ApiResponse)
async def reset_password(
    account_id: uuid.UUID,
    data: ResetPasswordRequest,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.USER_MANAGE)),
):
    return unwrap(_service(session, tenant, account).reset_password(account_id, data))


@router.post("/{account_id}/roles/{role}", response_model=ApiResponse)
async def assign_role(
    account_id: uuid.UUID,
    role: str,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.ROLE_ASSIGN)),
):
    return unwrap(_service(session, tenant, account).assign_role(account_id, role))


@router.delete("/{account_id}/roles/{role}", response_model=ApiResponse)
async def remove_role(
    account_id: uuid.UUID,
    role: str,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.ROLE_ASSIGN)),
):
    return unwrap(_service(session, tenant, account).remove_role(account_id, role))

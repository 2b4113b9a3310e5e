"""
Children API endpoints - records and parent/teacher links
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session
import uuid

from app.core.database import get_session
from app.core.dependencies import ensure_same_tenant, get_current_tenant, require_permission, unwrap
from app.core.permissions import Permission, get_permissions_for_roles, has_permission
from app.core.tenant import ResolvedTenant
from app.models.account import Account
from app.schemas.child import ChildCreate, ChildLinkRequest, ChildUpdate
from app.schemas.common import ApiResponse
from app.services.child_service import ChildService

router = APIRouter()


def _service(session: Session, tenant: ResolvedTenant, account: Account) -> ChildService:
    ensure_same_tenant(tenant, account)
    return ChildService(session, tenant)


def _can_manage(account: Account) -> bool:
    return has_permission(Permission.CHILD_MANAGE, get_permissions_for_roles(account.roles))


def _ensure_child_access(service: ChildService, child_id: int, account: Account) -> None:
    """Parents and teachers only reach the children linked to them"""
    if not _can_manage(account) and not service.is_linked(child_id, account):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to this child is not allowed")


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_child(
    data: ChildCreate,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_MANAGE)),
):
    return unwrap(_service(session, tenant, account).create_child(data))


@router.get("", response_model=ApiResponse)
async def list_children(
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_MANAGE)),
):
    return unwrap(_service(session, tenant, account).list_children())


@router.get("/of/{account_id}", response_model=ApiResponse)
async def list_children_of_account(
    account_id: uuid.UUID,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_VIEW)),
):
    """Parents and teachers only see their own children"""
    if account.id != account_id and not _can_manage(account):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access to these children is not allowed")
    return unwrap(_service(session, tenant, account).list_children_of_account(account_id))


@router.post("/{child_id}/parents", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def link_parent(
    child_id: int,
    data: ChildLinkRequest,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_LINK)),
):
    return unwrap(_service(session, tenant, account).link_parent(child_id, data.account_id))


@router.delete("/{child_id}/parents/{account_id}", response_model=ApiResponse)
async def unlink_parent(
    child_id: int,
    account_id: uuid.UUID,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_LINK)),
):
    return unwrap(_service(session, tenant, account).unlink_parent(child_id, account_id))


@router.post("/{child_id}/teachers", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def link_teacher(
    child_id: int,
    data: ChildLinkRequest,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_LINK)),
):
    return unwrap(_service(session, tenant, account).link_teacher(child_id, data.account_id))


@router.delete("/{child_id}/teachers/{account_id}", response_model=ApiResponse)
async def unlink_teacher(
    child_id: int,
    account_id: uuid.UUID,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_LINK)),
):
    return unwrap(_service(session, tenant, account).unlink_teacher(child_id, account_id))


@router.get("/{child_id}", response_model=ApiResponse)
async def get_child(
    child_id: int,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_VIEW)),
):
    service = _service(session, tenant, account)
    _ensure_child_access(service, child_id, account)
    return unwrap(service.get_child(child_id))


@router.put("/{child_id}", response_model=ApiResponse)
async def update_child(
    child_id: int,
    data: ChildUpdate,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_MANAGE)),
):
    return unwrap(_service(session, tenant, account).update_child(child_id, data))


@router.delete("/{child_id}", response_model=ApiResponse)
async def delete_child(
    child_id: int,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_MANAGE)),
):
    return unwrap(_service(session, tenant, account).delete_child(child_id))


@router.get("/{child_id}/parents", response_model=ApiResponse)
async def list_parents(
    child_id: int,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_VIEW)),
):
    service = _service(session, tenant, account)
    _ensure_child_access(service, child_id, account)
    return unwrap(service.list_parents(child_id))


@router.get("/{child_id}/teachers", response_model=ApiResponse)
async def list_teachers(
    child_id: int,
    session: Session = Depends(get_session),
    tenant: ResolvedTenant = Depends(get_current_tenant),
    account: Account = Depends(require_permission(Permission.CHILD_VIEW)),
):
    service = _service(session, tenant, account)
    _ensure_child_access(service, child_id, account)
    return unwrap(service.list_teachers(child_id))

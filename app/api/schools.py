"""
School directory API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session
from typing import Optional

from app.core.database import get_session
from app.core.dependencies import require_permission, unwrap
from app.core.permissions import Permission
from app.models.account import Account
from app.schemas.common import ApiResponse, PagedRequest
from app.schemas.school import SchoolCreate, SchoolUpdate
from app.services.school_service import SchoolService

router = APIRouter()


@router.get("", response_model=ApiResponse)
async def list_schools(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_descending: bool = False,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.SCHOOL_VIEW)),
):
    """List non-deleted schools with paging, search and sort"""
    request = PagedRequest(
        page=page,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_descending=sort_descending,
    )
    return unwrap(SchoolService(session).list_schools(request))


@router.get("/active", response_model=ApiResponse)
async def list_active_schools(session: Session = Depends(get_session)):
    return unwrap(SchoolService(session).get_active_schools())


@router.get("/code/{code}", response_model=ApiResponse)
async def get_school_by_code(code: str, session: Session = Depends(get_session)):
    return unwrap(SchoolService(session).get_school_by_code(code))


@router.get("/{school_id}", response_model=ApiResponse)
async def get_school(
    school_id: int,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.SCHOOL_VIEW)),
):
    return unwrap(SchoolService(session).get_school(school_id))


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_school(
    data: SchoolCreate,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.SCHOOL_MANAGE)),
):
    return unwrap(SchoolService(session).create_school(data))


@router.put("/{school_id}", response_model=ApiResponse)
async def update_school(
    school_id: int,
    data: SchoolUpdate,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.SCHOOL_MANAGE)),
):
    return unwrap(SchoolService(session).update_school(school_id, data))


@router.delete("/{school_id}", response_model=ApiResponse)
async def delete_school(
    school_id: int,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.SCHOOL_MANAGE)),
):
    """Soft delete"""
    return unwrap(SchoolService(session).delete_school(school_id))


@router.post("/{school_id}/toggle-status", response_model=ApiResponse)
async def toggle_school_status(
    school_id: int,
    session: Session = Depends(get_session),
    account: Account = Depends(require_permission(Permission.SCHOOL_MANAGE)),
):
    return unwrap(SchoolService(session).toggle_school_status(school_id))

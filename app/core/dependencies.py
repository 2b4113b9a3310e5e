"""
Authentication, tenant and authorization dependencies for FastAPI
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
from typing import Dict, Optional
import structlog

from app.core.auth import decode_access_token, get_subject, stamp_matches
from app.core.config import get_settings
from app.core.database import get_session
from app.core.permissions import Permission, get_permissions_for_roles, has_permission
from app.core.tenant import ResolvedTenant, TenantResolver
from app.models.account import Account, RoleName
from app.schemas.common import ApiResponse, ErrorCode
from app.services.school_service import SchoolService

logger = structlog.get_logger(__name__)
settings = get_settings()
security = HTTPBearer(auto_error=False)

ERROR_STATUS = {
    ErrorCode.TENANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DUPLICATE_ACCOUNT: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_TENANT: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ACCOUNT_LOCKED: status.HTTP_423_LOCKED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def unwrap(result: ApiResponse) -> ApiResponse:
    """Return a successful result, raise an HTTPException for a failed one"""
    if result.success:
        return result
    status_code = ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=status_code, detail=result.model_dump(mode="json"))


def _credentials_exception(message: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=ApiResponse.fail(ErrorCode.INVALID_TOKEN, message).model_dump(mode="json"),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_claims(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Dict]:
    """Validated claims of the bearer token, None when no valid token was sent"""
    if credentials is None:
        return None
    claims = getattr(request.state, "token_claims", None)
    if claims is None:
        claims = decode_access_token(credentials.credentials)
    return claims


async def get_current_account(
    claims: Optional[Dict] = Depends(get_token_claims),
    session: Session = Depends(get_session),
) -> Account:
    """Signed-in account, rejecting tokens revoked by a security stamp change"""
    account_id = get_subject(claims)
    if account_id is None:
        raise _credentials_exception()

    account = session.get(Account, account_id)
    if account is None or not stamp_matches(claims, account):
        raise _credentials_exception()
    if not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=ApiResponse.fail(ErrorCode.ACCOUNT_LOCKED, "Account is disabled").model_dump(mode="json"),
        )

    logger.debug(f"Account authenticated: {account.id}")
    return account


async def get_tenant_resolver(
    request: Request,
    claims: Optional[Dict] = Depends(get_token_claims),
    session: Session = Depends(get_session),
) -> TenantResolver:
    """One resolver per request, its cached school dies with the request"""
    resolver = getattr(request.state, "tenant_resolver", None)
    if resolver is None:
        header_code = getattr(request.state, "tenant_header", None)
        if header_code is None:
            header_code = request.headers.get(settings.TENANT_HEADER)
        resolver = TenantResolver(SchoolService(session), claims=claims, header_code=header_code)
        request.state.tenant_resolver = resolver
    return resolver


async def get_current_tenant(resolver: TenantResolver = Depends(get_tenant_resolver)) -> ResolvedTenant:
    tenant = resolver.resolve()
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ApiResponse.fail(ErrorCode.TENANT_NOT_FOUND, "School not found").model_dump(mode="json"),
        )
    return tenant


def ensure_same_tenant(tenant: ResolvedTenant, account: Account) -> None:
    """Reject an account acting on a school other than its own, SuperAdmin excepted"""
    if account.school_id != tenant.id and not account.has_role(RoleName.SUPER_ADMIN.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access to this school is not allowed",
        )


def require_roles(*roles: RoleName):
    """Dependency factory admitting accounts holding any of the roles"""
    allowed = {role.value for role in roles}

    async def check_roles(account: Account = Depends(get_current_account)) -> Account:
        if not allowed.intersection(account.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role required: {', '.join(sorted(allowed))}",
            )
        return account
    return check_roles


def require_permission(required_permission: Permission):
    """Dependency factory to check permissions"""
    async def check_permission(account: Account = Depends(get_current_account)) -> Account:
        if not has_permission(required_permission, get_permissions_for_roles(account.roles)):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission required: {required_permission.value}",
            )
        return account
    return check_permission

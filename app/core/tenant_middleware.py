"""
Tenant context middleware for multi-tenant isolation
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable
import structlog

from app.core.auth import decode_access_token
from app.core.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()


def bearer_token(request: Request):
    """Raw bearer token from the Authorization header, None when absent"""
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Collect the inputs of tenant resolution for the current request

    Validated token claims and the tenant header are stored on request.state.
    The school itself is looked up lazily by the tenant dependency, once per
    request.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        token = bearer_token(request)
        claims = decode_access_token(token) if token else None
        header_code = request.headers.get(settings.TENANT_HEADER)

        request.state.token_claims = claims
        request.state.tenant_header = header_code
        request.state.tenant_resolver = None

        tenant_hint = None
        if claims:
            tenant_hint = claims.get(settings.TENANT_CODE_CLAIM) or claims.get(settings.TENANT_ID_CLAIM)
        tenant_hint = tenant_hint or header_code
        if tenant_hint:
            structlog.contextvars.bind_contextvars(tenant=str(tenant_hint))

        logger.debug(f"Tenant context: token={'yes' if claims else 'no'} header={header_code}")

        try:
            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("tenant")

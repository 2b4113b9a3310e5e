"""
Tenant (school) resolution for a single request

A resolver is created per request and memoises its answer on the instance,
so the cached school never outlives the request that resolved it.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol
import structlog

from app.core.config import get_settings
from app.models.school import School

logger = structlog.get_logger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class ResolvedTenant:
    """Active school identity for the current request"""
    id: int
    code: str


class SchoolLookup(Protocol):
    def find_tenant_by_code(self, code: Optional[str]) -> Optional[School]: ...

    def find_tenant_by_id(self, school_id: Optional[int]) -> Optional[School]: ...


class TenantResolver:
    """Derive the active school from token claims or the tenant header

    Resolution order, first match wins:
      1. school code claim of a validated access token
      2. school id claim of that token
      3. school code supplied in the tenant header
    """

    def __init__(
        self,
        lookup: SchoolLookup,
        claims: Optional[Dict[str, Any]] = None,
        header_code: Optional[str] = None,
    ):
        self.lookup = lookup
        self.claims = claims or {}
        self.header_code = header_code
        self._resolved = False
        self._tenant: Optional[ResolvedTenant] = None

    def resolve(self) -> Optional[ResolvedTenant]:
        if not self._resolved:
            self._tenant = self._resolve_uncached()
            self._resolved = True
            logger.debug(f"Tenant context: {self._tenant}")
        return self._tenant

    @property
    def current_tenant_id(self) -> Optional[int]:
        tenant = self.resolve()
        return tenant.id if tenant else None

    @property
    def current_tenant_code(self) -> Optional[str]:
        tenant = self.resolve()
        return tenant.code if tenant else None

    def _resolve_uncached(self) -> Optional[ResolvedTenant]:
        code_claim = self.claims.get(settings.TENANT_CODE_CLAIM)
        if code_claim:
            return self._to_tenant(self.lookup.find_tenant_by_code(str(code_claim)))

        id_claim = self.claims.get(settings.TENANT_ID_CLAIM)
        school_id = _parse_school_id(id_claim)
        if school_id is not None:
            return self._to_tenant(self.lookup.find_tenant_by_id(school_id))

        if self.header_code and self.header_code.strip():
            return self._to_tenant(self.lookup.find_tenant_by_code(self.header_code.strip()))

        return None

    @staticmethod
    def _to_tenant(school: Optional[School]) -> Optional[ResolvedTenant]:
        if school is None or school.id is None:
            return None
        return ResolvedTenant(id=school.id, code=school.code)


def _parse_school_id(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def tenant_scoped(statement, model, school_id: int):
    """Restrict a select over a tenant-owned model to one school"""
    return statement.where(model.school_id == school_id)

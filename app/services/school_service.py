"""
School directory - CRUD and uniqueness over tenant records
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select
import structlog

from app.models.school import School
from app.schemas.common import ApiResponse, ErrorCode, PagedRequest, PagedResult
from app.schemas.school import SchoolCreate, SchoolResponse, SchoolUpdate
from app.services.base import BaseService, ServiceError

logger = structlog.get_logger(__name__)

SCHOOL_NOT_FOUND = "School not found"
DUPLICATE_CODE = "A school with this code already exists"
DUPLICATE_EMAIL = "A school with this email already exists"

SORT_COLUMNS = {
    "name": School.name,
    "code": School.code,
    "commune": School.commune,
}


class SchoolService(BaseService):
    """School (tenant) directory"""

    # Tenant lookups
    def find_tenant_by_code(self, code: Optional[str]) -> Optional[School]:
        """Active, non-deleted school by code, None for an empty or unknown code"""
        if not code:
            return None
        return self.session.exec(
            select(School).where(
                School.code == code,
                School.is_deleted == False,  # noqa: E712
                School.is_active == True,  # noqa: E712
            )
        ).first()

    def find_tenant_by_id(self, school_id: Optional[int]) -> Optional[School]:
        if school_id is None:
            return None
        school = self.session.get(School, school_id)
        if school is None or school.is_deleted or not school.is_active:
            return None
        return school

    def ensure_unique(self, code: Optional[str], email: Optional[str], exclude_id: Optional[int] = None) -> None:
        """Raise DuplicateTenant when another school already uses the code or email"""
        if code:
            query = select(School).where(func.upper(School.code) == code.upper())
            if exclude_id is not None:
                query = query.where(School.id != exclude_id)
            if self.session.exec(query).first():
                raise ServiceError(ErrorCode.DUPLICATE_TENANT, DUPLICATE_CODE)

        if email:
            query = select(School).where(func.lower(School.email) == email.lower())
            if exclude_id is not None:
                query = query.where(School.id != exclude_id)
            if self.session.exec(query).first():
                raise ServiceError(ErrorCode.DUPLICATE_TENANT, DUPLICATE_EMAIL)

    def add_school(self, data: SchoolCreate) -> School:
        """Insert a school in the current unit of work without committing"""
        self.ensure_unique(data.code, data.email)
        school = School(**data.model_dump(exclude_none=True))
        self.session.add(school)
        try:
            self.session.flush()
        except IntegrityError:
            raise ServiceError(ErrorCode.DUPLICATE_TENANT, DUPLICATE_CODE)
        return school

    def _get_existing(self, school_id: int) -> School:
        school = self.session.get(School, school_id)
        if school is None or school.is_deleted:
            raise ServiceError(ErrorCode.NOT_FOUND, SCHOOL_NOT_FOUND)
        return school

    # Directory operations
    def list_schools(self, request: PagedRequest) -> ApiResponse:
        try:
            query = select(School).where(School.is_deleted == False)  # noqa: E712

            if request.search:
                pattern = f"%{request.search}%"
                query = query.where(or_(col(School.name).ilike(pattern), col(School.code).ilike(pattern)))

            if request.sort_by:
                column = SORT_COLUMNS.get(request.sort_by.lower(), School.created_at)
            else:
                column = School.name
            order = col(column).desc() if request.sort_descending else col(column).asc()

            total_count = self.session.exec(select(func.count()).select_from(query.subquery())).one()
            schools = self.session.exec(
                query.order_by(order).offset(request.offset).limit(request.page_size)
            ).all()

            result = PagedResult[SchoolResponse](
                items=[SchoolResponse.model_validate(school) for school in schools],
                total_count=total_count,
                page=request.page,
                page_size=request.page_size,
            )
            return ApiResponse.ok(result, "Schools retrieved")
        except Exception:
            return self._internal_error("school_list_failed")

    def get_school(self, school_id: int) -> ApiResponse:
        try:
            school = self._get_existing(school_id)
            return ApiResponse.ok(SchoolResponse.model_validate(school), "School retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("school_get_failed", school_id=school_id)

    def get_school_by_code(self, code: str) -> ApiResponse:
        try:
            school = self.session.exec(
                select(School).where(School.code == code, School.is_deleted == False)  # noqa: E712
            ).first()
            if school is None:
                return ApiResponse.fail(ErrorCode.NOT_FOUND, SCHOOL_NOT_FOUND)
            return ApiResponse.ok(SchoolResponse.model_validate(school), "School retrieved")
        except Exception:
            return self._internal_error("school_get_by_code_failed", code=code)

    def create_school(self, data: SchoolCreate) -> ApiResponse:
        try:
            school = self.add_school(data)
            self.session.commit()
            self.session.refresh(school)
            logger.info(f"School created: {school.code} - {school.name}")
            return ApiResponse.ok(SchoolResponse.model_validate(school), "School created")
        except ServiceError as e:
            return self._fail(e)
        except IntegrityError:
            return self._fail(ServiceError(ErrorCode.DUPLICATE_TENANT, DUPLICATE_CODE))
        except Exception:
            return self._internal_error("school_create_failed", code=data.code)

    def update_school(self, school_id: int, data: SchoolUpdate) -> ApiResponse:
        try:
            school = self._get_existing(school_id)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)

            new_code = changes.get("code")
            new_email = changes.get("email")
            self.ensure_unique(
                new_code if new_code and new_code != school.code else None,
                new_email if new_email and new_email != school.email.lower() else None,
                exclude_id=school.id,
            )

            for key, value in changes.items():
                setattr(school, key, value)
            school.updated_at = datetime.utcnow()

            self.session.add(school)
            self.session.commit()
            self.session.refresh(school)
            logger.info(f"School updated: {school.code} - {school.name}")
            return ApiResponse.ok(SchoolResponse.model_validate(school), "School updated")
        except ServiceError as e:
            return self._fail(e)
        except IntegrityError:
            return self._fail(ServiceError(ErrorCode.DUPLICATE_TENANT, DUPLICATE_CODE))
        except Exception:
            return self._internal_error("school_update_failed", school_id=school_id)

    def delete_school(self, school_id: int) -> ApiResponse:
        """Soft delete, the row is kept with its flag set"""
        try:
            school = self._get_existing(school_id)
            school.soft_delete()
            self.session.add(school)
            self.session.commit()
            logger.info(f"School deleted: {school.code} - {school.name}")
            return ApiResponse.ok(None, "School deleted")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("school_delete_failed", school_id=school_id)

    def toggle_school_status(self, school_id: int) -> ApiResponse:
        try:
            school = self._get_existing(school_id)
            is_active = school.toggle_status()
            self.session.add(school)
            self.session.commit()
            self.session.refresh(school)
            logger.info(f"School status changed: {school.code} active={is_active}")
            return ApiResponse.ok(SchoolResponse.model_validate(school), "School status changed")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("school_toggle_status_failed", school_id=school_id)

    def list_active_schools(self) -> List[SchoolResponse]:
        schools = self.session.exec(
            select(School)
            .where(School.is_deleted == False, School.is_active == True)  # noqa: E712
            .order_by(School.name)
        ).all()
        return [SchoolResponse.model_validate(school) for school in schools]

    def get_active_schools(self) -> ApiResponse:
        try:
            return ApiResponse.ok(self.list_active_schools(), "Active schools retrieved")
        except Exception:
            return self._internal_error("school_list_active_failed")

"""
Children of the resolved school and their parent/teacher links
"""

from datetime import datetime
from sqlmodel import Session, select
import structlog
import uuid

from app.core.tenant import ResolvedTenant, tenant_scoped
from app.models.account import Account, RoleName
from app.models.child import Child, EnrollmentStatus, ParentChild, TeacherChild
from app.schemas.child import ChildCreate, ChildResponse, ChildUpdate, LinkedAccountResponse
from app.schemas.common import ApiResponse, ErrorCode
from app.services.accounts import ACCOUNT_NOT_FOUND_MESSAGE, VALIDATION_MESSAGE, children_of
from app.services.base import BaseService, ServiceError

logger = structlog.get_logger(__name__)

CHILD_NOT_FOUND_MESSAGE = "Child not found"


class ChildService(BaseService):
    def __init__(self, session: Session, tenant: ResolvedTenant):
        super().__init__(session)
        self.tenant = tenant

    def _get_child(self, child_id: int) -> Child:
        child = self.session.get(Child, child_id)
        if child is None or child.is_deleted or child.school_id != self.tenant.id:
            raise ServiceError(ErrorCode.NOT_FOUND, CHILD_NOT_FOUND_MESSAGE)
        return child

    def _get_account(self, account_id: uuid.UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None or account.school_id != self.tenant.id:
            raise ServiceError(ErrorCode.ACCOUNT_NOT_FOUND, ACCOUNT_NOT_FOUND_MESSAGE)
        return account

    def _require_role(self, account: Account, role: RoleName) -> None:
        if not account.has_role(role.value):
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                VALIDATION_MESSAGE,
                [f"account_id: Account does not have role '{role.value}'"],
            )

    def create_child(self, data: ChildCreate) -> ApiResponse:
        try:
            child = Child(school_id=self.tenant.id, **data.model_dump())
            child.status = data.status.value
            if data.status == EnrollmentStatus.ENROLLED:
                child.enrolled_at = datetime.utcnow()

            self.session.add(child)
            self.session.commit()
            self.session.refresh(child)
            logger.info(f"Child created: {child.full_name} in school {self.tenant.code}")
            return ApiResponse.ok(ChildResponse.model_validate(child), "Child created")
        except Exception:
            return self._internal_error("child_create_failed", school_id=self.tenant.id)

    def list_children(self) -> ApiResponse:
        try:
            children = self.session.exec(
                tenant_scoped(select(Child), Child, self.tenant.id)
                .where(Child.is_deleted == False)  # noqa: E712
                .order_by(Child.last_name, Child.first_name)
            ).all()
            return ApiResponse.ok([ChildResponse.model_validate(child) for child in children], "Children retrieved")
        except Exception:
            return self._internal_error("child_list_failed", school_id=self.tenant.id)

    def get_child(self, child_id: int) -> ApiResponse:
        try:
            return ApiResponse.ok(ChildResponse.model_validate(self._get_child(child_id)), "Child retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("child_get_failed", child_id=child_id)

    def update_child(self, child_id: int, data: ChildUpdate) -> ApiResponse:
        try:
            child = self._get_child(child_id)
            changes = data.model_dump(exclude_unset=True)

            status = changes.pop("status", None)
            if status is not None:
                child.status = status.value
                if status == EnrollmentStatus.ENROLLED and child.enrolled_at is None:
                    child.enrolled_at = datetime.utcnow()
            for key, value in changes.items():
                setattr(child, key, value)
            child.updated_at = datetime.utcnow()

            self.session.add(child)
            self.session.commit()
            self.session.refresh(child)
            logger.info(f"Child updated: {child.id} in school {self.tenant.code}")
            return ApiResponse.ok(ChildResponse.model_validate(child), "Child updated")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("child_update_failed", child_id=child_id)

    def delete_child(self, child_id: int) -> ApiResponse:
        """Soft delete, links are kept but the child no longer shows up"""
        try:
            child = self._get_child(child_id)
            child.is_deleted = True
            child.updated_at = datetime.utcnow()

            self.session.add(child)
            self.session.commit()
            logger.info(f"Child deleted: {child.full_name} from school {self.tenant.code}")
            return ApiResponse.ok(None, "Child deleted")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("child_delete_failed", child_id=child_id)

    def list_parents(self, child_id: int) -> ApiResponse:
        try:
            child = self._get_child(child_id)
            parents = self.session.exec(
                select(Account)
                .join(ParentChild, ParentChild.parent_id == Account.id)
                .where(ParentChild.child_id == child.id, ParentChild.school_id == self.tenant.id)
                .order_by(Account.last_name, Account.first_name)
            ).all()
            return ApiResponse.ok([LinkedAccountResponse.model_validate(p) for p in parents], "Parents retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("child_list_parents_failed", child_id=child_id)

    def list_teachers(self, child_id: int) -> ApiResponse:
        try:
            child = self._get_child(child_id)
            teachers = self.session.exec(
                select(Account)
                .join(TeacherChild, TeacherChild.teacher_id == Account.id)
                .where(TeacherChild.child_id == child.id, TeacherChild.school_id == self.tenant.id)
                .order_by(Account.last_name, Account.first_name)
            ).all()
            return ApiResponse.ok([LinkedAccountResponse.model_validate(t) for t in teachers], "Teachers retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("child_list_teachers_failed", child_id=child_id)

    def is_linked(self, child_id: int, account: Account) -> bool:
        """Whether the account is a parent or teacher of the child"""
        return any(child.id == child_id for child in children_of(self.session, account))

    def link_parent(self, child_id: int, account_id: uuid.UUID) -> ApiResponse:
        try:
            child = self._get_child(child_id)
            account = self._get_account(account_id)
            self._require_role(account, RoleName.PARENT)

            existing = self.session.exec(
                select(ParentChild).where(ParentChild.parent_id == account.id, ParentChild.child_id == child.id)
            ).first()
            if existing is not None:
                raise ServiceError(ErrorCode.VALIDATION_ERROR, "Parent is already linked to this child")

            self.session.add(ParentChild(school_id=self.tenant.id, parent_id=account.id, child_id=child.id))
            self.session.commit()
            logger.info(f"Parent {account.email} linked to child {child.id}")
            return ApiResponse.ok(None, "Parent linked")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("link_parent_failed", child_id=child_id, account_id=str(account_id))

    def unlink_parent(self, child_id: int, account_id: uuid.UUID) -> ApiResponse:
        try:
            link = self.session.exec(
                tenant_scoped(select(ParentChild), ParentChild, self.tenant.id).where(
                    ParentChild.parent_id == account_id, ParentChild.child_id == child_id
                )
            ).first()
            if link is None:
                raise ServiceError(ErrorCode.NOT_FOUND, "Link not found")

            self.session.delete(link)
            self.session.commit()
            logger.info(f"Parent {account_id} unlinked from child {child_id}")
            return ApiResponse.ok(None, "Parent unlinked")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("unlink_parent_failed", child_id=child_id, account_id=str(account_id))

    def link_teacher(self, child_id: int, account_id: uuid.UUID) -> ApiResponse:
        try:
            child = self._get_child(child_id)
            account = self._get_account(account_id)
            self._require_role(account, RoleName.TEACHER)

            existing = self.session.exec(
                select(TeacherChild).where(TeacherChild.teacher_id == account.id, TeacherChild.child_id == child.id)
            ).first()
            if existing is not None:
                raise ServiceError(ErrorCode.VALIDATION_ERROR, "Teacher is already linked to this child")

            self.session.add(TeacherChild(school_id=self.tenant.id, teacher_id=account.id, child_id=child.id))
            self.session.commit()
            logger.info(f"Teacher {account.email} linked to child {child.id}")
            return ApiResponse.ok(None, "Teacher linked")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("link_teacher_failed", child_id=child_id, account_id=str(account_id))

    def unlink_teacher(self, child_id: int, account_id: uuid.UUID) -> ApiResponse:
        try:
            link = self.session.exec(
                tenant_scoped(select(TeacherChild), TeacherChild, self.tenant.id).where(
                    TeacherChild.teacher_id == account_id, TeacherChild.child_id == child_id
                )
            ).first()
            if link is None:
                raise ServiceError(ErrorCode.NOT_FOUND, "Link not found")

            self.session.delete(link)
            self.session.commit()
            logger.info(f"Teacher {account_id} unlinked from child {child_id}")
            return ApiResponse.ok(None, "Teacher unlinked")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("unlink_teacher_failed", child_id=child_id, account_id=str(account_id))

    def list_children_of_account(self, account_id: uuid.UUID) -> ApiResponse:
        """Children linked to a parent or teacher of this school"""
        try:
            account = self._get_account(account_id)
            children = children_of(self.session, account)
            return ApiResponse.ok([ChildResponse.model_validate(child) for child in children], "Children retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("child_list_of_account_failed", account_id=str(account_id))

"""
User management within the resolved school - accounts and their roles
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import func, or_
from sqlmodel import Session, col, select
import structlog
import uuid

from app.core.passwords import hash_password, validate_password_change
from app.core.permissions import can_grant_role, get_permissions_for_roles
from app.core.tenant import ResolvedTenant, tenant_scoped
from app.models.account import Account, AccountRole
from app.models.school import School
from app.schemas.common import ApiResponse, ErrorCode, PagedRequest, PagedResult
from app.schemas.user import AccountResponse, ResetPasswordRequest, UpdateProfileRequest, UserCreate
from app.services.accounts import (
    ACCOUNT_NOT_FOUND_MESSAGE,
    VALIDATION_MESSAGE,
    account_projection,
    create_account,
    parse_role,
    remove_account,
)
from app.services.base import BaseService, ServiceError

logger = structlog.get_logger(__name__)

SORT_COLUMNS = {
    "email": Account.email,
    "first_name": Account.first_name,
    "last_name": Account.last_name,
    "created_at": Account.created_at,
}


class UserService(BaseService):
    """Accounts of one school, every lookup is scoped to the tenant

    When an acting account is given, roles it may not grant are off limits:
    it can neither hand them out nor administer accounts that hold them.
    """

    def __init__(self, session: Session, tenant: ResolvedTenant, actor: Optional[Account] = None):
        super().__init__(session)
        self.tenant = tenant
        self.actor = actor

    def _ensure_can_grant(self, role: str) -> None:
        if self.actor is None:
            return
        if not can_grant_role(role, get_permissions_for_roles(self.actor.roles)):
            raise ServiceError(
                ErrorCode.FORBIDDEN,
                f"Not allowed to manage role {role}",
                [f"role: Not allowed to manage '{role}'"],
            )

    def _ensure_can_manage(self, account: Account) -> None:
        for role in account.roles:
            self._ensure_can_grant(role)

    def _get_account(self, account_id: uuid.UUID) -> Account:
        account = self.session.get(Account, account_id)
        # Accounts of other schools are reported as missing
        if account is None or account.school_id != self.tenant.id:
            raise ServiceError(ErrorCode.ACCOUNT_NOT_FOUND, ACCOUNT_NOT_FOUND_MESSAGE)
        return account

    def _project(self, account: Account) -> AccountResponse:
        return account_projection(self.session, account)

    def list_users(self, request: PagedRequest) -> ApiResponse:
        try:
            query = tenant_scoped(select(Account), Account, self.tenant.id)
            if request.search:
                pattern = f"%{request.search}%"
                query = query.where(
                    or_(
                        col(Account.email).ilike(pattern),
                        col(Account.first_name).ilike(pattern),
                        col(Account.last_name).ilike(pattern),
                    )
                )

            column = SORT_COLUMNS.get((request.sort_by or "last_name").lower(), Account.created_at)
            order = col(column).desc() if request.sort_descending else col(column).asc()

            total_count = self.session.exec(select(func.count()).select_from(query.subquery())).one()
            accounts = self.session.exec(
                query.order_by(order).offset(request.offset).limit(request.page_size)
            ).all()

            result = PagedResult[AccountResponse](
                items=[self._project(account) for account in accounts],
                total_count=total_count,
                page=request.page,
                page_size=request.page_size,
            )
            return ApiResponse.ok(result, "Users retrieved")
        except Exception:
            return self._internal_error("user_list_failed", school_id=self.tenant.id)

    def get_user(self, account_id: uuid.UUID) -> ApiResponse:
        try:
            return ApiResponse.ok(self._project(self._get_account(account_id)), "User retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("user_get_failed", account_id=str(account_id))

    def create_user(self, data: UserCreate) -> ApiResponse:
        """Same rules as registration, without signing the account in"""
        try:
            self._ensure_can_grant(data.role.value)
            school = self.session.get(School, self.tenant.id)
            account = create_account(self.session, school, data, data.role)
            self.session.commit()
            self.session.refresh(account)
            return ApiResponse.ok(self._project(account), "User created")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("user_create_failed", email=data.email, school_id=self.tenant.id)

    def update_user(self, account_id: uuid.UUID, data: UpdateProfileRequest) -> ApiResponse:
        try:
            account = self._get_account(account_id)
            self._ensure_can_manage(account)
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(account, key, value)
            account.updated_at = datetime.utcnow()

            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)
            logger.info(f"User updated: {account.email}")
            return ApiResponse.ok(self._project(account), "User updated")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("user_update_failed", account_id=str(account_id))

    def delete_user(self, account_id: uuid.UUID) -> ApiResponse:
        try:
            account = self._get_account(account_id)
            self._ensure_can_manage(account)
            email = account.email
            remove_account(self.session, account)
            self.session.commit()
            logger.info(f"User deleted: {email} from school {self.tenant.code}")
            return ApiResponse.ok(None, "User deleted")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("user_delete_failed", account_id=str(account_id))

    def toggle_user_status(self, account_id: uuid.UUID) -> ApiResponse:
        """Enable or disable an account, disabling revokes its tokens"""
        try:
            account = self._get_account(account_id)
            self._ensure_can_manage(account)
            account.is_active = not account.is_active
            if not account.is_active:
                account.bump_security_stamp()
            account.updated_at = datetime.utcnow()

            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)
            logger.info(f"User status changed: {account.email} active={account.is_active}")
            return ApiResponse.ok(self._project(account), "User status changed")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("user_toggle_status_failed", account_id=str(account_id))

    def reset_password(self, account_id: uuid.UUID, data: ResetPasswordRequest) -> ApiResponse:
        """Set a new password, lift any lockout and revoke the account's tokens"""
        try:
            account = self._get_account(account_id)
            self._ensure_can_manage(account)

            errors = validate_password_change(data.new_password, data.confirm_new_password, field="new_password")
            if errors:
                raise ServiceError(ErrorCode.VALIDATION_ERROR, VALIDATION_MESSAGE, errors)

            account.password_hash = hash_password(data.new_password)
            account.clear_lockout()
            account.bump_security_stamp()

            self.session.add(account)
            self.session.commit()
            logger.info(f"Password reset: {account.email} in school {self.tenant.code}")
            return ApiResponse.ok(None, "Password reset")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("password_reset_failed", account_id=str(account_id))

    def list_users_by_role(self, role_name: str) -> ApiResponse:
        try:
            role = parse_role(role_name)
            accounts = self.session.exec(
                tenant_scoped(select(Account), Account, self.tenant.id)
                .join(AccountRole, AccountRole.account_id == Account.id)
                .where(AccountRole.role == role.value)
                .order_by(Account.last_name, Account.first_name)
            ).all()
            return ApiResponse.ok([self._project(account) for account in accounts], "Users retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("user_list_by_role_failed", role=role_name)

    def assign_role(self, account_id: uuid.UUID, role_name: str) -> ApiResponse:
        try:
            role = parse_role(role_name)
            self._ensure_can_grant(role.value)
            account = self._get_account(account_id)
            self._ensure_can_manage(account)
            if not account.add_role(role.value):
                raise ServiceError(
                    ErrorCode.VALIDATION_ERROR,
                    f"Account already has role {role.value}",
                    [f"role: Already assigned '{role.value}'"],
                )
            account.bump_security_stamp()

            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)
            logger.info(f"Role assigned: {role.value} to {account.email}")
            return ApiResponse.ok(self._project(account), "Role assigned")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("role_assign_failed", account_id=str(account_id), role=role_name)

    def remove_role(self, account_id: uuid.UUID, role_name: str) -> ApiResponse:
        try:
            role = parse_role(role_name)
            self._ensure_can_grant(role.value)
            account = self._get_account(account_id)
            self._ensure_can_manage(account)
            if not account.remove_role(role.value):
                raise ServiceError(
                    ErrorCode.VALIDATION_ERROR,
                    f"Account does not have role {role.value}",
                    [f"role: Not assigned '{role.value}'"],
                )
            account.bump_security_stamp()

            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)
            logger.info(f"Role removed: {role.value} from {account.email}")
            return ApiResponse.ok(self._project(account), "Role removed")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("role_remove_failed", account_id=str(account_id), role=role_name)

"""
Authentication service - registration, login, token refresh and the account lifecycle
"""

from datetime import datetime, timedelta
from sqlmodel import Session, select
import structlog
import uuid

from app.core.auth import get_principal_from_expired_token, get_subject, issue_token_pair, stamp_matches
from app.core.config import get_settings
from app.core.passwords import burn_password_check, hash_password, validate_password_change, verify_password
from app.models.account import Account, AccountRole, RoleName
from app.models.school import School
from app.schemas.common import ApiResponse, ErrorCode
from app.schemas.school import SchoolResponse
from app.schemas.token import AuthResponse, InitializeSystemRequest, RefreshTokenRequest
from app.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from app.services.accounts import (
    ACCOUNT_NOT_FOUND_MESSAGE,
    VALIDATION_MESSAGE,
    account_projection,
    create_account,
    find_account,
    remove_account,
)
from app.services.base import BaseService, ServiceError
from app.services.school_service import SchoolService

logger = structlog.get_logger(__name__)
settings = get_settings()

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
ACCOUNT_LOCKED_MESSAGE = "Account is locked, try again later"
ACCOUNT_DISABLED_MESSAGE = "Account is disabled"
INVALID_TOKEN_MESSAGE = "Invalid token"
TENANT_NOT_FOUND_MESSAGE = "School not found"


class AuthService(BaseService):
    """Identity operations for accounts bound to one school"""

    def __init__(self, session: Session):
        super().__init__(session)
        self.schools = SchoolService(session)

    def _require_school(self, school_id: int) -> School:
        school = self.schools.find_tenant_by_id(school_id)
        if school is None:
            raise ServiceError(ErrorCode.TENANT_NOT_FOUND, TENANT_NOT_FOUND_MESSAGE)
        return school

    def _require_account(self, account_id: uuid.UUID) -> Account:
        account = self.session.get(Account, account_id)
        if account is None:
            raise ServiceError(ErrorCode.ACCOUNT_NOT_FOUND, ACCOUNT_NOT_FOUND_MESSAGE)
        return account

    def _auth_response(self, account: Account, school: School) -> AuthResponse:
        pair = issue_token_pair(account, school)
        return AuthResponse(
            token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_expiration=pair.expires_at,
            account=account_projection(self.session, account),
            school=SchoolResponse.model_validate(school),
        )

    def register(self, data: RegisterRequest, role: RoleName) -> ApiResponse:
        """Create an account with exactly one role and sign it in"""
        try:
            school = self._require_school(data.school_id)
            account = create_account(self.session, school, data, role)
            self.session.commit()
            self.session.refresh(account)

            logger.info(f"Registration: {account.email} as {role.value} in school {school.code}")
            return ApiResponse.ok(self._auth_response(account, school), "Registration successful")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("register_failed", email=data.email, school_id=data.school_id)

    def login(self, data: LoginRequest) -> ApiResponse:
        try:
            school = self._require_school(data.school_id)
            account = find_account(self.session, school.id, data.email)
            if account is None:
                burn_password_check()
                logger.warning(f"Login failed for {data.email} in school {school.code}")
                raise ServiceError(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

            # Lockout and status are checked before the hash comparison
            if account.is_locked_out():
                logger.warning(f"Login attempt on locked account {account.email}")
                raise ServiceError(ErrorCode.ACCOUNT_LOCKED, ACCOUNT_LOCKED_MESSAGE)
            if not account.is_active:
                raise ServiceError(ErrorCode.ACCOUNT_LOCKED, ACCOUNT_DISABLED_MESSAGE)

            if not verify_password(data.password, account.password_hash):
                locked = account.record_failed_login(
                    settings.LOCKOUT_MAX_FAILED_ATTEMPTS,
                    timedelta(minutes=settings.LOCKOUT_DURATION_MINUTES),
                )
                self.session.add(account)
                self.session.commit()
                if locked:
                    logger.warning(f"Account locked after repeated failures: {account.email}")
                    return ApiResponse.fail(ErrorCode.ACCOUNT_LOCKED, ACCOUNT_LOCKED_MESSAGE)
                logger.warning(f"Login failed for {data.email} in school {school.code}")
                return ApiResponse.fail(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

            account.record_successful_login()
            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)

            logger.info(f"Login: {account.email} in school {school.code}")
            return ApiResponse.ok(self._auth_response(account, school), "Login successful")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("login_failed", email=data.email, school_id=data.school_id)

    def refresh_token(self, data: RefreshTokenRequest) -> ApiResponse:
        """Exchange an expired access token for a new pair"""
        try:
            claims = get_principal_from_expired_token(data.token)
            account_id = get_subject(claims)
            if account_id is None:
                raise ServiceError(ErrorCode.INVALID_TOKEN, INVALID_TOKEN_MESSAGE)

            account = self._require_account(account_id)
            if not stamp_matches(claims, account):
                raise ServiceError(ErrorCode.INVALID_TOKEN, INVALID_TOKEN_MESSAGE)
            if account.is_locked_out():
                raise ServiceError(ErrorCode.ACCOUNT_LOCKED, ACCOUNT_LOCKED_MESSAGE)
            if not account.is_active:
                raise ServiceError(ErrorCode.ACCOUNT_LOCKED, ACCOUNT_DISABLED_MESSAGE)

            school = self._require_school(account.school_id)
            logger.info(f"Token refreshed for {account.email}")
            return ApiResponse.ok(self._auth_response(account, school), "Token refreshed")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("refresh_token_failed")

    def logout(self, account_id: uuid.UUID) -> ApiResponse:
        """Rotate the security stamp, unknown accounts are not an error"""
        try:
            account = self.session.get(Account, account_id)
            if account is not None:
                account.bump_security_stamp()
                self.session.add(account)
                self.session.commit()
                logger.info(f"Logout: {account.email}")
            return ApiResponse.ok(None, "Logout successful")
        except Exception:
            return self._internal_error("logout_failed", account_id=str(account_id))

    def get_current_account(self, account_id: uuid.UUID) -> ApiResponse:
        try:
            account = self._require_account(account_id)
            return ApiResponse.ok(account_projection(self.session, account), "Account retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("get_current_account_failed", account_id=str(account_id))

    def update_profile(self, account_id: uuid.UUID, data: UpdateProfileRequest) -> ApiResponse:
        try:
            account = self._require_account(account_id)
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(account, key, value)
            account.updated_at = datetime.utcnow()

            self.session.add(account)
            self.session.commit()
            self.session.refresh(account)
            logger.info(f"Profile updated: {account.email}")
            return ApiResponse.ok(account_projection(self.session, account), "Profile updated")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("update_profile_failed", account_id=str(account_id))

    def change_password(self, account_id: uuid.UUID, data: ChangePasswordRequest) -> ApiResponse:
        try:
            account = self._require_account(account_id)
            if not verify_password(data.current_password, account.password_hash):
                raise ServiceError(
                    ErrorCode.VALIDATION_ERROR,
                    VALIDATION_MESSAGE,
                    ["current_password: Incorrect password"],
                )

            errors = validate_password_change(data.new_password, data.confirm_new_password, field="new_password")
            if errors:
                raise ServiceError(ErrorCode.VALIDATION_ERROR, VALIDATION_MESSAGE, errors)

            account.password_hash = hash_password(data.new_password)
            account.bump_security_stamp()
            self.session.add(account)
            self.session.commit()
            logger.info(f"Password changed: {account.email}")
            return ApiResponse.ok(None, "Password changed")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("change_password_failed", account_id=str(account_id))

    def delete_account(self, account_id: uuid.UUID) -> ApiResponse:
        try:
            account = self._require_account(account_id)
            email = account.email
            remove_account(self.session, account)
            self.session.commit()
            logger.info(f"Account deleted: {email}")
            return ApiResponse.ok(None, "Account deleted")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("delete_account_failed", account_id=str(account_id))

    def get_account_roles(self, account_id: uuid.UUID) -> ApiResponse:
        try:
            account = self._require_account(account_id)
            return ApiResponse.ok(account.roles, "Roles retrieved")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("get_account_roles_failed", account_id=str(account_id))

    def get_available_schools(self) -> ApiResponse:
        """Schools a visitor may register into or sign in to"""
        return self.schools.get_active_schools()

    def initialize_system(self, data: InitializeSystemRequest) -> ApiResponse:
        """Create the first school and its SuperAdmin in one unit of work"""
        try:
            existing = self.session.exec(
                select(AccountRole).where(AccountRole.role == RoleName.SUPER_ADMIN.value)
            ).first()
            if existing is not None:
                raise ServiceError(
                    ErrorCode.VALIDATION_ERROR,
                    "System is already initialized",
                    ["super_admin: A SuperAdmin already exists"],
                )

            school = self.schools.add_school(data.school)
            account = create_account(self.session, school, data.super_admin, RoleName.SUPER_ADMIN)
            self.session.commit()
            self.session.refresh(school)
            self.session.refresh(account)

            logger.info(f"System initialized: school {school.code}, SuperAdmin {account.email}")
            return ApiResponse.ok(self._auth_response(account, school), "System initialized")
        except ServiceError as e:
            return self._fail(e)
        except Exception:
            return self._internal_error("initialize_system_failed", code=data.school.code)

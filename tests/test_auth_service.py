"""
Tests for the account lifecycle: registration, login, lockout, refresh, logout
"""

import pytest
from datetime import datetime, timedelta
from jose import jwt
from pydantic import ValidationError
from sqlmodel import select

from app.core.auth import create_access_token, decode_access_token, get_principal_from_expired_token
from app.core.config import get_settings
from app.models.account import Account, AccountRole, RoleName
from app.models.school import School
from app.schemas.common import ErrorCode
from app.schemas.school import SchoolCreate
from app.schemas.token import InitializeSystemRequest, RefreshTokenRequest
from app.schemas.user import (
    AccountProfile,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from app.services.auth_service import AuthService
from app.services.school_service import SchoolService

settings = get_settings()


def register_request(school_id: int, email: str = "a@b.com", password: str = "Abcdef1", confirm: str = None):
    return RegisterRequest(
        school_id=school_id,
        email=email,
        password=password,
        confirm_password=confirm if confirm is not None else password,
        first_name="Awa",
        last_name="Kone",
    )


def login_request(school_id: int, password: str = "Abcdef1", email: str = "a@b.com"):
    return LoginRequest(school_id=school_id, email=email, password=password)


def expired_token(account: Account, school: School) -> str:
    return create_access_token(account, school, expires_delta=timedelta(minutes=-5))


class TestRegister:
    def test_demo_scenario(self, db):
        """Create DEMO, register an Admin, then the same email again"""
        created = SchoolService(db).create_school(
            SchoolCreate(name="Demo School", code="DEMO", email="demo@x.io", address="Rue 12", commune="Cocody")
        )
        assert created.success
        school_id = created.data.id

        service = AuthService(db)
        result = service.register(register_request(school_id), RoleName.ADMIN)

        assert result.success
        claims = decode_access_token(result.data.token)
        assert claims["school_code"] == "DEMO"
        assert claims["role"] == ["Admin"]
        assert result.data.account.email_confirmed is True
        assert result.data.account.roles == ["Admin"]
        assert result.data.school.code == "DEMO"

        duplicate = service.register(register_request(school_id), RoleName.ADMIN)

        assert not duplicate.success
        assert duplicate.error_code == ErrorCode.DUPLICATE_ACCOUNT

    def test_email_is_case_insensitive(self, db, school):
        service = AuthService(db)
        assert service.register(register_request(school.id, email="Mixed@B.com"), RoleName.PARENT).success

        duplicate = service.register(register_request(school.id, email="mixed@b.com"), RoleName.PARENT)

        assert duplicate.error_code == ErrorCode.DUPLICATE_ACCOUNT

    def test_unknown_school(self, db, school):
        result = AuthService(db).register(register_request(school.id + 100), RoleName.PARENT)

        assert result.error_code == ErrorCode.TENANT_NOT_FOUND

    @pytest.mark.parametrize(
        "password, expected",
        [
            ("Ab1", "at least 6 characters"),
            ("Abcdefg", "digit"),
            ("ABCDEF1", "lowercase"),
            ("abcdef1", "uppercase"),
        ],
    )
    def test_password_policy(self, db, school, password, expected):
        result = AuthService(db).register(register_request(school.id, password=password), RoleName.PARENT)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert any(expected in error for error in result.errors)
        assert all(error.startswith("password: ") for error in result.errors)

    def test_non_alphanumeric_not_required(self, db, school):
        assert AuthService(db).register(register_request(school.id, password="Abcdef1"), RoleName.PARENT).success

    def test_confirmation_mismatch(self, db, school):
        result = AuthService(db).register(
            register_request(school.id, password="Abcdef1", confirm="Abcdef2"),
            RoleName.PARENT,
        )

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.errors == ["confirm_password: Passwords do not match"]

    def test_failed_registration_leaves_no_account(self, db, school):
        AuthService(db).register(register_request(school.id, password="weak"), RoleName.PARENT)

        assert len(db.exec(select(Account)).all()) == 0


class TestLogin:
    def test_success_resets_counter(self, db, school, make_account):
        account = make_account(school)
        service = AuthService(db)
        service.login(login_request(school.id, password="Wrong1a"))

        result = service.login(login_request(school.id))

        assert result.success
        assert result.data.account.id == account.id
        db.refresh(account)
        assert account.access_failed_count == 0
        assert account.last_login_at is not None

    def test_unknown_account_and_wrong_password_are_indistinguishable(self, db, school, make_account):
        make_account(school)
        service = AuthService(db)

        unknown = service.login(login_request(school.id, email="nobody@b.com"))
        wrong = service.login(login_request(school.id, password="Wrong1a"))

        assert unknown.error_code == wrong.error_code == ErrorCode.INVALID_CREDENTIALS
        assert unknown.message == wrong.message

    def test_unknown_account_still_spends_a_hash_check(self, db, school, make_account, monkeypatch):
        make_account(school)
        calls = []
        monkeypatch.setattr("app.services.auth_service.burn_password_check", lambda: calls.append(True))

        AuthService(db).login(login_request(school.id, email="nobody@b.com"))
        AuthService(db).login(login_request(school.id))

        assert calls == [True]

    def test_account_of_other_school_not_found(self, db, school, other_school, make_account):
        make_account(school)

        result = AuthService(db).login(login_request(other_school.id))

        assert result.error_code == ErrorCode.INVALID_CREDENTIALS

    def test_unknown_school(self, db, school, make_account):
        make_account(school)

        result = AuthService(db).login(login_request(school.id + 100))

        assert result.error_code == ErrorCode.TENANT_NOT_FOUND

    def test_lockout_boundary(self, db, school, make_account):
        """Five failures lock the account, even the right password is refused until the window ends"""
        account = make_account(school)
        service = AuthService(db)

        for _ in range(4):
            assert service.login(login_request(school.id, password="Wrong1a")).error_code == ErrorCode.INVALID_CREDENTIALS

        fifth = service.login(login_request(school.id, password="Wrong1a"))
        assert fifth.error_code == ErrorCode.ACCOUNT_LOCKED

        sixth = service.login(login_request(school.id))
        assert sixth.error_code == ErrorCode.ACCOUNT_LOCKED

        db.refresh(account)
        assert account.lockout_end > datetime.utcnow() + timedelta(minutes=4)

        # Lockout window elapses
        account.lockout_end = datetime.utcnow() - timedelta(seconds=1)
        db.add(account)
        db.commit()

        assert service.login(login_request(school.id)).success

    def test_disabled_account_refused(self, db, school, make_account):
        account = make_account(school)
        account.is_active = False
        db.add(account)
        db.commit()

        assert AuthService(db).login(login_request(school.id)).error_code == ErrorCode.ACCOUNT_LOCKED


class TestRefreshAndLogout:
    def test_refresh_from_expired_token(self, db, school, make_account):
        account = make_account(school)

        result = AuthService(db).refresh_token(
            RefreshTokenRequest(token=expired_token(account, school), refresh_token="opaque")
        )

        assert result.success
        claims = decode_access_token(result.data.token)
        assert claims["sub"] == str(account.id)
        assert claims["school_id"] == str(school.id)

    def test_refresh_with_tampered_token(self, db, school, make_account):
        account = make_account(school)
        claims = get_principal_from_expired_token(expired_token(account, school))
        forged = jwt.encode(claims, "not-the-right-secret-but-long-enough", algorithm="HS256")

        result = AuthService(db).refresh_token(RefreshTokenRequest(token=forged, refresh_token="opaque"))

        assert result.error_code == ErrorCode.INVALID_TOKEN

    def test_refresh_for_deleted_account(self, db, school, make_account):
        account = make_account(school)
        token = expired_token(account, school)
        service = AuthService(db)
        assert service.delete_account(account.id).success

        result = service.refresh_token(RefreshTokenRequest(token=token, refresh_token="opaque"))

        assert result.error_code == ErrorCode.ACCOUNT_NOT_FOUND

    def test_refresh_for_locked_account(self, db, school, make_account):
        account = make_account(school)
        token = expired_token(account, school)
        account.lockout_end = datetime.utcnow() + timedelta(minutes=5)
        db.add(account)
        db.commit()

        result = AuthService(db).refresh_token(RefreshTokenRequest(token=token, refresh_token="opaque"))

        assert result.error_code == ErrorCode.ACCOUNT_LOCKED

    def test_logout_twice_is_idempotent(self, db, school, make_account):
        account = make_account(school)
        service = AuthService(db)
        stamps = [account.security_stamp]

        for _ in range(2):
            assert service.logout(account.id).success
            db.refresh(account)
            stamps.append(account.security_stamp)

        assert len(set(stamps)) == 3
        assert service.login(login_request(school.id)).success

    def test_logout_unknown_account_succeeds(self, db, school):
        import uuid

        assert AuthService(db).logout(uuid.uuid4()).success

    def test_refresh_after_logout_rejected(self, db, school, make_account):
        account = make_account(school)
        token = expired_token(account, school)
        service = AuthService(db)
        service.logout(account.id)

        result = service.refresh_token(RefreshTokenRequest(token=token, refresh_token="opaque"))

        assert result.error_code == ErrorCode.INVALID_TOKEN


class TestProfile:
    def test_update_profile(self, db, school, make_account):
        account = make_account(school)

        result = AuthService(db).update_profile(account.id, UpdateProfileRequest(phone="0701020304", first_name="Aya"))

        assert result.success
        assert result.data.phone == "0701020304"
        assert result.data.full_name == "Aya Kone"
        assert result.data.school_code == "DEMO"

    def test_update_profile_keeps_names_when_clearing_optional_fields(self, db, school, make_account):
        account = make_account(school)
        service = AuthService(db)
        service.update_profile(account.id, UpdateProfileRequest(phone="0701020304"))

        result = service.update_profile(account.id, UpdateProfileRequest(phone=None))

        assert result.success
        assert result.data.phone is None
        assert result.data.full_name == "Awa Kone"

    @pytest.mark.parametrize("field", ["first_name", "last_name"])
    def test_update_profile_rejects_null_name(self, field):
        with pytest.raises(ValidationError):
            UpdateProfileRequest(**{field: None})

    def test_change_password(self, db, school, make_account):
        account = make_account(school)
        old_stamp = account.security_stamp
        service = AuthService(db)

        result = service.change_password(
            account.id,
            ChangePasswordRequest(current_password="Abcdef1", new_password="Newpass9", confirm_new_password="Newpass9"),
        )

        assert result.success
        db.refresh(account)
        assert account.security_stamp != old_stamp
        assert service.login(login_request(school.id, password="Newpass9")).success
        assert service.login(login_request(school.id)).error_code == ErrorCode.INVALID_CREDENTIALS

    def test_change_password_wrong_current(self, db, school, make_account):
        account = make_account(school)

        result = AuthService(db).change_password(
            account.id,
            ChangePasswordRequest(current_password="Wrong1a", new_password="Newpass9", confirm_new_password="Newpass9"),
        )

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.errors == ["current_password: Incorrect password"]

    def test_change_password_policy(self, db, school, make_account):
        account = make_account(school)

        result = AuthService(db).change_password(
            account.id,
            ChangePasswordRequest(current_password="Abcdef1", new_password="short", confirm_new_password="other"),
        )

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert "confirm_new_password: Passwords do not match" in result.errors
        assert any(error.startswith("new_password: ") for error in result.errors)

    def test_delete_account(self, db, school, make_account):
        account = make_account(school)
        service = AuthService(db)

        assert service.delete_account(account.id).success
        assert service.get_current_account(account.id).error_code == ErrorCode.ACCOUNT_NOT_FOUND
        assert len(db.exec(select(AccountRole)).all()) == 0

    def test_account_roles(self, db, school, make_account):
        account = make_account(school, role=RoleName.TEACHER)

        assert AuthService(db).get_account_roles(account.id).data == ["Teacher"]

    def test_available_schools_exclude_deleted(self, db, school, other_school):
        other_school.soft_delete()
        db.add(other_school)
        db.commit()

        result = AuthService(db).get_available_schools()

        assert [s.code for s in result.data] == ["DEMO"]


class TestInitializeSystem:
    def _request(self, code: str = "FROEBEL_ABJ", email: str = "root@froebel.ci"):
        return InitializeSystemRequest(
            school=SchoolCreate(name="Institut Froebel", code=code, email="contact@froebel.ci", commune="Cocody"),
            super_admin=AccountProfile(
                email=email,
                password="Abcdef1",
                confirm_password="Abcdef1",
                first_name="Root",
                last_name="Admin",
            ),
        )

    def test_creates_school_and_super_admin(self, db):
        result = AuthService(db).initialize_system(self._request())

        assert result.success
        assert result.data.school.code == "FROEBEL_ABJ"
        assert result.data.account.roles == ["SuperAdmin"]

    def test_refused_once_initialized(self, db):
        service = AuthService(db)
        service.initialize_system(self._request())

        result = service.initialize_system(self._request(code="SECOND"))

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert len(db.exec(select(School)).all()) == 1

    def test_invalid_admin_rolls_back_school(self, db):
        request = self._request()
        request.super_admin.confirm_password = "Mismatch1"

        result = AuthService(db).initialize_system(request)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert len(db.exec(select(School)).all()) == 0

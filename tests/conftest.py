"""
Test configuration for pytest
"""

import pytest
import os
from sqlmodel import SQLModel, Session
from typing import Callable, Generator

# Test environment variables, set before any app module reads the settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-with-at-least-32-chars"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DEBUG"] = "false"

from fastapi.testclient import TestClient  # noqa: E402

from app.core.database import engine, get_session, init_db  # noqa: E402
from app.models import Account, RoleName, School  # noqa: E402
from app.schemas.user import AccountProfile  # noqa: E402
from app.services.accounts import create_account  # noqa: E402

PASSWORD = "Abcdef1"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    # Create all tables
    init_db()

    # Create session
    with Session(engine) as session:
        yield session

    # Cleanup
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def school(db: Session) -> School:
    """Active DEMO school"""
    school = School(name="Demo School", code="DEMO", email="demo@x.io", commune="Cocody")
    db.add(school)
    db.commit()
    db.refresh(school)
    return school


@pytest.fixture
def other_school(db: Session) -> School:
    school = School(name="Other School", code="OTHER", email="other@x.io", commune="Plateau")
    db.add(school)
    db.commit()
    db.refresh(school)
    return school


@pytest.fixture
def make_account(db: Session) -> Callable[..., Account]:
    """Factory persisting an account with one role"""
    def _make(
        school: School,
        email: str = "a@b.com",
        role: RoleName = RoleName.PARENT,
        password: str = PASSWORD,
        first_name: str = "Awa",
        last_name: str = "Kone",
    ) -> Account:
        profile = AccountProfile(
            email=email,
            password=password,
            confirm_password=password,
            first_name=first_name,
            last_name=last_name,
        )
        account = create_account(db, school, profile, role)
        db.commit()
        db.refresh(account)
        return account
    return _make


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """API client sharing the test session"""
    from app.main import app

    def override_get_session():
        yield db

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[str], dict]:
    def _headers(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}
    return _headers

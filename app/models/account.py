"""
Account model with roles, lockout state and tenant scoping
"""

from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import UniqueConstraint
from datetime import date, datetime, timedelta
from typing import Optional, TYPE_CHECKING
from enum import Enum
import uuid

if TYPE_CHECKING:
    from app.models.school import School


class RoleName(str, Enum):
    """Role names, case-sensitive external contract"""
    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    TEACHER = "Teacher"
    PARENT = "Parent"


def new_security_stamp() -> str:
    return uuid.uuid4().hex


class AccountRole(SQLModel, table=True):
    """One row per role held by an account"""

    __tablename__ = "account_roles"

    account_id: uuid.UUID = Field(foreign_key="accounts.id", primary_key=True)
    role: str = Field(primary_key=True, index=True, max_length=50)

    account: Optional["Account"] = Relationship(back_populates="role_links")


class Account(SQLModel, table=True):
    """User identity bound to exactly one school"""

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("school_id", "email", name="uq_accounts_school_email"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    school_id: int = Field(foreign_key="schools.id", index=True, description="School ID for multi-tenant isolation")

    # Authentication
    email: str = Field(index=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)
    email_confirmed: bool = Field(default=False)
    security_stamp: str = Field(default_factory=new_security_stamp, max_length=64)

    # Profile
    first_name: str = Field(nullable=False, max_length=100)
    last_name: str = Field(nullable=False, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    birth_date: Optional[date] = None
    sex: Optional[str] = Field(default=None, max_length=10)

    # Status and lockout
    is_active: bool = Field(default=True, index=True)
    lockout_enabled: bool = Field(default=True)
    lockout_end: Optional[datetime] = None
    access_failed_count: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    # Relationships
    school: Optional["School"] = Relationship()
    role_links: list[AccountRole] = Relationship(
        back_populates="account",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "lazy": "selectin"},
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def roles(self) -> list[str]:
        return sorted(link.role for link in self.role_links)

    def has_role(self, role: str) -> bool:
        return any(link.role == role for link in self.role_links)

    def add_role(self, role: str) -> bool:
        """Grant a role, returns False if already held"""
        if self.has_role(role):
            return False
        self.role_links.append(AccountRole(role=role))
        return True

    def remove_role(self, role: str) -> bool:
        """Revoke a role, returns False if not held"""
        for link in list(self.role_links):
            if link.role == role:
                self.role_links.remove(link)
                return True
        return False

    # Lockout state machine
    def is_locked_out(self, now: Optional[datetime] = None) -> bool:
        """Check if the lockout window is still open"""
        now = now or datetime.utcnow()
        return self.lockout_enabled and self.lockout_end is not None and self.lockout_end > now

    def record_failed_login(
        self,
        max_attempts: int,
        lockout_duration: timedelta,
        now: Optional[datetime] = None,
    ) -> bool:
        """Count a failed password check, returns True when it locks the account"""
        now = now or datetime.utcnow()
        if not self.lockout_enabled:
            return False

        self.access_failed_count += 1
        if self.access_failed_count >= max_attempts:
            self.lockout_end = now + lockout_duration
            self.access_failed_count = 0
            return True
        return False

    def clear_lockout(self) -> None:
        self.access_failed_count = 0
        self.lockout_end = None

    def record_successful_login(self, now: Optional[datetime] = None) -> None:
        self.clear_lockout()
        self.last_login_at = now or datetime.utcnow()

    def bump_security_stamp(self) -> str:
        """Rotate the invalidation marker embedded in issued tokens"""
        self.security_stamp = new_security_stamp()
        self.updated_at = datetime.utcnow()
        return self.security_stamp

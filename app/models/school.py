"""
School model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional


def default_school_year() -> str:
    """School year label starting this calendar year, e.g. 2024-2025"""
    year = datetime.utcnow().year
    return f"{year}-{year + 1}"


class School(SQLModel, table=True):
    """School (tenant) - root of all data isolation"""

    __tablename__ = "schools"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=200)
    code: str = Field(unique=True, index=True, max_length=50, description="Unique tenant code, e.g. FROEBEL_ABJ")
    email: str = Field(unique=True, index=True, max_length=100)
    phone: str = Field(default="", max_length=20)
    address: str = Field(default="", max_length=500)
    commune: str = Field(default="", max_length=100)
    school_year: str = Field(default_factory=default_school_year, max_length=20)

    # Status
    is_active: bool = Field(default=True, index=True)
    is_deleted: bool = Field(default=False, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def soft_delete(self) -> None:
        """Flag the school as deleted, the row is kept"""
        self.is_deleted = True
        self.updated_at = datetime.utcnow()

    def toggle_status(self) -> bool:
        """Flip the active flag and return the new value"""
        self.is_active = not self.is_active
        self.updated_at = datetime.utcnow()
        return self.is_active

"""
Account helpers shared by the auth and user management services
"""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
import structlog

from app.core.passwords import hash_password, validate_password_change
from app.models.account import Account, RoleName
from app.models.child import Child, ParentChild, TeacherChild
from app.models.school import School
from app.schemas.child import ChildResponse
from app.schemas.common import ErrorCode
from app.schemas.user import AccountProfile, AccountResponse
from app.services.base import ServiceError

logger = structlog.get_logger(__name__)

DUPLICATE_ACCOUNT_MESSAGE = "An account with this email already exists in this school"
ACCOUNT_NOT_FOUND_MESSAGE = "Account not found"
VALIDATION_MESSAGE = "Validation failed"


def parse_role(name: str) -> RoleName:
    """Map an external role name to RoleName, names are case-sensitive"""
    try:
        return RoleName(name)
    except ValueError:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, f"Unknown role: {name}", [f"role: Unknown role '{name}'"])


def find_account(session: Session, school_id: int, email: str) -> Optional[Account]:
    return session.exec(
        select(Account).where(Account.school_id == school_id, Account.email == email.lower())
    ).first()


def create_account(session: Session, school: School, profile: AccountProfile, role: RoleName) -> Account:
    """Validate and add a new account to the session, flushed but not committed"""
    if find_account(session, school.id, profile.email):
        raise ServiceError(ErrorCode.DUPLICATE_ACCOUNT, DUPLICATE_ACCOUNT_MESSAGE)

    errors = validate_password_change(profile.password, profile.confirm_password)
    if errors:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, VALIDATION_MESSAGE, errors)

    account = Account(
        school_id=school.id,
        email=profile.email.lower(),
        password_hash=hash_password(profile.password),
        email_confirmed=True,
        first_name=profile.first_name,
        last_name=profile.last_name,
        phone=profile.phone,
        address=profile.address,
        birth_date=profile.birth_date,
        sex=profile.sex,
    )
    account.school = school
    account.add_role(role.value)
    session.add(account)

    try:
        session.flush()
    except IntegrityError:
        raise ServiceError(ErrorCode.DUPLICATE_ACCOUNT, DUPLICATE_ACCOUNT_MESSAGE)

    logger.info(f"Account created: {account.email} as {role.value} in school {school.code}")
    return account


def children_of(session: Session, account: Account) -> List[Child]:
    """Children linked to the account as parent or teacher, within its school"""
    parent_children = session.exec(
        select(Child)
        .join(ParentChild, ParentChild.child_id == Child.id)
        .where(
            ParentChild.parent_id == account.id,
            ParentChild.school_id == account.school_id,
            Child.is_deleted == False,  # noqa: E712
        )
    ).all()
    teacher_children = session.exec(
        select(Child)
        .join(TeacherChild, TeacherChild.child_id == Child.id)
        .where(
            TeacherChild.teacher_id == account.id,
            TeacherChild.school_id == account.school_id,
            Child.is_deleted == False,  # noqa: E712
        )
    ).all()

    seen = set()
    children = []
    for child in list(parent_children) + list(teacher_children):
        if child.id not in seen:
            seen.add(child.id)
            children.append(child)
    return children


def account_projection(session: Session, account: Account) -> AccountResponse:
    """Account with its school and linked children"""
    school = account.school or session.get(School, account.school_id)
    return AccountResponse.model_validate(account).model_copy(
        update={
            "school_name": school.name if school else None,
            "school_code": school.code if school else None,
            "children": [ChildResponse.model_validate(child) for child in children_of(session, account)],
        }
    )


def remove_account(session: Session, account: Account) -> None:
    """Delete an account and its child links"""
    for link in session.exec(select(ParentChild).where(ParentChild.parent_id == account.id)).all():
        session.delete(link)
    for link in session.exec(select(TeacherChild).where(TeacherChild.teacher_id == account.id)).all():
        session.delete(link)
    session.flush()
    session.delete(account)

"""
Password hashing and password policy
"""

from typing import List, Optional
from passlib.context import CryptContext

from app.core.config import Settings, get_settings

settings = get_settings()
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Compare a password with its stored hash, malformed hashes never match"""
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def burn_password_check() -> None:
    """Spend the time of a real hash comparison when there is no hash to compare"""
    pwd_context.dummy_verify()


def validate_password(password: str, policy: Optional[Settings] = None) -> List[str]:
    """Return one message per unmet policy rule, empty when the password is acceptable"""
    policy = policy or settings
    errors: List[str] = []

    if len(password) < policy.PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {policy.PASSWORD_MIN_LENGTH} characters long")
    if policy.PASSWORD_REQUIRE_DIGIT and not any(c.isdigit() for c in password):
        errors.append("Password must contain at least one digit ('0'-'9')")
    if policy.PASSWORD_REQUIRE_LOWERCASE and not any(c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter ('a'-'z')")
    if policy.PASSWORD_REQUIRE_UPPERCASE and not any(c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter ('A'-'Z')")
    if policy.PASSWORD_REQUIRE_NON_ALPHANUMERIC and password.isalnum():
        errors.append("Password must contain at least one non alphanumeric character")

    return errors


def validate_password_change(password: str, confirmation: str, field: str = "password") -> List[str]:
    """Policy errors plus a confirmation mismatch error"""
    errors = [f"{field}: {message}" for message in validate_password(password)]
    if password != confirmation:
        errors.append(f"confirm_{field}: Passwords do not match")
    return errors

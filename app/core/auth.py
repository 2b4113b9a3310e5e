"""
JWT access tokens and opaque refresh tokens
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from jose import JWTError, jwt
from typing import Dict, Optional, TYPE_CHECKING
import base64
import hashlib
import secrets
import uuid

from app.core.config import get_settings

if TYPE_CHECKING:
    from app.models.account import Account
    from app.models.school import School

settings = get_settings()

SIGNING_ALGORITHM = "HS256"


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_at: datetime


def stamp_fingerprint(security_stamp: str) -> str:
    """Short digest of the security stamp, safe to embed in a token"""
    return hashlib.sha256(security_stamp.encode("utf-8")).hexdigest()[:16]


def create_access_token(
    account: "Account",
    school: Optional["School"] = None,
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None,
) -> str:
    """Create a signed access token carrying identity and tenant claims"""
    school = school or account.school
    now = issued_at or datetime.utcnow()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(account.id),
        "email": account.email,
        "name": account.full_name,
        settings.TENANT_ID_CLAIM: str(account.school_id),
        settings.TENANT_CODE_CLAIM: school.code if school is not None else "",
        "user_nom": account.last_name,
        "user_prenom": account.first_name,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + expires_delta,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "role": account.roles,
        "stamp": stamp_fingerprint(account.security_stamp),
    }

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=SIGNING_ALGORITHM)


def create_refresh_token() -> str:
    """Opaque high-entropy refresh value, not tied to the access token"""
    return base64.b64encode(secrets.token_bytes(settings.REFRESH_TOKEN_BYTES)).decode("ascii")


def issue_token_pair(account: "Account", school: Optional["School"] = None) -> TokenPair:
    now = datetime.utcnow()
    expires_delta = timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    return TokenPair(
        access_token=create_access_token(account, school, expires_delta=expires_delta, issued_at=now),
        refresh_token=create_refresh_token(),
        expires_at=now + expires_delta,
    )


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode and fully validate a token, expiry included"""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[SIGNING_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError:
        return None


def get_principal_from_expired_token(token: str) -> Optional[Dict]:
    """Validate signature, issuer, audience and algorithm while ignoring expiry"""
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        return None

    if str(header.get("alg", "")).upper() != SIGNING_ALGORITHM:
        return None

    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[SIGNING_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"verify_exp": False},
        )
    except JWTError:
        return None


def get_subject(claims: Optional[Dict]) -> Optional[uuid.UUID]:
    """Account id from the sub claim, None when missing or malformed"""
    if not claims:
        return None
    try:
        return uuid.UUID(str(claims.get("sub")))
    except ValueError:
        return None


def stamp_matches(claims: Dict, account: "Account") -> bool:
    """False once the account's security stamp has been rotated"""
    return claims.get("stamp") == stamp_fingerprint(account.security_stamp)

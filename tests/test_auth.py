"""
Unit tests for JWT access tokens and refresh tokens
"""

import base64
from datetime import datetime, timedelta
from jose import jwt

from app.core.auth import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    get_principal_from_expired_token,
    get_subject,
    issue_token_pair,
    stamp_matches,
)
from app.core.config import get_settings
from app.models.account import RoleName

settings = get_settings()


def _claims_with(**overrides) -> dict:
    now = datetime.utcnow()
    claims = {
        "sub": "7d0c1f9e-7c55-4b0e-9a53-0c3f4b0b2a11",
        settings.TENANT_ID_CLAIM: "1",
        settings.TENANT_CODE_CLAIM: "DEMO",
        "iat": now,
        "exp": now - timedelta(minutes=5),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }
    claims.update(overrides)
    return claims


def test_access_token_claims(school, make_account):
    """Identity, tenant and role claims are embedded"""
    account = make_account(school, role=RoleName.ADMIN, first_name="Awa", last_name="Kone")

    token = create_access_token(account, school)
    payload = decode_access_token(token)

    assert payload is not None
    assert payload["sub"] == str(account.id)
    assert payload["email"] == "a@b.com"
    assert payload["name"] == "Awa Kone"
    assert payload["school_id"] == str(school.id)
    assert payload["school_code"] == "DEMO"
    assert payload["user_nom"] == "Kone"
    assert payload["user_prenom"] == "Awa"
    assert payload["role"] == ["Admin"]
    assert payload["iss"] == settings.JWT_ISSUER
    assert payload["aud"] == settings.JWT_AUDIENCE
    assert payload["jti"]
    assert jwt.get_unverified_header(token)["alg"] == "HS256"


def test_access_token_default_lifetime(school, make_account):
    account = make_account(school)

    payload = decode_access_token(create_access_token(account, school))

    assert payload["exp"] - payload["iat"] == 60 * 60


def test_each_token_has_unique_jti(school, make_account):
    account = make_account(school)

    first = decode_access_token(create_access_token(account, school))
    second = decode_access_token(create_access_token(account, school))

    assert first["jti"] != second["jti"]


def test_one_role_claim_entry_per_role(db, school, make_account):
    account = make_account(school, role=RoleName.TEACHER)
    account.add_role(RoleName.PARENT.value)
    db.commit()
    db.refresh(account)

    payload = decode_access_token(create_access_token(account, school))

    assert sorted(payload["role"]) == ["Parent", "Teacher"]


def test_refresh_token_is_64_random_bytes():
    first = create_refresh_token()
    second = create_refresh_token()

    assert len(base64.b64decode(first)) == 64
    assert first != second


def test_issue_token_pair_expiration(school, make_account):
    account = make_account(school)
    before = datetime.utcnow()

    pair = issue_token_pair(account, school)

    assert pair.refresh_token
    assert before + timedelta(minutes=59) < pair.expires_at <= datetime.utcnow() + timedelta(minutes=60)


def test_expired_token_round_trip(school, make_account):
    """Expired tokens are rejected for access but still yield their principal"""
    account = make_account(school)
    token = create_access_token(account, school, expires_delta=timedelta(minutes=-1))

    assert decode_access_token(token) is None

    claims = get_principal_from_expired_token(token)
    assert claims is not None
    assert get_subject(claims) == account.id
    assert claims["school_id"] == str(school.id)
    assert claims["school_code"] == "DEMO"


def test_expired_token_with_wrong_signature_rejected():
    token = jwt.encode(_claims_with(), "another-secret-key-of-sufficient-length", algorithm="HS256")

    assert get_principal_from_expired_token(token) is None


def test_expired_token_with_other_algorithm_rejected():
    token = jwt.encode(_claims_with(), settings.JWT_SECRET_KEY, algorithm="HS512")

    assert get_principal_from_expired_token(token) is None


def test_expired_token_with_wrong_audience_rejected():
    token = jwt.encode(_claims_with(aud="someone-else"), settings.JWT_SECRET_KEY, algorithm="HS256")

    assert get_principal_from_expired_token(token) is None


def test_expired_token_with_wrong_issuer_rejected():
    token = jwt.encode(_claims_with(iss="someone-else"), settings.JWT_SECRET_KEY, algorithm="HS256")

    assert get_principal_from_expired_token(token) is None


def test_malformed_token_rejected():
    assert get_principal_from_expired_token("invalid.token.string") is None
    assert decode_access_token("invalid.token.string") is None


def test_get_subject_requires_uuid():
    assert get_subject(None) is None
    assert get_subject({"sub": "not-a-uuid"}) is None
    assert get_subject({}) is None


def test_stamp_rotation_invalidates_claims(school, make_account):
    account = make_account(school)
    claims = decode_access_token(create_access_token(account, school))
    assert stamp_matches(claims, account)

    account.bump_security_stamp()

    assert not stamp_matches(claims, account)

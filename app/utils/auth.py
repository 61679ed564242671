"""
Token utilities: JWT access tokens for users and scoped admins, random
magic-link tokens, and constant-time secret comparison.

Uses HS256-signed JWTs (python-jose) with UTC expiry claims.
"""

import hmac
import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from app.config import settings

ALGORITHM = "HS256"
ADMIN_SUBJECT = "admin"


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with the given data."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT access token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None


def create_user_token(email: str) -> str:
    return create_access_token({"sub": email, "typ": "user"})


def extract_user_email_from_token(token: str) -> str | None:
    payload = decode_access_token(token)
    if payload is None or payload.get("typ") != "user":
        return None
    return payload.get("sub")


def create_admin_token(scopes: list[str]) -> str:
    return create_access_token(
        {"sub": ADMIN_SUBJECT, "typ": "admin", "scopes": list(scopes)},
        expires_delta=timedelta(minutes=settings.admin_token_expire_minutes),
    )


def extract_admin_scopes_from_token(token: str) -> set[str] | None:
    """Return the scopes of a valid admin token, or None if it is not one."""
    payload = decode_access_token(token)
    if payload is None or payload.get("typ") != "admin":
        return None
    return set(payload.get("scopes") or [])


def generate_login_token() -> str:
    return secrets.token_hex(32)


def secrets_match(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison; an unset expected secret never matches."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))

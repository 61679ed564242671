"""
Authentication dependencies for FastAPI route protection.
"""

from collections.abc import Callable

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import settings
from app.exceptions import Forbidden, Unauthorized
from app.services.user_service import normalize_email
from app.utils.auth import (
    extract_admin_scopes_from_token,
    extract_user_email_from_token,
    secrets_match,
)
from app.utils.logger import setup_logger

logger = setup_logger("dependencies.auth")

optional_bearer = HTTPBearer(auto_error=False)


async def get_current_user_email_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> str | None:
    """
    Email of the user behind a bearer token, or None when no token is sent.
    A token that is present but invalid is rejected.
    """
    if credentials is None:
        return None
    email = extract_user_email_from_token(credentials.credentials)
    if email is None:
        raise Forbidden("Could not validate credentials")
    return email


def ensure_caller_matches(email: str | None, caller_email: str | None) -> None:
    """
    A signed-in caller may only act on their own account.

    Without REQUIRE_USER_TOKEN an anonymous caller is trusted with the email
    in the request, so anyone who knows that email can act for its owner.
    """
    if caller_email is None and settings.require_user_token:
        raise Forbidden("A user access token is required")
    if caller_email is not None and normalize_email(email) != normalize_email(caller_email):
        raise Forbidden("Token does not match the requested user")


def require_admin(scope: str) -> Callable:
    """
    Dependency factory for admin routes.

    Accepts an admin bearer token carrying ``scope`` or, when the legacy
    fallback is enabled, the raw shared secret in ``x-admin-secret``.
    """

    async def dependency(
        credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
        x_admin_secret: str | None = Header(None, alias="x-admin-secret"),
    ) -> None:
        if credentials is not None:
            scopes = extract_admin_scopes_from_token(credentials.credentials)
            if scopes is not None and scope in scopes:
                return
            if scopes is not None:
                logger.warning(f"Admin token without scope '{scope}' rejected")
                raise Unauthorized(f"Admin token lacks the '{scope}' scope")

        if settings.allow_legacy_admin_secret and secrets_match(
            x_admin_secret, settings.admin_secret
        ):
            return

        raise Unauthorized()

    return dependency

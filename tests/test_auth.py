"""
Magic-link login and user bearer tokens.
"""

import re
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import update

from app.exceptions import InvalidToken
from app.models import LoginSession
from app.models.base import utcnow
from app.services import auth_service
from app.utils.auth import (
    create_admin_token,
    create_user_token,
    extract_admin_scopes_from_token,
    extract_user_email_from_token,
    secrets_match,
)

TOKEN_PATTERN = re.compile(r"token=([0-9a-f]{64})")


def request_login(client: TestClient, fake_notifier, email="writer@example.com") -> str:
    response = client.post(
        "/login", json={"name": "Writer", "email": email, "phone": "+254700000000"}
    )
    assert response.status_code == 200, response.text
    assert response.json() == {"message": "✅ Verification email sent"}
    message = fake_notifier.sent[-1]
    assert message.to == email
    return TOKEN_PATTERN.search(message.html).group(1)


def test_login_creates_user_and_verifies_once(client: TestClient, fake_notifier):
    token = request_login(client, fake_notifier)
    assert "/verify.html?token=" in fake_notifier.sent[-1].html

    verified = client.get(f"/verify/{token}")
    assert verified.status_code == 200
    body = verified.json()
    assert body["message"] == "✅ Login successful"
    assert body["user"]["email"] == "writer@example.com"
    assert extract_user_email_from_token(body["access_token"]) == "writer@example.com"

    reused = client.get(f"/verify/{token}")
    assert reused.status_code == 400
    assert reused.json() == {"detail": "Invalid or expired token", "code": "invalid_token"}


def test_login_for_existing_user_keeps_profile(client: TestClient, register_user, fake_notifier):
    user = register_user(name="Original")
    token = request_login(client, fake_notifier)

    body = client.get(f"/verify/{token}").json()
    assert body["user"]["id"] == user["id"]
    assert body["user"]["name"] == "Original"


def test_login_requires_contact_details(client: TestClient):
    response = client.post("/login", json={"email": "writer@example.com"})
    assert response.status_code == 400


def test_unknown_token_is_invalid(client: TestClient):
    response = client.get("/verify/" + "0" * 64)
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_token"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(db_session):
    token = await auth_service.request_login(
        db_session, "Writer", "writer@example.com", "+254700000000"
    )
    await db_session.execute(
        update(LoginSession)
        .where(LoginSession.token == token)
        .values(expires_at=utcnow() - timedelta(minutes=1))
    )
    await db_session.commit()

    with pytest.raises(InvalidToken):
        await auth_service.verify_login(db_session, token)


def test_user_token_must_match_request_email(
    client: TestClient, register_user, add_task
):
    register_user()
    task = add_task()
    bearer = {"Authorization": f"Bearer {create_user_token('other@example.com')}"}

    response = client.post(
        "/take-task",
        headers=bearer,
        json={"email": "writer@example.com", "task_id": task["id"]},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"

    own = {"Authorization": f"Bearer {create_user_token('writer@example.com')}"}
    response = client.post(
        "/take-task",
        headers=own,
        json={"email": "writer@example.com", "task_id": task["id"]},
    )
    assert response.status_code == 200


def test_admin_and_user_tokens_are_not_interchangeable():
    admin_token = create_admin_token(["users:read"])
    user_token = create_user_token("writer@example.com")

    assert extract_admin_scopes_from_token(admin_token) == {"users:read"}
    assert extract_user_email_from_token(admin_token) is None
    assert extract_admin_scopes_from_token(user_token) is None
    assert extract_user_email_from_token("not-a-jwt") is None


def test_secrets_match():
    assert secrets_match("s3cret", "s3cret")
    assert not secrets_match("s3cret", "other")
    assert not secrets_match(None, "s3cret")
    assert not secrets_match("", "")
    assert not secrets_match("anything", None)


def test_required_user_token_rejects_anonymous_take(
    client: TestClient, register_user, add_task, monkeypatch
):
    from app.config import settings

    register_user()
    task = add_task()
    monkeypatch.setattr(settings, "require_user_token", True)

    anonymous = client.post(
        "/take-task", json={"email": "writer@example.com", "task_id": task["id"]}
    )
    assert anonymous.status_code == 403
    assert anonymous.json()["detail"] == "A user access token is required"

    own = {"Authorization": f"Bearer {create_user_token('writer@example.com')}"}
    signed_in = client.post(
        "/take-task",
        headers=own,
        json={"email": "writer@example.com", "task_id": task["id"]},
    )
    assert signed_in.status_code == 200

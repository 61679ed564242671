"""
This file contains shared fixtures and configuration for the test suite.

Pytest will automatically discover and use the fixtures defined in this file.

The environment is configured here, before any `app` module is imported, so
that the settings object picks up a throwaway SQLite database, upload
directory and log directory.
"""

import os
import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

TEST_ROOT = Path(tempfile.mkdtemp(prefix="writersinn-tests-"))
TEST_DB_PATH = TEST_ROOT / "writersinn.db"
ADMIN_SECRET = "test-admin-secret"

os.environ["WRITERSINN_DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["ADMIN_SECRET"] = ADMIN_SECRET
os.environ["ALLOW_LEGACY_ADMIN_SECRET"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = str(TEST_ROOT / "uploads")
os.environ["LOG_DIR"] = str(TEST_ROOT / "logs")
os.environ["NOTIFICATION_BACKEND"] = "log"
os.environ["NOTIFICATION_RETRY_DELAY"] = "0"
os.environ["COOLDOWN_MODE"] = "rolling"
os.environ["COOLDOWN_DAYS"] = "3"


class FakeNotifier:
    """Stands in for the NotificationDispatcher and records every message."""

    def __init__(self):
        self.sent = []

    def enqueue(self, message) -> bool:
        self.sent.append(message)
        return True


@pytest.fixture(autouse=True)
def clean_database() -> Generator[None, None, None]:
    """
    Recreate every table before each test.

    A synchronous engine on the same SQLite file is used so the reset never
    touches the event loop of the test that follows.
    """
    from sqlalchemy import create_engine

    from app import models  # noqa: F401
    from app.models.base import Base

    engine = create_engine(f"sqlite:///{TEST_DB_PATH}")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    engine.dispose()
    yield


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator:
    from app.db import AppAsyncSessionLocal

    async with AppAsyncSessionLocal() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    from app.services.storage import UploadStorage

    return UploadStorage(tmp_path / "uploads", max_bytes=1024)


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def app(fake_notifier: FakeNotifier) -> FastAPI:
    """
    Create a new application instance for each test.

    The dispatcher queue binds to the loop that first uses it and every
    TestClient runs its own loop, so applications are not shared.
    """
    from app.dependencies import get_notifier
    from main import create_app

    app_ = create_app()
    app_.dependency_overrides[get_notifier] = lambda: fake_notifier
    return app_


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """
    Fixture to get a test client for making API requests.
    The TestClient handles the application's lifespan events (startup/shutdown).
    """
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"x-admin-secret": ADMIN_SECRET}


@pytest.fixture
def register_user(client: TestClient):
    def _register(
        email: str = "writer@example.com",
        name: str = "Writer",
        phone: str = "+254700000000",
    ) -> dict:
        response = client.post(
            "/add-user", json={"name": name, "email": email, "phone": phone}
        )
        assert response.status_code == 200, response.text
        return response.json()["user"]

    return _register


@pytest.fixture
def add_task(client: TestClient, admin_headers: dict[str, str]):
    def _add(title: str = "Essay on rivers", price: str = "25") -> dict:
        response = client.post(
            "/admin/add-task",
            headers=admin_headers,
            data={
                "title": title,
                "description": "Write about the river systems of East Africa.",
                "price": price,
            },
            files={"file": ("brief.pdf", b"%PDF-1.4 brief", "application/pdf")},
        )
        assert response.status_code == 200, response.text
        return response.json()["task"]

    return _add

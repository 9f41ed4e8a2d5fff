from __future__ import annotations

import os

os.environ.setdefault("JOBLY_OTEL_ENABLED", "false")
os.environ.setdefault("JOBLY_SECRET_KEY", "test-secret")
os.environ.setdefault("JOBLY_BCRYPT_WORK_FACTOR", "4")

import pytest
from fastapi.testclient import TestClient

from fakes import FakeJoblyRepository
from jobly.core.config import get_settings
from jobly.core.security import create_token
from jobly.main import app
from jobly.services.repository import get_repository


@pytest.fixture
def fake_repo() -> FakeJoblyRepository:
    return FakeJoblyRepository()


@pytest.fixture
def client(fake_repo: FakeJoblyRepository) -> TestClient:
    app.dependency_overrides[get_repository] = lambda: fake_repo

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _bearer(username: str, is_admin: bool) -> dict[str, str]:
    token = create_token(username=username, is_admin=is_admin, settings=get_settings())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def u1_headers() -> dict[str, str]:
    return _bearer("u1", False)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return _bearer("admin", True)

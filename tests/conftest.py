from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from study_helper.api.app import create_app
from study_helper.api.config import AppConfig, RateLimitConfig

TEST_SECRET = "test-secret-0123456789abcdef-0123456789"
STRONG_PASSWORD = "Sup3r-Secret"


def make_config(data_dir: Path, **overrides) -> AppConfig:
    values = {
        "data_dir": data_dir,
        "session_secret": TEST_SECRET,
        "bcrypt_rounds": 4,
        "rate_limit": RateLimitConfig(limit=5, window_sec=60.0),
    }
    values.update(overrides)
    return AppConfig(**values)


def csrf_token(client: TestClient) -> str:
    return client.get("/auth/session").json()["csrf_token"]


def register(client: TestClient, username: str = "anna", password: str = STRONG_PASSWORD, **fields):
    form = {
        "prename": "Anna",
        "lastname": "Muster",
        "username": username,
        "passwordone": password,
        "passwordtwo": password,
        "_csrf": csrf_token(client),
    }
    form.update(fields)
    return client.post("/auth/register", data=form)


def login(client: TestClient, username: str = "anna", password: str = STRONG_PASSWORD):
    return client.post(
        "/auth/login",
        data={"username": username, "password": password, "_csrf": csrf_token(client)},
    )


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return make_config(tmp_path / "data")


@pytest.fixture
def client(app_config: AppConfig) -> TestClient:
    return TestClient(create_app(app_config), follow_redirects=False)


@pytest.fixture
def user_client(client: TestClient) -> TestClient:
    """Client with a registered and logged-in user ``anna``."""
    assert register(client).status_code == 303
    assert login(client).headers["location"] == "/subjects?success=login"
    return client

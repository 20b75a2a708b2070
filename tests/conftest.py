"""
Pytest configuration for the attendance service tests.

Environment defaults are set before any application module is imported,
since settings and the rate limiter are read at import time.
"""
import os
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REPLAY_GUARD_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("SCANNER_ROLES", "admin")

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.security import SigningKey
from shared.auth.dependencies import get_current_user

from fixtures.settings import TEST_SECRET, make_settings


class AuthAs:
    """Mutable stand-in for the authenticated user of the test client"""

    def __init__(self):
        self.user = {"user_id": "admin-1", "email": "admin@example.com", "role": "admin"}

    def set(self, user_id: str, role: str):
        self.user = {"user_id": user_id, "email": f"{user_id}@example.com", "role": role}

    def __call__(self):
        return self.user


@pytest.fixture
def signing_key() -> SigningKey:
    return SigningKey(TEST_SECRET)


@pytest.fixture
def auth() -> AuthAs:
    return AuthAs()


def _client(settings: Settings, auth: AuthAs):
    from main import create_app

    app = create_app(settings)
    app.dependency_overrides[get_current_user] = auth
    return TestClient(app)


@pytest.fixture
def client(auth):
    with _client(make_settings(), auth) as c:
        yield c


@pytest.fixture
def unconfigured_client(auth):
    with _client(make_settings(SIGNING_SECRET=None), auth) as c:
        yield c

"""Settings used by the API tests"""
from app.core.config import Settings

TEST_SECRET = "test-signing-secret"


def make_settings(**overrides) -> Settings:
    values = dict(
        APP_ENV="test",
        SIGNING_SECRET=TEST_SECRET,
        DATABASE_URL="sqlite+aiosqlite://",
        DATABASE_AUTO_CREATE=True,
        REPLAY_GUARD_BACKEND="memory",
        QR_VALIDITY_SECONDS=300,
        QR_CLOCK_SKEW_SECONDS=5,
    )
    values.update(overrides)
    return Settings(**values)

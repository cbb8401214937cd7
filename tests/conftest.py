import os
import sys
from datetime import timedelta
from pathlib import Path

# Must be set before anything imports the models package (it builds the default storage)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")

import pytest  # noqa: E402
from argon2 import PasswordHasher  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models.base_model import utcnow  # noqa: E402
from models.db_storage import DBStorage  # noqa: E402
from services.credentials import CredentialCore  # noqa: E402
from utils.security import CredentialHasher, TokenIssuer  # noqa: E402

TEST_SECRET = "Test-Secret-Key_for-Automation-Only-987654321!"
PASSWORD = "TestPassword123!"


class FakeClock:
    """Callable clock the tests can move forward."""

    def __init__(self, start=None):
        self.now = start or utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def storage():
    """Fresh in-memory database per test."""
    store = DBStorage("sqlite://")
    store.reload()
    yield store
    store.close()


@pytest.fixture
def hasher():
    # cheap argon2 parameters keep the suite fast
    return CredentialHasher(PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1))


@pytest.fixture
def issuer():
    return TokenIssuer(TEST_SECRET, issuer="AuthenticationService", audience="AuthenticationService")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def core(storage, issuer, hasher, clock):
    return CredentialCore(storage, issuer, hasher=hasher, clock=clock)


@pytest.fixture
def registered(core):
    """Register the default test account; returns the envelope data."""
    result = core.register(
        {
            "email": "test@example.com",
            "username": "testuser",
            "password": PASSWORD,
            "full_name": "Test User",
        }
    )
    assert result.success, result.errors
    return result.data


@pytest.fixture
def app(storage, hasher):
    from api import create_app

    application = create_app("test", storage=storage, hasher=hasher)
    application.config.update(TESTING=True)
    return application


@pytest.fixture
def client(app):
    return app.test_client()

"""
Pytest configuration and fixtures for backend tests.
"""

import pytest
from fastapi.testclient import TestClient

from rest_api.core.container import Container
from rest_api.main import create_app
from rest_api.models import Base, User
from rest_api.services.notifications import LoggingCodeSender
from shared.config.constants import AccountStatus, Roles
from shared.config.settings import Settings
from shared.infrastructure.db import create_db_engine
from shared.infrastructure.kv_store import MemoryStore
from shared.security import password as password_module
from shared.security.password import hash_password
from shared.security.rate_limit import limiter


TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
DEFAULT_PASSWORD = "secret123"


class FakeClock:
    """Manually advanced wall clock shared by the codec, stores and services."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        kv_backend="memory",
        jwt_secret=TEST_JWT_SECRET,
        environment="test",
        debug=False,
        smtp_host="",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Cost 4 keeps hashing fast; production cost is exercised in test_password."""
    monkeypatch.setattr(password_module, "BCRYPT_ROUNDS", 4)


@pytest.fixture(autouse=True)
def reset_request_throttle():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def code_sender():
    return LoggingCodeSender(environment="test")


@pytest.fixture
def container_factory(tmp_path, store, code_sender, clock):
    """
    Build containers on a per-test SQLite file.

    Usage:
        container = container_factory(rotate_refresh_tokens=True)
    """
    built = []

    def factory(**overrides) -> Container:
        config = make_settings(tmp_path, **overrides)
        engine = create_db_engine(config.database_url)
        Base.metadata.create_all(bind=engine)
        container = Container(config=config, engine=engine, store=store, code_sender=code_sender, clock=clock)
        built.append(container)
        return container

    yield factory

    for container in built:
        container.login_audit.stop()
        container.engine.dispose()


@pytest.fixture
def container(container_factory):
    return container_factory()


@pytest.fixture
def client(container):
    """Test client running the full app (lifespan included) on the test container."""
    app = create_app(container)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_factory(container):
    """
    Insert accounts directly through the repository.

    Usage:
        user = user_factory("alice", role="admin")
    """

    def factory(
        username: str = "alice",
        password: str = DEFAULT_PASSWORD,
        role: str = Roles.STUDENT,
        status: str = AccountStatus.ACTIVE,
        email: str | None = None,
        target: Container | None = None,
    ) -> User:
        repo = (target or container).users
        return repo.create(
            User(
                username=username,
                email=email or f"{username}@campus.edu",
                password_hash=hash_password(password),
                real_name=username.capitalize(),
                major="Computer Science",
                class_name="CS-1",
                role=role,
                status=status,
            )
        )

    return factory


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def login(client, username: str, password: str = DEFAULT_PASSWORD):
    return client.post("/api/v1/auth/login", json={"username": username, "password": password})

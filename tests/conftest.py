"""Pytest configuration and fixtures."""
from datetime import datetime, timedelta, timezone

import pytest
from argon2 import PasswordHasher as Argon2Hasher

from api import create_app
from models import DBStorage
from models.refresh_token_store import RefreshTokenStore
from models.user import User
from security.passwords import PasswordHasher
from security.service import AuthenticationService
from security.tokens import TokenSigner

TEST_SECRET = "unit-test-secret-0123456789abcdef0123"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    # real "now" so DB server defaults and token times stay in the same range
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def hasher():
    # cheap argon2 parameters keep the suite fast
    return PasswordHasher(Argon2Hasher(time_cost=1, memory_cost=1024, parallelism=1))


@pytest.fixture
def signer(clock):
    return TokenSigner(secret=TEST_SECRET, issuer="chirpy", clock=clock)


@pytest.fixture
def storage():
    """In-memory SQLite storage, fresh per test."""
    db = DBStorage("sqlite://")
    db.reload()
    yield db
    db.dispose()


@pytest.fixture
def file_storage(tmp_path):
    """File-backed SQLite storage for tests that use several threads."""
    db = DBStorage(f"sqlite:///{tmp_path / 'chirpy-test.db'}")
    db.reload()
    yield db
    db.dispose()


@pytest.fixture
def store(storage, clock):
    return RefreshTokenStore(storage, clock=clock)


@pytest.fixture
def make_user(storage, hasher):
    def _make_user(email="walt@breakingbad.com", password="correct-horse-battery", db=None):
        db = db or storage
        user = User(email=email, password_hash=hasher.hash(password))
        db.new(user)
        db.save()
        return user

    return _make_user


@pytest.fixture
def service(storage, hasher, signer, store):
    return AuthenticationService(storage, hasher, signer, store)


@pytest.fixture
def app(clock):
    app = create_app("testing", clock=clock)
    yield app
    app.extensions["storage"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(client):
    def _register(email="saul@goodman.com", password="better-call-saul"):
        r = client.post("/api/v1/users", json={"email": email, "password": password})
        assert r.status_code == 201, r.get_json()
        return r.get_json()["data"]

    return _register


@pytest.fixture
def login(client):
    def _login(email="saul@goodman.com", password="better-call-saul", **extra):
        return client.post("/api/v1/auth/login", json={"email": email, "password": password, **extra})

    return _login

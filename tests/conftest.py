"""
Shared pytest fixtures for the bloggly-api test suite.

Strategy:
- Domain tests: pure in-memory, zero I/O.
- Limiter tests: run against both stores -- the JSON file repo in a tmp
  directory and the SQL repo on an in-memory SQLite database.
- API tests: FastAPI TestClient over the JSON repo with a controllable clock.
  DATABASE_URL is cleared so no real database is ever touched.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# ---------------------------------------------------------------------------
# Ensure no real database or project log directory is touched during the run
# ---------------------------------------------------------------------------
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("AUDIT_LOG_DIR", tempfile.mkdtemp(prefix="bloggly_audit_"))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bloggly.application import rate_limiter as rate_limiter_mod
from bloggly.application.rate_limiter import RateLimiter, init_rate_limiter
from bloggly.infrastructure.database.models import Base
from bloggly.infrastructure.repositories.pg_rate_limit_repository import PgRateLimitRepository
from bloggly.infrastructure.repositories.rate_limit_repository import RateLimitRepository


START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs) -> None:
        self.now += timedelta(seconds=seconds, **kwargs)


class AuditSpy:
    """Collects audit events instead of writing them to disk."""

    def __init__(self):
        self.events = []

    def __call__(self, action, identifier, limit_type, details=None):
        self.events.append((action, identifier, limit_type, details or {}))

    def actions(self):
        return [e[0] for e in self.events]


class FailingRepository:
    """Store whose every operation raises, as an unreachable database would."""

    def __init__(self, exc_factory=lambda: ConnectionError("store unreachable")):
        self._exc_factory = exc_factory
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise self._exc_factory()

    insert = delete_expired = delete_attempts = _fail
    latest_block = count_attempts = count_all = _fail


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture
def sqlite_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def json_repo(tmp_path):
    return RateLimitRepository(data_path=str(tmp_path / "rate_limit_logs.json"))


@pytest.fixture
def pg_repo(sqlite_session_factory):
    return PgRateLimitRepository(sqlite_session_factory)


@pytest.fixture(params=["json", "sql"])
def repo(request):
    """Each limiter test runs once per store implementation."""
    if request.param == "json":
        return request.getfixturevalue("json_repo")
    return request.getfixturevalue("pg_repo")


# ---------------------------------------------------------------------------
# Limiter
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit():
    return AuditSpy()


@pytest.fixture
def limiter(repo, clock, audit):
    return RateLimiter(repo, clock=clock, audit=audit)


@pytest.fixture
def global_limiter(json_repo, clock, audit, monkeypatch):
    """Process-wide limiter wired to the JSON repo; restored after the test."""
    monkeypatch.setattr(rate_limiter_mod, "_limiter", None)
    return init_rate_limiter(json_repo, clock=clock, audit=audit)


# ---------------------------------------------------------------------------
# FastAPI TestClient
# ---------------------------------------------------------------------------

@pytest.fixture
def test_app(global_limiter, json_repo):
    from fastapi import FastAPI
    from bloggly.api.routes.health_routes import router as health_router, init_health_routes
    from bloggly.api.routes.rate_limit_routes import router as rate_limit_router

    app = FastAPI()
    init_health_routes(json_repo, "json")
    app.include_router(health_router)
    app.include_router(rate_limit_router)
    return app


@pytest.fixture
def client(test_app):
    from fastapi.testclient import TestClient
    return TestClient(test_app)

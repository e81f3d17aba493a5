"""Database engine and session factory for the rate limit store.

  - DATABASE_URL selects the PostgreSQL database (psycopg 3 driver).
  - Repositories receive ``dynamic_session_factory`` and open one short
    session per statement: ``with sf() as session: ...``.
"""
import logging
import os
import re
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

log = logging.getLogger("bloggly.database")

_engine = None
_SessionLocal = None

# Matches a postgres(ql):// URL anywhere inside a string.
_PG_URL_RE = re.compile(r"(postgres(?:ql)?(?:\+\w+)?://\S+)")


def _resolve_database_url(env_var: str = "DATABASE_URL") -> str:
    """Read a database URL from environment and return a clean SQLAlchemy URL.

    Handles:
    - Leading/trailing whitespace or newlines from copy-paste.
    - Literal surrounding quotes pasted in dashboards.
    - Full ``psql`` command pasted instead of just the URL.
    - ``postgres://`` / ``postgresql://`` schemes, rewritten to the psycopg 3
      driver (``postgresql+psycopg://``).
    """
    raw = os.environ.get(env_var, "").strip()

    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ('"', "'"):
        raw = raw[1:-1].strip()

    match = _PG_URL_RE.search(raw)
    url = match.group(1) if match else raw

    # Strip trailing quote that may remain from psql 'url'
    url = url.rstrip("'\"").strip()

    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)

    return url


def _mask_url(url: str) -> str:
    try:
        return url.split("@")[-1].split("?")[0] if "@" in url else "<no-host>"
    except Exception:
        return "<parse-error>"


def init_engine(url: str | None = None) -> None:
    """Create the engine and sessionmaker.

    *url* defaults to ``DATABASE_URL``. An empty URL leaves the engine unset.
    """
    global _engine, _SessionLocal

    url = url if url is not None else _resolve_database_url("DATABASE_URL")
    if not url:
        print("[BLOGGLY] DATABASE_URL is empty -- skipping PostgreSQL init.")
        return

    print(f"[BLOGGLY] Initialising engine -> {_mask_url(url)}")
    kwargs = {"pool_pre_ping": True, "echo": False}
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=3, max_overflow=5, pool_timeout=15, pool_recycle=1800)
    _engine = create_engine(url, **kwargs)
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)


def get_engine():
    """Return the SQLAlchemy engine (may be None)."""
    return _engine


def get_session_factory():
    """Return the sessionmaker. Raises RuntimeError before init_engine()."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialised. Call init_engine() first.")
    return _SessionLocal


def create_tables() -> None:
    """Create the rate limit tables (idempotent)."""
    from bloggly.infrastructure.database.models import Base

    if _engine is None:
        return
    try:
        Base.metadata.create_all(bind=_engine)
        print("[BLOGGLY] Tables verified.")
    except Exception as exc:
        log.warning("Could not create tables: %s", exc)


def check_health() -> bool:
    """Lightweight connectivity probe."""
    if _engine is None:
        return False
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


class DynamicSessionFactory:
    """Callable proxy passed to repositories.

    Behaves like a sessionmaker but resolves the session factory lazily, so
    repositories can be built before ``init_engine()`` runs. Errors roll the
    session back and propagate to the caller.
    """

    def __call__(self):
        return self._managed_session()

    @contextmanager
    def _managed_session(self):
        session = get_session_factory()()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Singleton -- import and pass to the PG repositories.
dynamic_session_factory = DynamicSessionFactory()

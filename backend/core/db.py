"""
CartCare — Core database layer.

Provides the SQLAlchemy engine, session factory, declarative base,
the FastAPI get_db dependency, and init_db() for table creation.

SQLite connections get WAL journaling and a busy_timeout so concurrent
scheduler invocations wait on each other's write locks instead of failing.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from core.config import settings
from core.base import Base  # Single Base instance shared across all models


def build_engine(database_url: str | None = None, timeout_seconds: float | None = None) -> Engine:
    """Create an engine for database_url (defaults to settings.database_url).

    timeout_seconds bounds how long a single statement may wait on a lock.
    PostgreSQL also gets it as connect, statement and lock timeouts; every
    pooled dialect uses it as the pool checkout timeout.
    """
    if database_url is None:
        database_url = settings.database_url
    if timeout_seconds is None:
        timeout_seconds = settings.store_timeout_seconds

    busy_ms = int(timeout_seconds * 1000)

    if not database_url.startswith("sqlite"):
        connect_args = {}
        if database_url.startswith("postgresql"):
            connect_args = {
                "connect_timeout": max(1, int(timeout_seconds)),
                "options": f"-c statement_timeout={busy_ms} -c lock_timeout={busy_ms}",
            }
        return create_engine(
            database_url,
            echo=settings.debug,
            pool_pre_ping=True,
            pool_timeout=timeout_seconds,
            connect_args=connect_args,
        )

    new_engine = create_engine(
        database_url,
        echo=settings.debug,
        poolclass=NullPool,
        connect_args={"check_same_thread": False, "timeout": timeout_seconds},
    )

    @event.listens_for(new_engine, "connect")
    def _sqlite_pragmas(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA journal_mode=WAL")
        cur.execute(f"PRAGMA busy_timeout={busy_ms}")
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    return new_engine


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


engine = build_engine()
SessionLocal = build_session_factory(engine)


def get_db():
    """Dependency for database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables owned by loaded modules.

    Model modules must be imported first so their tables are on Base.metadata.
    """
    import modules.fleet.models  # noqa: F401
    import modules.providers.models  # noqa: F401
    import modules.maintenance.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

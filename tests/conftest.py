"""
CartCare Test Suite — Shared Fixtures

Every test that touches storage gets its own SQLite file database under
tmp_path (a file, not :memory:, so concurrent scheduler threads see the same
data through separate connections).

Usage:
    pip install -e ".[test]"
    pytest tests/ -v --tb=short
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.db import build_engine, build_session_factory, init_db  # noqa: E402
from modules.maintenance.store import SqlMaintenanceStore  # noqa: E402
from modules.providers.resolver import SqlProviderResolver  # noqa: E402

# Fixed reference instant; nothing under test reads the clock when given `now`.
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cartcare-test.db'}"


@pytest.fixture
def engine(db_url):
    eng = build_engine(db_url, timeout_seconds=10)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return SqlMaintenanceStore(session_factory)


@pytest.fixture
def resolver(session_factory):
    return SqlProviderResolver(session_factory)

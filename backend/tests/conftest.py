"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database. Environment defaults are
set here, before any kosh_ledger module reads its settings.
"""
import os
import sys
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FILE", os.path.join(tempfile.mkdtemp(), "ledger.log"))

# Ensure the kosh_ledger package is importable when running pytest from project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.dirname(__file__))

import pytest  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import kosh_ledger.models  # noqa: E402,F401
from kosh_ledger.engine.adapters import EventStore  # noqa: E402

from factories import Seeder  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def store(session):
    return EventStore(session)


@pytest.fixture
def seed(session):
    return Seeder(session)

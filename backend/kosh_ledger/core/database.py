"""SQLModel database engine and session management."""
from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session
from kosh_ledger.core.config import settings

# Import models so SQLModel.metadata knows about all tables
import kosh_ledger.models.master  # noqa: F401
import kosh_ledger.models.transaction  # noqa: F401


def configure_sqlite(engine, busy_timeout_ms: int = settings.DB_BUSY_TIMEOUT_MS) -> None:
    """
    Reader-side pragmas for the POS store.

    The POS application writes to the same file while reports run, so every
    connection waits up to `busy_timeout_ms` for its lock instead of failing
    the report with "database is locked".
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
        cursor.close()


engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
    echo=False,
)
configure_sqlite(engine)


def create_db_and_tables() -> None:
    """Create any POS tables missing from the store (fresh or test databases)."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """FastAPI dependency: yields a SQLModel session."""
    with Session(engine) as session:
        yield session

"""Database connection and session management."""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from blockcharge.config import settings
from blockcharge.models import Base


def is_memory_sqlite(database_url: str) -> bool:
    """True for SQLite URLs that point at a private in-memory database."""
    url = make_url(database_url)
    database = url.database or ""
    return database in ("", ":memory:") or url.query.get("mode") == "memory"


def build_engine(database_url: str, timeout_seconds: float, echo: bool = False) -> Engine:
    """Create an engine with the backing-store timeout applied.

    SQLite uses the driver's lock-wait timeout. An in-memory database is pinned
    to a single connection with StaticPool; a file database keeps the default
    pool so every session gets its own connection and transaction.
    PostgreSQL gets a server-side statement_timeout and a pool checkout timeout.

    Args:
        database_url: SQLAlchemy database URL
        timeout_seconds: Timeout for store calls
        echo: Log SQL statements

    Returns:
        Configured Engine
    """
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
        if is_memory_sqlite(database_url):
            return create_engine(
                database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool
            )
        return create_engine(database_url, echo=echo, connect_args=connect_args)
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_timeout=timeout_seconds,
        connect_args={"options": f"-c statement_timeout={int(timeout_seconds * 1000)}"},
    )


engine = build_engine(
    settings.database_url, settings.store_timeout_seconds, echo=settings.database_echo
)

# Create session factory
SessionLocal = sessionmaker(autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)


__all__ = ["engine", "SessionLocal", "build_engine", "get_db", "is_memory_sqlite", "init_db"]

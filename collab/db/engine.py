"""Engine and session helpers.

PostgreSQL is the primary database. SQLite URLs are only supported so the
test suite can run against an in-memory database.
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from collab.config import DATABASE_ECHO, DATABASE_URL


def create_db_engine(database_url: str = DATABASE_URL) -> Engine:
    """Create an engine for the given URL.

    Postgres gets a bounded connection pool; pool_pre_ping ensures
    connections are valid before use. SQLite shares a single connection
    so an in-memory database survives across sessions.
    """
    kwargs: dict[str, Any] = {"echo": DATABASE_ECHO}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 10
    return create_engine(database_url, **kwargs)


engine = create_db_engine()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Session for scripts and jobs; rolled back if the block raises."""
    with Session(engine) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


def get_session_dependency() -> Generator[Session, None, None]:
    """One session per request, injected with ``Depends``."""
    with Session(engine) as session:
        yield session


def init_db(bind: Engine | None = None) -> None:
    """Create every table directly. Tests use this; deployments run Alembic."""
    from collab.db import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def drop_all_tables(bind: Engine | None = None) -> None:
    """Drop every table on the engine."""
    SQLModel.metadata.drop_all(bind or engine)

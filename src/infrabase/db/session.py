# src/infrabase/db/session.py
"""
Engine and transaction handling. Each CLI command runs inside exactly one
session_scope(): everything it reads and writes commits or rolls back together.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..logging import get_logger
from ..models import NO_NETWORK
from .models import Base, NetworkRow

log = get_logger()


def make_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    """Create missing tables and the 'NONE' pseudo-network."""
    log.info("Initializing database...")
    Base.metadata.create_all(bind=engine)
    with session_scope(engine) as session:
        if session.scalar(select(NetworkRow).where(NetworkRow.name == NO_NETWORK)) is None:
            session.add(NetworkRow(name=NO_NETWORK))
    log.info("Database initialized")


@contextmanager
def session_scope(engine: Engine, *, serializable: bool = False) -> Iterator[Session]:
    """
    One transaction. `serializable=True` is for provisioning: the allocator's
    read of existing addresses and the insert must not interleave with another
    allocation.
    """
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        if serializable:
            session.connection(execution_options={"isolation_level": "SERIALIZABLE"})
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

"""
Database engine and session management.

Builds the SQLAlchemy engine from ``DATABASE_URL``, creates the schema on
startup and hands out one session per request.
"""

import logging
from typing import Iterator

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dms.domain.portfolio.errors import PersistenceError
from dms.infrastructure.portfolio.models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite gets thread-shareable connections.

    An in-memory SQLite URL uses a single static connection so that every
    session sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create every table that does not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("Database schema ready")


def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Yield a session and close it afterwards; roll back on error."""
    session = factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def commit_or_raise(session: Session, entity: str) -> None:
    """Commit pending changes to ``entity``.

    Raises:
        PersistenceError: If the commit fails; the session is rolled back
            and stays usable.
    """
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Failed to save %s: %s", entity, type(exc).__name__)
        raise PersistenceError(entity) from exc


def check_database_health(engine: Engine) -> None:
    """Run a trivial query.

    Raises:
        SQLAlchemyError: If the database cannot be reached.
    """
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))

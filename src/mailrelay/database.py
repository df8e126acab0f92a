"""Database session factory for the credential store.

The engine and session factory are built explicitly from a URL and handed
to whoever needs them; there is no module-level engine.
"""

from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models.base import Base


def create_db_engine(database_url: str) -> Engine:
    """Create an engine with settings appropriate for the backend.

    Pool settings only apply to server databases; in-memory SQLite uses a
    single shared connection so every session sees the same data.
    """
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,
    }

    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    return create_engine(database_url, **engine_kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create missing tables."""
    Base.metadata.create_all(engine)


def session_scope(factory: Callable[[], Session]):
    """Return a context manager yielding a session from factory.

    Usage:
        with session_scope(SessionLocal)() as session:
            session.query(MailUser).all()

    Automatically commits on success, rolls back on exception.
    """
    @contextmanager
    def _scope() -> Generator[Session, None, None]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return _scope

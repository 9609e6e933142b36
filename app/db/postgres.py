import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import get_settings
from app.core.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def get_engine() -> Engine:
    """Get or create the engine (singleton pattern)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.sqlalchemy_url
        kwargs = {"echo": settings.debug}
        if not url.startswith("sqlite"):
            # pool_size=5: maintain 5 connections ready
            # max_overflow=10: allow 10 extra connections under load
            kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)
        set_engine(create_engine(url, **kwargs))
    return _engine


def set_engine(engine: Engine) -> None:
    """Swap the engine (tests bind an in-memory SQLite engine here)."""
    global _engine
    _engine = engine
    SessionLocal.configure(bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    One session is one transaction: everything inside commits together
    or nothing does.

    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM candidates"))
    """
    get_engine()
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except (OperationalError, InterfaceError) as e:
        session.rollback()
        logger.error("Store unavailable: %s", e)
        raise StorageUnavailable(f"Database unavailable: {e.orig or e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except StorageUnavailable as e:
        logger.warning("Database connection failed: %s", e)
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    This is useful for ad-hoc reporting queries.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        # Convert rows to dicts
        columns = result.keys()
        return [dict(zip(columns, row)) for row in result.fetchall()]

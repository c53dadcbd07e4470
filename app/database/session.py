"""
Database session management.
"""
import logging
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy.orm import Session, sessionmaker

from app.database.engine import engine

logger = logging.getLogger("app.database")

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a database session.
    """
    session = SessionLocal()
    try:
        logger.debug("Database session created")
        yield session
    except Exception as e:
        logger.error(f"Database session error: {e}")
        session.rollback()
        raise
    finally:
        logger.debug("Database session closed")
        session.close()


@contextmanager
def get_db_session(session_factory: Optional[Callable[[], Session]] = None):
    """
    Context manager for a unit of work outside of a request.

    Commits on success, rolls back when the block raises.
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

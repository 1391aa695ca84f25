"""
Database engine, session factory and unit-of-work helper.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from event_registry.core.config import get_database_url
from event_registry.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

DATABASE_URL = get_database_url()

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """FastAPI dependency yielding a session that is closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a block as one unit of work: commit on success, roll back on any error.

    Constraint violations and stale version tokens detected at commit time are
    reported as ConflictError so the client can correct or retry the request.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Concurrent modification detected: %s", e)
        raise ConflictError("Resource was modified concurrently, please retry the request") from e
    except IntegrityError as e:
        db.rollback()
        logger.warning("Integrity error on commit: %s", e.orig)
        raise ConflictError("Request conflicts with existing data") from e
    except Exception:
        db.rollback()
        raise

from contextlib import contextmanager

from loguru import logger
from lounge_shared.db.database import get_engine as shared_get_engine
from lounge_shared.db.database import get_sessionmaker as shared_get_sessionmaker
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from lounge_core.config.settings import Settings
from lounge_core.core.exceptions import PersistenceTimeoutException


def get_sessionmaker(settings: Settings):
    return shared_get_sessionmaker(settings.database_url, settings.db_timeout_sec)


def get_engine(settings: Settings):
    return shared_get_engine(settings.database_url, settings.db_timeout_sec)


@contextmanager
def atomic(session: Session, operation: str):
    """One unit of work: commit on success, roll back everything on failure.

    Connection-level failures surface as PersistenceTimeoutException; the
    caller decides whether to retry.
    """
    try:
        yield session
        session.commit()
    except (PoolTimeoutError, OperationalError) as e:
        session.rollback()
        logger.error(f"{operation} failed on persistence: {e}")
        raise PersistenceTimeoutException(operation) from e
    except Exception:
        session.rollback()
        raise

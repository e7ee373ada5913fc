"""Database engine, session factory and transaction helper"""

from typing import Any, Callable, Generator, TypeVar

import structlog
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from orgpass.config import settings
from orgpass.errors import StorageError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Base = declarative_base()


def _normalize_url(url: str) -> str:
    # Some providers use postgres:// but SQLAlchemy requires postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


_db_url = _normalize_url(settings.DATABASE_URL)
_connect_args = {"check_same_thread": False} if _db_url.startswith("sqlite") else {}

engine = create_engine(
    _db_url,
    connect_args=_connect_args,
    pool_pre_ping=True,
    echo=settings.DATABASE_ECHO,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a session and close it afterwards"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def lock_rows(db: Session, model: Any, *criteria: Any) -> int:
    """
    Write-lock the rows of ``model`` matching ``criteria`` until commit.

    Issues an UPDATE that leaves the rows unchanged, so the lock holds on
    SQLite too, where SELECT ... FOR UPDATE is ignored. A second
    transaction locking the same rows waits for the first to finish and
    then sees its changes.

    Returns:
        Number of rows matched; 0 when none exist (any more)
    """
    return db.query(model).filter(*criteria).update(
        {model.updated_at: model.updated_at},
        synchronize_session=False,
    )


def run_in_transaction(db: Session, fn: Callable[[Session], T]) -> T:
    """
    Run ``fn(db)`` as one atomic unit of work.

    Commits when ``fn`` returns, rolls back when it raises. SQLAlchemy
    failures are re-raised as StorageError, every other exception is
    re-raised as is after the rollback.

    Args:
        db: Database session
        fn: Callable receiving the session

    Returns:
        Whatever ``fn`` returns
    """
    try:
        result = fn(db)
        db.commit()
        return result
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("transaction_failed", error=str(e), error_type=type(e).__name__)
        raise StorageError("Database transaction failed", original_error=e) from e
    except Exception:
        db.rollback()
        raise

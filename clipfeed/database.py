import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from clipfeed.config import settings
from clipfeed.errors import StoreError

logger = logging.getLogger(__name__)


def _engine_options(url):
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # In-memory databases live and die with their connection
        options["poolclass"] = StaticPool
    return options


def build_engine(url):
    engine = create_engine(url, **_engine_options(url))
    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db():
    # Models must be registered on Base before create_all
    from clipfeed import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready")


def close_db():
    engine.dispose()


# Dependency to get the database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db):
    """Run a block as one unit of work against the store.

    Commits when the block finishes, rolls back on any exception. Driver and
    connection failures are re-raised as ``StoreError`` so callers see a
    retryable failure instead of a partially applied change.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Store operation failed and was rolled back")
        raise StoreError() from exc
    except Exception:
        db.rollback()
        raise

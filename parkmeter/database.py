# database.py

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from parkmeter.config import DATABASE_URL, SQL_ECHO
from parkmeter.errors import StorageUnavailable

logger = logging.getLogger(__name__)

# SQLite connections are handed across threadpool workers by FastAPI
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Create the engine
engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args=connect_args,
)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Declarative base
Base = declarative_base()


def init_db(bind=None):
    # ensures SQLAlchemy sees every table before create_all
    import parkmeter.model.session_model  # noqa: F401
    import parkmeter.model.pass_model  # noqa: F401
    import parkmeter.model.settings_model  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# FastAPI dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def reading(db, action: str):
    """Turns a failed store read into StorageUnavailable."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Store read failed while trying to %s", action)
        raise StorageUnavailable(f"Could not {action}: {e}")

"""
db/database.py

Responsibility: Creates the SQLite engine that stores DNS credentials, the
per-request session dependency, and init_db() for startup table creation.
Does NOT: define table models, run queries, or decrypt secrets.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from config import load_settings

logger = logging.getLogger(__name__)

# NOTE: /config is the Docker volume mount point so the credential store survives restarts.
_DB_PATH = load_settings().db_path


def build_engine(db_path: str) -> Engine:
    """
    Creates a SQLite engine for one database file, creating its directory if needed.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        A SQLAlchemy Engine usable from FastAPI's worker threads.
    """
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )


engine = build_engine(_DB_PATH)


def init_db(bind: Engine | None = None) -> list[str]:
    """
    Creates the credential tables if they don't exist.

    Called once from the FastAPI lifespan function in app.py.

    Args:
        bind: Engine to initialise; the application engine when omitted.

    Returns:
        The table names present after initialisation.
    """
    # Registers DnsCredential in SQLModel.metadata
    import db.models  # noqa: F401

    target = bind or engine
    SQLModel.metadata.create_all(target)
    tables = inspect(target).get_table_names()
    logger.info("Credential store ready at %s (tables: %s)", target.url.database, ", ".join(tables))
    return tables


def get_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a SQLModel Session for the current request.

    Yields:
        A SQLModel Session bound to the application engine.
    """
    with Session(engine) as session:
        yield session

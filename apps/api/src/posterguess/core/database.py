from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import FastAPI
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import Base
from .config import settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def get_engine() -> Engine:
    """Return a singleton engine configured for the application."""

    global _engine, _session_factory

    if _engine is None:
        _engine = create_engine(
            settings.database_url,
            pool_pre_ping=True,
            echo=settings.database_echo,
        )
        _session_factory = sessionmaker(_engine, expire_on_commit=False)

    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Return a session factory backed by the application engine."""

    if _session_factory is None:
        get_engine()

    assert _session_factory is not None
    return _session_factory


def _ping_database(engine: Engine) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


def _create_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def connect_database() -> None:
    """Initialise the database engine and ensure the schema exists.

    The database may live in a separate container that takes a few seconds to
    accept connections, so the ping is retried a configurable number of times.
    """

    engine = get_engine()

    attempts = max(1, settings.database_connect_retries)
    delay = max(0.0, settings.database_connect_retry_interval_seconds)

    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        try:
            _ping_database(engine)
            _create_schema(engine)
        except OperationalError as exc:
            last_error = exc
            logger.warning(
                "Database connection attempt %s/%s failed: %s", attempt, attempts, exc
            )
            if attempt < attempts:
                time.sleep(delay)
            continue
        except SQLAlchemyError as exc:
            # Non-operational SQLAlchemy errors are considered unrecoverable.
            logger.exception("Database initialisation failed: %s", exc)
            raise
        else:
            logger.info("Database initialised on attempt %s", attempt)
            return

    message = "Could not connect to the database after multiple attempts"
    logger.error(message)
    raise RuntimeError(message) from last_error


def disconnect_database() -> None:
    """Dispose of the engine and session factory."""

    global _engine, _session_factory

    _session_factory = None
    if _engine is not None:
        _engine.dispose()
        _engine = None


def register_database(app: FastAPI) -> None:
    """Register FastAPI startup/shutdown hooks for database management."""

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - FastAPI integration
        if settings.redis_url:
            return
        connect_database()

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - FastAPI integration
        disconnect_database()

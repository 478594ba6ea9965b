"""
retrocast.database.engine — Database Connection, Sessions & Async Helper
=========================================================================

**Why this file exists:**
Every repository shares one bounded connection pool.  Callers may be
request-handling threads *or* asyncio tasks.  SQLAlchemy + psycopg2 is
synchronous, so async callers hop onto a worker thread:

    1. A request arrives in an async handler.
    2. The handler calls ``await run_db(repo.method, arg1, arg2)``.
    3. ``run_db`` ships the synchronous call to a thread via
       ``asyncio.to_thread()``.
    4. The query runs on the worker thread; the event loop stays free.

Usage::

    from retrocast.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine(cfg)
    init_db(engine)

    messages = await run_db(stores.messages.get_by_channel_id, channel_id, None, 50)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session

from retrocast.config import RetrocastConfig
from retrocast.database.models import Base
from retrocast.errors import translate_errors

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(cfg: RetrocastConfig) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from *cfg*.

    PostgreSQL gets a bounded ``QueuePool`` sized from the config; SQLite
    (local development) gets foreign-key enforcement switched on so that
    cascades behave the same as in production.
    """
    url = cfg.database_url
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=cfg.echo_sql,
            connect_args={"check_same_thread": False},
        )
        enable_sqlite_foreign_keys(engine)
    else:
        engine = create_engine(
            url,
            echo=cfg.echo_sql,
            pool_size=cfg.pool_size,
            max_overflow=cfg.max_overflow,
            pool_pre_ping=True,   # Reconnect stale connections automatically
            pool_timeout=cfg.pool_timeout,
            pool_recycle=cfg.pool_recycle,
        )
    logger.info("Database engine created → %s", engine.url.host or engine.url.database)
    return engine


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on ``PRAGMA foreign_keys`` for every new SQLite connection."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`retrocast.database.models`.

    .. note::

        In production the schema is managed by Alembic (``alembic upgrade
        head``).  ``create_all`` is kept for dev/test environments.
    """
    with translate_errors():
        Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Yield a :class:`Session` that commits on success and rolls back on
    any exception.  SQLAlchemy errors leave as :class:`~retrocast.errors.StoreError`.

    Everything inside one ``with`` block is a single transaction::

        with get_session(engine) as session:
            session.add(models.DMChannel(...))
            session.add(models.DMRecipient(...))
            # commit happens on block exit, or nothing does
    """
    session = Session(engine, expire_on_commit=False)
    try:
        with translate_errors():
            yield session
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** repository call on a background thread.

    Cancellation and timeouts belong to the caller (wrap in
    ``asyncio.timeout`` as needed); nothing here retries.
    """
    return await asyncio.to_thread(func, *args, **kwargs)

"""
retrocast.database.upsert — Dialect-Aware ``INSERT … ON CONFLICT``
===================================================================

PostgreSQL (production) and SQLite (tests, local dev) both support
``ON CONFLICT``, but SQLAlchemy exposes it on each dialect's own
``insert()`` construct.  :func:`insert_for` picks the right one from the
session's bind so the repositories can write a single upsert statement.
"""

from __future__ import annotations

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_for(session: Session, model):
    """Return ``insert(model)`` from the dialect backing *session*.

    Raises
    ------
    NotImplementedError
        If the dialect has no ``ON CONFLICT`` support wired here.
    """
    dialect = session.get_bind().dialect.name
    try:
        factory = _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Upserts are not supported on dialect {dialect!r}") from None
    return factory(model)

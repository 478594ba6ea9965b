"""
retrocast.errors — Storage Error Taxonomy
==========================================

Callers must be able to tell "that key already exists" apart from "the
database is unreachable".  Every repository wraps its statements in
:func:`translate_errors`, which turns SQLAlchemy exceptions into:

* :class:`ConflictError` — unique / primary-key violation.
* :class:`InvalidReferenceError` — foreign-key, not-null or check violation.
* :class:`StorageUnavailableError` — connectivity, pool exhaustion, timeouts.
* :class:`StoreError` — anything else the driver raised.

Missing rows are never errors: point lookups return ``None`` and
collection queries return ``[]``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes (class 23, integrity constraint violation)
_PG_UNIQUE_VIOLATION = "23505"
_PG_REFERENCE_VIOLATIONS = {"23503", "23502", "23514"}


class ConfigError(RuntimeError):
    """Configuration is missing or malformed."""


class StoreError(Exception):
    """Base class for every storage fault surfaced by a repository."""


class ConflictError(StoreError):
    """A natural or composite key already exists."""

    def __init__(self, message: str, constraint: str | None = None) -> None:
        super().__init__(message)
        self.constraint = constraint


class InvalidReferenceError(StoreError):
    """A referenced row is missing, or a required column was empty."""


class StorageUnavailableError(StoreError):
    """The backing store could not be reached or timed out."""


def _constraint_name(orig: BaseException | None) -> str | None:
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name
    text = str(orig or "")
    if "constraint failed:" in text:
        return text.split("constraint failed:", 1)[1].strip()
    return None


def is_unique_violation(error: sa_exc.IntegrityError) -> bool:
    """True when *error* came from a unique or primary-key constraint."""
    orig = error.orig
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode:
        return pgcode == _PG_UNIQUE_VIOLATION
    text = str(orig).upper()
    return "UNIQUE CONSTRAINT" in text or "PRIMARY KEY" in text or "DUPLICATE" in text


def classify(error: sa_exc.SQLAlchemyError) -> StoreError:
    """Map a SQLAlchemy exception onto the :class:`StoreError` taxonomy."""
    if isinstance(error, sa_exc.IntegrityError):
        constraint = _constraint_name(error.orig)
        if is_unique_violation(error):
            return ConflictError(f"duplicate key: {constraint or error.orig}", constraint)
        pgcode = getattr(error.orig, "pgcode", None)
        if pgcode and pgcode not in _PG_REFERENCE_VIOLATIONS:
            return StoreError(str(error.orig))
        return InvalidReferenceError(f"integrity violation: {constraint or error.orig}")
    if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.TimeoutError)):
        return StorageUnavailableError(str(getattr(error, "orig", None) or error))
    return StoreError(str(getattr(error, "orig", None) or error))


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as :class:`StoreError`.

    The original exception is chained as ``__cause__``.
    """
    try:
        yield
    except sa_exc.SQLAlchemyError as error:
        translated = classify(error)
        if isinstance(translated, ConflictError):
            logger.info("Conflict: %s", translated)
        elif isinstance(translated, StorageUnavailableError):
            logger.warning("Storage unavailable: %s", translated)
        raise translated from error

"""
tests/test_errors.py — Storage Error Translation Tests
=======================================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import exc as sa_exc

from retrocast.errors import (
    ConflictError,
    InvalidReferenceError,
    StorageUnavailableError,
    StoreError,
    classify,
    is_unique_violation,
    translate_errors,
)


class _FakePgError(Exception):
    """Stands in for a psycopg2 error: carries ``pgcode`` and ``diag``."""

    def __init__(self, pgcode, constraint_name=None):
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode
        self.diag = type("Diag", (), {"constraint_name": constraint_name})()


def _integrity(orig) -> sa_exc.IntegrityError:
    return sa_exc.IntegrityError("INSERT ...", {}, orig)


class TestClassify:
    def test_sqlite_unique_is_conflict(self):
        error = _integrity(Exception("UNIQUE constraint failed: users.username"))

        translated = classify(error)

        assert isinstance(translated, ConflictError)
        assert translated.constraint == "users.username"

    def test_sqlite_foreign_key_is_invalid_reference(self):
        error = _integrity(Exception("FOREIGN KEY constraint failed"))
        assert isinstance(classify(error), InvalidReferenceError)

    def test_sqlite_not_null_is_invalid_reference(self):
        error = _integrity(Exception("NOT NULL constraint failed: users.username"))
        assert isinstance(classify(error), InvalidReferenceError)

    def test_postgres_unique_uses_pgcode(self):
        error = _integrity(_FakePgError("23505", "uq_channels_guild_name"))

        translated = classify(error)

        assert is_unique_violation(error)
        assert isinstance(translated, ConflictError)
        assert translated.constraint == "uq_channels_guild_name"

    def test_postgres_foreign_key(self):
        error = _integrity(_FakePgError("23503", "members_guild_id_fkey"))
        assert isinstance(classify(error), InvalidReferenceError)

    def test_postgres_exclusion_is_generic_store_error(self):
        translated = classify(_integrity(_FakePgError("23P01")))
        assert type(translated) is StoreError

    def test_operational_is_unavailable(self):
        error = sa_exc.OperationalError("SELECT 1", {}, Exception("connection refused"))
        assert isinstance(classify(error), StorageUnavailableError)

    def test_pool_timeout_is_unavailable(self):
        assert isinstance(classify(sa_exc.TimeoutError("QueuePool limit")), StorageUnavailableError)

    def test_anything_else_is_store_error(self):
        assert type(classify(sa_exc.ProgrammingError("x", {}, Exception("syntax")))) is StoreError


class TestTranslateErrors:
    def test_chains_original(self):
        original = _integrity(Exception("UNIQUE constraint failed: bans.guild_id, bans.user_id"))

        with pytest.raises(ConflictError) as excinfo:
            with translate_errors():
                raise original

        assert excinfo.value.__cause__ is original

    def test_non_sqlalchemy_errors_pass_through(self):
        with pytest.raises(KeyError):
            with translate_errors():
                raise KeyError("x")

    def test_conflict_and_unavailable_are_distinguishable(self):
        assert not issubclass(ConflictError, StorageUnavailableError)
        assert issubclass(ConflictError, StoreError)
        assert issubclass(StorageUnavailableError, StoreError)

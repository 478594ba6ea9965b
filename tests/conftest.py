"""
tests/conftest.py — Shared Test Fixtures
=========================================

Every test runs against a fresh in-memory SQLite database with foreign
keys switched on, so cascades and reference checks behave like
PostgreSQL.  Helpers below build the common rows; import them with
``from conftest import make_user``.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from retrocast import schemas
from retrocast.database.engine import enable_sqlite_foreign_keys, init_db
from retrocast.database.models import ChannelType
from retrocast.stores import Stores, build_stores

# Naive on purpose: SQLite hands datetimes back without tzinfo.
T0 = datetime(2026, 3, 1, 12, 0, 0)


def at(seconds: int) -> datetime:
    """``T0`` shifted by *seconds*."""
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Retrocast tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    init_db(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a raw session for asserting on table contents."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def stores(db_engine: Engine) -> Stores:
    return build_stores(db_engine)


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------
def make_user(stores: Stores, user_id: int, username: str | None = None) -> schemas.User:
    username = username or f"user{user_id}"
    user = schemas.User(
        id=user_id,
        username=username,
        display_name=username.title(),
        password_hash="$argon2id$fake",
        created_at=T0,
    )
    stores.users.create(user)
    return user


def make_guild(stores: Stores, guild_id: int, owner_id: int, name: str = "Guild") -> schemas.Guild:
    guild = schemas.Guild(id=guild_id, name=name, owner_id=owner_id, created_at=T0)
    stores.guilds.create(guild)
    return guild


def make_channel(
    stores: Stores,
    channel_id: int,
    guild_id: int,
    name: str | None = None,
    position: int = 0,
    type: ChannelType = ChannelType.TEXT,
) -> schemas.Channel:
    channel = schemas.Channel(
        id=channel_id,
        guild_id=guild_id,
        name=name or f"channel-{channel_id}",
        type=type,
        position=position,
    )
    stores.channels.create(channel)
    return channel


def make_role(
    stores: Stores, role_id: int, guild_id: int, position: int = 0, name: str | None = None,
) -> schemas.Role:
    role = schemas.Role(
        id=role_id, guild_id=guild_id, name=name or f"role-{role_id}", position=position,
    )
    stores.roles.create(role)
    return role


def make_message(
    stores: Stores,
    message_id: int,
    channel_id: int,
    author_id: int,
    content: str | None = None,
    created_at: datetime | None = None,
) -> schemas.Message:
    message = schemas.Message(
        id=message_id,
        channel_id=channel_id,
        author_id=author_id,
        content=content if content is not None else f"message {message_id}",
        created_at=created_at or at(message_id % 100_000),
    )
    stores.messages.create(message)
    return message

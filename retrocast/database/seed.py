"""
retrocast.database.seed — Demo Data Seeder
===========================================

Populates an empty database with a tiny, usable community: two users, one
guild with ``#general`` and ``#random``, the ``@everyone`` role held by
both members, and a short conversation in ``#general``.

Idempotent: if the demo owner account already exists nothing is written.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine

from retrocast import schemas
from retrocast.snowflake import SnowflakeGenerator
from retrocast.stores import build_stores

logger = logging.getLogger(__name__)

DEMO_OWNER = "alice"
DEMO_GUEST = "bob"

# VIEW_CHANNEL, SEND_MESSAGES, CONNECT, SPEAK, READ_MESSAGE_HISTORY,
# CREATE_INVITE, CHANGE_NICKNAME
EVERYONE_PERMISSIONS = (
    (1 << 0) | (1 << 1) | (1 << 8) | (1 << 9) | (1 << 15) | (1 << 16) | (1 << 17)
)

# Not a usable credential; demo accounts cannot log in until a real hash is set.
_PLACEHOLDER_HASH = "!"

DEMO_MESSAGES = (
    (DEMO_OWNER, "Welcome to the demo guild!"),
    (DEMO_GUEST, "Thanks, glad to be here."),
    (DEMO_OWNER, "Say hi in #random too."),
)


def seed_demo_data(engine: Engine, generator: SnowflakeGenerator) -> dict[str, int] | None:
    """Insert the demo community.  Returns the created ids by name, or
    ``None`` if the demo data was already present."""
    stores = build_stores(engine)

    if stores.users.get_by_username(DEMO_OWNER) is not None:
        logger.info("Demo data already present, skipping seed.")
        return None

    ids: dict[str, int] = {}

    for username in (DEMO_OWNER, DEMO_GUEST):
        ids[username] = generator.generate()
        stores.users.create(schemas.User(
            id=ids[username],
            username=username,
            display_name=username.capitalize(),
            password_hash=_PLACEHOLDER_HASH,
        ))

    ids["guild"] = generator.generate()
    stores.guilds.create(schemas.Guild(
        id=ids["guild"], name="Retrocast Demo", owner_id=ids[DEMO_OWNER],
    ))

    for position, name in enumerate(("general", "random")):
        ids[name] = generator.generate()
        stores.channels.create(schemas.Channel(
            id=ids[name], guild_id=ids["guild"], name=name, position=position,
        ))

    ids["everyone"] = generator.generate()
    stores.roles.create(schemas.Role(
        id=ids["everyone"],
        guild_id=ids["guild"],
        name="@everyone",
        permissions=EVERYONE_PERMISSIONS,
        is_default=True,
    ))

    for username in (DEMO_OWNER, DEMO_GUEST):
        stores.members.create(schemas.Member(guild_id=ids["guild"], user_id=ids[username]))
        stores.members.add_role(ids["guild"], ids[username], ids["everyone"])

    for author, content in DEMO_MESSAGES:
        stores.messages.create(schemas.Message(
            id=generator.generate(),
            channel_id=ids["general"],
            author_id=ids[author],
            content=content,
        ))

    logger.info(
        "Seeded demo guild %d with %d users and %d messages.",
        ids["guild"], 2, len(DEMO_MESSAGES),
    )
    return ids

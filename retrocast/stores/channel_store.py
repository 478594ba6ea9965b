"""
retrocast.stores.channel_store — Channel & Permission Override Store
=====================================================================

Channels are unique by name within a guild (``uq_channels_guild_name``)
and list by ``position`` then ``id``.

Overrides are *latest-value* rows keyed by (channel, role): :meth:`set`
replaces both bit-fields wholesale.  It never ORs the new bits into the
old ones.  Combining overrides with role permissions is the caller's job.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select, update

from retrocast import schemas
from retrocast.database import models
from retrocast.database.engine import get_session
from retrocast.database.upsert import insert_for

logger = logging.getLogger(__name__)


class ChannelRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, channel: schemas.Channel) -> None:
        with get_session(self.engine) as session:
            session.add(models.Channel(
                id=channel.id,
                guild_id=channel.guild_id,
                name=channel.name,
                type=int(channel.type),
                position=channel.position,
                topic=channel.topic,
                parent_id=channel.parent_id,
            ))
        logger.debug("Channel created: id=%d guild=%d", channel.id, channel.guild_id)

    def get_by_id(self, channel_id: int) -> schemas.Channel | None:
        with get_session(self.engine) as session:
            row = session.get(models.Channel, channel_id)
            return schemas.Channel.model_validate(row) if row else None

    def get_by_guild_id(self, guild_id: int) -> list[schemas.Channel]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Channel)
                .where(models.Channel.guild_id == guild_id)
                .order_by(models.Channel.position, models.Channel.id)
            ).all()
            return [schemas.Channel.model_validate(r) for r in rows]

    def update(self, channel: schemas.Channel) -> None:
        with get_session(self.engine) as session:
            session.execute(
                update(models.Channel)
                .where(models.Channel.id == channel.id)
                .values(
                    name=channel.name,
                    type=int(channel.type),
                    position=channel.position,
                    topic=channel.topic,
                    parent_id=channel.parent_id,
                )
            )

    def delete(self, channel_id: int) -> None:
        """Hard delete; overrides cascade, children lose their parent."""
        with get_session(self.engine) as session:
            session.execute(delete(models.Channel).where(models.Channel.id == channel_id))
        logger.debug("Channel deleted: id=%d", channel_id)


class ChannelOverrideRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def set(self, override: schemas.ChannelOverride) -> None:
        """Upsert keyed by (channel, role); allow/deny replace the old values."""
        with get_session(self.engine) as session:
            stmt = insert_for(session, models.ChannelOverride).values(
                channel_id=override.channel_id,
                role_id=override.role_id,
                allow_perms=override.allow,
                deny_perms=override.deny,
            )
            session.execute(stmt.on_conflict_do_update(
                index_elements=["channel_id", "role_id"],
                set_={
                    "allow_perms": stmt.excluded.allow_perms,
                    "deny_perms": stmt.excluded.deny_perms,
                },
            ))
        logger.debug(
            "Override set: channel=%d role=%d", override.channel_id, override.role_id,
        )

    def get_by_channel(self, channel_id: int) -> list[schemas.ChannelOverride]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.ChannelOverride)
                .where(models.ChannelOverride.channel_id == channel_id)
            ).all()
            return [
                schemas.ChannelOverride(
                    channel_id=r.channel_id,
                    role_id=r.role_id,
                    allow=r.allow_perms,
                    deny=r.deny_perms,
                )
                for r in rows
            ]

    def delete(self, channel_id: int, role_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(
                delete(models.ChannelOverride).where(
                    models.ChannelOverride.channel_id == channel_id,
                    models.ChannelOverride.role_id == role_id,
                )
            )

"""
retrocast.stores.state_store — Read & Voice State Store
========================================================

Both tables hold one *current* row per key and are written with upserts:

* ``read_states`` — keyed by (user, channel).  Marking a channel read
  moves ``last_message_id`` forward *and* clears ``mention_count``.
* ``voice_states`` — keyed by (guild, user).  A user is in at most one
  voice channel per guild; moving channels or toggling mute/deaf rewrites
  the row in place and keeps the original ``joined_at``.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, select, update

from retrocast import schemas
from retrocast.database import models
from retrocast.database.engine import get_session
from retrocast.database.upsert import insert_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Read state
# ---------------------------------------------------------------------------
class ReadStateRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def upsert(self, user_id: int, channel_id: int, last_message_id: int) -> None:
        """Record *last_message_id* as read and reset the mention counter."""
        now = schemas.utcnow()
        with get_session(self.engine) as session:
            stmt = insert_for(session, models.ReadState).values(
                user_id=user_id,
                channel_id=channel_id,
                last_message_id=last_message_id,
                mention_count=0,
                updated_at=now,
            )
            session.execute(stmt.on_conflict_do_update(
                index_elements=["user_id", "channel_id"],
                set_={
                    "last_message_id": stmt.excluded.last_message_id,
                    "mention_count": 0,
                    "updated_at": stmt.excluded.updated_at,
                },
            ))

    def get_by_user(self, user_id: int) -> list[schemas.ReadState]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.ReadState)
                .where(models.ReadState.user_id == user_id)
                .order_by(models.ReadState.updated_at, models.ReadState.channel_id)
            ).all()
            return [schemas.ReadState.model_validate(r) for r in rows]

    def get_by_user_and_channel(self, user_id: int, channel_id: int) -> schemas.ReadState | None:
        with get_session(self.engine) as session:
            row = session.get(models.ReadState, (user_id, channel_id))
            return schemas.ReadState.model_validate(row) if row else None

    def increment_mention_count(self, user_id: int, channel_id: int) -> None:
        """Relative ``+1`` that also bumps ``updated_at``.  No-op when the
        user has no read state for the channel yet."""
        with get_session(self.engine) as session:
            session.execute(
                update(models.ReadState)
                .where(
                    models.ReadState.user_id == user_id,
                    models.ReadState.channel_id == channel_id,
                )
                .values(
                    mention_count=models.ReadState.mention_count + 1,
                    updated_at=schemas.utcnow(),
                )
            )


# ---------------------------------------------------------------------------
# Voice state
# ---------------------------------------------------------------------------
class VoiceStateRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def upsert(self, state: schemas.VoiceState) -> None:
        """Place the user in ``state.channel_id``, replacing any previous
        location in the same guild."""
        with get_session(self.engine) as session:
            stmt = insert_for(session, models.VoiceState).values(
                guild_id=state.guild_id,
                user_id=state.user_id,
                channel_id=state.channel_id,
                session_id=state.session_id,
                self_mute=state.self_mute,
                self_deaf=state.self_deaf,
                joined_at=state.joined_at,
            )
            session.execute(stmt.on_conflict_do_update(
                index_elements=["guild_id", "user_id"],
                set_={
                    "channel_id": stmt.excluded.channel_id,
                    "session_id": stmt.excluded.session_id,
                    "self_mute": stmt.excluded.self_mute,
                    "self_deaf": stmt.excluded.self_deaf,
                },
            ))
        logger.debug(
            "Voice state: guild=%d user=%d channel=%d",
            state.guild_id, state.user_id, state.channel_id,
        )

    def delete(self, guild_id: int, user_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(
                delete(models.VoiceState).where(
                    models.VoiceState.guild_id == guild_id,
                    models.VoiceState.user_id == user_id,
                )
            )

    def get_by_channel(self, channel_id: int) -> list[schemas.VoiceState]:
        """Everyone in a voice channel, in join order."""
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.VoiceState)
                .where(models.VoiceState.channel_id == channel_id)
                .order_by(models.VoiceState.joined_at, models.VoiceState.user_id)
            ).all()
            return [schemas.VoiceState.model_validate(r) for r in rows]

    def get_by_guild(self, guild_id: int) -> list[schemas.VoiceState]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.VoiceState)
                .where(models.VoiceState.guild_id == guild_id)
                .order_by(models.VoiceState.joined_at, models.VoiceState.user_id)
            ).all()
            return [schemas.VoiceState.model_validate(r) for r in rows]

    def get_by_user(self, guild_id: int, user_id: int) -> schemas.VoiceState | None:
        with get_session(self.engine) as session:
            row = session.get(models.VoiceState, (guild_id, user_id))
            return schemas.VoiceState.model_validate(row) if row else None

"""
retrocast.stores.dm_store — Direct-Message Store
=================================================

DM channels live outside guilds and are addressed by their recipient set.

**Atomic create.**  A channel row and all of its recipient rows are written
in one transaction.  If any insert fails (say, a duplicate recipient) the
whole thing rolls back and nothing is visible.

**Find-or-create for 1:1 channels.**  :meth:`DMChannelRepository.get_or_create_dm`
looks for a 1:1 channel holding both users and creates one otherwise.  The
lookup-then-insert window is closed by ``dm_channels.pair_key``: every 1:1
channel stores its canonical ``"<low>:<high>"`` user pair under a unique
constraint, so when two callers race, the loser's insert fails with a
conflict and it re-reads the winner's channel.  Argument order never
matters.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import Engine, delete, exists, insert, select, update
from sqlalchemy.orm import Session, aliased

from retrocast import schemas
from retrocast.database import models
from retrocast.database.engine import get_session
from retrocast.database.models import DMChannelType
from retrocast.database.upsert import insert_for
from retrocast.errors import ConflictError, StoreError

logger = logging.getLogger(__name__)


def pair_key(user1_id: int, user2_id: int) -> str:
    """Canonical, order-independent key for a 1:1 user pair."""
    low, high = sorted((user1_id, user2_id))
    return f"{low}:{high}"


def _recipients_by_channel(
    session: Session, channel_ids: Iterable[int],
) -> dict[int, list[schemas.User]]:
    """Batch-load recipients for many channels, each list ordered by user id."""
    channel_ids = list(channel_ids)
    grouped: dict[int, list[schemas.User]] = defaultdict(list)
    if not channel_ids:
        return grouped
    rows = session.execute(
        select(models.DMRecipient.channel_id, models.User)
        .join(models.User, models.User.id == models.DMRecipient.user_id)
        .where(models.DMRecipient.channel_id.in_(channel_ids))
        .order_by(models.DMRecipient.channel_id, models.User.id)
    ).all()
    for channel_id, user in rows:
        grouped[channel_id].append(schemas.User.model_validate(user))
    return grouped


def _to_dm(row: models.DMChannel, recipients: list[schemas.User]) -> schemas.DMChannel:
    return schemas.DMChannel(
        id=row.id,
        type=row.type,
        owner_id=row.owner_id,
        recipients=recipients,
        created_at=row.created_at,
    )


class DMChannelRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def create(
        self,
        channel_id: int,
        recipient_ids: list[int],
        *,
        type: DMChannelType = DMChannelType.DM,
        owner_id: int | None = None,
        created_at: datetime | None = None,
    ) -> None:
        """Insert the channel and one recipient row per user, all or nothing.

        Raises
        ------
        ValueError
            A 1:1 channel was given anything other than exactly two
            recipients.
        ConflictError
            The channel id, a recipient pair, or (1:1 only) the user pair
            already exists.  Nothing was written.
        """
        key = None
        if type == DMChannelType.DM:
            if len(recipient_ids) != 2:
                raise ValueError(
                    f"a 1:1 DM channel needs exactly 2 recipients, got {len(recipient_ids)}"
                )
            key = pair_key(*recipient_ids)

        with get_session(self.engine) as session:
            session.execute(insert(models.DMChannel).values(
                id=channel_id,
                type=int(type),
                owner_id=owner_id,
                pair_key=key,
                created_at=created_at or schemas.utcnow(),
            ))
            for user_id in recipient_ids:
                session.execute(insert(models.DMRecipient).values(
                    channel_id=channel_id, user_id=user_id,
                ))
        logger.debug(
            "DM channel created: id=%d type=%d recipients=%d",
            channel_id, type, len(recipient_ids),
        )

    def get_or_create_dm(self, user1_id: int, user2_id: int, new_id: int) -> schemas.DMChannel:
        """Return the 1:1 channel between two users, creating it with
        *new_id* if none exists."""
        if user1_id == user2_id:
            raise ValueError("a 1:1 DM channel needs two distinct users")

        existing = self._find_one_to_one(user1_id, user2_id)
        if existing is not None:
            return existing

        try:
            self.create(new_id, [user1_id, user2_id], type=DMChannelType.DM)
        except ConflictError:
            # A concurrent caller created the pair first; theirs wins.
            existing = self._find_one_to_one(user1_id, user2_id)
            if existing is None:
                raise
            logger.info(
                "DM create race lost for pair %s; returning channel %d",
                pair_key(user1_id, user2_id), existing.id,
            )
            return existing

        created = self.get_by_id(new_id)
        if created is None:
            # Deleted between our commit and the read-back.
            raise StoreError(f"DM channel {new_id} vanished after creation")
        return created

    def add_recipient(self, channel_id: int, user_id: int) -> None:
        """Insert-or-ignore."""
        with get_session(self.engine) as session:
            stmt = insert_for(session, models.DMRecipient).values(
                channel_id=channel_id, user_id=user_id,
            )
            session.execute(stmt.on_conflict_do_nothing())

    def remove_recipient(self, channel_id: int, user_id: int) -> None:
        """Drop one recipient.  A 1:1 channel that loses a member also gives
        up its ``pair_key``, so the pair can open a fresh channel."""
        with get_session(self.engine) as session:
            result = session.execute(
                delete(models.DMRecipient).where(
                    models.DMRecipient.channel_id == channel_id,
                    models.DMRecipient.user_id == user_id,
                )
            )
            if result.rowcount == 0:
                return
            session.execute(
                update(models.DMChannel)
                .where(
                    models.DMChannel.id == channel_id,
                    models.DMChannel.type == int(DMChannelType.DM),
                )
                .values(pair_key=None)
            )

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_by_id(self, channel_id: int) -> schemas.DMChannel | None:
        with get_session(self.engine) as session:
            row = session.get(models.DMChannel, channel_id)
            if row is None:
                return None
            recipients = _recipients_by_channel(session, [row.id])
            return _to_dm(row, recipients[row.id])

    def get_by_user_id(self, user_id: int) -> list[schemas.DMChannel]:
        """Every DM channel *user_id* is in, newest first."""
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.DMChannel)
                .join(models.DMRecipient, models.DMRecipient.channel_id == models.DMChannel.id)
                .where(models.DMRecipient.user_id == user_id)
                .order_by(models.DMChannel.id.desc())
            ).all()
            recipients = _recipients_by_channel(session, (r.id for r in rows))
            return [_to_dm(r, recipients[r.id]) for r in rows]

    def is_recipient(self, channel_id: int, user_id: int) -> bool:
        with get_session(self.engine) as session:
            return bool(session.scalar(
                select(exists().where(
                    models.DMRecipient.channel_id == channel_id,
                    models.DMRecipient.user_id == user_id,
                ))
            ))

    def get_recipient_ids(self, channel_id: int) -> list[int]:
        with get_session(self.engine) as session:
            return list(session.scalars(
                select(models.DMRecipient.user_id)
                .where(models.DMRecipient.channel_id == channel_id)
                .order_by(models.DMRecipient.user_id)
            ).all())

    def _find_one_to_one(self, user1_id: int, user2_id: int) -> schemas.DMChannel | None:
        """1:1 channel where both users are recipients, if any."""
        first = aliased(models.DMRecipient)
        second = aliased(models.DMRecipient)
        with get_session(self.engine) as session:
            row = session.scalar(
                select(models.DMChannel)
                .join(first, first.channel_id == models.DMChannel.id)
                .join(second, second.channel_id == models.DMChannel.id)
                .where(
                    first.user_id == user1_id,
                    second.user_id == user2_id,
                    models.DMChannel.type == int(DMChannelType.DM),
                )
                .order_by(models.DMChannel.id)
                .limit(1)
            )
            if row is None:
                return None
            recipients = _recipients_by_channel(session, [row.id])
            return _to_dm(row, recipients[row.id])

"""
retrocast.stores.message_store — Conversation Store
====================================================

Messages, their attachments, and reactions.

**Keyset pagination.**  :meth:`MessageRepository.get_by_channel_id` pages
history with ``id < before`` ordered by ``id DESC``, never by offset and
never by timestamp.  Snowflake ids grow with creation order, so:

* the cost of a page does not depend on how deep into history it is;
* new messages arriving above the cursor never shift pages already read;
* equal or skewed ``created_at`` values cannot reorder anything.

To walk history, pass the id of the last message of one page as ``before``
for the next.

**Reactions** are (message, user, emoji) rows.  Adding an existing one is
ignored.  Per-emoji counts are ordered by the first time that emoji was
used on the message, which keeps the reaction bar stable left-to-right.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Engine, Select, case, delete, func, select, update

from retrocast import schemas
from retrocast.database import models
from retrocast.database.engine import get_session
from retrocast.database.upsert import insert_for

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


def _with_author() -> Select:
    return (
        select(
            models.Message,
            models.User.username,
            models.User.display_name,
            models.User.avatar_hash,
        )
        .join(models.User, models.User.id == models.Message.author_id)
    )


def _to_message_with_author(row) -> schemas.MessageWithAuthor:
    message, username, display_name, avatar_hash = row
    return schemas.MessageWithAuthor(
        id=message.id,
        channel_id=message.channel_id,
        author_id=message.author_id,
        content=message.content,
        created_at=message.created_at,
        edited_at=message.edited_at,
        author_username=username,
        author_display_name=display_name,
        author_avatar_hash=avatar_hash,
    )


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
class MessageRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, message: schemas.Message) -> None:
        """Insert with caller-supplied id and timestamps."""
        with get_session(self.engine) as session:
            session.add(models.Message(
                id=message.id,
                channel_id=message.channel_id,
                author_id=message.author_id,
                content=message.content,
                created_at=message.created_at,
                edited_at=message.edited_at,
            ))
        logger.debug("Message created: id=%d channel=%d", message.id, message.channel_id)

    def get_by_id(self, message_id: int) -> schemas.MessageWithAuthor | None:
        with get_session(self.engine) as session:
            row = session.execute(
                _with_author().where(models.Message.id == message_id)
            ).first()
            return _to_message_with_author(row) if row else None

    def get_by_channel_id(
        self,
        channel_id: int,
        before: int | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> list[schemas.MessageWithAuthor]:
        """Up to *limit* messages older than *before* (exclusive), newest first.

        With ``before=None`` the page starts at the newest message.
        """
        _check_limit(limit)
        stmt = _with_author().where(models.Message.channel_id == channel_id)
        if before is not None:
            stmt = stmt.where(models.Message.id < before)
        stmt = stmt.order_by(models.Message.id.desc()).limit(limit)

        with get_session(self.engine) as session:
            return [_to_message_with_author(r) for r in session.execute(stmt).all()]

    def update(self, message: schemas.Message) -> None:
        """Replace content and set ``edited_at`` (now, if the caller left it
        empty).  Authorship is the caller's concern."""
        edited_at = message.edited_at or schemas.utcnow()
        with get_session(self.engine) as session:
            session.execute(
                update(models.Message)
                .where(models.Message.id == message.id)
                .values(content=message.content, edited_at=edited_at)
            )

    def delete(self, message_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(delete(models.Message).where(models.Message.id == message_id))
        logger.debug("Message deleted: id=%d", message_id)

    def search_messages(
        self,
        guild_id: int,
        query: str,
        author_id: int | None = None,
        before: datetime | None = None,
        after: datetime | None = None,
        limit: int = 25,
    ) -> list[schemas.MessageWithAuthor]:
        """Case-insensitive substring search over a guild's channels.

        Results are newest first; there is no relevance ranking.
        """
        _check_limit(limit)
        stmt = (
            _with_author()
            .join(models.Channel, models.Channel.id == models.Message.channel_id)
            .where(
                models.Channel.guild_id == guild_id,
                models.Message.content.ilike(f"%{_escape_like(query)}%", escape="\\"),
            )
        )
        if author_id is not None:
            stmt = stmt.where(models.Message.author_id == author_id)
        if before is not None:
            stmt = stmt.where(models.Message.created_at < before)
        if after is not None:
            stmt = stmt.where(models.Message.created_at > after)
        stmt = stmt.order_by(models.Message.id.desc()).limit(limit)

        with get_session(self.engine) as session:
            return [_to_message_with_author(r) for r in session.execute(stmt).all()]


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------
class AttachmentRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, attachment: schemas.Attachment) -> None:
        with get_session(self.engine) as session:
            session.add(models.Attachment(
                id=attachment.id,
                message_id=attachment.message_id,
                filename=attachment.filename,
                content_type=attachment.content_type,
                size=attachment.size,
                storage_key=attachment.storage_key,
            ))

    def get_by_message_id(self, message_id: int) -> list[schemas.Attachment]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Attachment)
                .where(models.Attachment.message_id == message_id)
                .order_by(models.Attachment.id)
            ).all()
            return [schemas.Attachment.model_validate(r) for r in rows]

    def delete(self, attachment_id: int) -> None:
        with get_session(self.engine) as session:
            session.execute(
                delete(models.Attachment).where(models.Attachment.id == attachment_id)
            )

    def delete_by_message_id(self, message_id: int) -> int:
        """Remove every attachment of a message; returns how many went."""
        with get_session(self.engine) as session:
            result = session.execute(
                delete(models.Attachment).where(models.Attachment.message_id == message_id)
            )
            return result.rowcount


# ---------------------------------------------------------------------------
# Reactions
# ---------------------------------------------------------------------------
class ReactionRepository:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def add(
        self,
        message_id: int,
        user_id: int,
        emoji: str,
        created_at: datetime | None = None,
    ) -> bool:
        """Insert-or-ignore.  Returns ``False`` if the reaction already existed."""
        with get_session(self.engine) as session:
            stmt = insert_for(session, models.Reaction).values(
                message_id=message_id,
                user_id=user_id,
                emoji=emoji,
                created_at=created_at or schemas.utcnow(),
            )
            result = session.execute(stmt.on_conflict_do_nothing(
                index_elements=["message_id", "user_id", "emoji"],
            ))
            return result.rowcount == 1

    def remove(self, message_id: int, user_id: int, emoji: str) -> None:
        with get_session(self.engine) as session:
            session.execute(
                delete(models.Reaction).where(
                    models.Reaction.message_id == message_id,
                    models.Reaction.user_id == user_id,
                    models.Reaction.emoji == emoji,
                )
            )

    def get_by_message(self, message_id: int) -> list[schemas.Reaction]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(models.Reaction)
                .where(models.Reaction.message_id == message_id)
                .order_by(models.Reaction.created_at, models.Reaction.user_id)
            ).all()
            return [schemas.Reaction.model_validate(r) for r in rows]

    def get_counts_by_message(
        self, message_id: int, current_user_id: int,
    ) -> list[schemas.ReactionCount]:
        """Per-emoji count plus whether *current_user_id* reacted with it,
        earliest-used emoji first."""
        mine = func.max(case((models.Reaction.user_id == current_user_id, 1), else_=0))
        stmt = (
            select(
                models.Reaction.emoji,
                func.count().label("count"),
                mine.label("me"),
            )
            .where(models.Reaction.message_id == message_id)
            .group_by(models.Reaction.emoji)
            .order_by(func.min(models.Reaction.created_at), models.Reaction.emoji)
        )
        with get_session(self.engine) as session:
            return [
                schemas.ReactionCount(emoji=emoji, count=count, me=bool(me))
                for emoji, count, me in session.execute(stmt).all()
            ]

    def get_users_by_reaction(self, message_id: int, emoji: str, limit: int = 25) -> list[int]:
        """The first *limit* users to react with *emoji*, in reaction order."""
        _check_limit(limit)
        with get_session(self.engine) as session:
            return list(session.scalars(
                select(models.Reaction.user_id)
                .where(
                    models.Reaction.message_id == message_id,
                    models.Reaction.emoji == emoji,
                )
                .order_by(models.Reaction.created_at, models.Reaction.user_id)
                .limit(limit)
            ).all())

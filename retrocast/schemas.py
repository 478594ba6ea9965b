"""
retrocast.schemas — Pydantic Read/Write Models
===============================================

These are the values the repositories accept and return.  They mirror the
tables one-to-one, plus three read-side compositions:

* :class:`MessageWithAuthor` — a message with its author's display fields.
* :attr:`Member.roles` — the role ids a member holds.
* :attr:`DMChannel.recipients` — the users in a DM channel.

Every 64-bit identifier (and every 64-bit permission bit-field) is a
:data:`Snowflake`: an ``int`` in Python that serializes to a JSON *string*,
so JavaScript clients never lose precision.  Strings are accepted on input.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from retrocast.database.models import ChannelType, DMChannelType


def utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_snowflake(value):
    if isinstance(value, str):
        return int(value.strip())
    return value


Snowflake = Annotated[
    int,
    BeforeValidator(_parse_snowflake),
    PlainSerializer(str, return_type=str, when_used="json"),
]


class _Schema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------
class User(_Schema):
    id: Snowflake
    username: str
    display_name: str
    avatar_hash: str | None = None
    # Never leaves the process in serialized form.
    password_hash: str = Field(default="", exclude=True, repr=False)
    created_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Guilds & membership
# ---------------------------------------------------------------------------
class Guild(_Schema):
    id: Snowflake
    name: str
    icon_hash: str | None = None
    owner_id: Snowflake
    created_at: datetime = Field(default_factory=utcnow)


class Member(_Schema):
    guild_id: Snowflake
    user_id: Snowflake
    nickname: str | None = None
    joined_at: datetime = Field(default_factory=utcnow)
    roles: list[Snowflake] = Field(default_factory=list)


class Role(_Schema):
    id: Snowflake
    guild_id: Snowflake
    name: str
    color: int = 0
    permissions: Snowflake = 0
    position: int = 0
    is_default: bool = False


class Ban(_Schema):
    guild_id: Snowflake
    user_id: Snowflake
    reason: str | None = None
    created_by: Snowflake
    created_at: datetime = Field(default_factory=utcnow)


class Invite(_Schema):
    code: str
    guild_id: Snowflake
    channel_id: Snowflake | None = None
    creator_id: Snowflake
    max_uses: int = 0  # 0 = unlimited
    uses: int = 0
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or utcnow()
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        return expires_at <= now

    def is_exhausted(self) -> bool:
        return self.max_uses > 0 and self.uses >= self.max_uses


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------
class Channel(_Schema):
    id: Snowflake
    guild_id: Snowflake
    name: str
    type: ChannelType = ChannelType.TEXT
    position: int = 0
    topic: str | None = None
    parent_id: Snowflake | None = None


class ChannelOverride(_Schema):
    channel_id: Snowflake
    role_id: Snowflake
    allow: Snowflake = 0
    deny: Snowflake = 0


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------
class Message(_Schema):
    id: Snowflake
    channel_id: Snowflake
    author_id: Snowflake
    content: str
    created_at: datetime = Field(default_factory=utcnow)
    edited_at: datetime | None = None


class MessageWithAuthor(Message):
    author_username: str
    author_display_name: str
    author_avatar_hash: str | None = None


class Attachment(_Schema):
    id: Snowflake
    message_id: Snowflake
    filename: str
    content_type: str
    size: int
    storage_key: str = Field(exclude=True)


class Reaction(_Schema):
    message_id: Snowflake
    user_id: Snowflake
    emoji: str
    created_at: datetime = Field(default_factory=utcnow)


class ReactionCount(_Schema):
    emoji: str
    count: int
    me: bool


# ---------------------------------------------------------------------------
# Direct messages
# ---------------------------------------------------------------------------
class DMChannel(_Schema):
    id: Snowflake
    type: DMChannelType = DMChannelType.DM
    owner_id: Snowflake | None = None
    recipients: list[User] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Presence / state
# ---------------------------------------------------------------------------
class ReadState(_Schema):
    user_id: Snowflake
    channel_id: Snowflake
    last_message_id: Snowflake
    mention_count: int = 0
    updated_at: datetime = Field(default_factory=utcnow)


class VoiceState(_Schema):
    guild_id: Snowflake
    channel_id: Snowflake
    user_id: Snowflake
    session_id: str
    self_mute: bool = False
    self_deaf: bool = False
    joined_at: datetime = Field(default_factory=utcnow)

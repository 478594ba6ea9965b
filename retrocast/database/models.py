"""
retrocast.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- users              — Accounts (snowflake PK, unique username)
- guilds             — Communities owned by a user
- members            — (guild, user) membership rows
- roles              — Per-guild roles with permission bit-fields
- member_roles       — Member ↔ Role junction
- channels           — Per-guild text/voice/category channels
- channel_overrides  — Per-(channel, role) allow/deny deltas (upsert target)
- bans               — (guild, user) bans
- invites            — Invite codes with relative use counter
- messages           — Channel and DM message history (keyset by id)
- attachments        — Files attached to a message
- reactions          — (message, user, emoji) reactions
- dm_channels        — 1:1 and group direct-message channels
- dm_recipients      — DM channel ↔ User junction
- read_states        — Latest read pointer per (user, channel) (upsert target)
- voice_states       — Active voice location per (guild, user) (upsert target)

Cascading cleanup of dependent rows is declared here (``ondelete``) and
carried out by the database; the repositories never re-implement it.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Retrocast ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ChannelType(enum.IntEnum):
    """Guild channel kinds.  Values are the persisted integers."""
    TEXT = 0
    VOICE = 2
    CATEGORY = 4


class DMChannelType(enum.IntEnum):
    """Direct-message channel kinds."""
    DM = 1
    GROUP_DM = 3


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    username: Mapped[str] = mapped_column(String(32), nullable=False)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False)
    avatar_hash: Mapped[str | None] = mapped_column(String(128), default=None)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


# ---------------------------------------------------------------------------
# Guilds
# ---------------------------------------------------------------------------
class Guild(Base):
    __tablename__ = "guilds"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon_hash: Mapped[str | None] = mapped_column(String(128), default=None)
    # Plain reference; the owner is not required to hold a members row.
    owner_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Guild id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Members: existence of a row is membership
# ---------------------------------------------------------------------------
class Member(Base):
    __tablename__ = "members"

    guild_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    nickname: Mapped[str | None] = mapped_column(String(32), default=None)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_members_user_id", "user_id"),
        Index("ix_members_guild_joined", "guild_id", "joined_at"),
    )

    def __repr__(self) -> str:
        return f"<Member guild={self.guild_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------
class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    guild_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    permissions: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_roles_guild_position", "guild_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name!r} pos={self.position}>"


class MemberRole(Base):
    __tablename__ = "member_roles"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    role_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        ForeignKeyConstraint(
            ["guild_id", "user_id"],
            ["members.guild_id", "members.user_id"],
            ondelete="CASCADE",
            name="fk_member_roles_member",
        ),
        Index("ix_member_roles_role_id", "role_id"),
    )

    def __repr__(self) -> str:
        return f"<MemberRole guild={self.guild_id} user={self.user_id} role={self.role_id}>"


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------
class Channel(Base):
    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    guild_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[int] = mapped_column(Integer, nullable=False, default=ChannelType.TEXT)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    topic: Mapped[str | None] = mapped_column(Text, default=None)
    parent_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("channels.id", ondelete="SET NULL"), default=None
    )

    __table_args__ = (
        UniqueConstraint("guild_id", "name", name="uq_channels_guild_name"),
        Index("ix_channels_guild_position", "guild_id", "position", "id"),
    )

    def __repr__(self) -> str:
        return f"<Channel id={self.id} name={self.name!r} type={self.type}>"


# ---------------------------------------------------------------------------
# ChannelOverride: per-role permission delta, one row per (channel, role)
# ---------------------------------------------------------------------------
class ChannelOverride(Base):
    __tablename__ = "channel_overrides"

    channel_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
    allow_perms: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    deny_perms: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ChannelOverride channel={self.channel_id} role={self.role_id}>"


# ---------------------------------------------------------------------------
# Bans
# ---------------------------------------------------------------------------
class Ban(Base):
    __tablename__ = "bans"

    guild_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    reason: Mapped[str | None] = mapped_column(Text, default=None)
    created_by: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_bans_guild_created", "guild_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Ban guild={self.guild_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------
class Invite(Base):
    __tablename__ = "invites"

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    guild_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False
    )
    channel_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), default=None
    )
    creator_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_invites_guild_created", "guild_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Invite code={self.code!r} guild={self.guild_id} uses={self.uses}>"


# ---------------------------------------------------------------------------
# Messages: channel_id addresses a guild channel *or* a DM channel
# ---------------------------------------------------------------------------
class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    author_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    edited_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    __table_args__ = (
        # Keyset pagination: WHERE channel_id = ? AND id < ? ORDER BY id DESC
        Index("ix_messages_channel_id_id", "channel_id", "id"),
        Index("ix_messages_author_id", "author_id"),
    )

    def __repr__(self) -> str:
        return f"<Message id={self.id} channel={self.channel_id} author={self.author_id}>"


class Attachment(Base):
    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    message_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)

    __table_args__ = (
        Index("ix_attachments_message_id", "message_id"),
    )

    def __repr__(self) -> str:
        return f"<Attachment id={self.id} message={self.message_id} file={self.filename!r}>"


class Reaction(Base):
    __tablename__ = "reactions"

    message_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    emoji: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_reactions_message_emoji_time", "message_id", "emoji", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Reaction message={self.message_id} user={self.user_id} emoji={self.emoji!r}>"


# ---------------------------------------------------------------------------
# Direct messages
# ---------------------------------------------------------------------------
class DMChannel(Base):
    """A direct-message channel, independent of any guild.

    ``pair_key`` is ``"<low user id>:<high user id>"`` for 1:1 channels and
    NULL for group channels; its unique constraint is what keeps at most
    one 1:1 channel per unordered user pair.
    """
    __tablename__ = "dm_channels"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    type: Mapped[int] = mapped_column(Integer, nullable=False, default=DMChannelType.DM)
    owner_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL"), default=None
    )
    pair_key: Mapped[str | None] = mapped_column(String(64), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("pair_key", name="uq_dm_channels_pair_key"),
    )

    def __repr__(self) -> str:
        return f"<DMChannel id={self.id} type={self.type}>"


class DMRecipient(Base):
    __tablename__ = "dm_recipients"

    channel_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("dm_channels.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        Index("ix_dm_recipients_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<DMRecipient channel={self.channel_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# ReadState: latest read pointer per (user, channel)
# ---------------------------------------------------------------------------
class ReadState(Base):
    __tablename__ = "read_states"

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    # Guild channel or DM channel, so no foreign key.
    channel_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    last_message_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    mention_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ReadState user={self.user_id} channel={self.channel_id} "
            f"last={self.last_message_id} mentions={self.mention_count}>"
        )


# ---------------------------------------------------------------------------
# VoiceState: at most one active voice location per (guild, user)
# ---------------------------------------------------------------------------
class VoiceState(Base):
    __tablename__ = "voice_states"

    guild_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    channel_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    session_id: Mapped[str] = mapped_column(String(128), nullable=False)
    self_mute: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    self_deaf: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_voice_states_channel_joined", "channel_id", "joined_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<VoiceState guild={self.guild_id} user={self.user_id} "
            f"channel={self.channel_id}>"
        )

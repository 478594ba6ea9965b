"""Baseline schema: identity, guilds, channels, messages, DMs, state

Revision ID: 5c0e7a1f9b2d
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5c0e7a1f9b2d"
down_revision = None
branch_labels = None
depends_on = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("username", sa.String(32), nullable=False),
        sa.Column("display_name", sa.String(64), nullable=False),
        sa.Column("avatar_hash", sa.String(128), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _created_at(),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "guilds",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("icon_hash", sa.String(128), nullable=True),
        sa.Column("owner_id", sa.BigInteger(), sa.ForeignKey("users.id"), nullable=False),
        _created_at(),
    )

    op.create_table(
        "members",
        sa.Column(
            "guild_id", sa.BigInteger(),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("nickname", sa.String(32), nullable=True),
        _created_at("joined_at"),
    )
    op.create_index("ix_members_user_id", "members", ["user_id"])
    op.create_index("ix_members_guild_joined", "members", ["guild_id", "joined_at"])

    op.create_table(
        "roles",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "guild_id", sa.BigInteger(),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("permissions", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_roles_guild_position", "roles", ["guild_id", "position"])

    op.create_table(
        "member_roles",
        sa.Column("guild_id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "role_id", sa.BigInteger(),
            sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.ForeignKeyConstraint(
            ["guild_id", "user_id"],
            ["members.guild_id", "members.user_id"],
            ondelete="CASCADE",
            name="fk_member_roles_member",
        ),
    )
    op.create_index("ix_member_roles_role_id", "member_roles", ["role_id"])

    op.create_table(
        "channels",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "guild_id", sa.BigInteger(),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("topic", sa.Text(), nullable=True),
        sa.Column(
            "parent_id", sa.BigInteger(),
            sa.ForeignKey("channels.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.UniqueConstraint("guild_id", "name", name="uq_channels_guild_name"),
    )
    op.create_index(
        "ix_channels_guild_position", "channels", ["guild_id", "position", "id"],
    )

    op.create_table(
        "channel_overrides",
        sa.Column(
            "channel_id", sa.BigInteger(),
            sa.ForeignKey("channels.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "role_id", sa.BigInteger(),
            sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("allow_perms", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("deny_perms", sa.BigInteger(), nullable=False, server_default="0"),
    )

    op.create_table(
        "bans",
        sa.Column(
            "guild_id", sa.BigInteger(),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_by", sa.BigInteger(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_bans_guild_created", "bans", ["guild_id", "created_at"])

    op.create_table(
        "invites",
        sa.Column("code", sa.String(32), primary_key=True),
        sa.Column(
            "guild_id", sa.BigInteger(),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "channel_id", sa.BigInteger(),
            sa.ForeignKey("channels.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column(
            "creator_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_invites_guild_created", "invites", ["guild_id", "created_at"])

    op.create_table(
        "messages",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("channel_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "author_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_messages_channel_id_id", "messages", ["channel_id", "id"])
    op.create_index("ix_messages_author_id", "messages", ["author_id"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "message_id", sa.BigInteger(),
            sa.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("content_type", sa.String(255), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("storage_key", sa.String(512), nullable=False),
    )
    op.create_index("ix_attachments_message_id", "attachments", ["message_id"])

    op.create_table(
        "reactions",
        sa.Column(
            "message_id", sa.BigInteger(),
            sa.ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("emoji", sa.String(64), primary_key=True),
        _created_at(),
    )
    op.create_index(
        "ix_reactions_message_emoji_time", "reactions",
        ["message_id", "emoji", "created_at"],
    )

    op.create_table(
        "dm_channels",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("type", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "owner_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("pair_key", sa.String(64), nullable=True),
        _created_at(),
        sa.UniqueConstraint("pair_key", name="uq_dm_channels_pair_key"),
    )

    op.create_table(
        "dm_recipients",
        sa.Column(
            "channel_id", sa.BigInteger(),
            sa.ForeignKey("dm_channels.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
    )
    op.create_index("ix_dm_recipients_user_id", "dm_recipients", ["user_id"])

    op.create_table(
        "read_states",
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("channel_id", sa.BigInteger(), primary_key=True),
        sa.Column("last_message_id", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("mention_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at("updated_at"),
    )

    op.create_table(
        "voice_states",
        sa.Column(
            "guild_id", sa.BigInteger(),
            sa.ForeignKey("guilds.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "channel_id", sa.BigInteger(),
            sa.ForeignKey("channels.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("session_id", sa.String(128), nullable=False),
        sa.Column("self_mute", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("self_deaf", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at("joined_at"),
    )
    op.create_index(
        "ix_voice_states_channel_joined", "voice_states", ["channel_id", "joined_at"],
    )


def downgrade() -> None:
    op.drop_table("voice_states")
    op.drop_table("read_states")
    op.drop_table("dm_recipients")
    op.drop_table("dm_channels")
    op.drop_table("reactions")
    op.drop_table("attachments")
    op.drop_table("messages")
    op.drop_table("invites")
    op.drop_table("bans")
    op.drop_table("channel_overrides")
    op.drop_table("channels")
    op.drop_table("member_roles")
    op.drop_table("roles")
    op.drop_table("members")
    op.drop_table("guilds")
    op.drop_table("users")

"""
retrocast.stores — Repository Bundle
=====================================

One repository per entity, all sharing a single engine (and therefore a
single connection pool)::

    stores = build_stores(engine)
    stores.users.create(user)
    page = stores.messages.get_by_channel_id(channel_id, before=None, limit=50)
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine

from retrocast.stores.channel_store import ChannelOverrideRepository, ChannelRepository
from retrocast.stores.dm_store import DMChannelRepository
from retrocast.stores.guild_store import (
    BanRepository,
    GuildRepository,
    InviteRepository,
    MemberRepository,
    RoleRepository,
)
from retrocast.stores.message_store import (
    AttachmentRepository,
    MessageRepository,
    ReactionRepository,
)
from retrocast.stores.state_store import ReadStateRepository, VoiceStateRepository
from retrocast.stores.user_store import UserRepository


@dataclass(frozen=True, slots=True)
class Stores:
    users: UserRepository
    guilds: GuildRepository
    members: MemberRepository
    roles: RoleRepository
    bans: BanRepository
    invites: InviteRepository
    channels: ChannelRepository
    overrides: ChannelOverrideRepository
    messages: MessageRepository
    attachments: AttachmentRepository
    reactions: ReactionRepository
    dm_channels: DMChannelRepository
    read_states: ReadStateRepository
    voice_states: VoiceStateRepository


def build_stores(engine: Engine) -> Stores:
    return Stores(
        users=UserRepository(engine),
        guilds=GuildRepository(engine),
        members=MemberRepository(engine),
        roles=RoleRepository(engine),
        bans=BanRepository(engine),
        invites=InviteRepository(engine),
        channels=ChannelRepository(engine),
        overrides=ChannelOverrideRepository(engine),
        messages=MessageRepository(engine),
        attachments=AttachmentRepository(engine),
        reactions=ReactionRepository(engine),
        dm_channels=DMChannelRepository(engine),
        read_states=ReadStateRepository(engine),
        voice_states=VoiceStateRepository(engine),
    )

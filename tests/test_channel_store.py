"""
tests/test_channel_store.py — Channel & Override Store Tests
=============================================================
"""

from __future__ import annotations

import pytest
from conftest import make_channel, make_guild, make_role, make_user

from retrocast import schemas
from retrocast.database.models import ChannelType
from retrocast.errors import ConflictError


@pytest.fixture
def guild(stores):
    make_user(stores, 1, "owner")
    make_guild(stores, 100, owner_id=1)
    make_guild(stores, 101, owner_id=1, name="Other")
    return 100


class TestChannelRepository:
    def test_create_and_get(self, stores, guild):
        stores.channels.create(schemas.Channel(
            id=20, guild_id=100, name="lounge", type=ChannelType.VOICE,
            position=2, topic="chill",
        ))

        channel = stores.channels.get_by_id(20)
        assert channel.name == "lounge"
        assert channel.type is ChannelType.VOICE
        assert channel.topic == "chill"
        assert channel.parent_id is None

    def test_missing_channel_is_none(self, stores):
        assert stores.channels.get_by_id(20) is None

    def test_name_unique_within_guild(self, stores, guild):
        make_channel(stores, 20, 100, "general")

        with pytest.raises(ConflictError):
            make_channel(stores, 21, 100, "general")

    def test_same_name_allowed_in_other_guild(self, stores, guild):
        make_channel(stores, 20, 100, "general")
        make_channel(stores, 21, 101, "general")

        assert stores.channels.get_by_id(21).guild_id == 101

    def test_listing_ordered_by_position_then_id(self, stores, guild):
        make_channel(stores, 23, 100, "c", position=1)
        make_channel(stores, 21, 100, "a", position=1)
        make_channel(stores, 22, 100, "b", position=0)
        make_channel(stores, 30, 101, "elsewhere")

        assert [c.id for c in stores.channels.get_by_guild_id(100)] == [22, 21, 23]

    def test_update(self, stores, guild):
        make_channel(stores, 10, 100, "category", type=ChannelType.CATEGORY)
        channel = make_channel(stores, 20, 100, "general")

        stores.channels.update(channel.model_copy(update={
            "name": "main", "topic": "welcome", "position": 4, "parent_id": 10,
        }))

        fetched = stores.channels.get_by_id(20)
        assert (fetched.name, fetched.topic, fetched.position, fetched.parent_id) == (
            "main", "welcome", 4, 10,
        )

    def test_delete_removes_from_lookup_and_listing(self, stores, guild):
        make_channel(stores, 20, 100, "general")
        make_channel(stores, 21, 100, "random")

        stores.channels.delete(20)

        assert stores.channels.get_by_id(20) is None
        assert [c.id for c in stores.channels.get_by_guild_id(100)] == [21]

    def test_deleting_parent_orphans_children(self, stores, guild):
        make_channel(stores, 10, 100, "category", type=ChannelType.CATEGORY)
        child = schemas.Channel(id=20, guild_id=100, name="general", parent_id=10)
        stores.channels.create(child)

        stores.channels.delete(10)

        assert stores.channels.get_by_id(20).parent_id is None


class TestChannelOverrideRepository:
    @pytest.fixture
    def channel(self, stores, guild):
        make_role(stores, 10, 100)
        make_role(stores, 11, 100)
        return make_channel(stores, 20, 100, "general")

    def test_set_twice_replaces_wholesale(self, stores, channel):
        stores.overrides.set(schemas.ChannelOverride(channel_id=20, role_id=10, allow=0x10, deny=0x20))
        stores.overrides.set(schemas.ChannelOverride(channel_id=20, role_id=10, allow=0x01, deny=0x00))

        [override] = stores.overrides.get_by_channel(20)
        assert override.allow == 0x01
        assert override.deny == 0x00

    def test_one_row_per_role(self, stores, channel):
        stores.overrides.set(schemas.ChannelOverride(channel_id=20, role_id=10, allow=1))
        stores.overrides.set(schemas.ChannelOverride(channel_id=20, role_id=11, deny=2))

        overrides = {o.role_id: o for o in stores.overrides.get_by_channel(20)}
        assert set(overrides) == {10, 11}
        assert overrides[11].deny == 2

    def test_empty_channel_has_no_overrides(self, stores, channel):
        assert stores.overrides.get_by_channel(20) == []

    def test_delete_and_delete_absent(self, stores, channel):
        stores.overrides.set(schemas.ChannelOverride(channel_id=20, role_id=10, allow=1))

        stores.overrides.delete(20, 10)
        stores.overrides.delete(20, 10)

        assert stores.overrides.get_by_channel(20) == []

    def test_high_bits_survive(self, stores, channel):
        stores.overrides.set(schemas.ChannelOverride(
            channel_id=20, role_id=10, allow=1 << 62, deny=(1 << 62) | 1,
        ))

        [override] = stores.overrides.get_by_channel(20)
        assert override.allow == 1 << 62
        assert override.model_dump(mode="json")["deny"] == str((1 << 62) | 1)

    def test_channel_delete_cascades(self, stores, channel):
        stores.overrides.set(schemas.ChannelOverride(channel_id=20, role_id=10, allow=1))

        stores.channels.delete(20)

        assert stores.overrides.get_by_channel(20) == []

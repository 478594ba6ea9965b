"""
tests/test_dm_store.py — Direct-Message Store Tests
====================================================
Covers atomic creation, recipient hydration, and 1:1 find-or-create
including the lost-race path.
"""

from __future__ import annotations

import pytest
from conftest import T0, at, make_user

from retrocast.database.models import DMChannel, DMChannelType, DMRecipient
from retrocast.errors import ConflictError, InvalidReferenceError, StoreError
from retrocast.stores.dm_store import pair_key


@pytest.fixture
def users(stores):
    for user_id, name in ((1, "alice"), (2, "bob"), (3, "carol"), (4, "dave")):
        make_user(stores, user_id, name)


class TestCreate:
    def test_one_to_one_channel_with_recipients(self, stores, users):
        stores.dm_channels.create(500, [2, 1], created_at=T0)

        channel = stores.dm_channels.get_by_id(500)
        assert channel.type is DMChannelType.DM
        assert [u.id for u in channel.recipients] == [1, 2]
        assert channel.recipients[0].username == "alice"

    def test_group_channel_with_owner(self, stores, users):
        stores.dm_channels.create(
            600, [3, 1, 2], type=DMChannelType.GROUP_DM, owner_id=3,
        )

        channel = stores.dm_channels.get_by_id(600)
        assert channel.type is DMChannelType.GROUP_DM
        assert channel.owner_id == 3
        assert [u.id for u in channel.recipients] == [1, 2, 3]

    def test_one_to_one_requires_two_recipients(self, stores, users):
        with pytest.raises(ValueError):
            stores.dm_channels.create(500, [1, 2, 3])
        with pytest.raises(ValueError):
            stores.dm_channels.create(500, [1])
        assert stores.dm_channels.get_by_id(500) is None

    def test_duplicate_recipient_rolls_back_everything(self, stores, users, db_session):
        with pytest.raises(ConflictError):
            stores.dm_channels.create(600, [1, 2, 2], type=DMChannelType.GROUP_DM)

        assert stores.dm_channels.get_by_id(600) is None
        assert db_session.query(DMChannel).count() == 0
        assert db_session.query(DMRecipient).count() == 0

    def test_unknown_recipient_rolls_back_everything(self, stores, users, db_session):
        with pytest.raises(InvalidReferenceError):
            stores.dm_channels.create(600, [1, 2, 99], type=DMChannelType.GROUP_DM)

        assert stores.dm_channels.get_by_id(600) is None
        assert db_session.query(DMRecipient).count() == 0

    def test_second_one_to_one_for_same_pair_is_conflict(self, stores, users):
        stores.dm_channels.create(500, [1, 2])

        with pytest.raises(ConflictError) as excinfo:
            stores.dm_channels.create(501, [2, 1])
        assert stores.dm_channels.get_by_id(501) is None
        assert "pair_key" in str(excinfo.value.constraint or excinfo.value)

    def test_missing_channel_is_none(self, stores, users):
        assert stores.dm_channels.get_by_id(999) is None


class TestLookups:
    def test_get_by_user_id_newest_first_with_recipients(self, stores, users):
        stores.dm_channels.create(500, [1, 2], created_at=at(1))
        stores.dm_channels.create(700, [1, 3, 4], type=DMChannelType.GROUP_DM, created_at=at(2))
        stores.dm_channels.create(600, [3, 4], created_at=at(3))

        channels = stores.dm_channels.get_by_user_id(1)
        assert [c.id for c in channels] == [700, 500]
        assert [u.id for u in channels[0].recipients] == [1, 3, 4]
        assert [u.id for u in channels[1].recipients] == [1, 2]

    def test_get_by_user_id_without_channels(self, stores, users):
        assert stores.dm_channels.get_by_user_id(4) == []

    def test_is_recipient(self, stores, users):
        stores.dm_channels.create(500, [1, 2])

        assert stores.dm_channels.is_recipient(500, 1)
        assert not stores.dm_channels.is_recipient(500, 3)
        assert not stores.dm_channels.is_recipient(999, 1)

    def test_recipients_never_serialize_credentials(self, stores, users):
        stores.dm_channels.create(500, [1, 2])

        payload = stores.dm_channels.get_by_id(500).model_dump(mode="json")
        assert payload["id"] == "500"
        assert all("password_hash" not in u for u in payload["recipients"])


class TestRecipients:
    def test_add_recipient_is_idempotent(self, stores, users):
        stores.dm_channels.create(600, [1, 2], type=DMChannelType.GROUP_DM)

        stores.dm_channels.add_recipient(600, 3)
        stores.dm_channels.add_recipient(600, 3)

        assert stores.dm_channels.get_recipient_ids(600) == [1, 2, 3]

    def test_remove_recipient(self, stores, users):
        stores.dm_channels.create(600, [1, 2, 3], type=DMChannelType.GROUP_DM)

        stores.dm_channels.remove_recipient(600, 2)
        stores.dm_channels.remove_recipient(600, 2)

        assert stores.dm_channels.get_recipient_ids(600) == [1, 3]
        assert not stores.dm_channels.is_recipient(600, 2)

    def test_user_delete_cascades_recipient_rows(self, stores, users):
        stores.dm_channels.create(600, [1, 2, 3], type=DMChannelType.GROUP_DM, owner_id=3)

        stores.users.delete(3)

        channel = stores.dm_channels.get_by_id(600)
        assert [u.id for u in channel.recipients] == [1, 2]
        assert channel.owner_id is None


class TestGetOrCreateDM:
    def test_creates_when_absent(self, stores, users):
        channel = stores.dm_channels.get_or_create_dm(1, 2, 500)

        assert channel.id == 500
        assert [u.id for u in channel.recipients] == [1, 2]

    def test_swapped_arguments_return_same_channel(self, stores, users):
        first = stores.dm_channels.get_or_create_dm(1, 2, 500)
        second = stores.dm_channels.get_or_create_dm(2, 1, 501)

        assert second.id == first.id == 500
        assert stores.dm_channels.get_by_id(501) is None

    def test_group_channel_is_not_a_match(self, stores, users):
        stores.dm_channels.create(600, [1, 2], type=DMChannelType.GROUP_DM)

        channel = stores.dm_channels.get_or_create_dm(1, 2, 500)

        assert channel.id == 500
        assert channel.type is DMChannelType.DM

    def test_distinct_pairs_get_distinct_channels(self, stores, users):
        a = stores.dm_channels.get_or_create_dm(1, 2, 500)
        b = stores.dm_channels.get_or_create_dm(1, 3, 501)

        assert a.id != b.id

    def test_same_user_twice_rejected(self, stores, users):
        with pytest.raises(ValueError):
            stores.dm_channels.get_or_create_dm(1, 1, 500)

    def test_lost_race_returns_winner(self, stores, users, monkeypatch):
        repo = stores.dm_channels
        real_find = repo._find_one_to_one
        calls = []

        def racing_find(user1_id, user2_id):
            calls.append((user1_id, user2_id))
            if len(calls) == 1:
                # Another caller creates the pair right after our lookup.
                repo.create(777, [user2_id, user1_id])
                return None
            return real_find(user1_id, user2_id)

        monkeypatch.setattr(repo, "_find_one_to_one", racing_find)

        channel = repo.get_or_create_dm(1, 2, 500)

        assert channel.id == 777
        assert repo.get_by_id(500) is None
        assert len(calls) == 2

    def test_unrelated_conflict_is_reraised(self, stores, users):
        stores.dm_channels.create(500, [3, 4])

        # Candidate id collides with an existing channel for another pair.
        with pytest.raises(ConflictError):
            stores.dm_channels.get_or_create_dm(1, 2, 500)

    def test_left_channel_is_not_returned(self, stores, users):
        stores.dm_channels.get_or_create_dm(1, 2, 500)
        stores.dm_channels.remove_recipient(500, 2)

        channel = stores.dm_channels.get_or_create_dm(1, 2, 501)

        assert channel.id == 501
        assert [u.id for u in channel.recipients] == [1, 2]
        assert stores.dm_channels.get_recipient_ids(500) == [1]

    def test_removing_non_recipient_keeps_pair(self, stores, users, db_session):
        stores.dm_channels.get_or_create_dm(1, 2, 500)

        stores.dm_channels.remove_recipient(500, 3)

        assert stores.dm_channels.get_or_create_dm(2, 1, 501).id == 500
        assert db_session.get(DMChannel, 500).pair_key == "1:2"

    def test_vanished_channel_is_store_error(self, stores, users, monkeypatch):
        monkeypatch.setattr(stores.dm_channels, "get_by_id", lambda channel_id: None)

        with pytest.raises(StoreError) as excinfo:
            stores.dm_channels.get_or_create_dm(1, 2, 500)
        assert not isinstance(excinfo.value, ConflictError)


def test_pair_key_is_order_independent():
    assert pair_key(7, 3) == pair_key(3, 7) == "3:7"

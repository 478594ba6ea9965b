"""
tests/test_schemas.py — Serialization Contract Tests
=====================================================
64-bit identifiers must leave the process as JSON strings.
"""

from __future__ import annotations

import json

from conftest import T0

from retrocast import schemas
from retrocast.database.models import ChannelType

BIG = 1_234_567_890_123_456_789


class TestSnowflakeSerialization:
    def test_ids_dump_as_strings_in_json_mode(self):
        message = schemas.Message(id=BIG, channel_id=2, author_id=3, content="hi", created_at=T0)

        payload = message.model_dump(mode="json")

        assert payload["id"] == str(BIG)
        assert payload["channel_id"] == "2"

    def test_ids_stay_ints_in_python_mode(self):
        message = schemas.Message(id=BIG, channel_id=2, author_id=3, content="hi")
        assert message.model_dump()["id"] == BIG

    def test_string_ids_accepted_on_input(self):
        role = schemas.Role.model_validate({
            "id": str(BIG), "guild_id": "7", "name": "r", "permissions": "1024",
        })

        assert role.id == BIG
        assert role.permissions == 1024

    def test_json_round_trip(self):
        member = schemas.Member(guild_id=BIG, user_id=5, roles=[BIG, 9], joined_at=T0)

        raw = member.model_dump_json()
        assert json.loads(raw)["roles"] == [str(BIG), "9"]
        assert schemas.Member.model_validate_json(raw).roles == [BIG, 9]

    def test_optional_ids_serialize_none(self):
        channel = schemas.Channel(id=1, guild_id=2, name="general")
        payload = channel.model_dump(mode="json")

        assert payload["parent_id"] is None
        assert payload["type"] == ChannelType.TEXT

    def test_override_bitfields_are_strings(self):
        override = schemas.ChannelOverride(channel_id=1, role_id=2, allow=1 << 63, deny=0)
        payload = override.model_dump(mode="json")

        assert payload["allow"] == str(1 << 63)
        assert payload["deny"] == "0"


class TestSensitiveFields:
    def test_user_credential_hash_excluded(self):
        user = schemas.User(id=1, username="a", display_name="A", password_hash="secret")

        assert "password_hash" not in user.model_dump()
        assert "secret" not in user.model_dump_json()
        assert "secret" not in repr(user)

    def test_attachment_storage_key_excluded(self):
        attachment = schemas.Attachment(
            id=1, message_id=2, filename="f.txt", content_type="text/plain",
            size=3, storage_key="bucket/f.txt",
        )
        assert "storage_key" not in attachment.model_dump(mode="json")
        assert attachment.storage_key == "bucket/f.txt"


class TestComposites:
    def test_message_with_author_extends_message(self):
        message = schemas.MessageWithAuthor(
            id=1, channel_id=2, author_id=3, content="hi",
            author_username="alice", author_display_name="Alice",
        )
        assert isinstance(message, schemas.Message)
        assert message.author_avatar_hash is None

    def test_dm_channel_nests_users(self):
        channel = schemas.DMChannel(
            id=BIG,
            recipients=[schemas.User(id=1, username="a", display_name="A", password_hash="x")],
        )
        payload = channel.model_dump(mode="json")

        assert payload["id"] == str(BIG)
        assert payload["recipients"][0]["id"] == "1"
        assert "password_hash" not in payload["recipients"][0]

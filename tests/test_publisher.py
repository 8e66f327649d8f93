"""Tests for SessionPublisher."""

import asyncio

import pytest

from bedrock_portal.errors import DirectoryError, ProfileLookupError, PublishError, UpdateError
from bedrock_portal.player import Player
from bedrock_portal.session import CONTRACT_VERSION, HANDLE_ENDPOINT, MINECRAFT_TITLE_ID

from conftest import OWNER_XUID, profile


class TestCreateAndPublish:
    """Test session creation."""

    def test_call_sequence(self, publisher, directory, session):
        snapshot = asyncio.run(publisher.create_and_publish("conn-1"))

        assert directory.verbs() == ["put", "post", "get", "put"]
        put_url = directory.calls[0][1]
        assert put_url == session.url
        assert directory.calls[1][1] == HANDLE_ENDPOINT
        assert directory.calls[1][2]["type"] == "activity"
        assert snapshot["members"]["me"]["constants"]["system"]["xuid"] == OWNER_XUID
        assert session.snapshot == snapshot

    def test_writes_properties_back(self, publisher, directory):
        snapshot = asyncio.run(publisher.create_and_publish("conn-1"))
        assert directory.calls[3][2] == {"properties": snapshot["properties"]}

    def test_body_uses_connection_id(self, publisher, directory):
        asyncio.run(publisher.create_and_publish("conn-7"))
        body = directory.calls[0][2]
        assert body["members"]["me"]["properties"]["system"]["connection"] == "conn-7"
        connection = body["properties"]["custom"]["SupportedConnections"][0]
        assert connection["HostIpAddress"] == "play.example.net"

    def test_resets_players(self, publisher, session):
        session.players = (Player.from_profile(profile("alice")),)
        asyncio.run(publisher.create_and_publish("conn-1"))
        assert session.players == ()

    def test_failure_is_publish_error(self, publisher, directory):
        directory.fail["post"] = DirectoryError("handle rejected", status=400)
        with pytest.raises(PublishError, match="Failed to publish session"):
            asyncio.run(publisher.create_and_publish("conn-1"))


class TestPartialUpdates:
    """Test partial session updates."""

    def test_update_member_count(self, publisher, directory, session):
        asyncio.run(publisher.update_member_count(5))
        verb, url, data = directory.calls[0]
        assert verb == "put"
        assert url == session.url
        assert data == {"properties": {"custom": {"MemberCount": 5}}}

    def test_update_connection(self, publisher, directory):
        asyncio.run(publisher.update_connection("conn-2"))
        system = directory.calls[0][2]["members"]["me"]["properties"]["system"]
        assert system == {"active": True, "connection": "conn-2"}

    def test_update_failure_names_operation(self, publisher, directory, session):
        directory.fail["put"] = DirectoryError("gone", status=404)
        with pytest.raises(UpdateError) as exc_info:
            asyncio.run(publisher.update_member_count(1))
        assert exc_info.value.operation == "update session"
        assert session.name in str(exc_info.value)

    def test_update_handle_failure(self, publisher, directory):
        directory.fail["post"] = DirectoryError("bad", status=400)
        with pytest.raises(UpdateError, match="activity handle"):
            asyncio.run(publisher.publish_activity())

    def test_retract_membership(self, publisher, directory):
        asyncio.run(publisher.retract_membership())
        assert directory.calls[0][2] == {"members": {"me": None}}

    def test_contract_version(self):
        assert CONTRACT_VERSION == 107


class TestInvitePlayer:
    """Test invites."""

    def test_invite_by_gamertag(self, publisher, directory, session):
        result = asyncio.run(publisher.invite_player("Alice"))

        assert result.xuid == "alice"
        verb, url, body = directory.calls[-1]
        assert verb == "post"
        assert url == HANDLE_ENDPOINT
        assert body["type"] == "invite"
        assert body["invitedXuid"] == "alice"
        assert body["inviteAttributes"] == {"titleId": MINECRAFT_TITLE_ID}
        assert body["sessionRef"]["name"] == session.name

    def test_unknown_identifier(self, publisher, directory):
        with pytest.raises(ProfileLookupError, match="Failed to get profile for identifier: nobody"):
            asyncio.run(publisher.invite_player("nobody"))
        assert "post" not in directory.verbs()

    def test_invite_post_failure(self, publisher, directory):
        directory.fail["post"] = DirectoryError("rejected", status=403)
        with pytest.raises(UpdateError) as exc_info:
            asyncio.run(publisher.invite_player("Bob"))
        assert exc_info.value.operation == "invite player"
        assert exc_info.value.target == "bob"

"""Tests for the session model and request bodies."""

import pytest

from bedrock_portal.config import WorldConfig
from bedrock_portal.session import (
    MINECRAFT_SCID,
    MINECRAFT_TEMPLATE_NAME,
    Joinability,
    Session,
    build_handle_body,
    build_session_body,
    gen_raknet_guid,
)


class TestJoinability:
    """Test the joinability policy table."""

    @pytest.mark.parametrize(
        "key,joinability,restriction,broadcast",
        [
            ("invite_only", "invite_only", "local", 1),
            ("friends_only", "joinable_by_friends", "followed", 2),
            ("friends_of_friends", "joinable_by_friends", "followed", 3),
        ],
    )
    def test_mapping(self, key, joinability, restriction, broadcast):
        policy = Joinability.from_key(key)
        assert policy.joinability == joinability
        assert policy.join_restriction == restriction
        assert policy.broadcast_setting == broadcast
        assert policy.key == key

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Invalid joinability"):
            Joinability.from_key("public")


class TestSession:
    """Test session identity."""

    def test_create_generates_identity(self):
        session = Session.create()
        assert session.url.endswith(f"/sessions/{session.name}")
        assert MINECRAFT_SCID in session.url
        assert f"/sessionTemplates/{MINECRAFT_TEMPLATE_NAME}/" in session.url
        assert session.ref.subscription_id != session.name
        assert session.players == ()
        assert session.snapshot is None

    def test_names_are_unique(self):
        assert Session.create().name != Session.create().name

    def test_raknet_guid(self):
        guid = gen_raknet_guid()
        assert len(guid) == 20
        assert guid.isdigit()


class TestSessionBody:
    """Test build_session_body()."""

    def _body(self, joinability=Joinability.FRIENDS_OF_FRIENDS):
        return build_session_body(
            owner_xuid="2535400000000000",
            connection_id="conn-1",
            joinability=joinability,
            world=WorldConfig(host_name="Host", name="World", version="1.20"),
            transport=("play.example.net", 19132),
            subscription_id="sub-1",
            raknet_guid="1" * 20,
        )

    def test_custom_properties(self):
        custom = self._body()["properties"]["custom"]
        assert custom["hostName"] == "Host"
        assert custom["worldName"] == "World"
        assert custom["ownerId"] == "2535400000000000"
        assert custom["rakNetGUID"] == "1" * 20
        assert custom["protocol"] == 594
        assert custom["MemberCount"] == 0
        assert custom["MaxMemberCount"] == 10
        assert custom["Joinability"] == "joinable_by_friends"
        assert custom["BroadcastSetting"] == 3

    def test_connection_advertises_server(self):
        connection = self._body()["properties"]["custom"]["SupportedConnections"][0]
        assert connection["ConnectionType"] == 6
        assert connection["HostIpAddress"] == "play.example.net"
        assert connection["HostPort"] == 19132

    def test_system_properties_follow_policy(self):
        system = self._body(Joinability.INVITE_ONLY)["properties"]["system"]
        assert system["joinRestriction"] == "local"
        assert system["readRestriction"] == "followed"
        assert system["closed"] is False

    def test_owner_member(self):
        me = self._body()["members"]["me"]
        assert me["constants"]["system"] == {"xuid": "2535400000000000", "initialize": True}
        system = me["properties"]["system"]
        assert system["active"] is True
        assert system["connection"] == "conn-1"
        assert system["subscription"] == {"id": "sub-1", "changeTypes": ["everything"]}

    def test_only_guid_varies(self):
        def build():
            return build_session_body(
                owner_xuid="2535400000000000",
                connection_id="conn-1",
                joinability=Joinability.FRIENDS_ONLY,
                world=WorldConfig(),
                transport=("1.2.3.4", 19132),
                subscription_id="sub-1",
            )

        first, second = build(), build()
        guids = [body["properties"]["custom"].pop("rakNetGUID") for body in (first, second)]

        assert first == second
        for guid in guids:
            assert len(guid) == 20
            assert guid.isdigit()

    def test_handle_body(self):
        session = Session.create()
        body = build_handle_body(session.ref, "invite", invitedXuid="123")
        assert body["version"] == 1
        assert body["type"] == "invite"
        assert body["invitedXuid"] == "123"
        assert body["sessionRef"] == {
            "scid": MINECRAFT_SCID,
            "templateName": MINECRAFT_TEMPLATE_NAME,
            "name": session.name,
        }

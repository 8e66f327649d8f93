"""Session model and request bodies.

The session's identity (url, name, subscription id) is generated once and
never changes. Everything the directory learns about it goes through the
bodies built here.
"""

import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .player import Player


MINECRAFT_SCID = "4fc10100-5f7a-4470-899b-280835760c07"
MINECRAFT_TEMPLATE_NAME = "MinecraftLobby"
MINECRAFT_TITLE_ID = "896928775"
MINECRAFT_PROTOCOL_VERSION = 594

CONTRACT_VERSION = 107
SESSION_DIRECTORY = "https://sessiondirectory.xboxlive.com"
HANDLE_ENDPOINT = f"{SESSION_DIRECTORY}/handles"
CONNECTIONS_TOPIC = f"{SESSION_DIRECTORY}/connections/"


class Joinability(Enum):
    """Who may discover and join the session.

    Each value is (joinability, joinRestriction, BroadcastSetting).
    """

    INVITE_ONLY = ("invite_only", "local", 1)
    FRIENDS_ONLY = ("joinable_by_friends", "followed", 2)
    FRIENDS_OF_FRIENDS = ("joinable_by_friends", "followed", 3)

    @property
    def joinability(self) -> str:
        return self.value[0]

    @property
    def join_restriction(self) -> str:
        return self.value[1]

    @property
    def broadcast_setting(self) -> int:
        return self.value[2]

    @property
    def key(self) -> str:
        """Config spelling: "friends_of_friends" etc."""
        return self.name.lower()

    @classmethod
    def keys(cls) -> list[str]:
        return [member.key for member in cls]

    @classmethod
    def from_key(cls, key: str) -> "Joinability":
        try:
            return cls[str(key).upper()]
        except KeyError:
            raise ValueError(
                f"Invalid joinability - Expected one of {', '.join(cls.keys())}"
            )


@dataclass(frozen=True)
class SessionRef:
    """Identity of a session in the directory."""

    url: str
    name: str
    subscription_id: str
    scid: str = MINECRAFT_SCID
    template_name: str = MINECRAFT_TEMPLATE_NAME


@dataclass
class Session:
    """A published session and what we last saw of it.

    ``players`` is only ever replaced as a whole, never edited in place.
    """

    ref: SessionRef
    snapshot: Optional[dict] = None
    players: tuple[Player, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return self.ref.name

    @property
    def url(self) -> str:
        return self.ref.url

    @classmethod
    def create(
        cls,
        scid: str = MINECRAFT_SCID,
        template_name: str = MINECRAFT_TEMPLATE_NAME,
    ) -> "Session":
        name = str(uuid.uuid4())
        url = (
            f"{SESSION_DIRECTORY}/serviceconfigs/{scid}"
            f"/sessionTemplates/{template_name}/sessions/{name}"
        )
        ref = SessionRef(
            url=url,
            name=name,
            subscription_id=str(uuid.uuid4()),
            scid=scid,
            template_name=template_name,
        )
        return cls(ref=ref)


def gen_raknet_guid() -> str:
    """20 random decimal digits."""
    return "".join(random.choice("0123456789") for _ in range(20))


def build_session_body(
    owner_xuid: str,
    connection_id: str,
    joinability: Joinability,
    world,
    transport: tuple[str, int],
    subscription_id: str,
    raknet_guid: Optional[str] = None,
) -> dict:
    """Body for the session PUT that creates or replaces the session.

    Args:
        owner_xuid: Our own xuid
        connection_id: RTA ConnectionId from the current subscription
        joinability: Joinability policy
        world: WorldConfig (host_name, name, version, member_count,
            max_member_count, protocol)
        transport: (ip, port) of the real server
        subscription_id: Session change subscription id
        raknet_guid: Fixed GUID; a fresh one is generated when omitted

    Returns:
        JSON-serializable dict
    """
    ip, port = transport
    return {
        "properties": {
            "system": {
                "joinRestriction": joinability.join_restriction,
                "readRestriction": "followed",
                "closed": False,
            },
            "custom": {
                "hostName": str(world.host_name),
                "worldName": str(world.name),
                "version": str(world.version),
                "MemberCount": int(world.member_count),
                "MaxMemberCount": int(world.max_member_count),
                "Joinability": joinability.joinability,
                "ownerId": owner_xuid,
                "rakNetGUID": raknet_guid or gen_raknet_guid(),
                "worldType": "Survival",
                "protocol": int(world.protocol),
                "BroadcastSetting": joinability.broadcast_setting,
                "OnlineCrossPlatformGame": True,
                "CrossPlayDisabled": False,
                "TitleId": 0,
                "TransportLayer": 0,
                "SupportedConnections": [
                    {
                        "ConnectionType": 6,
                        "HostIpAddress": ip,
                        "HostPort": int(port),
                        "RakNetGUID": "",
                    }
                ],
            },
        },
        "members": {
            "me": {
                "constants": {
                    "system": {
                        "xuid": owner_xuid,
                        "initialize": True,
                    }
                },
                "properties": {
                    "system": {
                        "active": True,
                        "connection": connection_id,
                        "subscription": {
                            "id": subscription_id,
                            "changeTypes": ["everything"],
                        },
                    }
                },
            }
        },
    }


def build_handle_body(ref: SessionRef, handle_type: str, **extra) -> dict:
    """Body for a handle POST ("activity" or "invite")."""
    return {
        "version": 1,
        "type": handle_type,
        "sessionRef": {
            "scid": ref.scid,
            "templateName": ref.template_name,
            "name": ref.name,
        },
        **extra,
    }

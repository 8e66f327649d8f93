"""Shared fakes for the directory and the RTA channel."""

import copy

import pytest

from bedrock_portal.config import PortalConfig
from bedrock_portal.errors import DirectoryError
from bedrock_portal.interfaces import DirectoryClient, NotificationChannel, Subscription
from bedrock_portal.player import Profile
from bedrock_portal.publisher import SessionPublisher
from bedrock_portal.session import Session

OWNER_XUID = "2535400000000000"


def _merge(target: dict, patch: dict) -> dict:
    """Directory-style merge: nested dicts merge, None deletes."""
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def member(xuid: str) -> dict:
    return {
        "constants": {"system": {"xuid": xuid, "initialize": True}},
        "properties": {"system": {"active": True}},
    }


def make_snapshot(*xuids: str, owner: str = OWNER_XUID) -> dict:
    """Snapshot with the owner at index 0 and xuids after it."""
    members = {"0": member(owner)}
    for index, xuid in enumerate(xuids, start=1):
        members[str(index)] = member(xuid)
    return {"properties": {"system": {}, "custom": {}}, "members": members}


class FakeDirectory(DirectoryClient):
    """In-memory directory.

    GET returns `snapshot` when set, else the merged result of all PUTs.
    Set `fail[verb]` to an exception to make that verb raise.
    """

    def __init__(self, profiles=None):
        self.profiles: dict[str, Profile] = {}
        for profile in profiles or []:
            self.profiles[profile.xuid] = profile
        self.profiles.setdefault(OWNER_XUID, Profile(xuid=OWNER_XUID, gamertag="PortalHost"))
        self.store: dict = {}
        self.snapshot = None
        self.calls: list[tuple] = []
        self.batch_calls: list[list[str]] = []
        self.fail: dict[str, Exception] = {}
        self.followers: list[dict] = []
        self.friends: list[dict] = []
        self.titles: list[dict] = []

    def _maybe_fail(self, verb: str) -> None:
        error = self.fail.get(verb)
        if error is not None:
            raise error

    def verbs(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def get(self, url, contract_version, params=None):
        self.calls.append(("get", url, None))
        self._maybe_fail("get")
        if self.snapshot is not None:
            return copy.deepcopy(self.snapshot)
        return copy.deepcopy(self.store)

    async def put(self, url, data, contract_version):
        self.calls.append(("put", url, copy.deepcopy(data)))
        self._maybe_fail("put")
        _merge(self.store, data)
        return copy.deepcopy(self.store)

    async def post(self, url, data, contract_version):
        self.calls.append(("post", url, copy.deepcopy(data)))
        self._maybe_fail("post")
        return None

    async def delete(self, url, contract_version):
        self.calls.append(("delete", url, None))
        self._maybe_fail("delete")
        return None

    async def get_profile(self, identifier):
        self.calls.append(("get_profile", identifier, None))
        self._maybe_fail("get_profile")
        if identifier == "me":
            return self.profiles[OWNER_XUID]
        for profile in self.profiles.values():
            if identifier in (profile.xuid, profile.gamertag):
                return profile
        raise DirectoryError(f"No profile found for {identifier}", status=404)

    async def get_profile_batch(self, xuids):
        self.batch_calls.append(list(xuids))
        self._maybe_fail("get_profile_batch")
        return [self.profiles[x] for x in xuids if x in self.profiles]

    async def get_followers(self):
        self._maybe_fail("get_followers")
        return list(self.followers)

    async def get_friends(self):
        self._maybe_fail("get_friends")
        return list(self.friends)

    async def add_friend(self, xuid):
        self.calls.append(("add_friend", xuid, None))
        self._maybe_fail("add_friend")

    async def remove_friend(self, xuid):
        self.calls.append(("remove_friend", xuid, None))
        self._maybe_fail("remove_friend")

    async def get_title_history(self, xuid):
        self._maybe_fail("get_title_history")
        return list(self.titles)


class FakeChannel(NotificationChannel):
    """RTA channel driven by the test."""

    def __init__(self):
        self.handlers: dict[str, list] = {"reconnect": [], "event": []}
        self.connected = False
        self.subscriptions = 0
        self.disconnects = 0
        self.fail_connect = None
        self.fail_subscribe = None

    async def connect(self):
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected = True

    async def subscribe(self, uri):
        if self.fail_subscribe is not None:
            raise self.fail_subscribe
        self.subscriptions += 1
        return Subscription(id=self.subscriptions, data={"ConnectionId": f"conn-{self.subscriptions}"})

    async def disconnect(self):
        self.disconnects += 1
        self.connected = False

    def on(self, kind, handler):
        self.handlers[kind].append(handler)

    async def fire(self, kind, *args):
        for handler in self.handlers[kind]:
            await handler(*args)


def profile(xuid: str, gamertag: str = "") -> Profile:
    return Profile(xuid=xuid, gamertag=gamertag or f"gt-{xuid}")


@pytest.fixture
def config():
    return PortalConfig.from_dict({"ip": "play.example.net", "port": 19132})


@pytest.fixture
def directory():
    return FakeDirectory(
        profiles=[profile("alice", "Alice"), profile("bob", "Bob"), profile("carol", "Carol")]
    )


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def session():
    return Session.create()


@pytest.fixture
def publisher(directory, session, config):
    return SessionPublisher(directory, session, config, directory.profiles[OWNER_XUID])

"""Collaborator interfaces.

The portal talks to Xbox Live through two collaborators: a DirectoryClient
for authenticated HTTP calls and a NotificationChannel for RTA push
notifications. XboxRest and XboxRTA are the shipped implementations; tests
use in-memory fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from .player import Profile


# --- Authentication ---


@dataclass(frozen=True)
class XboxToken:
    """XSTS token and the user hash it was issued for."""

    user_hash: str
    xsts_token: str

    @property
    def authorization(self) -> str:
        return f"XBL3.0 x={self.user_hash};{self.xsts_token}"


class TokenProvider(ABC):
    """Source of Xbox Live tokens (the auth flow lives outside this package)."""

    @abstractmethod
    async def get_xbox_token(self) -> XboxToken:
        pass


# --- Directory ---


class DirectoryClient(ABC):
    """Authenticated access to the Xbox Live services the portal uses.

    Methods raise DirectoryError on transport or HTTP failure.
    """

    @abstractmethod
    async def get(self, url: str, contract_version: int, params: Optional[dict] = None) -> Any:
        pass

    @abstractmethod
    async def put(self, url: str, data: dict, contract_version: int) -> Any:
        pass

    @abstractmethod
    async def post(self, url: str, data: dict, contract_version: int) -> Any:
        pass

    @abstractmethod
    async def delete(self, url: str, contract_version: int) -> Any:
        pass

    @abstractmethod
    async def get_profile(self, identifier: str) -> Profile:
        """Resolve "me", a xuid or a gamertag to a profile."""
        pass

    @abstractmethod
    async def get_profile_batch(self, xuids: list[str]) -> list[Profile]:
        """Resolve many xuids in one request.

        Unknown xuids are simply missing from the result.
        """
        pass

    @abstractmethod
    async def get_followers(self) -> list[dict]:
        """People following us (peoplehub records)."""
        pass

    @abstractmethod
    async def get_friends(self) -> list[dict]:
        """People we follow (peoplehub records)."""
        pass

    @abstractmethod
    async def add_friend(self, xuid: str) -> None:
        pass

    @abstractmethod
    async def remove_friend(self, xuid: str) -> None:
        pass

    @abstractmethod
    async def get_title_history(self, xuid: str) -> list[dict]:
        pass


# --- Notification channel ---


@dataclass(frozen=True)
class RtaEvent:
    """Raw RTA event: [type, subId, data]."""

    type: int
    sub_id: Any
    data: Any = None


@dataclass(frozen=True)
class Subscription:
    """Result of an RTA subscribe call."""

    id: Any
    data: dict = field(default_factory=dict)

    @property
    def connection_id(self) -> Optional[str]:
        return (self.data or {}).get("ConnectionId")


Handler = Callable[..., Awaitable[None]]


class NotificationChannel(ABC):
    """Real-time push channel.

    Emits two notification kinds to handlers registered with on():
      - "reconnect": no arguments, the transport came back after a drop
      - "event": one RtaEvent argument

    Handlers are awaited one at a time in arrival order.
    """

    @abstractmethod
    async def connect(self) -> None:
        pass

    @abstractmethod
    async def subscribe(self, uri: str) -> Subscription:
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @abstractmethod
    def on(self, kind: str, handler: Handler) -> None:
        pass

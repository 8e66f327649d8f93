"""BedrockPortal - advertises a Minecraft Bedrock server as an Xbox Live session.

The portal is a "fake host": it owns a session in the Xbox Live session
directory whose connection info points at a real server, and follows the
session's membership through RTA notifications. No game traffic passes
through it.

    portal = BedrockPortal(rest, rta, {"ip": "play.example.net", "port": 19132})
    portal.on("playerJoin", lambda player: print(player.gamertag))
    await portal.start()
    ...
    await portal.end()
"""

import logging
from typing import Any, Callable, Optional

from .account import alt_check
from .actor import SerialActor
from .config import PortalConfig, validate_options
from .errors import AltCheckError, AuthError, PortalError
from .events import EventBus, EventKind
from .interfaces import DirectoryClient, NotificationChannel
from .modules import ModuleContext, ModuleRegistry
from .modules.base import Module
from .player import Player, Profile
from .publisher import SessionPublisher
from .reconciler import MembershipReconciler
from .session import Session
from .supervisor import NotificationSupervisor

log = logging.getLogger("bedrock_portal")


class BedrockPortal:
    """Main portal class."""

    def __init__(
        self,
        rest: DirectoryClient,
        rta: NotificationChannel,
        options: Optional[PortalConfig | dict] = None,
    ):
        if isinstance(options, PortalConfig):
            self.config = options
        else:
            self.config = PortalConfig.from_dict(options or {})

        self.rest = rest
        self.rta = rta
        self.events = EventBus()
        self.modules = ModuleRegistry()
        self.session = Session.create()
        self.session_owner: Optional[Profile] = None

        self._actor = SerialActor("portal")
        self.publisher: Optional[SessionPublisher] = None
        self.supervisor: Optional[NotificationSupervisor] = None
        self.reconciler: Optional[MembershipReconciler] = None

    def validate_options(self) -> None:
        validate_options(self.config)

    # --- Lifecycle ---

    async def start(self) -> dict:
        """Authenticate, publish the session and start following it.

        Returns:
            Session snapshot as published

        Raises:
            AuthError, ConfigError, AltCheckError, ConnectError, PublishError
        """
        try:
            self.session_owner = await self.rest.get_profile("me")
        except Exception as e:
            raise AuthError(f"Failed to fetch own profile: {e}") from e

        self.validate_options()

        if not self.config.disable_alt_check:
            try:
                result = await alt_check(self.rest)
            except Exception as e:
                raise AltCheckError(f"Alt check failed: {e}") from e
            if not result.is_alt:
                raise AltCheckError("Genuine account detected - " + result.reason)

        self.publisher = SessionPublisher(self.rest, self.session, self.config, self.session_owner)
        self.supervisor = NotificationSupervisor(self.rta, self.publisher, self.events, self._actor)
        self.reconciler = MembershipReconciler(self.publisher, self.events, self._actor)

        await self.supervisor.connect()
        try:
            connection_id = await self.supervisor.subscribe()
            snapshot = await self.publisher.create_and_publish(connection_id)
        except PortalError:
            await self._close_channel()
            raise

        self.supervisor.attach(self.reconciler.submit)
        self.modules.start_all(self, ModuleContext(rest=self.rest, rta=self.rta))

        await self.events.emit(EventKind.SESSION_CREATED, snapshot)
        return snapshot

    async def end(self) -> None:
        """Leave the session and stop everything. Does not wait for modules."""
        await self._actor.close()
        if self.supervisor is not None:
            await self.supervisor.disconnect()
        self.modules.stop_all()
        log.info("Abandoned session, name: %s", self.session.name)

    async def _close_channel(self) -> None:
        try:
            await self.rta.disconnect()
        except Exception as e:
            log.warning("Failed to disconnect from RTA: %s", e)

    async def __aenter__(self) -> "BedrockPortal":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.end()

    # --- Session operations ---

    def _require_publisher(self) -> SessionPublisher:
        if self.publisher is None:
            raise PortalError("Portal has not been started")
        return self.publisher

    def get_session_members(self) -> list[Player]:
        return list(self.session.players)

    @property
    def players(self) -> list[Player]:
        return self.get_session_members()

    async def get_session(self) -> dict:
        return await self._require_publisher().get_session()

    async def update_session(self, payload: dict) -> None:
        await self._require_publisher().update_session(payload)

    async def update_handle(self, payload: dict) -> None:
        await self._require_publisher().update_handle(payload)

    async def update_connection(self, connection_id: str) -> None:
        await self._require_publisher().update_connection(connection_id)

    async def update_member_count(self, count: int) -> None:
        await self._require_publisher().update_member_count(count)

    async def invite_player(self, identifier: str) -> Profile:
        return await self._require_publisher().invite_player(identifier)

    # --- Modules ---

    def use(self, module, options: Optional[dict] = None) -> Module:
        """Register a module to run once the portal starts."""
        return self.modules.register(module, options)

    # --- Events ---

    def on(self, kind: EventKind | str, subscriber: Callable[[Any], Any]) -> Callable[[], None]:
        return self.events.on(kind, subscriber)

    async def emit(self, kind: EventKind | str, payload: Any = None) -> None:
        await self.events.emit(kind, payload)

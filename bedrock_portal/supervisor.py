"""Notification supervisor - owns the RTA subscription.

State machine:

    DISCONNECTED -> CONNECTING -> SUBSCRIBED
    SUBSCRIBED -(drop)-> DEGRADED -> RESUBSCRIBING -> SUBSCRIBED | SESSION_LOST

After a reconnect the session's connection id is stale. We first try to patch
the existing session; if the directory already expired it, the session is
re-created under the same name. Only when that fails too is the session lost.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from .actor import SerialActor
from .errors import ConnectError, PortalError
from .events import EventBus, EventKind
from .interfaces import NotificationChannel, RtaEvent
from .publisher import SessionPublisher
from .session import CONNECTIONS_TOPIC

log = logging.getLogger("bedrock_portal.supervisor")


class SupervisorState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    DEGRADED = "degraded"
    RESUBSCRIBING = "resubscribing"
    SESSION_LOST = "session_lost"


class NotificationSupervisor:
    """Connects, subscribes, and recovers the RTA channel."""

    def __init__(
        self,
        channel: NotificationChannel,
        publisher: SessionPublisher,
        events: EventBus,
        actor: SerialActor,
        topic: str = CONNECTIONS_TOPIC,
    ):
        self.channel = channel
        self.publisher = publisher
        self.events = events
        self.actor = actor
        self.topic = topic
        self.state = SupervisorState.DISCONNECTED
        self.connection_id: Optional[str] = None
        self._on_notification: Optional[Callable[[RtaEvent], object]] = None
        self._attached = False

    async def connect(self) -> None:
        self.state = SupervisorState.CONNECTING
        try:
            await self.channel.connect()
        except Exception as e:
            self.state = SupervisorState.DISCONNECTED
            raise ConnectError(f"Failed to connect to RTA: {e}") from e
        log.debug("Connected to RTA")

    async def subscribe(self) -> str:
        """Subscribe to session connection notifications.

        Returns:
            ConnectionId to put in the session's member record
        """
        try:
            subscription = await self.channel.subscribe(self.topic)
        except Exception as e:
            raise ConnectError(f"Failed to subscribe to {self.topic}: {e}") from e

        connection_id = subscription.connection_id
        if not connection_id:
            raise ConnectError(f"No ConnectionId in subscription to {self.topic}")

        self.connection_id = connection_id
        self.state = SupervisorState.SUBSCRIBED
        log.debug("Subscribed to RTA, connection id: %s", connection_id)
        return connection_id

    def attach(self, on_notification: Callable[[RtaEvent], object]) -> None:
        """Start routing channel notifications.

        Args:
            on_notification: Called with each raw RtaEvent (queues reconciliation)
        """
        self._on_notification = on_notification
        if self._attached:
            return
        self.channel.on("reconnect", self._handle_reconnect)
        self.channel.on("event", self._handle_event)
        self._attached = True

    async def _handle_event(self, event: RtaEvent) -> None:
        if self._on_notification is not None:
            self._on_notification(event)

    async def _handle_reconnect(self) -> None:
        if self.state == SupervisorState.DISCONNECTED:
            return
        log.warning("RTA reconnected, resubscribing")
        self.state = SupervisorState.DEGRADED
        self.actor.submit(self.resync, label="resync")

    async def resync(self) -> None:
        """Resubscribe and repair the session after a channel drop."""
        self.state = SupervisorState.RESUBSCRIBING
        try:
            connection_id = await self.subscribe()
        except ConnectError as e:
            await self._lose_session(e)
            return

        self.state = SupervisorState.RESUBSCRIBING
        try:
            await self.publisher.update_connection(connection_id)
            await self.publisher.publish_activity()
        except Exception as e:
            log.warning("Failed to update connection, session may have been abandoned: %s", e)
            try:
                snapshot = await self.publisher.create_and_publish(connection_id)
            except PortalError as publish_error:
                await self._lose_session(publish_error)
                return
            self.state = SupervisorState.SUBSCRIBED
            await self.events.emit(EventKind.SESSION_CREATED, snapshot)
            return

        self.state = SupervisorState.SUBSCRIBED
        log.info("Session %s recovered after reconnect", self.publisher.session.name)

    async def _lose_session(self, error: Exception) -> None:
        self.state = SupervisorState.SESSION_LOST
        log.error("Session %s lost: %s", self.publisher.session.name, error)
        await self.events.emit(EventKind.SESSION_LOST, error)

    async def disconnect(self) -> None:
        """Retract our membership, then close the channel. Best-effort."""
        previous = self.state
        self.state = SupervisorState.DISCONNECTED

        if previous != SupervisorState.SESSION_LOST:
            try:
                await self.publisher.retract_membership()
            except Exception as e:
                log.warning("Failed to retract session membership: %s", e)

        try:
            await self.channel.disconnect()
        except Exception as e:
            log.warning("Failed to disconnect from RTA: %s", e)

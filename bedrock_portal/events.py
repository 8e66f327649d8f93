"""Typed event publication.

Consumers subscribe to an EventKind and receive its payload:

    sessionCreated   dict (session snapshot)
    sessionUpdated   dict (session snapshot)
    sessionLost      PortalError (the failure that ended the session)
    playerJoin       Player
    playerLeave      Player
    rtaEvent         RtaEvent
    friendAdded      Player
    friendRemoved    Player

A failing subscriber is logged and never affects the emitter or other
subscribers.
"""

import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

log = logging.getLogger("bedrock_portal.events")


class EventKind(str, Enum):
    SESSION_CREATED = "sessionCreated"
    SESSION_UPDATED = "sessionUpdated"
    SESSION_LOST = "sessionLost"
    PLAYER_JOIN = "playerJoin"
    PLAYER_LEAVE = "playerLeave"
    RTA_EVENT = "rtaEvent"
    FRIEND_ADDED = "friendAdded"
    FRIEND_REMOVED = "friendRemoved"


Subscriber = Callable[[Any], Any]


class EventBus:
    """Fixed-kind publish/subscribe."""

    def __init__(self):
        self._subscribers: dict[EventKind, list[Subscriber]] = defaultdict(list)

    def on(self, kind: EventKind | str, subscriber: Subscriber) -> Callable[[], None]:
        """Subscribe to an event kind.

        Args:
            kind: EventKind or its string value ("playerJoin")
            subscriber: Sync or async callable taking the payload

        Returns:
            Callable that removes the subscription
        """
        kind = EventKind(kind)
        self._subscribers[kind].append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers[kind]:
                self._subscribers[kind].remove(subscriber)

        return unsubscribe

    async def emit(self, kind: EventKind | str, payload: Any = None) -> None:
        """Deliver payload to every subscriber of kind, in subscription order."""
        kind = EventKind(kind)
        for subscriber in list(self._subscribers[kind]):
            try:
                result = subscriber(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.exception("Subscriber for %s failed", kind.value)

    def subscriber_count(self, kind: EventKind | str) -> int:
        return len(self._subscribers[EventKind(kind)])

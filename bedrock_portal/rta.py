"""Xbox Real-Time Activity (RTA) websocket client.

Wire format (JSON arrays over wss://rta.xboxlive.com/connect):

    -> [1, seq, uri]                     subscribe
    -> [2, seq, subId]                   unsubscribe
    <- [1|2, seq, status, subId, data]   response
    <- [3, subId, data]                  event
    <- [4]                               resync

When the socket drops without disconnect() being called, the client
reconnects with exponential back-off and emits "reconnect". Subscriptions
do not survive a reconnect; the listener is expected to resubscribe.
"""

import asyncio
import json
import logging
from collections import defaultdict
from enum import IntEnum
from typing import Any, Optional

import aiohttp

from .errors import ChannelError
from .interfaces import Handler, NotificationChannel, RtaEvent, Subscription, TokenProvider

log = logging.getLogger("bedrock_portal.rta")

RTA_URL = "wss://rta.xboxlive.com/connect"
RTA_PROTOCOL = "rta.xboxlive.com.V2"


class MessageType(IntEnum):
    SUBSCRIBE = 1
    UNSUBSCRIBE = 2
    EVENT = 3
    RESYNC = 4


class XboxRTA(NotificationChannel):
    """aiohttp websocket implementation of NotificationChannel."""

    def __init__(
        self,
        auth: TokenProvider,
        url: str = RTA_URL,
        session: Optional[aiohttp.ClientSession] = None,
        request_timeout: float = 10.0,
        initial_backoff: float = 1.0,
        max_backoff: float = 60.0,
    ):
        self._auth = auth
        self._url = url
        self._session = session
        self._owns_session = session is None
        self._request_timeout = request_timeout
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff

        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None
        self._pending: dict[int, asyncio.Future] = {}
        self._seq = 0
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def on(self, kind: str, handler: Handler) -> None:
        if kind not in ("reconnect", "event"):
            raise ValueError(f"Unknown RTA notification kind: {kind}")
        self._handlers[kind].append(handler)

    async def connect(self) -> None:
        self._closing = False
        await self._open()
        self._reader = asyncio.create_task(self._read_loop(), name="rta-reader")

    async def _open(self) -> None:
        token = await self._auth.get_xbox_token()
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        try:
            self._ws = await self._session.ws_connect(
                self._url,
                protocols=(RTA_PROTOCOL,),
                headers={"Authorization": token.authorization},
                heartbeat=30,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ChannelError(f"Failed to connect to {self._url}: {e}") from e
        log.debug("Connected to %s", self._url)

    async def subscribe(self, uri: str) -> Subscription:
        response = await self._request(MessageType.SUBSCRIBE, uri)
        status = response[2] if len(response) > 2 else None
        if status != 0:
            raise ChannelError(f"Subscribe to {uri} failed with status {status}")
        sub_id = response[3] if len(response) > 3 else None
        data = response[4] if len(response) > 4 else {}
        return Subscription(id=sub_id, data=data or {})

    async def unsubscribe(self, sub_id: Any) -> None:
        response = await self._request(MessageType.UNSUBSCRIBE, sub_id)
        status = response[2] if len(response) > 2 else None
        if status != 0:
            raise ChannelError(f"Unsubscribe from {sub_id} failed with status {status}")

    async def disconnect(self) -> None:
        self._closing = True

        reader = self._reader
        self._reader = None
        if reader and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        self._fail_pending(ChannelError("RTA disconnected"))

        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        log.debug("Disconnected from RTA")

    async def _request(self, message_type: MessageType, payload: Any) -> list:
        if not self.connected:
            raise ChannelError("RTA not connected")

        self._seq += 1
        seq = self._seq
        future = asyncio.get_running_loop().create_future()
        self._pending[seq] = future
        try:
            await self._ws.send_json([int(message_type), seq, payload])
            return await asyncio.wait_for(future, timeout=self._request_timeout)
        except asyncio.TimeoutError:
            raise ChannelError(f"RTA request {seq} timed out")
        finally:
            self._pending.pop(seq, None)

    async def _read_loop(self) -> None:
        while not self._closing:
            try:
                async for message in self._ws:
                    if message.type == aiohttp.WSMsgType.TEXT:
                        await self._dispatch(message.data)
                    elif message.type in (
                        aiohttp.WSMsgType.CLOSE,
                        aiohttp.WSMsgType.CLOSED,
                        aiohttp.WSMsgType.ERROR,
                    ):
                        break
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("RTA read error: %s", e)

            if self._closing:
                break

            log.warning("RTA connection lost, reconnecting")
            self._fail_pending(ChannelError("RTA connection lost"))
            if not await self._reconnect():
                break

    async def _reconnect(self) -> bool:
        delay = self._initial_backoff
        while not self._closing:
            await asyncio.sleep(delay)
            try:
                await self._open()
            except Exception as e:
                delay = min(delay * 2, self._max_backoff)
                log.warning("RTA reconnect failed, retrying in %.1fs: %s", delay, e)
                continue
            log.info("RTA reconnected")
            await self._emit("reconnect")
            return True
        return False

    async def _dispatch(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            log.debug("Ignoring non-JSON RTA frame: %.100s", raw)
            return
        if not isinstance(message, list) or not message:
            return

        kind = message[0]
        if kind in (MessageType.SUBSCRIBE, MessageType.UNSUBSCRIBE):
            future = self._pending.get(message[1]) if len(message) > 1 else None
            if future is not None and not future.done():
                future.set_result(message)
        elif kind == MessageType.EVENT:
            event = RtaEvent(
                type=int(kind),
                sub_id=message[1] if len(message) > 1 else None,
                data=message[2] if len(message) > 2 else None,
            )
            await self._emit("event", event)
        elif kind == MessageType.RESYNC:
            log.debug("RTA resync requested")

    async def _emit(self, kind: str, *args) -> None:
        for handler in list(self._handlers[kind]):
            try:
                await handler(*args)
            except Exception:
                log.exception("RTA %s handler failed", kind)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

import asyncio
import logging
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from websockets.asyncio.client import ClientConnection, connect

from marketstream.config.configurations import (
    DEFAULT_USER_AGENT,
    PRIMING_EVENTS,
    ConnectionConfig,
)
from marketstream.config.enumerations import ConnectionState, ReconnectReason
from marketstream.connections.subscription import Cancel, SubscriptionRegistry
from marketstream.messaging.codec import FrameCodec
from marketstream.messaging.models.frames import Frame, PingFrame, PongFrame
from marketstream.messaging.models.messages import AuthorizationRequest

logger = logging.getLogger(__name__)

FRAME_SIGNAL = "frame"
STATE_SIGNAL = "state"


def build_headers(
    url: str, cookies: Optional[str] = None, user_agent: Optional[str] = None
) -> dict[str, str]:
    """Derive the browser-style handshake headers for a ``wss://ws2.<domain>/...`` endpoint."""
    host = urlparse(url).hostname or ""
    domain = host[len("ws2.") :] if host.startswith("ws2.") else host

    headers = {
        "Origin": f"https://{domain}",
        "Host": host,
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
    }
    if cookies:
        headers["Cookie"] = cookies
    return headers


class ConnectionSupervisor:
    """Own one websocket and keep it alive.

    State machine::

        DISCONNECTED/CLOSED --connect()--> CONNECTING --open--> OPEN
        CONNECTING --timeout/error--> DISCONNECTED
        OPEN --drop/pong timeout--> RECONNECTING (or DISCONNECTED when reconnect is off)
        RECONNECTING --open--> OPEN
        RECONNECTING --attempts exhausted--> DISCONNECTED
        any --disconnect()--> CLOSED

    Outbound text goes through a queue drained by a writer task, so ``send``
    is synchronous and safe to call from subscriber callbacks.
    """

    websocket: Optional[ClientConnection] = None
    outbound: Optional[asyncio.Queue] = None

    listener_task: Optional[asyncio.Task] = None
    keepalive_task: Optional[asyncio.Task] = None
    writer_task: Optional[asyncio.Task] = None
    reconnect_task: Optional[asyncio.Task] = None

    def __init__(
        self,
        config: Optional[ConnectionConfig] = None,
        codec: Optional[FrameCodec] = None,
        connector: Callable[..., Any] = connect,
    ) -> None:
        self.config = config or ConnectionConfig()
        self.codec = codec or FrameCodec()
        self.connector = connector

        self._state = ConnectionState.DISCONNECTED
        self.reconnect_attempt = 0
        self.awaiting_pong = False
        self.closing = False

        self.token: Optional[str] = None
        self.cookies: Optional[str] = None
        self.user_agent: Optional[str] = None

        self.signals = SubscriptionRegistry(name="supervisor")

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state == ConnectionState.OPEN

    def set_state(self, state: ConnectionState) -> None:
        previous = self._state
        if previous == state:
            return

        self._state = state
        logger.info("Connection state %s -> %s", previous.value, state.value)
        self.signals.publish(STATE_SIGNAL, (previous, state))

    def on_frame(self, callback: Callable[[Frame], Any]) -> Cancel:
        return self.signals.subscribe(FRAME_SIGNAL, callback)

    def on_state_change(
        self, callback: Callable[[tuple[ConnectionState, ConnectionState]], Any]
    ) -> Cancel:
        return self.signals.subscribe(STATE_SIGNAL, callback)

    async def connect(
        self,
        token: Optional[str] = None,
        cookies: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        if self._state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            logger.warning("connect() called while %s", self._state.value)
            return self.is_connected()

        if self.reconnect_task is not None and not self.reconnect_task.done():
            self.reconnect_task.cancel()

        self.closing = False
        self.token = token
        self.cookies = cookies
        self.user_agent = user_agent
        self.reconnect_attempt = 0

        self.set_state(ConnectionState.CONNECTING)
        if await self.open():
            return True

        if not self.closing:
            self.set_state(ConnectionState.DISCONNECTED)
        return False

    async def open(self) -> bool:
        """Open the transport once. Never raises; returns whether it opened."""
        url = self.config.url
        headers = build_headers(url, self.cookies, self.user_agent or self.config.user_agent)
        # websockets derives Host from the URL itself
        extra_headers = {"Cookie": headers["Cookie"]} if "Cookie" in headers else {}

        try:
            websocket = await asyncio.wait_for(
                self.connector(
                    url,
                    origin=headers["Origin"],
                    user_agent_header=headers["User-Agent"],
                    additional_headers=extra_headers,
                    ping_interval=None,
                    max_size=None,
                ),
                timeout=self.config.connect_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Timed out after %.1fs connecting to %s", self.config.connect_timeout, url
            )
            return False
        except Exception as e:
            logger.error("Error while opening connection to %s: %s", url, e)
            return False

        if self.closing:
            logger.info("Disconnected while opening %s; dropping new connection", url)
            await self.close_websocket(websocket)
            return False

        self.websocket = websocket
        self.outbound = asyncio.Queue()
        self.awaiting_pong = False
        self.reconnect_attempt = 0

        self.prime()
        self.start_tasks()
        self.set_state(ConnectionState.OPEN)
        return True

    def prime(self) -> None:
        for event in PRIMING_EVENTS:
            self.enqueue(self.codec.encode_event(event))

        if self.token:
            request = AuthorizationRequest(
                session=self.token, isDemo=1 if self.config.is_demo else 0
            )
            self.enqueue(self.codec.encode_event(request.event, request.model_dump()))

    def start_tasks(self) -> None:
        self.writer_task = asyncio.create_task(self.message_writer(), name="websocket_writer")
        self.listener_task = asyncio.create_task(
            self.socket_listener(), name="websocket_listener"
        )
        self.keepalive_task = asyncio.create_task(
            self.send_keepalives(), name="websocket_keepalive"
        )

    def enqueue(self, message: str) -> None:
        assert self.outbound is not None, "outbound queue should be initialized"
        self.outbound.put_nowait(message)

    def send(self, message: str) -> bool:
        if not self.is_connected():
            logger.warning("Cannot send while %s: %.80s", self._state.value, message)
            return False

        self.enqueue(message)
        return True

    def emit(self, name: str, payload: Any = None) -> bool:
        return self.send(self.codec.encode_event(name, payload))

    async def message_writer(self) -> None:
        assert self.websocket is not None, "websocket should be initialized"
        assert self.outbound is not None, "outbound queue should be initialized"
        ws, queue = self.websocket, self.outbound
        try:
            while True:
                message = await queue.get()
                await ws.send(message)
                if self.config.debug:
                    logger.debug("> %s", message)
        except asyncio.CancelledError:
            logger.debug("Websocket writer stopped")
        except Exception as e:
            logger.error("Websocket writer error: %s", e)
            self.connection_lost(ReconnectReason.CONNECTION_DROPPED)

    async def socket_listener(self) -> None:
        assert self.websocket is not None, "websocket should be initialized"
        ws = self.websocket
        try:
            async for message in ws:
                if self.config.debug:
                    logger.debug("< %s", message)

                frame = self.codec.decode(message)
                if frame is not None:
                    self.handle_frame(frame)

            logger.info("Websocket closed by remote")
        except asyncio.CancelledError:
            logger.info("Websocket listener stopped")
            return
        except Exception as e:
            logger.error("Websocket listener error: %s", e)

        self.connection_lost(ReconnectReason.CONNECTION_DROPPED)

    def handle_frame(self, frame: Frame) -> None:
        if isinstance(frame, PingFrame):
            self.enqueue(self.codec.encode_pong())
        elif isinstance(frame, PongFrame):
            self.awaiting_pong = False

        self.signals.publish(FRAME_SIGNAL, frame)

    async def send_keepalives(self) -> None:
        interval = self.config.ping_interval
        try:
            while True:
                await asyncio.sleep(interval)
                if self.awaiting_pong:
                    logger.warning("No pong received within %.1fs", interval)
                    self.connection_lost(ReconnectReason.TIMEOUT)
                    return

                self.awaiting_pong = True
                self.enqueue(self.codec.encode_ping())
                logger.debug("Keepalive sent from client")
        except asyncio.CancelledError:
            logger.debug("Keepalive stopped")

    def trigger_reconnect(self) -> None:
        """Drop the current transport and run the reconnect policy."""
        self.connection_lost(ReconnectReason.MANUAL_TRIGGER)

    def connection_lost(self, reason: ReconnectReason) -> None:
        if self.closing or self._state != ConnectionState.OPEN:
            return

        logger.warning("Connection lost: %s", reason.value)
        self.cancel_tasks(exclude=asyncio.current_task())
        websocket, self.websocket = self.websocket, None

        if self.config.reconnect and self.config.reconnect_attempts > 0:
            self.set_state(ConnectionState.RECONNECTING)
        else:
            self.set_state(ConnectionState.DISCONNECTED)

        self.reconnect_task = asyncio.create_task(
            self.recover(websocket, reason), name="websocket_reconnect"
        )

    async def recover(
        self, websocket: Optional[ClientConnection], reason: ReconnectReason
    ) -> None:
        await self.close_websocket(websocket)
        if self._state != ConnectionState.RECONNECTING:
            return

        delay = self.config.reconnect_delay
        attempts = self.config.reconnect_attempts
        while self.reconnect_attempt < attempts:
            self.reconnect_attempt += 1
            logger.info(
                "Reconnect attempt %d/%d in %.1fs (%s)",
                self.reconnect_attempt,
                attempts,
                delay,
                reason.value,
            )
            await asyncio.sleep(delay)
            if await self.open():
                logger.info("Reconnected")
                return

        logger.error("Giving up after %d reconnect attempts", attempts)
        self.set_state(ConnectionState.DISCONNECTED)

    def cancel_tasks(self, exclude: Optional[asyncio.Task] = None) -> list[asyncio.Task]:
        cancelled = []
        for task in (
            self.keepalive_task,
            self.reconnect_task,
            self.writer_task,
            self.listener_task,
        ):
            if task is None or task is exclude or task.done():
                continue
            task.cancel()
            cancelled.append(task)
        return cancelled

    async def close_websocket(self, websocket: Optional[ClientConnection]) -> None:
        if websocket is None:
            return
        try:
            await websocket.close()
        except Exception as e:
            logger.debug("Error closing websocket: %s", e)

    async def disconnect(self) -> None:
        self.closing = True

        tasks = self.cancel_tasks(exclude=asyncio.current_task())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        websocket, self.websocket = self.websocket, None
        await self.close_websocket(websocket)

        self.awaiting_pong = False
        self.set_state(ConnectionState.CLOSED)
        logger.info("Connection closed")

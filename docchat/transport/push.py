"""Push transport: STOMP over a persistent WebSocket.

Questions are published to the application destination and replies
arrive later on the per-session topic, decoupled from the send.
"""

import asyncio
import contextlib
import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlparse

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from docchat.config import ChatConfig
from docchat.exceptions import ProtocolError, TransportError
from docchat.models.schemas import ChatMessageRequest
from docchat.transport.base import FrameHandler, Subscription, Transport
from docchat.transport.stomp import (
    ACCEPT_VERSION,
    HEARTBEAT_HEADER,
    FrameParser,
    StompFrame,
    encode_frame,
    negotiate_heartbeat,
)

logger = logging.getLogger(__name__)

# A broker is considered gone after this many silent heart-beat intervals
HEARTBEAT_TOLERANCE = 2


class StompTransport(Transport):
    """STOMP 1.2 client over ``websockets``.

    Owns the socket, a reader task and the heart-beat tasks. Any socket
    close, broker ERROR frame or missed heart-beat ends the connection and
    resolves ``wait_closed`` with a TransportError.
    """

    persistent = True
    delivers_replies = False

    def __init__(
        self,
        config: ChatConfig,
        connect: Callable[..., Awaitable[Any]] = websockets.connect,
    ) -> None:
        """Initialize the transport.

        Args:
            config: Chat configuration (URL, destinations, heart-beats).
            connect: WebSocket factory, ``websockets.connect`` by default.
        """
        self._config = config
        self._connect = connect
        self.destination = config.message_destination
        self._ws: Any = None
        self._parser = FrameParser()
        self._handlers: dict[str, FrameHandler] = {}
        self._ids = itertools.count()
        self._tasks: list[asyncio.Task[None]] = []
        self._closed: asyncio.Future[Exception | None] | None = None
        self._last_received = 0.0
        self.heartbeat: tuple[float, float] = (0.0, 0.0)

    @property
    def is_open(self) -> bool:
        return self._closed is not None and not self._closed.done()

    async def connect(self) -> None:
        if self.is_open:
            return

        self._parser.reset()
        self._handlers.clear()
        url = self._config.ws_url
        timeout = self._config.connect_timeout

        try:
            self._ws = await asyncio.wait_for(
                self._connect(url, ping_interval=None), timeout
            )
        except (OSError, WebSocketException, TimeoutError) as e:
            raise TransportError(f"WebSocket connection failed: {e}") from e

        connect_frame = StompFrame(
            command="CONNECT",
            headers={
                "accept-version": ACCEPT_VERSION,
                "host": urlparse(url).hostname or "localhost",
                HEARTBEAT_HEADER: (
                    f"{int(self._config.heartbeat_outgoing * 1000)},"
                    f"{int(self._config.heartbeat_incoming * 1000)}"
                ),
            },
        )
        try:
            await self._ws.send(encode_frame(connect_frame))
            reply = await asyncio.wait_for(self._read_handshake(), timeout)
        except (ConnectionClosed, OSError, TimeoutError, ProtocolError) as e:
            await self._close_socket()
            raise TransportError(f"STOMP handshake failed: {e}") from e

        if reply.command == "ERROR":
            await self._close_socket()
            message = reply.headers.get("message") or reply.body
            raise TransportError(
                f"Broker rejected connection: {message}", server_message=message
            )
        if reply.command != "CONNECTED":
            await self._close_socket()
            raise TransportError(f"Unexpected {reply.command} frame during handshake")

        try:
            outgoing, incoming = negotiate_heartbeat(
                self._config.heartbeat_outgoing,
                self._config.heartbeat_incoming,
                reply.headers.get(HEARTBEAT_HEADER),
            )
        except ProtocolError as e:
            await self._close_socket()
            raise TransportError(str(e)) from e

        loop = asyncio.get_running_loop()
        self.heartbeat = (outgoing, incoming)
        self._closed = loop.create_future()
        self._last_received = loop.time()
        self._tasks = [asyncio.create_task(self._reader(), name="stomp-reader")]
        if outgoing:
            self._tasks.append(
                asyncio.create_task(self._send_heartbeats(outgoing), name="stomp-heartbeat")
            )
        if incoming:
            self._tasks.append(
                asyncio.create_task(self._watch_heartbeats(incoming), name="stomp-watchdog")
            )

        logger.info(
            f"STOMP session established with {url} "
            f"(version {reply.headers.get('version', '1.0')}, heart-beat {outgoing}s/{incoming}s)"
        )

    async def _read_handshake(self) -> StompFrame:
        while True:
            frames = self._parser.feed(await self._ws.recv())
            if frames:
                return frames[0]

    async def subscribe(self, session_id: str, on_frame: FrameHandler) -> Subscription:
        if not self.is_open:
            raise TransportError("Cannot subscribe: not connected")

        subscription_id = f"sub-{next(self._ids)}"
        destination = self._config.topic_for(session_id)
        self._handlers[subscription_id] = on_frame
        try:
            await self._send_frame(
                StompFrame(
                    command="SUBSCRIBE",
                    headers={"id": subscription_id, "destination": destination, "ack": "auto"},
                )
            )
        except TransportError:
            self._handlers.pop(subscription_id, None)
            raise

        logger.info(f"Subscribed to {destination} as {subscription_id}")
        return Subscription(subscription_id, destination, self._unsubscribe)

    async def _unsubscribe(self, subscription_id: str) -> None:
        self._handlers.pop(subscription_id, None)
        if not self.is_open:
            return
        try:
            await self._send_frame(
                StompFrame(command="UNSUBSCRIBE", headers={"id": subscription_id})
            )
        except TransportError as e:
            logger.debug(f"UNSUBSCRIBE {subscription_id} not delivered: {e}")

    async def send(self, destination: str, payload: ChatMessageRequest) -> str | None:
        if not self.is_open:
            raise TransportError("Cannot send: not connected")

        await self._send_frame(
            StompFrame(
                command="SEND",
                headers={"destination": destination, "content-type": "application/json"},
                body=payload.model_dump_json(by_alias=True, exclude_none=True),
            )
        )
        return None

    async def disconnect(self) -> None:
        if self._closed is None:
            await self._close_socket()
            return

        if not self._closed.done():
            try:
                await self._send_frame(StompFrame(command="DISCONNECT"))
            except TransportError as e:
                logger.debug(f"DISCONNECT not delivered: {e}")
            if not self._closed.done():
                self._closed.set_result(None)
        await self._shutdown()

    async def wait_closed(self) -> Exception | None:
        if self._closed is None:
            return None
        # Shielded so a cancelled waiter does not cancel the shared future
        return await asyncio.shield(self._closed)

    async def _send_frame(self, frame: StompFrame) -> None:
        if self._ws is None:
            raise TransportError(f"Cannot send {frame.command}: not connected")
        try:
            await self._ws.send(encode_frame(frame))
        except (ConnectionClosed, OSError) as e:
            raise TransportError(f"Failed to send {frame.command} frame: {e}") from e

    async def _reader(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            while True:
                raw = await self._ws.recv()
                self._last_received = loop.time()
                for frame in self._parser.feed(raw):
                    if frame.command == "ERROR":
                        message = frame.headers.get("message") or frame.body
                        await self._abort(
                            TransportError(f"Broker error: {message}", server_message=message)
                        )
                        return
                    self._dispatch(frame)
        except ConnectionClosed as e:
            await self._abort(TransportError(f"Connection closed: {e}"))
        except ProtocolError as e:
            await self._abort(TransportError(f"Invalid frame from broker: {e}"))

    def _dispatch(self, frame: StompFrame) -> None:
        if frame.command != "MESSAGE":
            logger.debug(f"Ignoring {frame.command} frame")
            return

        subscription_id = frame.headers.get("subscription", "")
        handler = self._handlers.get(subscription_id)
        if handler is None:
            logger.debug(f"Dropping message for inactive subscription {subscription_id!r}")
            return
        try:
            handler(frame.body)
        except Exception:
            logger.exception(f"Frame handler for {subscription_id} failed")

    async def _send_heartbeats(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self._ws.send("\n")
            except (ConnectionClosed, OSError) as e:
                await self._abort(TransportError(f"Heart-beat not delivered: {e}"))
                return

    async def _watch_heartbeats(self, interval: float) -> None:
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(interval)
            silence = loop.time() - self._last_received
            if silence > interval * HEARTBEAT_TOLERANCE:
                await self._abort(
                    TransportError(f"No heart-beat from broker for {silence:.1f}s")
                )
                return

    async def _abort(self, reason: TransportError) -> None:
        if self._closed is None or self._closed.done():
            return
        logger.warning(f"STOMP connection lost: {reason}")
        self._closed.set_result(reason)
        await self._shutdown()

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        self._tasks = []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._handlers.clear()
        await self._close_socket()

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        with contextlib.suppress(WebSocketException, OSError):
            await ws.close()

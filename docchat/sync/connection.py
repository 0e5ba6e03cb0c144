"""Connection lifecycle for the session transport.

Brings the transport up, retries with a fixed backoff after every failed
attempt or dropped connection, and tears everything down when the session
view goes away.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from docchat.config import ChatConfig
from docchat.exceptions import TransportError
from docchat.models.schemas import ConnectionState
from docchat.transport.base import Transport

logger = logging.getLogger(__name__)

ConnectedHook = Callable[[], Awaitable[None]]
DisconnectedHook = Callable[[Exception | None], None]

_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.CONNECTED, ConnectionState.DISCONNECTED}
    ),
    ConnectionState.CONNECTED: frozenset({ConnectionState.DISCONNECTED}),
}


class ConnectionManager:
    """Owns the connection state of one session.

    Connected hooks run while the state is still ``connecting``, so sending
    only becomes possible once the session subscription is in place. A
    failing hook counts as a failed attempt.
    """

    def __init__(
        self,
        transport: Transport,
        config: ChatConfig,
        on_change: Callable[[], None] | None = None,
        on_server_error: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            transport: The transport to drive.
            config: Chat configuration (reconnect delay).
            on_change: Called after every state transition.
            on_server_error: Called with the text of a broker ERROR frame.
        """
        self._transport = transport
        self._config = config
        self._on_change = on_change
        self._on_server_error = on_server_error
        self._state = ConnectionState.DISCONNECTED
        self._task: asyncio.Task[None] | None = None
        self._started = False
        self._connected_hooks: list[ConnectedHook] = []
        self._disconnected_hooks: list[DisconnectedHook] = []
        self.attempts = 0
        self.last_error: Exception | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def on_connected(self, hook: ConnectedHook) -> None:
        self._connected_hooks.append(hook)

    def on_disconnected(self, hook: DisconnectedHook) -> None:
        self._disconnected_hooks.append(hook)

    async def start(self) -> None:
        """Begin connecting.

        Request/response transports are logically always connected and go
        straight to ``connected``; persistent transports get a background
        connect/retry loop.
        """
        if self._started:
            raise RuntimeError("Connection manager already started")
        self._started = True

        if not self._transport.persistent:
            self._transition(ConnectionState.CONNECTING)
            await self._run_connected_hooks()
            self._transition(ConnectionState.CONNECTED)
            return

        self._task = asyncio.create_task(self._run(), name="connection-lifecycle")

    async def stop(self) -> None:
        """Cancel any pending retry and close the transport."""
        task, self._task = self._task, None
        try:
            if task is not None:
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
        finally:
            await self._transport.disconnect()
            self._transition(ConnectionState.DISCONNECTED)
            logger.info("Connection closed")

    async def _run(self) -> None:
        while True:
            self.attempts += 1
            self._transition(ConnectionState.CONNECTING)
            try:
                await self._transport.connect()
                await self._run_connected_hooks()
            except TransportError as e:
                logger.warning(f"Connection attempt {self.attempts} failed: {e}")
                await self._transport.disconnect()
                self._lost(e)
            else:
                self._transition(ConnectionState.CONNECTED)
                logger.info(f"Connected after {self.attempts} attempt(s)")
                self._lost(await self._transport.wait_closed())

            logger.info(f"Reconnecting in {self._config.reconnect_delay}s")
            await asyncio.sleep(self._config.reconnect_delay)

    async def _run_connected_hooks(self) -> None:
        for hook in self._connected_hooks:
            await hook()

    def _lost(self, reason: Exception | None) -> None:
        self.last_error = reason
        self._transition(ConnectionState.DISCONNECTED)

        server_message = getattr(reason, "server_message", None)
        if server_message and self._on_server_error is not None:
            self._on_server_error(server_message)
        for hook in self._disconnected_hooks:
            hook(reason)

    def _transition(self, new: ConnectionState) -> None:
        old = self._state
        if new is old:
            return
        if new not in _TRANSITIONS[old]:
            raise RuntimeError(f"Invalid connection transition {old.value} -> {new.value}")
        self._state = new
        logger.debug(f"Connection state {old.value} -> {new.value}")
        if self._on_change is not None:
            self._on_change()

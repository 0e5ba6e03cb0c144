"""Chat session engine: the owned, observable state of one chat view.

Wires history loading, the connection lifecycle, the conversation store,
send coordination and the error surface, and hands an immutable snapshot
to observers after every change.

Usage:
    async with ChatSession(SessionInfo(session_id=sid)) as chat:
        chat.subscribe(render)
        await chat.submit("What is the refund policy?")
"""

import logging
from collections.abc import Callable
from types import TracebackType

import httpx

from docchat.config import ChatConfig, get_chat_config
from docchat.exceptions import (
    HistoryUnavailable,
    InvalidInput,
    NotConnected,
    TurnAlreadyPending,
)
from docchat.models.schemas import (
    ChatMessageDto,
    ChatSnapshot,
    ConnectionState,
    ErrorSource,
    Message,
    Notice,
    PendingTurn,
    SessionInfo,
    SubmitResult,
)
from docchat.sync.connection import ConnectionManager
from docchat.sync.coordinator import SendCoordinator
from docchat.sync.errors import ErrorSurface
from docchat.sync.history import HistoryLoader
from docchat.sync.store import ConversationStore
from docchat.transport import Subscription, Transport, create_transport

logger = logging.getLogger(__name__)

Listener = Callable[[ChatSnapshot], None]


class ChatSession:
    """Manages chat state for one document session.

    The session is a scoped resource: ``open`` on entry, ``close`` on every
    exit path. ``async with`` does both.
    """

    def __init__(
        self,
        session: SessionInfo,
        config: ChatConfig | None = None,
        *,
        transport: Transport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the chat session.

        Args:
            session: The session handed over by the upload flow.
            config: Optional configuration. Loads from environment if not provided.
            transport: Transport override. Built from ``config`` if not provided.
            http_client: Backend API client. Created (and owned) if not provided.
        """
        self.session = session
        self._config = config or get_chat_config()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self._config.api_base_url,
            timeout=self._config.request_timeout,
            headers={"Accept": "application/json"},
        )
        self._transport = transport or create_transport(self._config, self._http)
        self._listeners: list[Listener] = []
        self._subscription: Subscription | None = None
        self._opened = False
        self._closed = False

        self._errors = ErrorSurface(on_change=self._notify)
        self._store = ConversationStore(on_change=self._notify)
        self._history = HistoryLoader(self._http)
        self._connection = ConnectionManager(
            self._transport,
            self._config,
            on_change=self._notify,
            on_server_error=lambda message: self._errors.report(ErrorSource.CONNECTION, message),
        )
        self._coordinator = SendCoordinator(
            session.session_id,
            self._store,
            self._transport,
            self._connection,
            self._errors,
            self._config,
            on_change=self._notify,
        )
        self._connection.on_connected(self._subscribe)
        self._connection.on_disconnected(self._on_disconnected)

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._store.messages

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def pending_turn(self) -> PendingTurn | None:
        return self._coordinator.pending

    @property
    def error(self) -> Notice | None:
        return self._errors.current

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """Load history once, then bring the connection up."""
        if self._opened:
            raise RuntimeError("Chat session already opened")
        self._opened = True

        history: list[ChatMessageDto] = []
        try:
            history = await self._history.load(self.session.session_id)
        except HistoryUnavailable as e:
            logger.warning(f"History for session {self.session.session_id} unavailable: {e}")
            self._errors.report(ErrorSource.REQUEST, "Failed to load chat history")

        if self._closed:
            return
        self._store.seed(history)
        await self._connection.start()

    async def close(self) -> None:
        """Tear down the session. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._coordinator.abandon()
        try:
            subscription, self._subscription = self._subscription, None
            if subscription is not None:
                await subscription.unsubscribe()
        finally:
            try:
                await self._connection.stop()
            finally:
                if self._owns_client:
                    await self._http.aclose()
                logger.info(f"Chat session {self.session.session_id} closed")

    async def __aenter__(self) -> "ChatSession":
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def submit(self, text: str) -> SubmitResult:
        """Submit a question; local rejections are also shown to the user.

        Raises:
            InvalidInput: If the text is blank.
            TurnAlreadyPending: If a turn is still awaiting its reply.
            NotConnected: If the connection is not live.
        """
        try:
            return await self._coordinator.submit(text)
        except (InvalidInput, TurnAlreadyPending, NotConnected) as e:
            self._errors.report(ErrorSource.VALIDATION, str(e))
            raise

    def dismiss_error(self) -> None:
        self._errors.dismiss()

    def snapshot(self) -> ChatSnapshot:
        pending = self._coordinator.pending
        return ChatSnapshot(
            session=self.session,
            messages=self._store.messages,
            connection_state=self._connection.state,
            pending=pending.model_copy() if pending is not None else None,
            error=self._errors.current,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state observer.

        Returns:
            A callable that removes the observer.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _subscribe(self) -> None:
        if self._subscription is not None:
            # The previous connection is gone; its subscription went with it
            self._subscription.active = False
        self._subscription = await self._transport.subscribe(
            self.session.session_id, self._coordinator.handle_frame
        )

    def _on_disconnected(self, reason: Exception | None) -> None:
        self._subscription = None
        self._coordinator.connection_lost(reason)

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Chat state listener failed")



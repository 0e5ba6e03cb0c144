"""Send coordination: one outstanding turn at a time.

Validates submissions, writes the optimistic user entry, dispatches the
question and resolves the pending turn from the reply, an error frame, a
failed request, a lost connection or a reply timeout.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable

from pydantic import ValidationError

from docchat.config import ChatConfig
from docchat.exceptions import (
    InvalidInput,
    NotConnected,
    ProtocolError,
    TransportError,
    TurnAlreadyPending,
)
from docchat.models.schemas import (
    ChatMessageRequest,
    ErrorSource,
    InboundFrame,
    PendingTurn,
    Role,
    SubmitResult,
    TurnStatus,
)
from docchat.sync.connection import ConnectionManager
from docchat.sync.errors import ErrorSurface
from docchat.sync.store import ConversationStore
from docchat.transport.base import Transport

logger = logging.getLogger(__name__)


class SendCoordinator:
    """Serializes turns for one session.

    Push-mode replies carry no per-turn id unless the backend echoes the
    ``turnId`` it was sent, so matching falls back to session scoping; that
    is only sound because at most one turn is ever pending.
    """

    def __init__(
        self,
        session_id: str,
        store: ConversationStore,
        transport: Transport,
        connection: ConnectionManager,
        errors: ErrorSurface,
        config: ChatConfig,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._session_id = session_id
        self._store = store
        self._transport = transport
        self._connection = connection
        self._errors = errors
        self._config = config
        self._on_change = on_change
        self._pending: PendingTurn | None = None
        self._expired: PendingTurn | None = None
        self._timeout: asyncio.TimerHandle | None = None
        self._abandoned = False

    @property
    def pending(self) -> PendingTurn | None:
        return self._pending

    async def submit(self, text: str) -> SubmitResult:
        """Submit a question.

        In push mode the result is ``pending`` once the question is
        published; the reply resolves the turn later. In request mode the
        result is final.

        Raises:
            InvalidInput: If the text is blank.
            TurnAlreadyPending: If a previous turn has not resolved yet.
            NotConnected: If the connection is not live.
        """
        question = text.strip() if text else ""
        if not question:
            raise InvalidInput("Please enter a question")
        if self._pending is not None:
            raise TurnAlreadyPending("Please wait for the current answer")
        if self._abandoned or not self._connection.is_connected:
            raise NotConnected("Not connected. Please wait...")

        sequence = self._store.append_optimistic(question)
        turn = PendingTurn(turn_id=uuid.uuid4().hex, user_content=question, sequence=sequence)
        self._set_pending(turn)
        payload = ChatMessageRequest(
            session_id=self._session_id, question=question, turn_id=turn.turn_id
        )
        logger.info(f"Submitting turn {turn.turn_id} for session {self._session_id}")

        if self._transport.delivers_replies:
            return await self._round_trip(turn, payload)
        return await self._publish(turn, payload)

    async def _round_trip(self, turn: PendingTurn, payload: ChatMessageRequest) -> SubmitResult:
        try:
            reply = await self._transport.send(self._transport.destination, payload)
        except (TransportError, ProtocolError) as e:
            if self._pending is not turn:
                return self._result(TurnStatus.ABANDONED, turn)
            logger.warning(f"Turn {turn.turn_id} failed: {e}")
            self._store.rollback(turn.sequence)
            self._set_pending(None)
            self._errors.report(ErrorSource.REQUEST, str(e))
            return self._result(TurnStatus.FAILED, turn)

        if self._pending is not turn:
            logger.debug(f"Ignoring late reply for turn {turn.turn_id}")
            return self._result(TurnStatus.ABANDONED, turn)
        self._store.append_confirmed(Role.ASSISTANT, reply or "")
        self._set_pending(None)
        self._errors.clear()
        return self._result(TurnStatus.COMPLETED, turn)

    async def _publish(self, turn: PendingTurn, payload: ChatMessageRequest) -> SubmitResult:
        self._arm_timeout(turn)
        try:
            await self._transport.send(self._transport.destination, payload)
        except TransportError as e:
            if self._pending is not turn:
                return self._result(TurnStatus.ABANDONED, turn)
            # The question stays visible; the failure is reported instead
            logger.warning(f"Turn {turn.turn_id} could not be sent: {e}")
            self._set_pending(None)
            self._errors.report(ErrorSource.REQUEST, f"Failed to send message: {e}")
            return self._result(TurnStatus.FAILED, turn)
        return self._result(TurnStatus.PENDING, turn)

    def handle_frame(self, body: str) -> None:
        """Reconcile one inbound push frame into the log."""
        if self._abandoned:
            return
        try:
            frame = InboundFrame.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"Malformed frame on session {self._session_id}: {e}")
            self._errors.report(ErrorSource.PROTOCOL, "Received a malformed message from the server")
            return

        expired = self._expired
        if expired is not None and frame.turn_id in (None, expired.turn_id):
            if self._settle_expired(expired, frame):
                return

        turn = self._pending
        if frame.turn_id and turn is not None and frame.turn_id != turn.turn_id:
            logger.debug(f"Dropping stale {frame.role.value} frame for turn {frame.turn_id}")
            return

        if frame.role is Role.ERROR:
            if turn is not None:
                self._set_pending(None)
            self._errors.report(ErrorSource.PROTOCOL, frame.content)
        elif frame.role is Role.USER:
            if turn is not None and not turn.echoed and frame.content == turn.user_content:
                # Server echo of the optimistic entry
                turn.echoed = True
                return
            self._store.append_confirmed(Role.USER, frame.content)
        else:
            self._store.append_confirmed(Role.ASSISTANT, frame.content)
            if turn is not None:
                self._set_pending(None)
            self._errors.clear()

    def _settle_expired(self, expired: PendingTurn, frame: InboundFrame) -> bool:
        """Consume a late frame of a timed-out turn.

        The backend answers turns in order, so the echo and reply of the
        expired turn arrive before anything for the next one.

        Returns:
            True if the frame belonged to the expired turn.
        """
        if frame.role is Role.USER:
            if expired.echoed or frame.content != expired.user_content:
                return False
            expired.echoed = True
            return True

        self._expired = None
        if frame.role is Role.ERROR:
            self._errors.report(ErrorSource.PROTOCOL, frame.content)
        elif self._pending is None:
            logger.info(f"Late reply for expired turn {expired.turn_id}")
            self._store.append_confirmed(Role.ASSISTANT, frame.content)
            self._errors.clear()
        else:
            # A newer question is already below it in the log
            logger.warning(f"Discarding late reply for expired turn {expired.turn_id}")
        return True

    def connection_lost(self, reason: Exception | None) -> None:
        """A pending push turn cannot be answered on a dead subscription."""
        self._expired = None
        if self._pending is None or self._transport.delivers_replies:
            return
        logger.warning(f"Connection lost with turn {self._pending.turn_id} pending: {reason}")
        self._set_pending(None)
        self._errors.report(
            ErrorSource.CONNECTION, "Connection lost before a reply was received"
        )

    def abandon(self) -> None:
        """Drop the pending turn on teardown; later resolutions are ignored."""
        self._abandoned = True
        self._expired = None
        if self._pending is not None:
            logger.info(f"Abandoning pending turn {self._pending.turn_id}")
        self._set_pending(None)

    def _arm_timeout(self, turn: PendingTurn) -> None:
        if not self._config.reply_timeout:
            return
        loop = asyncio.get_running_loop()
        self._timeout = loop.call_later(self._config.reply_timeout, self._expire, turn)

    def _expire(self, turn: PendingTurn) -> None:
        self._timeout = None
        if self._pending is not turn:
            return
        logger.warning(f"Turn {turn.turn_id} timed out after {self._config.reply_timeout}s")
        self._expired = turn
        self._set_pending(None)
        self._errors.report(ErrorSource.REQUEST, "No reply received in time")

    def _set_pending(self, turn: PendingTurn | None) -> None:
        if turn is None and self._timeout is not None:
            self._timeout.cancel()
            self._timeout = None
        if turn is None and self._pending is None:
            return
        self._pending = turn
        if self._on_change is not None:
            self._on_change()

    @staticmethod
    def _result(status: TurnStatus, turn: PendingTurn) -> SubmitResult:
        return SubmitResult(status=status, turn_id=turn.turn_id, sequence=turn.sequence)

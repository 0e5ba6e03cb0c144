"""Transport contract shared by the push and request/response strategies."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from docchat.models.schemas import ChatMessageRequest

FrameHandler = Callable[[str], None]


class Subscription:
    """Handle for a session-scoped subscription.

    The base class is the no-op subscription used when replies come back
    directly from ``send``.
    """

    def __init__(
        self,
        subscription_id: str,
        destination: str,
        on_unsubscribe: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        self.id = subscription_id
        self.destination = destination
        self._on_unsubscribe = on_unsubscribe
        self.active = True

    async def unsubscribe(self) -> None:
        """Stop delivery. Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        if self._on_unsubscribe is not None:
            await self._on_unsubscribe(self.id)


class Transport(ABC):
    """Moves questions to the backend and replies back.

    Attributes:
        persistent: Needs a connection lifecycle (connect, retry, heart-beat).
        delivers_replies: ``send`` returns the assistant reply directly.
        destination: Where ``send`` publishes questions.
    """

    persistent: bool = False
    delivers_replies: bool = False
    destination: str = ""

    @abstractmethod
    async def connect(self) -> None:
        """Establish the connection.

        Raises:
            TransportError: If the connection cannot be established.
        """

    @abstractmethod
    async def subscribe(self, session_id: str, on_frame: FrameHandler) -> Subscription:
        """Deliver inbound frame bodies for a session to ``on_frame``."""

    @abstractmethod
    async def send(self, destination: str, payload: ChatMessageRequest) -> str | None:
        """Dispatch a question.

        Returns:
            The assistant reply when ``delivers_replies`` is set, else None.

        Raises:
            TransportError: If the question could not be delivered.
            ProtocolError: If the backend answered with an error.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection and stop background work."""

    @abstractmethod
    async def wait_closed(self) -> Exception | None:
        """Wait until a live connection ends.

        Returns:
            The TransportError that ended it, or None after ``disconnect``.
        """

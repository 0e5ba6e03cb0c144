"""Request/response transport: one HTTP round trip per question."""

import logging

import httpx
from pydantic import ValidationError

from docchat.config import ChatConfig
from docchat.exceptions import ProtocolError, TransportError
from docchat.models.schemas import ChatMessageRequest, ChatSessionResponse, ErrorEnvelope
from docchat.transport.base import FrameHandler, Subscription, Transport

logger = logging.getLogger(__name__)

MESSAGE_PATH = "/chat/message"


class RequestResponseTransport(Transport):
    """Sends each question as ``POST /chat/message`` and returns the reply.

    There is no independent subscription and nothing to keep alive, so the
    transport is logically always connected.
    """

    persistent = False
    delivers_replies = True

    def __init__(self, client: httpx.AsyncClient, config: ChatConfig) -> None:
        """Initialize the transport.

        Args:
            client: HTTP client whose base URL is the backend API root.
            config: Chat configuration.
        """
        self._client = client
        self._config = config
        self.destination = MESSAGE_PATH

    async def connect(self) -> None:
        return None

    async def subscribe(self, session_id: str, on_frame: FrameHandler) -> Subscription:
        return Subscription(f"direct-{session_id}", self.destination)

    async def send(self, destination: str, payload: ChatMessageRequest) -> str | None:
        try:
            response = await self._client.post(destination, json=payload.to_wire())
        except httpx.RequestError as e:
            raise TransportError(f"Connection failed: {e}") from e

        if response.is_error:
            message = self._error_message(response)
            logger.warning(f"Chat request for session {payload.session_id} failed: {message}")
            raise ProtocolError(message)

        try:
            body = ChatSessionResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise ProtocolError("Malformed reply from server") from e

        if body.current_response is None:
            raise ProtocolError("Reply did not include a response")
        return body.current_response

    async def disconnect(self) -> None:
        return None

    async def wait_closed(self) -> Exception | None:
        """Nothing stays open between requests, so there is nothing to wait for."""
        return None

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the backend's ``{message}`` envelope over the bare status."""
        try:
            return ErrorEnvelope.model_validate_json(response.content).message
        except ValidationError:
            return f"HTTP {response.status_code}"

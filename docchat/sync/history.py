"""Fetches the prior transcript of a session, once per session entry."""

import logging
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from docchat.exceptions import HistoryUnavailable
from docchat.models.schemas import ChatMessageDto, ChatSessionResponse

logger = logging.getLogger(__name__)


class HistoryLoader:
    """Loads ``GET /chat/{session_id}`` through the backend API client."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, session_id: str) -> ChatSessionResponse:
        """Fetch the full session payload.

        Raises:
            HistoryUnavailable: On any HTTP, connection or payload error.
        """
        try:
            response = await self._client.get(f"/chat/{quote(session_id, safe='')}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise HistoryUnavailable(f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise HistoryUnavailable(f"Connection failed: {e}") from e

        try:
            return ChatSessionResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise HistoryUnavailable("Malformed history response") from e

    async def load(self, session_id: str) -> list[ChatMessageDto]:
        """Return the transcript in display order.

        Raises:
            HistoryUnavailable: If the transcript cannot be fetched.
        """
        session = await self.fetch(session_id)
        logger.info(f"Loaded {len(session.messages)} history messages for session {session_id}")
        return session.messages

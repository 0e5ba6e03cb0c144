"""Client configuration with environment variable loading.

Pydantic-based configuration for the chat session engine.
Selects the transport strategy and the backend endpoints it talks to.
"""

import os
from enum import Enum

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()


class TransportMode(str, Enum):
    """How turns reach the backend."""

    PUSH = "push"
    REQUEST = "request"


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


class ChatConfig(BaseModel):
    """Configuration for a chat session.

    Attributes:
        api_base_url: Backend REST base URL (history and request mode).
        ws_url: WebSocket URL of the STOMP broker endpoint (push mode).
        transport_mode: Push over WebSocket or one-shot HTTP requests.
        reconnect_delay: Seconds to wait before retrying a dropped connection.
        heartbeat_outgoing: Seconds between client heart-beats (0 disables).
        heartbeat_incoming: Expected seconds between server heart-beats (0 disables).
        connect_timeout: Seconds allowed for the WebSocket and STOMP handshake.
        request_timeout: Seconds allowed for one HTTP round trip.
        reply_timeout: Seconds a push-mode turn may wait for its reply (0 disables).
        message_destination: STOMP destination for outgoing questions.
        topic_prefix: STOMP topic prefix, completed with the session id.
    """

    api_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "DOCCHAT_API_BASE_URL", "http://localhost:8080/api/v1"
        ),
        description="Backend REST base URL",
    )
    ws_url: str = Field(
        default_factory=lambda: os.getenv(
            "DOCCHAT_WS_URL", "ws://localhost:8080/ws/websocket"
        ),
        description="STOMP broker WebSocket URL",
    )
    transport_mode: TransportMode = Field(
        default_factory=lambda: TransportMode(
            os.getenv("DOCCHAT_TRANSPORT", TransportMode.PUSH.value).lower()
        ),
        description="Transport strategy: 'push' or 'request'",
    )
    reconnect_delay: float = Field(
        default_factory=lambda: _env_float("DOCCHAT_RECONNECT_DELAY", "5"),
        ge=0.0,
        description="Fixed backoff before a reconnect attempt",
    )
    heartbeat_outgoing: float = Field(
        default_factory=lambda: _env_float("DOCCHAT_HEARTBEAT_OUTGOING", "4"),
        ge=0.0,
        description="Client heart-beat interval in seconds",
    )
    heartbeat_incoming: float = Field(
        default_factory=lambda: _env_float("DOCCHAT_HEARTBEAT_INCOMING", "4"),
        ge=0.0,
        description="Expected server heart-beat interval in seconds",
    )
    connect_timeout: float = Field(default=10.0, gt=0.0)
    request_timeout: float = Field(default=120.0, gt=0.0)
    reply_timeout: float = Field(
        default_factory=lambda: _env_float("DOCCHAT_REPLY_TIMEOUT", "120"),
        ge=0.0,
        description="Push-mode wait for an assistant reply",
    )
    message_destination: str = Field(default="/app/chat/message")
    topic_prefix: str = Field(default="/topic/chat/")

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop the trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("ws_url")
    @classmethod
    def validate_ws_url(cls, v: str) -> str:
        """Require a ws(s) URL."""
        v = v.strip()
        if not v.startswith(("ws://", "wss://")):
            raise ValueError("ws_url must start with ws:// or wss://")
        return v

    @field_validator("topic_prefix")
    @classmethod
    def validate_topic_prefix(cls, v: str) -> str:
        """Topics are built as prefix + session id."""
        return v if v.endswith("/") else f"{v}/"

    def topic_for(self, session_id: str) -> str:
        """Return the per-session topic the backend publishes to."""
        return f"{self.topic_prefix}{session_id}"


def get_chat_config() -> ChatConfig:
    """Create chat configuration from environment.

    Returns:
        Configured ChatConfig instance.

    Raises:
        ValueError: If an environment value is invalid.
    """
    return ChatConfig()

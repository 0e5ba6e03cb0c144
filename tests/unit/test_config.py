"""Unit tests for ChatConfig.

Tests environment loading, validation and topic naming.
"""

import pytest
from pydantic import ValidationError

from docchat.config import ChatConfig, TransportMode, get_chat_config


class TestChatConfig:
    """Tests for ChatConfig validation."""

    def test_config_with_default_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Config falls back to local backend defaults."""
        for name in ("DOCCHAT_API_BASE_URL", "DOCCHAT_WS_URL", "DOCCHAT_TRANSPORT"):
            monkeypatch.delenv(name, raising=False)

        config = ChatConfig()

        assert config.api_base_url == "http://localhost:8080/api/v1"
        assert config.ws_url == "ws://localhost:8080/ws/websocket"
        assert config.transport_mode is TransportMode.PUSH
        assert config.message_destination == "/app/chat/message"

    def test_config_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables override defaults."""
        monkeypatch.setenv("DOCCHAT_API_BASE_URL", "https://chat.example.com/api/v1/")
        monkeypatch.setenv("DOCCHAT_TRANSPORT", "REQUEST")
        monkeypatch.setenv("DOCCHAT_RECONNECT_DELAY", "2.5")

        config = get_chat_config()

        assert config.api_base_url == "https://chat.example.com/api/v1"
        assert config.transport_mode is TransportMode.REQUEST
        assert config.reconnect_delay == 2.5

    def test_config_rejects_non_http_base_url(self) -> None:
        """Base URL must be http(s)."""
        with pytest.raises(ValidationError) as exc_info:
            ChatConfig(api_base_url="ftp://example.com")

        assert "api_base_url" in str(exc_info.value)

    def test_config_rejects_non_websocket_url(self) -> None:
        """Broker URL must be ws(s)."""
        with pytest.raises(ValidationError):
            ChatConfig(ws_url="http://localhost:8080/ws")

    def test_config_rejects_unknown_transport(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unknown transport names fail loudly."""
        monkeypatch.setenv("DOCCHAT_TRANSPORT", "carrier-pigeon")

        with pytest.raises(ValueError):
            get_chat_config()

    def test_config_rejects_negative_reconnect_delay(self) -> None:
        """Reconnect delay cannot be negative."""
        with pytest.raises(ValidationError):
            ChatConfig(reconnect_delay=-1)

    def test_topic_for_session(self) -> None:
        """Topic is the prefix completed with the session id."""
        config = ChatConfig(topic_prefix="/topic/chat")

        assert config.topic_for("abc") == "/topic/chat/abc"

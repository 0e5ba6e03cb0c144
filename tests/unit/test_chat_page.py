"""Unit tests for the chat view's session binding."""

from unittest.mock import MagicMock

from docchat.ui.chat_page import bind_session_lifetime


class TestBindSessionLifetime:
    """Tests for tying the session to the NiceGUI client."""

    def test_session_closes_on_client_delete(self) -> None:
        """Teardown waits for client deletion, not a socket disconnect."""
        client = MagicMock()
        chat = MagicMock()

        bind_session_lifetime(client, chat)

        client.on_delete.assert_called_once_with(chat.close)
        client.on_disconnect.assert_not_called()

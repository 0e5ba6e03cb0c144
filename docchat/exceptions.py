"""Error taxonomy for the chat session engine.

Nothing here is fatal: every failure leaves the session usable for the
next attempt.
"""


class ChatError(Exception):
    """Base class for chat session failures."""

    pass


class HistoryUnavailable(ChatError):
    """Raised when the prior transcript cannot be fetched."""

    pass


class InvalidInput(ChatError):
    """Raised when a submitted question is blank."""

    pass


class TurnAlreadyPending(ChatError):
    """Raised when a turn is submitted while another awaits its reply."""

    pass


class NotConnected(ChatError):
    """Raised when submitting without a live connection."""

    pass


class TransportError(ChatError):
    """Raised when the connection fails, drops or cannot deliver a frame.

    Attributes:
        server_message: Text of a broker ERROR frame, if the server sent one.
    """

    def __init__(self, message: str, *, server_message: str | None = None) -> None:
        super().__init__(message)
        self.server_message = server_message


class ProtocolError(ChatError):
    """Raised when the backend answers with an error or a malformed payload."""

    pass


class ConversationStateError(ChatError):
    """Raised when the conversation log is mutated out of order."""

    pass

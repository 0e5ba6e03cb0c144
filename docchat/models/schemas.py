from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    """Speaker of a conversation entry."""

    USER = "user"
    ASSISTANT = "assistant"
    ERROR = "error"


class ConnectionState(str, Enum):
    """Liveness of the session transport."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ErrorSource(str, Enum):
    """Where a user-visible notice came from. Only affects formatting."""

    CONNECTION = "connection"
    PROTOCOL = "protocol"
    REQUEST = "request"
    VALIDATION = "validation"


class TurnStatus(str, Enum):
    """Outcome of a submit call."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class _WireModel(BaseModel):
    """Backend payloads use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessageDto(_WireModel):
    """A transcript entry as the backend returns it.

    Attributes:
        role: The speaker (user, assistant or error).
        content: The message text.
    """

    role: Role
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def null_content(cls, v: str | None) -> str:
        return "" if v is None else v


class ChatMessageRequest(_WireModel):
    """Outgoing question for both transports.

    Attributes:
        session_id: The chat session the question belongs to.
        question: User's question.
        turn_id: Correlation id of the local turn.
    """

    session_id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)
    turn_id: str | None = None

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ChatSessionResponse(_WireModel):
    """Session payload returned by history fetch and request-mode replies.

    Attributes:
        session_id: Session identifier.
        document_id: The document the session is about.
        document_name: Display name of the document.
        messages: Full transcript in display order.
        current_response: Latest assistant reply (request mode only).
    """

    session_id: str | None = None
    document_id: str | None = None
    document_name: str | None = None
    messages: list[ChatMessageDto] = Field(default_factory=list)
    current_response: str | None = None

    @field_validator("messages", mode="before")
    @classmethod
    def null_messages(cls, v: list | None) -> list:
        """The backend sends null for a session without messages."""
        return [] if v is None else v


class InboundFrame(_WireModel):
    """Body of a push-mode frame on the session topic."""

    role: Role
    content: str = ""
    turn_id: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def null_content(cls, v: str | None) -> str:
        return "" if v is None else v


class ErrorEnvelope(_WireModel):
    """Error body of a failed request."""

    message: str


class SessionInfo(BaseModel):
    """The document chat a view is bound to.

    Attributes:
        session_id: Opaque session token from the upload flow.
        document_id: Uploaded document identifier.
        document_name: Display name of the document.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1)
    document_id: str | None = None
    document_name: str = ""


class Message(BaseModel):
    """One entry of the conversation log.

    Attributes:
        role: user or assistant. Error entries never reach the log.
        content: Message text.
        sequence: Local, monotonically increasing index.
        created_at: When the entry was added locally.
    """

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    sequence: int = Field(..., ge=0)
    created_at: datetime = Field(default_factory=datetime.now)


class PendingTurn(BaseModel):
    """The single question awaiting its reply.

    Attributes:
        turn_id: Correlation id sent with the question.
        user_content: The submitted question.
        sequence: Log sequence of the optimistic user entry.
        started_at: Submission time.
        echoed: Whether the server already echoed the user line back.
    """

    turn_id: str
    user_content: str
    sequence: int
    started_at: datetime = Field(default_factory=datetime.now)
    echoed: bool = False


class Notice(BaseModel):
    """The single user-visible error."""

    model_config = ConfigDict(frozen=True)

    source: ErrorSource
    message: str
    raised_at: datetime = Field(default_factory=datetime.now)


class SubmitResult(BaseModel):
    """What happened to an accepted submission."""

    model_config = ConfigDict(frozen=True)

    status: TurnStatus
    turn_id: str
    sequence: int


class ChatSnapshot(BaseModel):
    """Immutable view of the session state handed to observers."""

    model_config = ConfigDict(frozen=True)

    session: SessionInfo
    messages: tuple[Message, ...] = ()
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    pending: PendingTurn | None = None
    error: Notice | None = None

    @property
    def is_loading(self) -> bool:
        return self.pending is not None

    @property
    def can_send(self) -> bool:
        return self.connection_state is ConnectionState.CONNECTED and self.pending is None

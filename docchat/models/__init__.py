"""Pydantic models for the chat session engine.

Provides type safety and validation for local state and backend payloads.

Models:
    - SessionInfo: The document chat a view is bound to
    - Message: One displayed entry of the conversation log
    - PendingTurn: The single in-flight question
    - ChatSnapshot: Immutable view of the whole session state
    - Wire models: ChatMessageDto, ChatMessageRequest, ChatSessionResponse,
      InboundFrame, ErrorEnvelope (camelCase on the wire)
"""

from docchat.models.schemas import (
    ChatMessageDto,
    ChatMessageRequest,
    ChatSessionResponse,
    ChatSnapshot,
    ConnectionState,
    ErrorEnvelope,
    ErrorSource,
    InboundFrame,
    Message,
    Notice,
    PendingTurn,
    Role,
    SessionInfo,
    SubmitResult,
    TurnStatus,
)

__all__ = [
    "ChatMessageDto",
    "ChatMessageRequest",
    "ChatSessionResponse",
    "ChatSnapshot",
    "ConnectionState",
    "ErrorEnvelope",
    "ErrorSource",
    "InboundFrame",
    "Message",
    "Notice",
    "PendingTurn",
    "Role",
    "SessionInfo",
    "SubmitResult",
    "TurnStatus",
]

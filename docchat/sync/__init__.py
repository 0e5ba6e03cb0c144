"""Chat-session synchronization engine.

Keeps the displayed conversation an ordered, race-free projection of what
was sent and received.

Responsibilities:
    - Connection lifecycle with retry and keep-alive
    - One-time history load on session entry
    - The conversation log (history, optimistic and confirmed entries)
    - Single outstanding turn enforcement
    - Single-slot error notifications
"""

from docchat.sync.connection import ConnectionManager
from docchat.sync.coordinator import SendCoordinator
from docchat.sync.errors import ErrorSurface
from docchat.sync.history import HistoryLoader
from docchat.sync.session import ChatSession
from docchat.sync.store import ConversationStore

__all__ = [
    "ChatSession",
    "ConnectionManager",
    "ConversationStore",
    "ErrorSurface",
    "HistoryLoader",
    "SendCoordinator",
]

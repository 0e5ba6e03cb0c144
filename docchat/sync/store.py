"""Conversation log: the ordered, append-only record shown to the user.

Merges loaded history, optimistic user entries and server-confirmed
entries into one sequence. This module is the only writer of the log.
"""

import logging
from collections.abc import Callable, Iterable

from docchat.exceptions import ConversationStateError
from docchat.models.schemas import ChatMessageDto, Message, Role

logger = logging.getLogger(__name__)


class ConversationStore:
    """Ordered conversation log with monotonically increasing sequences.

    Sequence numbers are never reused, so a rolled-back entry leaves the
    remaining entries exactly as they were.
    """

    def __init__(self, on_change: Callable[[], None] | None = None) -> None:
        self._messages: list[Message] = []
        self._next_sequence = 0
        self._turns_started = False
        self._on_change = on_change

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def seed(self, history: Iterable[ChatMessageDto]) -> None:
        """Replace the log with the loaded transcript.

        Args:
            history: Transcript entries in display order.

        Raises:
            ConversationStateError: If a turn was already appended.
        """
        if self._turns_started:
            raise ConversationStateError("History can only be seeded before the first turn")

        self._messages = []
        for entry in history:
            if entry.role is Role.ERROR:
                logger.warning("Skipping error entry found in history")
                continue
            self._messages.append(self._build(entry.role, entry.content))
        logger.info(f"Seeded conversation with {len(self._messages)} messages")
        self._changed()

    def append_optimistic(self, user_content: str) -> int:
        """Show the user's question before the server confirms it.

        Returns:
            Sequence number of the new entry, for a later rollback.
        """
        self._turns_started = True
        message = self._build(Role.USER, user_content)
        self._messages.append(message)
        self._changed()
        return message.sequence

    def append_confirmed(self, role: Role, content: str) -> Message:
        """Append a server-confirmed entry.

        Raises:
            ConversationStateError: If role is ``error``; errors go to the
                error surface, never into the log.
        """
        if role is Role.ERROR:
            raise ConversationStateError("Error entries are not part of the conversation")
        self._turns_started = True
        message = self._build(role, content)
        self._messages.append(message)
        self._changed()
        return message

    def rollback(self, sequence: int) -> bool:
        """Remove the optimistic user entry with the given sequence.

        Returns:
            True if an entry was removed.
        """
        for index, message in enumerate(self._messages):
            if message.sequence == sequence:
                if message.role is not Role.USER:
                    raise ConversationStateError(
                        f"Entry {sequence} is a {message.role.value} message, not a question"
                    )
                del self._messages[index]
                self._changed()
                return True
        logger.debug(f"Nothing to roll back for sequence {sequence}")
        return False

    def _build(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content, sequence=self._next_sequence)
        self._next_sequence += 1
        return message

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

"""
Conversation Store Contract
Optimistic-concurrency persistence boundary for Conversation state.
"""
from typing import Optional, Protocol

from ..models.conversation import Conversation


class WriteConflictError(Exception):
    """Raised when a write's expected version no longer matches the stored one."""

    def __init__(self, conversation_id: str, expected_version: int):
        self.conversation_id = conversation_id
        self.expected_version = expected_version
        super().__init__(
            f"Write conflict on conversation {conversation_id} (expected version {expected_version})"
        )


class ConversationNotFoundError(Exception):
    """Raised when a conversation id is unknown to the store."""
    pass


class ConversationStore(Protocol):
    """
    Protocol for conversation persistence.

    `write` is a compare-and-set on `Conversation.version`: it succeeds only
    when the stored version still equals the version the caller read (0 for a
    conversation that was never persisted), and returns the stored copy with
    the bumped version.
    """

    async def read(self, conversation_id: str) -> Optional[Conversation]:
        """
        Fetch the latest stored state.

        Returns:
            Conversation or None if never written
        """
        ...

    async def write(self, conversation: Conversation) -> Conversation:
        """
        Persist `conversation` if nobody wrote since it was read.

        Raises:
            WriteConflictError: If the stored version moved on
        """
        ...

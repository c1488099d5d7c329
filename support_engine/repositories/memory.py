"""
In-Memory Conversation Store
Process-local compare-and-set store for development and tests.
"""
import asyncio
import datetime as dt
from typing import Dict, Optional

from .base import WriteConflictError
from ..models.conversation import Conversation
from ..utils.observability import logger


class InMemoryConversationStore:
    """
    Dict-backed ConversationStore.

    Copies on the way in and out, so callers can never mutate stored state
    except through `write`.
    """

    def __init__(self):
        self._conversations: Dict[str, Conversation] = {}
        self._lock = asyncio.Lock()

    async def read(self, conversation_id: str) -> Optional[Conversation]:
        async with self._lock:
            stored = self._conversations.get(conversation_id)
            return stored.model_copy(deep=True) if stored else None

    async def write(self, conversation: Conversation) -> Conversation:
        async with self._lock:
            current = self._conversations.get(conversation.conversation_id)
            current_version = current.version if current else 0

            if conversation.version != current_version:
                logger.debug(
                    f"CAS rejected for {conversation.conversation_id}: "
                    f"expected v{conversation.version}, stored v{current_version}"
                )
                raise WriteConflictError(conversation.conversation_id, conversation.version)

            stored = conversation.model_copy(
                deep=True,
                update={"version": current_version + 1, "updated_at": dt.datetime.now(dt.UTC)},
            )
            self._conversations[conversation.conversation_id] = stored
            return stored.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._conversations)

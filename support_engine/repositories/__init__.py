"""
Repositories Layer
Conversation persistence behind an optimistic-concurrency store contract.
"""
from .base import ConversationStore, ConversationNotFoundError, WriteConflictError
from .memory import InMemoryConversationStore
from .conversations import MongoConversationStore
from .connection import db_manager, get_database, DatabaseManager

__all__ = [
    "ConversationStore",
    "ConversationNotFoundError",
    "WriteConflictError",
    "InMemoryConversationStore",
    "MongoConversationStore",
    "db_manager",
    "get_database",
    "DatabaseManager",
]

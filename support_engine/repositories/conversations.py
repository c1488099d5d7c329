"""
Conversation Repository
MongoDB-backed ConversationStore with version-checked writes.
"""
import datetime as dt
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from .base import WriteConflictError
from ..models.conversation import Conversation
from ..utils.observability import logger


class MongoConversationStore:
    """
    Repository for Conversation persistence.

    Every write is a single-document operation filtered on the expected
    version, so an escalation record is either fully stored or not at all.
    A unique index on conversation_id (see DatabaseManager.create_indexes)
    turns racing first writes into conflicts.
    """

    def __init__(self, database: AsyncIOMotorDatabase, collection_name: str = "conversations"):
        """Initialize store with database connection."""
        self.collection: AsyncIOMotorCollection = database[collection_name]
        self.collection_name = collection_name

    async def read(self, conversation_id: str) -> Optional[Conversation]:
        """
        Retrieve a conversation by its external id.

        Args:
            conversation_id: External conversation reference

        Returns:
            Conversation instance or None if not found
        """
        doc = await self.collection.find_one({"conversation_id": conversation_id})
        if doc is None:
            return None
        return self._to_model(doc)

    async def write(self, conversation: Conversation) -> Conversation:
        """
        Compare-and-set write on `version`.

        Args:
            conversation: State read at `conversation.version`

        Returns:
            The stored conversation with its version bumped

        Raises:
            WriteConflictError: If another writer got there first
        """
        expected = conversation.version
        now = dt.datetime.now(dt.UTC)
        stored = conversation.model_copy(update={"version": expected + 1, "updated_at": now})

        doc_dict = stored.model_dump(by_alias=True, exclude={"id"})

        if expected == 0:
            try:
                result = await self.collection.insert_one(doc_dict)
            except DuplicateKeyError as e:
                raise WriteConflictError(conversation.conversation_id, expected) from e
            stored.id = str(result.inserted_id)
        else:
            result = await self.collection.update_one(
                {"conversation_id": conversation.conversation_id, "version": expected},
                {"$set": doc_dict}
            )
            if result.matched_count == 0:
                raise WriteConflictError(conversation.conversation_id, expected)

        logger.debug(
            f"Wrote conversation {conversation.conversation_id} in {self.collection_name}",
            extra={"version": stored.version}
        )
        return stored

    def _to_model(self, doc: Dict[str, Any]) -> Conversation:
        """
        Convert MongoDB document to a Conversation.

        Unknown keys are dropped so older documents still validate.
        """
        if "_id" in doc:
            doc["_id"] = str(doc["_id"])

        model_fields = Conversation.model_fields.keys()
        cleaned_doc = {
            k: v for k, v in doc.items()
            if k in model_fields or k == "_id"
        }
        return Conversation.model_validate(cleaned_doc)

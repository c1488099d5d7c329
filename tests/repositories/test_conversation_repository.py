"""
Conversation Repository Tests
Version-checked MongoDB writes against a mocked Motor collection.
"""
import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError
from unittest.mock import AsyncMock, MagicMock

from support_engine.models.conversation import Conversation
from support_engine.repositories import MongoConversationStore, WriteConflictError


# --- FIXTURES ---

@pytest.fixture
def collection():
    """Provide a mocked Motor collection."""
    mock = MagicMock()
    mock.find_one = AsyncMock(return_value=None)
    mock.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    mock.update_one = AsyncMock(return_value=MagicMock(matched_count=1))
    return mock


@pytest.fixture
def repo(collection) -> MongoConversationStore:
    database = MagicMock()
    database.__getitem__.return_value = collection
    return MongoConversationStore(database)


class TestRead:
    """Test document loading."""

    async def test_missing(self, repo: MongoConversationStore, collection):
        """Should return None when no document matches."""
        assert await repo.read("c1") is None
        collection.find_one.assert_awaited_once_with({"conversation_id": "c1"})

    async def test_unknown_keys_dropped(self, repo: MongoConversationStore, collection):
        """Should convert _id and ignore keys the model does not know."""
        oid = ObjectId()
        collection.find_one = AsyncMock(return_value={
            "_id": oid,
            "conversation_id": "c1",
            "turn_count": 2,
            "version": 3,
            "legacy_field": "x",
        })

        convo = await repo.read("c1")

        assert convo.id == str(oid)
        assert convo.turn_count == 2
        assert convo.version == 3


class TestWrite:
    """Test compare-and-set writes."""

    async def test_first_write_inserts(self, repo: MongoConversationStore, collection):
        """Should insert a never-persisted conversation."""
        stored = await repo.write(Conversation(conversation_id="c1"))

        collection.insert_one.assert_awaited_once()
        doc = collection.insert_one.await_args.args[0]
        assert doc["conversation_id"] == "c1"
        assert doc["version"] == 1
        assert "_id" not in doc
        assert stored.version == 1
        assert stored.id == str(collection.insert_one.return_value.inserted_id)

    async def test_duplicate_insert_conflicts(self, repo: MongoConversationStore, collection):
        """Should map a duplicate key on first write to a write conflict."""
        collection.insert_one = AsyncMock(side_effect=DuplicateKeyError("duplicate conversation_id"))

        with pytest.raises(WriteConflictError):
            await repo.write(Conversation(conversation_id="c1"))

    async def test_update_filters_on_version(self, repo: MongoConversationStore, collection):
        """Should update only the document at the expected version."""
        stored = await repo.write(Conversation(conversation_id="c1", version=2, turn_count=3))

        filter_, update = collection.update_one.await_args.args
        assert filter_ == {"conversation_id": "c1", "version": 2}
        assert update["$set"]["version"] == 3
        assert update["$set"]["turn_count"] == 3
        assert stored.version == 3

    async def test_stale_update_conflicts(self, repo: MongoConversationStore, collection):
        """Should raise when no document matched the expected version."""
        collection.update_one = AsyncMock(return_value=MagicMock(matched_count=0))

        with pytest.raises(WriteConflictError) as exc_info:
            await repo.write(Conversation(conversation_id="c1", version=2))

        assert exc_info.value.expected_version == 2

import os

os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from unittest.mock import AsyncMock

from support_engine.config import Settings
from support_engine.models.conversation import Conversation
from support_engine.models.escalation import NotificationResult
from support_engine.repositories.memory import InMemoryConversationStore
from support_engine.services.escalation_arbiter import EscalationArbiter
from support_engine.services.needs_miner import NeedsMiner
from support_engine.services.sentiment_classifier import SentimentClassifier
from support_engine.services.state_tracker import ConversationStateTracker
from support_engine.core.turn_processor import TurnProcessor


@pytest.fixture
def test_settings() -> Settings:
    """Settings with instant retries and no external channels."""
    return Settings(
        environment="test",
        slack_webhook_url=None,
        slack_webhook_urls={},
        retry_min_wait_seconds=0,
        retry_max_wait_seconds=0,
        notifier_max_attempts=2,
        store_max_write_attempts=3,
        enable_keyword_refinement=False,
    )


@pytest.fixture
def tracker(test_settings) -> ConversationStateTracker:
    return ConversationStateTracker(settings=test_settings)


@pytest.fixture
def classifier(test_settings) -> SentimentClassifier:
    return SentimentClassifier(test_settings)


@pytest.fixture
def miner() -> NeedsMiner:
    return NeedsMiner()


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def mock_notifier():
    """Notifier double that always succeeds."""
    notifier = AsyncMock()
    notifier.notify = AsyncMock(return_value=NotificationResult(success=True))
    return notifier


@pytest.fixture
def arbiter(classifier, miner, tracker, store, mock_notifier, test_settings) -> EscalationArbiter:
    return EscalationArbiter(
        classifier=classifier,
        miner=miner,
        tracker=tracker,
        store=store,
        notifier=mock_notifier,
        settings=test_settings,
    )


@pytest.fixture
def processor(arbiter, store, test_settings) -> TurnProcessor:
    return TurnProcessor(arbiter=arbiter, store=store, settings=test_settings)


@pytest.fixture
def new_conversation() -> Conversation:
    """Returns a clean, never-persisted Conversation."""
    return Conversation(conversation_id="conv-test-1")


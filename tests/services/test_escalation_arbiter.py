"""
Tests for the escalation arbiter.
Verifies triggers, priority floors, idempotent commits, notification
handling and compare-and-set conflict resolution.
"""
import asyncio
import datetime as dt

import pytest
from unittest.mock import AsyncMock

from support_engine.models.conversation import Conversation, ConversationStatus
from support_engine.models.escalation import EscalationRecord, EscalationTrigger, NotificationResult
from support_engine.models.priority import EscalationPriority
from support_engine.repositories.base import ConversationNotFoundError, WriteConflictError
from support_engine.services.escalation_arbiter import (
    EscalationArbiter,
    EscalationConflictError,
    generate_escalation_id,
)


# --- FIXTURES ---

@pytest.fixture
def build(tracker, new_conversation):
    """Apply a sequence of user messages to a fresh conversation."""
    def _build(*messages: str) -> Conversation:
        convo = new_conversation
        for message in messages:
            convo = tracker.update(convo, message)
        return convo
    return _build


@pytest.fixture
def persisted(store, build):
    """Store a conversation and return the stored copy."""
    async def _persist(*messages: str) -> Conversation:
        return await store.write(build(*messages))
    return _persist


class TestAssess:
    """Test suite for the pure decision."""

    def test_no_trigger(self, arbiter, build):
        """Verifies a calm first turn does not escalate."""
        decision = arbiter.assess(build("こんにちは"))

        assert decision.required is False
        assert decision.reasons == []
        assert decision.priority == EscalationPriority.LOW

    def test_turn_limit(self, arbiter, build):
        """Verifies the fifth user turn forces a hand-off."""
        convo = build(*["よろしくお願いします"] * 5)

        decision = arbiter.assess(convo)

        assert decision.required is True
        assert decision.reasons == ["turn limit reached (5)"]
        assert decision.triggers == [EscalationTrigger.TURN_LIMIT]
        assert decision.priority == EscalationPriority.LOW

    def test_fields_complete_with_budget_floor(self, arbiter, build):
        """Verifies completion escalates and a large budget lifts priority to medium."""
        convo = build("アパレルのECサイトを運営しています。月額200万円の予算で、Shopifyを使っています")

        decision = arbiter.assess(convo)

        assert decision.required is True
        assert decision.reasons == ["fields complete"]
        assert decision.triggers == [EscalationTrigger.FIELDS_COMPLETE]
        assert decision.priority == EscalationPriority.MEDIUM

    def test_small_budget_stays_low(self, arbiter, build):
        """Verifies budgets under the threshold keep low priority."""
        convo = build("アパレルのECサイトを運営しています。月額50万円の予算で、Shopifyを使っています")

        assert arbiter.assess(convo).priority == EscalationPriority.LOW

    def test_decimal_budget_keeps_medium_floor(self, arbiter, build):
        """Verifies a decimal budget over the threshold still lifts priority to medium."""
        convo = build("アパレルのECサイトを運営しています。月額150.5万円の予算で、Shopifyを使っています")

        assert convo.collected_fields["budget_range"] == "月額150.5万円"
        assert arbiter.assess(convo).priority == EscalationPriority.MEDIUM

    def test_urgency_is_urgent(self, arbiter, build):
        """Verifies latched urgency escalates at urgent priority."""
        decision = arbiter.assess(build("至急対応お願いします"))

        assert decision.required is True
        assert decision.reasons[0] == "urgency keywords detected"
        assert EscalationTrigger.URGENCY in decision.triggers
        assert decision.priority == EscalationPriority.URGENT

    def test_sentiment_reasons_are_included(self, arbiter, build):
        """Verifies the sentiment signal's reasons and floor are carried over."""
        decision = arbiter.assess(build("困っています", "困っています"))

        assert decision.required is True
        assert decision.triggers == [EscalationTrigger.SENTIMENT]
        assert any("threshold" in r for r in decision.reasons)
        assert decision.priority == EscalationPriority.HIGH

    def test_already_escalated(self, arbiter, build):
        """Verifies an escalated conversation short-circuits."""
        convo = build("至急対応お願いします")
        convo.escalation = _record()

        decision = arbiter.assess(convo)

        assert decision.required is False
        assert decision.already_escalated is True


class TestEvaluate:
    """Test suite for evaluate-and-commit."""

    async def test_no_escalation_writes_nothing(self, arbiter, build, store, mock_notifier):
        """Verifies nothing is stored or sent when no trigger holds."""
        decision = await arbiter.evaluate(build("こんにちは"))

        assert decision.required is False
        assert len(store) == 0
        mock_notifier.notify.assert_not_awaited()

    async def test_urgent_escalation_is_committed_and_routed(self, arbiter, build, store, mock_notifier):
        """Verifies the record is stored and sent to the primary and on-call channels."""
        decision = await arbiter.evaluate(build("至急対応お願いします"))

        assert decision.required is True
        assert decision.priority == EscalationPriority.URGENT
        assert decision.escalation_id.startswith("ESC-")
        assert decision.channel == "#general-support"
        assert decision.notify_channels == ["#urgent-support"]
        assert decision.notify_users == ["@oncall"]
        assert decision.warnings == []

        stored = await store.read("conv-test-1")
        assert stored.escalation.id == decision.escalation_id
        assert stored.status == ConversationStatus.ESCALATED

        channels = [call.args[0] for call in mock_notifier.notify.await_args_list]
        assert channels == ["#general-support", "#urgent-support"]
        payload = mock_notifier.notify.await_args_list[0].args[1]
        assert payload.escalation_id == decision.escalation_id
        assert payload.mentions == ["@oncall"]
        assert payload.category == "general"

    async def test_fields_complete_marks_completed(self, arbiter, build, store, mock_notifier):
        """Verifies a routine hand-off routes to the category channel only."""
        decision = await arbiter.evaluate(
            build("アパレルのECサイトを運営しています。月額200万円の予算で、Shopifyを使っています")
        )

        assert decision.channel == "#marketing"
        assert decision.notify_channels == []
        mock_notifier.notify.assert_awaited_once()

        stored = await store.read("conv-test-1")
        assert stored.status == ConversationStatus.COMPLETED

    async def test_idempotent(self, arbiter, persisted, store, mock_notifier):
        """Verifies a second evaluation is a no-op."""
        convo = await persisted("至急対応お願いします")

        first = await arbiter.evaluate(convo)
        stored = await store.read(convo.conversation_id)
        second = await arbiter.evaluate(stored)

        assert first.required is True
        assert second.required is False
        assert second.already_escalated is True
        assert mock_notifier.notify.await_count == 2  # primary + urgent, first time only
        assert (await store.read(convo.conversation_id)).escalation.id == first.escalation_id

    async def test_notification_failure_keeps_escalation(self, arbiter, build, store, mock_notifier):
        """Verifies failed delivery becomes a warning and never rolls back."""
        mock_notifier.notify = AsyncMock(return_value=NotificationResult(success=False, error="boom"))

        decision = await arbiter.evaluate(build(*["よろしくお願いします"] * 5))

        assert decision.required is True
        assert decision.warnings == ["notification to #general-support failed: boom"]
        assert (await store.read("conv-test-1")).escalation is not None

    async def test_notifier_exception_becomes_warning(self, arbiter, build, store, mock_notifier):
        """Verifies a raising notifier is contained."""
        mock_notifier.notify = AsyncMock(side_effect=RuntimeError("socket closed"))

        decision = await arbiter.evaluate(build("至急対応お願いします"))

        assert decision.required is True
        assert len(decision.warnings) == 2
        assert "socket closed" in decision.warnings[0]
        assert (await store.read("conv-test-1")).is_escalated

    async def test_stale_copy_raises_conflict(self, arbiter, persisted):
        """Verifies a loser of the compare-and-set race gets WriteConflictError."""
        convo = await persisted("至急対応お願いします")
        stale = convo.model_copy(deep=True)

        await arbiter.evaluate(convo)

        with pytest.raises(WriteConflictError):
            await arbiter.evaluate(stale)


class TestEvaluateById:
    """Test suite for store-driven evaluation with conflict retries."""

    async def test_unknown_conversation(self, arbiter):
        """Verifies a missing conversation raises ConversationNotFoundError."""
        with pytest.raises(ConversationNotFoundError):
            await arbiter.evaluate_by_id("missing")

    async def test_concurrent_evaluations_escalate_once(self, arbiter, persisted, mock_notifier):
        """Verifies exactly one of two concurrent evaluations commits."""
        await persisted("至急対応お願いします")

        results = await asyncio.gather(
            arbiter.evaluate_by_id("conv-test-1"),
            arbiter.evaluate_by_id("conv-test-1"),
        )

        assert sorted(r.required for r in results) == [False, True]
        assert sum(1 for r in results if r.already_escalated) == 1
        assert mock_notifier.notify.await_count == 2

    async def test_conflict_loser_sees_winner(self, arbiter, persisted, store):
        """Verifies a re-read after a conflict returns already_escalated."""
        convo = await persisted("至急対応お願いします")
        real_read = store.read
        reads = 0

        async def read_then_race(conversation_id):
            nonlocal reads
            reads += 1
            current = await real_read(conversation_id)
            if reads == 1:
                # Another writer escalates right after our read
                await store.write(current.model_copy(update={"escalation": _record()}))
            return current

        store.read = read_then_race

        decision = await arbiter.evaluate_by_id(convo.conversation_id)

        assert decision.already_escalated is True
        assert reads == 2

    async def test_persistent_conflicts_exhaust_retries(self, test_settings, tracker, mock_notifier, build):
        """Verifies EscalationConflictError once the retry budget is spent."""
        convo = build(*["よろしくお願いします"] * 5)
        store = AsyncMock()
        store.read = AsyncMock(return_value=convo)
        store.write = AsyncMock(side_effect=WriteConflictError(convo.conversation_id, 0))
        arbiter = EscalationArbiter(tracker=tracker, store=store, notifier=mock_notifier, settings=test_settings)

        with pytest.raises(EscalationConflictError) as exc_info:
            await arbiter.evaluate_by_id(convo.conversation_id)

        assert exc_info.value.attempts == 3
        assert store.read.await_count == 3
        mock_notifier.notify.assert_not_awaited()


class TestEscalationId:
    """Test suite for escalation id generation."""

    def test_format(self):
        """Verifies the time-ordered prefix and random suffix."""
        escalation_id = generate_escalation_id(dt.datetime(2025, 1, 2, 3, 4, 5, tzinfo=dt.UTC))

        assert escalation_id.startswith("ESC-20250102-030405-")
        assert len(escalation_id.rsplit("-", 1)[1]) == 8

    def test_unique(self):
        """Verifies ids generated in the same second differ."""
        now = dt.datetime.now(dt.UTC)
        assert generate_escalation_id(now) != generate_escalation_id(now)


def _record() -> EscalationRecord:
    return EscalationRecord(
        id="ESC-20250101-000000-DEADBEEF",
        timestamp=dt.datetime(2025, 1, 1, tzinfo=dt.UTC),
        priority=EscalationPriority.HIGH,
        reasons=["manual"],
        channel="#general-support",
    )

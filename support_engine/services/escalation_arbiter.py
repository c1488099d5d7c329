"""
Escalation Arbiter
The decision point that hands conversations to humans.

Each evaluation consults the sentiment classifier, the needs miner and the
state tracker, combines their signals into one EscalationDecision, and on
escalation commits the record with a single compare-and-set write before
notifying. Notification is best-effort and never rolls back the commit.

State machine:
    NEW → COLLECTING → {ESCALATED | COMPLETED}

Escalation triggers (first turn on which any holds):
    - urgency latched by the tracker
    - turn_count reached the cap
    - every essential field collected
    - the sentiment escalation signal fired
"""
import datetime as dt
import secrets
import time
from typing import List, Optional, Tuple

from loguru import logger

from support_engine.agents.keyword_refiner_agent import get_keyword_refiner
from support_engine.config import Settings, get_settings
from support_engine.models.conversation import Conversation
from support_engine.models.escalation import (
    EscalationDecision,
    EscalationRecord,
    EscalationTrigger,
    NotificationPayload,
)
from support_engine.models.needs import NeedCandidate
from support_engine.models.priority import EscalationPriority
from support_engine.models.sentiment import ConversationSentiment
from support_engine.repositories.base import (
    ConversationNotFoundError,
    ConversationStore,
    WriteConflictError,
)
from support_engine.repositories.memory import InMemoryConversationStore
from support_engine.services import field_extractor
from support_engine.services.needs_miner import NeedsMiner
from support_engine.services.notifier import Notifier, get_notifier
from support_engine.services.sentiment_classifier import SentimentClassifier
from support_engine.services.state_tracker import ConversationStateTracker
from support_engine.utils.observability import log_business_event, log_component_execution

FIELDS_COMPLETE_REASON = "fields complete"
URGENCY_REASON = "urgency keywords detected"


class EscalationConflictError(Exception):
    """
    Raised when store write conflicts persist past the retry budget.

    Recoverable: the stored conversation is intact and the caller may retry.
    """

    def __init__(self, conversation_id: str, attempts: int):
        self.conversation_id = conversation_id
        self.attempts = attempts
        super().__init__(
            f"Conversation {conversation_id} kept conflicting after {attempts} write attempts"
        )


def generate_escalation_id(now: Optional[dt.datetime] = None) -> str:
    """
    Time-ordered, human-auditable escalation id.

    Example:
        >>> generate_escalation_id(dt.datetime(2025, 1, 2, 3, 4, 5))[:20]
        'ESC-20250102-030405-'
    """
    now = now or dt.datetime.now(dt.UTC)
    return f"ESC-{now:%Y%m%d-%H%M%S}-{secrets.token_hex(4).upper()}"


class EscalationArbiter:
    """
    Produces one idempotent escalation decision per evaluation.

    Usage:
        >>> arbiter = EscalationArbiter(store=store, notifier=notifier)
        >>> decision = await arbiter.evaluate(conversation)
        >>> if decision.required:
        ...     print(decision.escalation_id, decision.priority)
    """

    def __init__(
        self,
        classifier: SentimentClassifier | None = None,
        miner: NeedsMiner | None = None,
        tracker: ConversationStateTracker | None = None,
        store: ConversationStore | None = None,
        notifier: Notifier | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the arbiter with its collaborators.

        Args:
            classifier: SentimentClassifier (creates new if None)
            miner: NeedsMiner (creates new if None, with the LLM refiner when enabled)
            tracker: ConversationStateTracker (creates new if None)
            store: ConversationStore (in-memory if None)
            notifier: Notifier (Slack when configured, else log-only)
            settings: Settings override
        """
        self.settings = settings or get_settings()
        self.classifier = classifier or SentimentClassifier(self.settings)
        self.miner = miner or NeedsMiner(refiner=get_keyword_refiner())
        self.tracker = tracker or ConversationStateTracker(settings=self.settings)
        self.store = store or InMemoryConversationStore()
        self.notifier = notifier or get_notifier(self.settings)

    # ------------------------------------------------------------------
    # Pure assessment
    # ------------------------------------------------------------------

    def assess(
        self,
        conversation: Conversation,
        sentiment: Optional[ConversationSentiment] = None,
        needs: Optional[List[NeedCandidate]] = None,
    ) -> EscalationDecision:
        """
        Decide without committing anything.

        Priority is the maximum of the sentiment floor, the budget floor and
        `urgent` when urgency is latched; a weaker signal never lowers it.
        """
        if conversation.is_escalated:
            return EscalationDecision.already_done()

        sentiment = sentiment or self.classifier.analyze_conversation(conversation.turns)
        needs = needs if needs is not None else self.miner.mine(conversation.turns)

        reasons: List[str] = []
        triggers: List[EscalationTrigger] = []
        floors: List[EscalationPriority] = []

        if conversation.urgency:
            reasons.append(URGENCY_REASON)
            triggers.append(EscalationTrigger.URGENCY)
            floors.append(EscalationPriority.URGENT)

        if conversation.turn_count >= self.tracker.max_user_turns:
            reasons.append(f"turn limit reached ({self.tracker.max_user_turns})")
            triggers.append(EscalationTrigger.TURN_LIMIT)

        if self.tracker.is_complete(conversation):
            reasons.append(FIELDS_COMPLETE_REASON)
            triggers.append(EscalationTrigger.FIELDS_COMPLETE)

        signal = sentiment.escalation_signal
        if signal.required:
            reasons.extend(signal.reasons)
            triggers.append(EscalationTrigger.SENTIMENT)
            floors.append(signal.priority)

        floors.append(self._budget_floor(conversation))
        priority = EscalationPriority.highest(*floors)

        return EscalationDecision(
            required=bool(triggers),
            reasons=reasons,
            priority=priority,
            triggers=triggers,
            sentiment=sentiment,
            needs=needs,
        )

    def _budget_floor(self, conversation: Conversation) -> EscalationPriority:
        budget = field_extractor.budget_in_man_yen(conversation.collected_fields.get("budget_range"))
        if budget is not None and budget >= self.settings.budget_priority_threshold_man_yen:
            return EscalationPriority.MEDIUM
        return EscalationPriority.LOW

    # ------------------------------------------------------------------
    # Evaluate + commit
    # ------------------------------------------------------------------

    async def evaluate(self, conversation: Conversation) -> EscalationDecision:
        """
        Evaluate and, when required, commit and notify.

        An already-escalated conversation yields `already_escalated=True`
        with no side effects.

        Raises:
            WriteConflictError: If the commit lost a compare-and-set race
        """
        decision, _ = await self.arbitrate(conversation)
        return decision

    async def arbitrate(self, conversation: Conversation) -> Tuple[EscalationDecision, Conversation]:
        """
        Like `evaluate`, also returning the conversation as stored after the
        commit (or the input unchanged when nothing was written).
        """
        start_time = time.time()

        if conversation.is_escalated:
            logger.debug(f"Conversation {conversation.conversation_id} already escalated, no-op")
            return EscalationDecision.already_done(), conversation

        decision = self.assess(conversation)
        if not decision.required:
            log_component_execution(
                component="EscalationArbiter",
                conversation_id=conversation.conversation_id,
                action="evaluate",
                duration_ms=(time.time() - start_time) * 1000,
                required=False,
                turn_count=conversation.turn_count,
            )
            return decision, conversation

        schema = self.tracker.schema_for(conversation)
        notify_channels: List[str] = []
        notify_users: List[str] = []
        if decision.priority.needs_oncall:
            notify_channels.append(self.settings.urgent_notify_channel)
            notify_users.append(self.settings.oncall_mention)

        now = dt.datetime.now(dt.UTC)
        record = EscalationRecord(
            id=generate_escalation_id(now),
            timestamp=now,
            priority=decision.priority,
            reasons=decision.reasons,
            triggers=decision.triggers,
            channel=schema.channel,
            notify_channels=notify_channels,
            notify_users=notify_users,
        )

        # Single CAS write: the record is stored whole or not at all
        stored = await self.store.write(
            conversation.model_copy(deep=True, update={"escalation": record, "updated_at": now})
        )

        log_business_event(
            "escalation_committed",
            conversation.conversation_id,
            escalation_id=record.id,
            priority=record.priority,
            channel=record.channel,
            triggers=[t.value for t in record.triggers],
        )

        decision = decision.model_copy(
            update={
                "escalation_id": record.id,
                "channel": record.channel,
                "notify_channels": notify_channels,
                "notify_users": notify_users,
                "warnings": await self._dispatch(stored, record, decision.needs),
            }
        )

        log_component_execution(
            component="EscalationArbiter",
            conversation_id=conversation.conversation_id,
            action="evaluate",
            duration_ms=(time.time() - start_time) * 1000,
            required=True,
            priority=record.priority,
            escalation_id=record.id,
        )
        return decision, stored

    async def _dispatch(
        self,
        conversation: Conversation,
        record: EscalationRecord,
        needs: List[NeedCandidate],
    ) -> List[str]:
        """Notify every routing target; failures become warnings."""
        payload = NotificationPayload(
            escalation_id=record.id,
            priority=record.priority,
            category=str(conversation.category or "general"),
            collected_fields=dict(conversation.collected_fields),
            reasons=record.reasons,
            conversation_ref=conversation.conversation_id,
            mentions=record.notify_users,
            needs=needs,
        )

        warnings: List[str] = []
        for channel in [record.channel, *record.notify_channels]:
            try:
                result = await self.notifier.notify(channel, payload)
            except Exception as e:
                logger.error(f"Notifier raised for {channel}: {e}")
                warnings.append(f"notification to {channel} failed: {e}")
                continue

            if not result.success:
                warnings.append(f"notification to {channel} failed: {result.error or 'unknown error'}")

        if warnings:
            log_business_event(
                "notification_failed",
                conversation.conversation_id,
                escalation_id=record.id,
                warnings=warnings,
            )
        return warnings

    async def evaluate_by_id(self, conversation_id: str) -> EscalationDecision:
        """
        Evaluate the stored conversation, re-reading after each conflict.

        A writer that loses the race to another escalation sees the winner's
        record on re-read and returns `already_escalated=True`.

        Raises:
            ConversationNotFoundError: If the store has no such conversation
            EscalationConflictError: If conflicts outlast the retry budget
        """
        attempts = max(1, self.settings.store_max_write_attempts)

        for attempt in range(1, attempts + 1):
            conversation = await self.store.read(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(f"Conversation {conversation_id} not found")

            try:
                return await self.evaluate(conversation)
            except WriteConflictError:
                logger.warning(
                    f"⚠️ Write conflict evaluating {conversation_id} "
                    f"(attempt {attempt}/{attempts}), re-reading"
                )

        raise EscalationConflictError(conversation_id, attempts)

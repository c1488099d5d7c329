"""
Turn Processor
The public turn-ingestion entry point that drives one conversation turn
through the engine.

Architecture:
    Inbound Turn → StateTracker → EscalationArbiter (Sentiment + Needs) → Store → TurnResult
"""
import asyncio
import time
import weakref
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from support_engine.config import Settings, get_settings
from support_engine.models.conversation import Category, Conversation, FieldValue, TurnRole
from support_engine.models.escalation import EscalationDecision
from support_engine.models.needs import NeedCandidate
from support_engine.models.sentiment import ConversationSentiment
from support_engine.repositories import (
    ConversationStore,
    InMemoryConversationStore,
    MongoConversationStore,
    WriteConflictError,
    db_manager,
)
from support_engine.services.escalation_arbiter import EscalationArbiter, EscalationConflictError
from support_engine.services.needs_miner import NeedsMiner
from support_engine.services.response_composer import ResponseComposer, TemplateResponseComposer
from support_engine.utils.observability import log_component_execution


@dataclass
class TurnResult:
    """
    Everything a transport layer needs after one turn.
    Contains the intermediate signals for observability and debugging.
    """
    conversation_id: str
    category: Optional[Category]
    collected_fields: Dict[str, FieldValue]

    # Exactly one of these is set on user turns
    next_question: Optional[str]
    summary: Optional[str]

    continue_conversation: bool
    escalation: EscalationDecision

    # Acknowledgement plus question or summary, ready to send
    reply: str = ""
    completion_rate: int = 0
    required_fields: List[str] = field(default_factory=list)

    sentiment: Optional[ConversationSentiment] = None
    needs: List[NeedCandidate] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    # Metadata
    conversation: Optional[Conversation] = None
    total_duration_ms: float = 0.0


class TurnProcessor:
    """
    Serializes and applies turns per conversation.

    Responsibilities:
    1. Serialize turns of the same conversation (per-conversation lock)
    2. Apply the turn through the state tracker
    3. Let the arbiter decide and commit escalations
    4. Persist with compare-and-set, retrying from a fresh read on conflict

    Usage:
        >>> processor = TurnProcessor()
        >>> result = await processor.process_turn("conv-1", "user", "至急対応お願いします")
        >>> result.escalation.priority
        <EscalationPriority.URGENT: 'urgent'>
    """

    def __init__(
        self,
        arbiter: EscalationArbiter | None = None,
        store: ConversationStore | None = None,
        composer: ResponseComposer | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the processor.

        Args:
            arbiter: EscalationArbiter (creates new if None)
            store: ConversationStore shared with the arbiter (in-memory if None)
            composer: Reply composer (template-based if None)
            settings: Settings override
        """
        self.settings = settings or get_settings()
        self.store = store or (arbiter.store if arbiter else InMemoryConversationStore())
        self.arbiter = arbiter or EscalationArbiter(store=self.store, settings=self.settings)
        self.arbiter.store = self.store
        self.composer = composer or TemplateResponseComposer()

        # Entries vanish once no turn holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

        logger.info("Turn Processor initialized")

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    @property
    def tracker(self):
        return self.arbiter.tracker

    @property
    def miner(self) -> NeedsMiner:
        return self.arbiter.miner

    async def initialize(self) -> None:
        """
        Switch to MongoDB persistence.

        Must be called before processing turns in production. Without it the
        processor keeps its in-memory store.
        """
        logger.info("Initializing TurnProcessor with MongoDB persistence")

        await db_manager.connect()
        await db_manager.create_indexes()

        self.store = MongoConversationStore(db_manager.database)
        self.arbiter.store = self.store

        logger.info("✅ TurnProcessor initialized with persistence layer")

    async def shutdown(self) -> None:
        """Gracefully shut down the MongoDB connection."""
        logger.info("Shutting down TurnProcessor")
        await db_manager.disconnect()
        logger.info("✅ TurnProcessor shutdown complete")

    async def process_turn(self, conversation_id: str, role: TurnRole | str, text: str) -> TurnResult:
        """
        Ingest one turn.

        User turns increment turn_count, extract fields and are evaluated for
        escalation. Assistant turns are only appended.

        Args:
            conversation_id: External conversation reference
            role: "user" or "assistant"
            text: Message content

        Returns:
            TurnResult for the turn

        Raises:
            EscalationConflictError: If store conflicts outlast the retry budget
        """
        start_time = time.time()
        role = TurnRole(role)
        attempts = max(1, self.settings.store_max_write_attempts)

        async with self._lock_for(conversation_id):
            for attempt in range(1, attempts + 1):
                current = await self.store.read(conversation_id) or Conversation(conversation_id=conversation_id)

                try:
                    if role == TurnRole.USER:
                        result = await self._apply_user_turn(current, text)
                    else:
                        result = await self._apply_assistant_turn(current, text)
                except WriteConflictError:
                    logger.warning(
                        f"⚠️ Write conflict on {conversation_id} (attempt {attempt}/{attempts}), re-reading"
                    )
                    continue

                result.total_duration_ms = (time.time() - start_time) * 1000
                log_component_execution(
                    component="TurnProcessor",
                    conversation_id=conversation_id,
                    action="process_turn",
                    duration_ms=result.total_duration_ms,
                    role=role,
                    category=result.category,
                    turn_count=result.conversation.turn_count if result.conversation else 0,
                    escalated=result.escalation.required,
                )
                return result

        raise EscalationConflictError(conversation_id, attempts)

    async def _apply_user_turn(self, current: Conversation, text: str) -> TurnResult:
        updated = self.tracker.update(current, text)

        decision, stored = await self.arbiter.arbitrate(updated)
        if decision.escalation_id is None:
            stored = await self.store.write(updated)

        sentiment = decision.sentiment or self.arbiter.classifier.analyze_conversation(stored.turns)
        needs = decision.needs if decision.sentiment is not None else self.miner.mine(stored.turns)
        keywords = await self.miner.keywords_for(stored.user_turns)

        schema = self.tracker.schema_for(stored)
        continue_conversation = self.tracker.should_continue(stored)
        acknowledgement = self.composer.acknowledgement(current.collected_fields, stored.collected_fields)

        missing = self.tracker.next_missing_essential_field(stored) if continue_conversation else None
        text = self.composer.compose(schema, stored.collected_fields, missing)
        next_question: Optional[str] = text if missing else None
        summary: Optional[str] = None if missing else text

        return TurnResult(
            conversation_id=stored.conversation_id,
            category=stored.category,
            collected_fields=dict(stored.collected_fields),
            next_question=next_question,
            summary=summary,
            continue_conversation=continue_conversation,
            escalation=decision,
            reply=acknowledgement + (next_question or summary or ""),
            completion_rate=self.tracker.completion_rate(stored),
            required_fields=self.tracker.required_fields(stored),
            sentiment=sentiment,
            needs=needs,
            keywords=keywords,
            conversation=stored,
        )

    async def _apply_assistant_turn(self, current: Conversation, text: str) -> TurnResult:
        stored = await self.store.write(self.tracker.record_assistant_turn(current, text))
        escalation = (
            EscalationDecision.already_done() if stored.is_escalated else EscalationDecision(required=False)
        )
        return TurnResult(
            conversation_id=stored.conversation_id,
            category=stored.category,
            collected_fields=dict(stored.collected_fields),
            next_question=None,
            summary=None,
            continue_conversation=self.tracker.should_continue(stored),
            escalation=escalation,
            completion_rate=self.tracker.completion_rate(stored),
            required_fields=self.tracker.required_fields(stored),
            conversation=stored,
        )

"""
Conversation State Tracker
Per-conversation collection state: category, collected fields, turn count
and urgency, driven by the category schema configuration.

All operations are pure: `update` returns a new Conversation and never
mutates its input.
"""
import datetime as dt
from typing import Dict, List, Optional

from loguru import logger

from support_engine.config import Settings, get_settings
from support_engine.models.conversation import (
    Category,
    Conversation,
    FieldValue,
    Turn,
    TurnRole,
    has_value,
    merge_fields,
)
from support_engine.models.schema import CategorySchema, SchemaRegistry, load_schema_registry
from support_engine.services import field_extractor


class ConversationStateTracker:
    """
    Drives the structured information-collection flow.

    Usage:
        >>> tracker = ConversationStateTracker()
        >>> convo = tracker.update(Conversation(conversation_id="c1"), "月額200万円の予算でSEO対策を検討しています")
        >>> convo.collected_fields["budget_range"]
        '月額200万円'
    """

    def __init__(
        self,
        schemas: Optional[SchemaRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self.schemas = schemas or load_schema_registry(self._settings.category_schema_path)

    @property
    def max_user_turns(self) -> int:
        return self._settings.max_user_turns

    def schema_for(self, conversation: Conversation) -> CategorySchema:
        return self.schemas.for_category(conversation.category)

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def categorize(self, first_message: Optional[str]) -> Category:
        return field_extractor.categorize(first_message)

    def extract_fields(self, text: Optional[str], category: Optional[Category]) -> Dict[str, FieldValue]:
        """Fields the category's schema knows about, found in `text`."""
        schema = self.schemas.for_category(category)
        return field_extractor.extract(text, schema.extractable_fields)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def update(
        self,
        conversation: Conversation,
        text: str,
        timestamp: Optional[dt.datetime] = None,
    ) -> Conversation:
        """
        Apply one inbound user turn.

        Appends the turn, increments turn_count by exactly one, upserts any
        extracted fields and latches urgency. The category is fixed by the
        first user message.
        """
        updated = conversation.model_copy(deep=True)
        if updated.category is None:
            updated.category = self.categorize(text)

        turn = Turn(role=TurnRole.USER, content=text or "")
        if timestamp is not None:
            turn.timestamp = timestamp
        updated.turns.append(turn)
        updated.turn_count += 1

        extracted = self.extract_fields(text, updated.category)
        updated.collected_fields = merge_fields(updated.collected_fields, extracted)

        if not updated.urgency and field_extractor.is_urgent(text):
            updated.urgency = True
            logger.info(f"🚨 Urgency detected in {updated.conversation_id} on turn {updated.turn_count}")

        updated.updated_at = dt.datetime.now(dt.UTC)

        logger.debug(
            f"Tracker update {updated.conversation_id}: turn={updated.turn_count}, "
            f"category={updated.category}, extracted={list(extracted)}"
        )
        return updated

    def record_assistant_turn(self, conversation: Conversation, text: str) -> Conversation:
        """Append an assistant turn. Never touches turn_count or fields."""
        updated = conversation.model_copy(deep=True)
        updated.turns.append(Turn(role=TurnRole.ASSISTANT, content=text or ""))
        updated.updated_at = dt.datetime.now(dt.UTC)
        return updated

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def next_missing_essential_field(self, conversation: Conversation) -> Optional[str]:
        """
        First essential field, in priority order, without a value.

        None means every essential field is collected. Optional fields are
        never returned.
        """
        schema = self.schema_for(conversation)
        for name in schema.priority_order:
            if name in schema.essential and not has_value(conversation.collected_fields.get(name)):
                return name
        return None

    def is_complete(self, conversation: Conversation) -> bool:
        schema = self.schema_for(conversation)
        return all(has_value(conversation.collected_fields.get(name)) for name in schema.essential)

    def should_continue(self, conversation: Conversation) -> bool:
        """
        Whether another collection question should be asked.

        The turn cap wins over everything else.
        """
        if conversation.turn_count >= self.max_user_turns:
            return False
        if conversation.urgency or conversation.is_escalated:
            return False
        return not self.is_complete(conversation)

    def completion_rate(self, conversation: Conversation) -> int:
        """Percentage of essential fields collected, rounded."""
        schema = self.schema_for(conversation)
        collected = sum(1 for name in schema.essential if has_value(conversation.collected_fields.get(name)))
        return round(collected / len(schema.essential) * 100)

    def required_fields(self, conversation: Conversation) -> List[str]:
        """Missing essential fields, then missing optional fields."""
        schema = self.schema_for(conversation)
        return [
            name for name in [*schema.essential, *schema.optional]
            if not has_value(conversation.collected_fields.get(name))
        ]

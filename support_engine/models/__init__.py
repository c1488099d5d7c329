"""Domain models for the conversation intelligence engine."""
from support_engine.models.priority import EscalationPriority
from support_engine.models.sentiment import (
    SentimentCategory,
    SentimentScore,
    ConversationSentiment,
    EscalationSignal,
    TrendDirection,
)
from support_engine.models.needs import NeedCandidate, NeedType, NeedPriorityLevel
from support_engine.models.escalation import (
    EscalationDecision,
    EscalationRecord,
    EscalationTrigger,
    NotificationPayload,
    NotificationResult,
)
from support_engine.models.conversation import (
    Category,
    Conversation,
    ConversationStatus,
    FieldValue,
    Turn,
    TurnRole,
    has_value,
    merge_fields,
)
from support_engine.models.schema import (
    CategorySchema,
    SchemaRegistry,
    SchemaConfigurationError,
    load_schema_registry,
)
from support_engine.models.refinement import KeywordRefinement

__all__ = [
    "EscalationPriority",
    "SentimentCategory",
    "SentimentScore",
    "ConversationSentiment",
    "EscalationSignal",
    "TrendDirection",
    "NeedCandidate",
    "NeedType",
    "NeedPriorityLevel",
    "EscalationDecision",
    "EscalationRecord",
    "EscalationTrigger",
    "NotificationPayload",
    "NotificationResult",
    "Category",
    "Conversation",
    "ConversationStatus",
    "FieldValue",
    "Turn",
    "TurnRole",
    "has_value",
    "merge_fields",
    "CategorySchema",
    "SchemaRegistry",
    "SchemaConfigurationError",
    "load_schema_registry",
    "KeywordRefinement",
]

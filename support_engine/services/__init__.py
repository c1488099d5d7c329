"""Services package."""
from support_engine.services.sentiment_classifier import SentimentClassifier
from support_engine.services.needs_miner import NeedsMiner, KeywordRefiner
from support_engine.services.state_tracker import ConversationStateTracker
from support_engine.services.notifier import (
    Notifier,
    SlackNotifier,
    LogOnlyNotifier,
    get_notifier,
)
from support_engine.services.response_composer import ResponseComposer, TemplateResponseComposer
from support_engine.services.escalation_arbiter import (
    EscalationArbiter,
    EscalationConflictError,
    generate_escalation_id,
)

__all__ = [
    "SentimentClassifier",
    "NeedsMiner",
    "KeywordRefiner",
    "ConversationStateTracker",
    "Notifier",
    "SlackNotifier",
    "LogOnlyNotifier",
    "get_notifier",
    "ResponseComposer",
    "TemplateResponseComposer",
    "EscalationArbiter",
    "EscalationConflictError",
    "generate_escalation_id",
]

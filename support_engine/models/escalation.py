"""Escalation decisions, committed records and notification contracts."""
import datetime as dt
from enum import StrEnum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from support_engine.models.needs import NeedCandidate
from support_engine.models.priority import EscalationPriority
from support_engine.models.sentiment import ConversationSentiment


class EscalationTrigger(StrEnum):
    URGENCY = "urgency"
    TURN_LIMIT = "turn_limit"
    FIELDS_COMPLETE = "fields_complete"
    SENTIMENT = "sentiment"


class EscalationRecord(BaseModel):
    """Committed hand-off. Immutable once written to a conversation."""
    id: str
    timestamp: dt.datetime
    priority: EscalationPriority
    reasons: List[str] = Field(..., min_length=1)
    triggers: List[EscalationTrigger] = Field(default_factory=list)
    channel: str
    notify_channels: List[str] = Field(default_factory=list)
    notify_users: List[str] = Field(default_factory=list)


class NotificationResult(BaseModel):
    success: bool
    error: Optional[str] = None


class NotificationPayload(BaseModel):
    """What the notifier collaborator receives for a committed escalation."""
    escalation_id: str
    priority: EscalationPriority
    category: str
    collected_fields: Dict[str, Any]
    reasons: List[str]
    conversation_ref: str
    mentions: List[str] = Field(default_factory=list)
    needs: List[NeedCandidate] = Field(default_factory=list)


class EscalationDecision(BaseModel):
    """Outcome of a single arbiter evaluation."""
    required: bool
    reasons: List[str] = Field(default_factory=list)
    priority: EscalationPriority = EscalationPriority.LOW
    already_escalated: bool = False

    triggers: List[EscalationTrigger] = Field(default_factory=list)
    escalation_id: Optional[str] = None
    channel: Optional[str] = None
    notify_channels: List[str] = Field(default_factory=list)
    notify_users: List[str] = Field(default_factory=list)

    # Advisory delivery problems; never invalidate a committed escalation
    warnings: List[str] = Field(default_factory=list)

    sentiment: Optional[ConversationSentiment] = None
    needs: List[NeedCandidate] = Field(default_factory=list)

    @classmethod
    def already_done(cls) -> "EscalationDecision":
        return cls(required=False, already_escalated=True)

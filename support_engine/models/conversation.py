import datetime as dt
from enum import StrEnum
from typing import Dict, List, Mapping, Optional, Union
from pydantic import BaseModel, Field

from support_engine.models.base import DocumentModel
from support_engine.models.escalation import EscalationRecord, EscalationTrigger

FieldValue = Union[str, List[str]]


class Category(StrEnum):
    MARKETING = "marketing"
    TECH = "tech"
    GENERAL = "general"


class TurnRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationStatus(StrEnum):
    NEW = "new"
    COLLECTING = "collecting"
    ESCALATED = "escalated"
    COMPLETED = "completed"


class Turn(BaseModel):
    """One message exchanged in a conversation. Never mutated once appended."""
    role: TurnRole
    content: str
    timestamp: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.UTC),
        description="The moment the message was received."
    )


def has_value(value: Optional[FieldValue]) -> bool:
    """A field counts as collected when it is a non-empty string or list."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return len(value) > 0


def merge_fields(
    current: Mapping[str, FieldValue],
    extracted: Mapping[str, Optional[FieldValue]],
) -> Dict[str, FieldValue]:
    """
    Upsert-only merge of freshly extracted fields.

    Keys are canonicalized to str; existing entries are never removed and are
    only replaced by a newer non-empty value.

    Example:
        >>> merge_fields({"budget_range": "月額50万円"}, {"budget_range": "", "current_tools": ["GA4"]})
        {'budget_range': '月額50万円', 'current_tools': ['GA4']}
    """
    merged: Dict[str, FieldValue] = {str(k): v for k, v in current.items()}
    for key, value in extracted.items():
        if has_value(value):
            merged[str(key)] = list(value) if isinstance(value, list) else value
    return merged


class Conversation(DocumentModel):
    """
    The unit of state.

    turn_count only grows, collected_fields is upsert-only, urgency flips
    false -> true once, and escalation is written at most once.
    """
    conversation_id: str = Field(..., description="External conversation reference")
    category: Optional[Category] = None
    turns: List[Turn] = Field(default_factory=list)
    turn_count: int = Field(default=0, ge=0)
    collected_fields: Dict[str, FieldValue] = Field(default_factory=dict)
    urgency: bool = False
    escalation: Optional[EscalationRecord] = None

    @property
    def status(self) -> ConversationStatus:
        """
        Position in the NEW -> COLLECTING -> {ESCALATED | COMPLETED} machine.

        COMPLETED is a routine hand-off caused only by essential fields being
        collected; any other committed escalation is ESCALATED.
        """
        if self.escalation is not None:
            if self.escalation.triggers == [EscalationTrigger.FIELDS_COMPLETE]:
                return ConversationStatus.COMPLETED
            return ConversationStatus.ESCALATED
        if self.turn_count == 0:
            return ConversationStatus.NEW
        return ConversationStatus.COLLECTING

    @property
    def is_escalated(self) -> bool:
        return self.escalation is not None

    @property
    def user_turns(self) -> List[Turn]:
        return [t for t in self.turns if t.role == TurnRole.USER]

    def format_history(self, limit: int = 5) -> str:
        """Last `limit` turns as ROLE: content lines."""
        return "\n".join(
            f"{turn.role.upper()}: {turn.content}" for turn in self.turns[-limit:]
        )

from enum import StrEnum
from pydantic import BaseModel, Field


class NeedType(StrEnum):
    EFFICIENCY = "efficiency"
    COST_REDUCTION = "cost_reduction"
    FEATURE_REQUEST = "feature_request"
    INTEGRATION = "integration"
    SCALABILITY = "scalability"
    USABILITY = "usability"


class NeedPriorityLevel(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NeedCandidate(BaseModel):
    """A hidden need inferred from a user turn."""
    type: NeedType
    evidence: str = Field(..., description="Verbatim user turn the need was detected in.")
    context: str = ""
    confidence: float = Field(ge=0, le=1.0)
    message_index: int
    suggestion: str
    priority_boost: int = 0
    priority_score: float = 0.0
    priority_level: NeedPriorityLevel = NeedPriorityLevel.LOW

# support_engine/models/sentiment.py
import datetime as dt
from enum import StrEnum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from support_engine.models.priority import EscalationPriority


class SentimentCategory(StrEnum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    FRUSTRATED = "frustrated"
    URGENT = "urgent"


class TrendDirection(StrEnum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class CategoryScore(BaseModel):
    raw_score: float = 0.0
    weighted_score: float = 0.0
    matches: int = 0


class SentimentScore(BaseModel):
    """Score of a single message."""
    category: SentimentCategory = SentimentCategory.NEUTRAL
    raw_score: float = 0.0
    weighted_score: float = 0.0
    confidence: float = Field(default=0.0, ge=0, le=1.0)
    all_scores: Dict[SentimentCategory, CategoryScore] = Field(default_factory=dict)

    @property
    def score(self) -> float:
        """The signed score used for aggregation."""
        return self.weighted_score

    @property
    def is_negative_or_below(self) -> bool:
        return self.weighted_score < 0 or self.category in (
            SentimentCategory.NEGATIVE,
            SentimentCategory.FRUSTRATED,
        )


class ScoredTurn(BaseModel):
    index: int
    content: str
    sentiment: SentimentScore
    timestamp: Optional[dt.datetime] = None


class SentimentTrend(BaseModel):
    dominant: TrendDirection = TrendDirection.STABLE
    pattern: List[TrendDirection] = Field(default_factory=list)
    volatility: float = 0.0


class EscalationSignal(BaseModel):
    """Sentiment-derived escalation proposal."""
    required: bool = False
    reasons: List[str] = Field(default_factory=list)
    priority: EscalationPriority = EscalationPriority.LOW
    factors: List[str] = Field(default_factory=list)


class KeywordInsights(BaseModel):
    top_keywords: Dict[str, int] = Field(default_factory=dict)
    insights: List[str] = Field(default_factory=list)
    dominant_emotion: SentimentCategory = SentimentCategory.NEUTRAL


class ConversationSentiment(BaseModel):
    overall_sentiment: SentimentCategory = SentimentCategory.NEUTRAL
    blended_score: float = 0.0
    trend: SentimentTrend = Field(default_factory=SentimentTrend)
    history: List[ScoredTurn] = Field(default_factory=list)
    escalation_signal: EscalationSignal = Field(default_factory=EscalationSignal)
    keyword_insights: KeywordInsights = Field(default_factory=KeywordInsights)

    @property
    def volatility(self) -> float:
        return self.trend.volatility

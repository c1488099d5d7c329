"""
Sentiment Classifier
Deterministic, lexicon-driven sentiment scoring for single messages and
whole conversations.

Per message, every category in SENTIMENT_LEXICON is scored (keyword hits
weigh 1.0, phrase hits 1.5). The dominant category follows a fixed
precedence: urgent, then frustrated, then the strongest positive raw score.

Per conversation, user-turn scores are blended with recency weighting,
classified into a trend, and checked against five escalation rules whose
priority floors are combined by taking the maximum.
"""
import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

from loguru import logger

from support_engine.config import Settings, get_settings
from support_engine.lexicons import sentiment as lex
from support_engine.models.conversation import Turn, TurnRole
from support_engine.models.priority import EscalationPriority
from support_engine.models.sentiment import (
    CategoryScore,
    ConversationSentiment,
    EscalationSignal,
    KeywordInsights,
    ScoredTurn,
    SentimentCategory,
    SentimentScore,
    SentimentTrend,
    TrendDirection,
)

URGENT_REQUEST_FACTOR = "urgent_request"


class SentimentClassifier:
    """
    Scores messages and aggregates a conversation's sentiment trajectory.

    Stateless between calls: every `analyze_conversation` starts fresh, so a
    single instance is safe to share across conversations.

    Usage:
        >>> classifier = SentimentClassifier()
        >>> classifier.score_message("困っています").category
        <SentimentCategory.NEGATIVE: 'negative'>
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Single message
    # ------------------------------------------------------------------

    def score_message(self, text: Optional[str]) -> SentimentScore:
        """
        Score one message.

        Empty or non-matching text yields neutral with score 0 and confidence 0.
        """
        if not text or not text.strip():
            return SentimentScore()

        scores = self._category_scores(text)
        category = self._dominant_category(scores)
        confidence = self._confidence(scores, category)
        weighted = self._clamp_neutral(category, scores[category].weighted_score)

        return SentimentScore(
            category=category,
            raw_score=scores[category].raw_score,
            weighted_score=weighted,
            confidence=round(confidence, 2),
            all_scores=scores,
        )

    def _category_scores(self, text: str) -> Dict[SentimentCategory, CategoryScore]:
        scores: Dict[SentimentCategory, CategoryScore] = {}
        for category, pattern_set in lex.SENTIMENT_LEXICON.items():
            raw = 0.0
            matches = 0
            for keyword in pattern_set.keywords:
                if keyword in text:
                    raw += lex.KEYWORD_MATCH_WEIGHT
                    matches += 1
            for phrase in pattern_set.phrases:
                if phrase.search(text):
                    raw += lex.PHRASE_MATCH_WEIGHT
                    matches += 1
            scores[category] = CategoryScore(
                raw_score=raw,
                weighted_score=raw * pattern_set.score_weight,
                matches=matches,
            )
        return scores

    @staticmethod
    def _dominant_category(scores: Dict[SentimentCategory, CategoryScore]) -> SentimentCategory:
        if scores[SentimentCategory.URGENT].raw_score > 0:
            return SentimentCategory.URGENT
        if scores[SentimentCategory.FRUSTRATED].raw_score > 0:
            return SentimentCategory.FRUSTRATED

        best: Optional[SentimentCategory] = None
        for category, score in scores.items():
            if score.raw_score > 0 and (best is None or score.raw_score > scores[best].raw_score):
                best = category
        return best or SentimentCategory.NEUTRAL

    @staticmethod
    def _confidence(scores: Dict[SentimentCategory, CategoryScore], category: SentimentCategory) -> float:
        total = sum(s.matches for s in scores.values())
        if total == 0:
            return 0.0
        return scores[category].matches / total

    @staticmethod
    def _clamp_neutral(category: SentimentCategory, score: float) -> float:
        if category == SentimentCategory.NEUTRAL and abs(score) > lex.NEUTRAL_SCORE_CLAMP:
            return math.copysign(lex.NEUTRAL_SCORE_CLAMP, score)
        return score

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def analyze_conversation(self, turns: Sequence[Turn]) -> ConversationSentiment:
        """
        Aggregate sentiment over the user turns of a conversation.

        Assistant turns are skipped but keep their position, so
        `ScoredTurn.index` points into the original turn list.
        """
        history: List[ScoredTurn] = []
        keyword_frequency: Dict[str, int] = {}
        tracked_keywords = lex.all_keywords()

        for index, turn in enumerate(turns):
            if turn.role != TurnRole.USER:
                continue
            history.append(
                ScoredTurn(
                    index=index,
                    content=turn.content,
                    sentiment=self.score_message(turn.content),
                    timestamp=turn.timestamp,
                )
            )
            for keyword in tracked_keywords:
                if keyword in turn.content:
                    keyword_frequency[keyword] = keyword_frequency.get(keyword, 0) + 1

        blended = self._blended_score(history)
        overall = self._score_to_sentiment(blended) if history else SentimentCategory.NEUTRAL
        signal = self._escalation_signal(history, keyword_frequency)

        result = ConversationSentiment(
            overall_sentiment=overall,
            blended_score=blended,
            trend=self._trend(history),
            history=history,
            escalation_signal=signal,
            keyword_insights=self._keyword_insights(keyword_frequency, overall),
        )

        logger.debug(
            f"Sentiment analysis: {len(history)} user turns, overall={overall}, "
            f"blended={blended:.2f}, escalation={signal.required} ({signal.priority})"
        )
        return result

    @staticmethod
    def _blended_score(history: List[ScoredTurn]) -> float:
        if not history:
            return 0.0
        scores = [h.sentiment.score for h in history]
        average = sum(scores) / len(scores)
        if len(scores) <= lex.RECENT_WINDOW:
            return average

        recent = scores[-lex.RECENT_WINDOW:]
        recent_average = sum(recent) / len(recent)
        return average * (1 - lex.RECENT_WEIGHT) + recent_average * lex.RECENT_WEIGHT

    @staticmethod
    def _score_to_sentiment(score: float) -> SentimentCategory:
        for lower_bound, category in lex.SENTIMENT_BANDS:
            if score >= lower_bound:
                return category
        return SentimentCategory.FRUSTRATED

    @staticmethod
    def _trend(history: List[ScoredTurn]) -> SentimentTrend:
        if len(history) < 2:
            return SentimentTrend()

        pattern: List[TrendDirection] = []
        for prev, curr in zip(history, history[1:]):
            delta = curr.sentiment.score - prev.sentiment.score
            if delta > lex.TREND_DELTA:
                pattern.append(TrendDirection.IMPROVING)
            elif delta < -lex.TREND_DELTA:
                pattern.append(TrendDirection.DECLINING)
            else:
                pattern.append(TrendDirection.STABLE)

        # most_common keeps first-seen order on ties
        dominant = Counter(pattern).most_common(1)[0][0]

        scores = [h.sentiment.score for h in history]
        mean = sum(scores) / len(scores)
        variance = sum((s - mean) ** 2 for s in scores) / len(scores)

        return SentimentTrend(
            dominant=dominant,
            pattern=pattern,
            volatility=round(math.sqrt(variance), 2),
        )

    # ------------------------------------------------------------------
    # Escalation signal
    # ------------------------------------------------------------------

    def _escalation_signal(
        self,
        history: List[ScoredTurn],
        keyword_frequency: Dict[str, int],
    ) -> EscalationSignal:
        settings = self._settings
        reasons: List[str] = []
        factors: List[str] = []
        floors: List[EscalationPriority] = []

        total_score = sum(h.sentiment.score for h in history)
        if history and total_score <= settings.sentiment_threshold:
            reasons.append(f"sentiment threshold breached (total score {round(total_score, 2)})")
            floors.append(EscalationPriority.HIGH)

        frustrated = sum(1 for h in history if h.sentiment.category == SentimentCategory.FRUSTRATED)
        if frustrated >= settings.frustration_count_threshold:
            reasons.append(f"frustration detected {frustrated} times")
            floors.append(EscalationPriority.HIGH)

        urgent = sum(1 for h in history if h.sentiment.category == SentimentCategory.URGENT)
        if urgent >= settings.urgent_count_threshold:
            reasons.append(f"urgent expressions detected {urgent} times")
            floors.append(EscalationPriority.URGENT)
            factors.append(URGENT_REQUEST_FACTOR)

        window = settings.negative_trend_length
        if len(history) >= window and all(h.sentiment.is_negative_or_below for h in history[-window:]):
            reasons.append(f"negative sentiment for {window} consecutive messages")
            floors.append(EscalationPriority.HIGH)

        complaints = set(lex.complaint_keywords())
        repeated = [
            keyword for keyword, count in keyword_frequency.items()
            if keyword in complaints and count >= settings.complaint_repetition_threshold
        ]
        if repeated:
            reasons.append(f"repeated complaints: {', '.join(repeated)}")
            floors.append(EscalationPriority.MEDIUM)

        return EscalationSignal(
            required=bool(reasons),
            reasons=reasons,
            priority=EscalationPriority.highest(*floors),
            factors=factors,
        )

    # ------------------------------------------------------------------
    # Keyword insights
    # ------------------------------------------------------------------

    @staticmethod
    def _keyword_insights(
        keyword_frequency: Dict[str, int],
        dominant_emotion: SentimentCategory,
    ) -> KeywordInsights:
        top = dict(sorted(keyword_frequency.items(), key=lambda item: -item[1])[:5])
        insights: List[str] = []

        if top:
            complaints = set(lex.complaint_keywords())
            if sum(1 for k in top if k in complaints) >= 3:
                insights.append("ネガティブな表現が多く使用されています")

            urgent_keywords = lex.SENTIMENT_LEXICON[SentimentCategory.URGENT].keywords
            if any(k in urgent_keywords for k in top):
                insights.append("緊急性の高い要求が含まれています")

            if top.get(lex.PERFORMANCE_KEYWORD, 0) >= 3:
                insights.append("パフォーマンスに関する問題が繰り返し報告されています")

        return KeywordInsights(
            top_keywords=top,
            insights=insights,
            dominant_emotion=dominant_emotion,
        )

"""
Needs Miner
Infers unstated ("hidden") customer needs from conversation history.

Detection runs per user turn against NEED_LEXICON. A second, context-window
pass looks at the turns around each user turn: topics repeated in the window
raise the confidence of candidates that mention them, and sentiment cues in
the window raise every candidate's priority boost. Candidates are then
deduplicated, scored and sorted.

The miner also produces a short keyword list for the conversation, with an
optional refiner consulted when the extracted keywords are weak.
"""
import unicodedata
from collections import Counter
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from support_engine.lexicons import needs as lex
from support_engine.lexicons import vocabulary as vocab
from support_engine.models.conversation import Turn, TurnRole
from support_engine.models.needs import NeedCandidate, NeedPriorityLevel, NeedType


class KeywordRefiner(Protocol):
    """Anything that can propose key phrases for a corpus."""

    async def refine(self, text: str) -> List[str]:
        ...


class NeedsMiner:
    """
    Pattern-based hidden-need detection and keyword extraction.

    Usage:
        >>> miner = NeedsMiner()
        >>> needs = miner.mine(conversation.turns)
        >>> keywords = await miner.keywords_for(conversation.turns)
    """

    def __init__(self, refiner: Optional[KeywordRefiner] = None):
        self._refiner = refiner

    # ------------------------------------------------------------------
    # Need mining
    # ------------------------------------------------------------------

    def mine(self, turns: Sequence[Turn]) -> List[NeedCandidate]:
        """
        Ranked need candidates, highest priority score first.

        Ties keep first-detected order. No matches yields an empty list.
        """
        candidates: List[NeedCandidate] = []

        for index, turn in enumerate(turns):
            if turn.role != TurnRole.USER:
                continue
            candidates.extend(self._detect(turn.content, index))
            if index > 0:
                self._apply_context(turns, index, candidates)

        ranked = self.prioritize(candidates)
        logger.debug(f"Needs mining: {len(candidates)} raw candidates, {len(ranked)} after consolidation")
        return ranked

    def _detect(self, content: str, index: int) -> List[NeedCandidate]:
        found: List[NeedCandidate] = []
        if not content:
            return found

        for need_type, pattern_set in lex.NEED_LEXICON.items():
            hits = sum(1 for keyword in pattern_set.keywords if keyword in content)
            density = hits / len(pattern_set.keywords)

            for pattern in pattern_set.patterns:
                match = pattern.search(content)
                if not match:
                    continue
                context = " ".join(c.strip() for c in match.groups() if c and c.strip())
                complexity = min(len(pattern.pattern) / 100, lex.MAX_COMPLEXITY_BONUS)
                confidence = min(lex.BASE_CONFIDENCE + density * lex.DENSITY_WEIGHT + complexity, 1.0)

                found.append(
                    NeedCandidate(
                        type=need_type,
                        evidence=content,
                        context=context,
                        confidence=confidence,
                        message_index=index,
                        suggestion=pattern_set.suggestion_template.format(
                            context=context or lex.GENERIC_CONTEXT
                        ),
                    )
                )
        return found

    def _apply_context(self, turns: Sequence[Turn], index: int, candidates: List[NeedCandidate]) -> None:
        start = max(0, index - lex.CONTEXT_WINDOW)
        window = [t for t in turns[start:index + lex.CONTEXT_WINDOW + 1] if t.role == TurnRole.USER]

        for topic, count in self._repeated_topics(window).items():
            for candidate in candidates:
                if topic in candidate.evidence:
                    candidate.confidence = min(
                        candidate.confidence + count * lex.TOPIC_BOOST_PER_REPEAT, 1.0
                    )

        boosts = [b for b in (self._sentiment_boost(t.content) for t in window) if b is not None]
        if boosts:
            strongest = max(boosts)
            for candidate in candidates:
                candidate.priority_boost = strongest

    @staticmethod
    def _repeated_topics(window: List[Turn]) -> Dict[str, int]:
        counts: Counter = Counter()
        for turn in window:
            counts.update(
                token for token in lex.TOPIC_TOKEN.findall(turn.content) if len(token) >= 2
            )
        return {topic: n for topic, n in counts.items() if n >= lex.TOPIC_REPEAT_MIN}

    @staticmethod
    def _sentiment_boost(content: str) -> Optional[int]:
        # The first cue that matches names the message's sentiment
        for cue in lex.NEED_SENTIMENT_CUES:
            if cue.pattern.search(content):
                return cue.priority_boost
        return None

    # ------------------------------------------------------------------
    # Consolidation
    # ------------------------------------------------------------------

    def prioritize(self, candidates: Sequence[NeedCandidate]) -> List[NeedCandidate]:
        """Deduplicate by (type, suggestion), score, tier and sort descending."""
        seen: set[Tuple[NeedType, str]] = set()
        consolidated: List[NeedCandidate] = []

        for candidate in candidates:
            key = (candidate.type, candidate.suggestion)
            if key in seen:
                continue
            seen.add(key)

            score = self.priority_score(candidate)
            consolidated.append(
                candidate.model_copy(
                    update={
                        "priority_score": score,
                        "priority_level": self.priority_level(score),
                    }
                )
            )

        # sorted() is stable, so equal scores keep detection order
        return sorted(consolidated, key=lambda c: -c.priority_score)

    @staticmethod
    def priority_score(candidate: NeedCandidate) -> float:
        weight = lex.NEED_LEXICON[candidate.type].category_weight
        boosted = candidate.confidence * 100 * (1 + candidate.priority_boost * lex.PRIORITY_BOOST_FACTOR)
        return boosted * weight

    @staticmethod
    def priority_level(score: float) -> NeedPriorityLevel:
        if score >= lex.HIGH_PRIORITY_SCORE:
            return NeedPriorityLevel.HIGH
        if score >= lex.MEDIUM_PRIORITY_SCORE:
            return NeedPriorityLevel.MEDIUM
        return NeedPriorityLevel.LOW

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    async def keywords_for(self, turns: Sequence[Turn]) -> List[str]:
        """
        Keywords for a conversation, refined through the optional refiner
        when the extracted list is weak.

        Refiner failures never propagate; the extracted list is returned as is.
        """
        corpus = "\n".join(t.content for t in turns)[:vocab.MAX_CORPUS_CHARS]
        text = self.normalize_text(corpus)
        keywords = self.extract_keywords(text)

        if self._refiner is None or not self.is_low_quality(keywords):
            return keywords

        try:
            refined = await self._refiner.refine(text)
        except Exception as e:
            logger.warning(f"Keyword refiner failed: {e}")
            return keywords

        if not refined:
            return keywords
        return list(dict.fromkeys([*refined, *keywords]))[:vocab.MAX_KEYWORDS]

    @staticmethod
    def normalize_text(text: Optional[str]) -> str:
        """
        NFKC-normalize and strip URLs, emails, zero-width characters and
        boilerplate honorifics.

        Example:
            >>> NeedsMiner.normalize_text("御社の ＡＰＩ連携 https://example.com")
            'の API連携'
        """
        if not text:
            return ""
        t = unicodedata.normalize("NFKC", text)
        t = vocab.URL_PATTERN.sub(" ", t)
        t = vocab.EMAIL_PATTERN.sub(" ", t)
        t = vocab.ZERO_WIDTH_PATTERN.sub(" ", t)
        t = vocab.BOILERPLATE_PATTERN.sub(" ", t)
        return " ".join(t.split())

    @staticmethod
    def extract_keywords(text: Optional[str]) -> List[str]:
        """Top keywords of already-normalized text, compound phrases first on ties."""
        if not text:
            return []

        tokens = [t for t in vocab.TOKEN_SPLIT_PATTERN.split(text) if t]
        frequency: Dict[str, int] = {}
        for token in tokens:
            if len(token) < 2:
                continue
            if vocab.SHORT_KATAKANA_PATTERN.match(token):
                continue
            if vocab.HIRAGANA_ONLY_PATTERN.match(token) and len(token) <= 3:
                continue
            if token in vocab.STOPWORDS:
                continue
            frequency[token] = frequency.get(token, 0) + 1

        for term in vocab.KEYWORD_WHITELIST:
            if term in text:
                frequency[term] = frequency.get(term, 0) + vocab.WHITELIST_BOOST
        for phrase in vocab.COMPOUND_PATTERNS:
            if phrase in text:
                frequency[phrase] = frequency.get(phrase, 0) + vocab.COMPOUND_BOOST

        # Longest first, dropping anything contained in a longer kept term
        unique: List[str] = []
        for word in sorted(frequency, key=len, reverse=True):
            if not any(word in kept and word != kept for kept in unique):
                unique.append(word)

        compounds = [p for p in vocab.COMPOUND_PATTERNS if p in unique]
        prioritized = compounds + [w for w in unique if w not in vocab.COMPOUND_PATTERNS]

        candidates: List[str] = []
        for word in prioritized:
            if not any(word in kept and word != kept for kept in candidates):
                candidates.append(word)

        return sorted(candidates, key=lambda w: -frequency[w])[:vocab.MAX_KEYWORDS]

    @staticmethod
    def is_low_quality(keywords: Sequence[str]) -> bool:
        """Fewer than three keywords that are long, meaningful and lexical."""
        strong = [
            w for w in keywords
            if len(w) >= 3 and w not in vocab.STOPWORDS and vocab.STRONG_KEYWORD_PATTERN.search(w)
        ]
        return len(strong) < vocab.MIN_STRONG_KEYWORDS

    @staticmethod
    def infer_need_type(keywords: Sequence[str]) -> str:
        """First vocabulary family (in precedence order) sharing a keyword."""
        present = set(keywords)
        for need_type, terms in vocab.NEED_VOCABULARY.items():
            if present.intersection(terms):
                return need_type
        return vocab.DEFAULT_NEED_TYPE

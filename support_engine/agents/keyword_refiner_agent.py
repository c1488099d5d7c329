from typing import List, Optional
from pydantic_ai import Agent
from loguru import logger

from support_engine.config import get_settings
from support_engine.lexicons.vocabulary import STOPWORDS
from support_engine.models.refinement import KeywordRefinement
from support_engine.utils.retry import retry_async

MAX_REFINED_KEYWORDS = 5
MIN_REFINED_LENGTH = 3


class KeywordRefinerAgent:
    """
    Optional LLM fallback that proposes key phrases when the density-based
    keyword list is too weak.

    The underlying Agent is created lazily on first use, so a missing API key
    or provider only surfaces at refinement time, where it degrades to an
    empty result.
    """

    def __init__(self, model_override: str | None = None):
        settings = get_settings()
        self.model_name = model_override or settings.keyword_refiner_model
        self._agent: Optional[Agent[None, KeywordRefinement]] = None

    def _get_agent(self) -> Agent[None, KeywordRefinement]:
        if self._agent is None:
            self._agent = Agent(
                self.model_name,
                output_type=KeywordRefinement,
                instructions=(
                    "次のテキストから、業務に役立つ具体的なキーフレーズを3〜5個だけ抽出してください。"
                    "テキストに含まれる表現のみを使い、説明は不要です。"
                )
            )
            logger.info(f"KeywordRefinerAgent initialized with model: {self.model_name}")
        return self._agent

    async def refine(self, text: str) -> List[str]:
        """
        Ask the model for key phrases in `text`.

        Returns an empty list on any failure (no credentials, network,
        malformed output); refinement is advisory only.
        """
        if not text or not text.strip():
            return []

        settings = get_settings()

        try:
            agent = self._get_agent()
            result = await retry_async(
                lambda: agent.run(text),
                max_attempts=2,
                min_wait=settings.retry_min_wait_seconds,
                max_wait=settings.retry_max_wait_seconds,
                label="keyword refinement",
            )
            phrases = [p.strip().lstrip("-・* ").strip() for p in result.output.keywords]
        except Exception as e:
            logger.warning(f"Keyword refinement unavailable, using extracted keywords only: {e}")
            return []

        refined = [p for p in phrases if len(p) >= MIN_REFINED_LENGTH and p not in STOPWORDS]
        logger.debug(f"Keyword refinement returned {len(refined)} phrases")
        return refined[:MAX_REFINED_KEYWORDS]


def get_keyword_refiner() -> Optional[KeywordRefinerAgent]:
    """Refiner when enabled in settings, else None."""
    settings = get_settings()
    if not settings.enable_keyword_refinement:
        return None
    return KeywordRefinerAgent()

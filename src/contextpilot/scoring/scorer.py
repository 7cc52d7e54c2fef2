"""Relevance scoring: six weighted factors combined into one 0-100 score."""

import asyncio
import math
from collections.abc import Sequence
from pathlib import PurePath

import structlog

from contextpilot.config import ScoringSettings, settings
from contextpilot.embedding import EmbeddingService
from contextpilot.errors import ProviderError
from contextpilot.events import EventBus, EventName
from contextpilot.models import (
    ContextItem,
    RelevanceScore,
    ScoredItem,
    ScoreFactors,
    ScoringContext,
)
from contextpilot.utils.datetime import age_in_days

from .similarity import EmbeddingSimilarity, KeywordSimilarity, SimilarityStrategy

logger = structlog.get_logger()

WEIGHTS: dict[str, float] = {
    "recency": 0.15,
    "semantic": 0.35,
    "frequency": 0.10,
    "structural": 0.20,
    "temporal": 0.10,
    "causal": 0.10,
}

# Neutral value for factors without a data source yet
BASELINE_SCORE = 50.0

# (max age in days, score); older than the last step scores RECENCY_FLOOR
RECENCY_STEPS: tuple[tuple[float, float], ...] = (
    (1, 100.0),
    (7, 90.0),
    (30, 70.0),
    (90, 40.0),
)
RECENCY_FLOOR = 20.0

FILE_OVERLAP_POINTS = 40.0
FUNCTION_MATCH_POINTS = 30.0
KEYWORD_OVERLAP_POINTS = 30.0


def normalize_path(path: str, workspace: str | None) -> str:
    """POSIX form of a path, relative to the workspace when it lies inside it."""
    p = PurePath(path)
    if workspace and p.is_absolute() and p.is_relative_to(workspace):
        p = p.relative_to(workspace)
    return p.as_posix()


class RelevanceScorer:
    """Scores context items against the current working context.

    The semantic strategy is chosen once at construction: embeddings when
    an embedder is supplied, keyword overlap otherwise. A failing embedder
    falls back to keyword overlap for that call only.

    Example:
        scorer = RelevanceScorer()
        ranked = await scorer.score_and_rank(items, ScoringContext(current_files=["auth.ts"]))
    """

    def __init__(
        self,
        embedder: EmbeddingService | None = None,
        bus: EventBus | None = None,
        config: ScoringSettings | None = None,
    ) -> None:
        self.config = config or settings.scoring
        self.bus = bus or EventBus()
        self._keyword = KeywordSimilarity()
        self._strategy: SimilarityStrategy
        if embedder is not None:
            self._strategy = EmbeddingSimilarity(embedder, self.config.embedding_cache_size)
        else:
            self._strategy = self._keyword
        self._logger = logger.bind(component="relevance_scorer", strategy=self._strategy.name)

    @property
    def embeddings_enabled(self) -> bool:
        return isinstance(self._strategy, EmbeddingSimilarity)

    async def score_context(self, item: ContextItem, context: ScoringContext) -> RelevanceScore:
        """Score one item. Pure with respect to item and context."""
        factors = ScoreFactors(
            recency=self.score_recency(item, context),
            semantic=await self.score_semantic(item, context),
            frequency=self.score_frequency(item, context),
            structural=self.score_structural(item, context),
            temporal=self.score_temporal(item, context),
            causal=self.score_causal(item, context),
        )
        weighted = sum(value * WEIGHTS[name] for name, value in factors.as_dict().items())
        # Half-up rounding
        score = min(100, max(0, math.floor(weighted + 0.5)))
        return RelevanceScore(
            item_id=item.id,
            score=score,
            factors=factors,
            reasoning=self.generate_reasoning(factors, weighted),
        )

    async def score_and_rank(
        self,
        items: Sequence[ContextItem],
        context: ScoringContext,
        limit: int | None = None,
    ) -> list[ScoredItem]:
        """Score all items concurrently and rank them by descending score.

        Equal scores keep their input order.
        """
        scores = await asyncio.gather(*(self.score_context(i, context) for i in items))
        ranked = sorted(
            (ScoredItem(item=i, relevance=s) for i, s in zip(items, scores, strict=True)),
            key=lambda scored: scored.score,
            reverse=True,
        )
        self._logger.debug("scoring.ranked", items=len(ranked), limit=limit)
        return ranked[:limit] if limit is not None else ranked

    def score_recency(self, item: ContextItem, context: ScoringContext) -> float:
        age = age_in_days(item.timestamp, context.reference_time)
        for max_age, score in RECENCY_STEPS:
            if age <= max_age:
                return score
        return RECENCY_FLOOR

    async def score_semantic(self, item: ContextItem, context: ScoringContext) -> float:
        item_text = self.item_text(item)
        query_text = context.query_text()
        if self._strategy is not self._keyword:
            try:
                return await self._strategy.similarity(item_text, query_text)
            except ProviderError as e:
                self._logger.warning("scoring.provider_failed", item_id=item.id, error=str(e))
                self.bus.emit(
                    EventName.PROVIDER_ERROR,
                    provider="embedding",
                    item_id=item.id,
                    error=e,
                )
        return await self._keyword.similarity(item_text, query_text)

    def score_frequency(self, item: ContextItem, context: ScoringContext) -> float:
        # TODO: derive from access counts once the store records them
        return BASELINE_SCORE

    def score_structural(self, item: ContextItem, context: ScoringContext) -> float:
        score = 0.0

        item_files = {normalize_path(f, context.workspace) for f in item.metadata.files}
        current_files = {normalize_path(f, context.workspace) for f in context.current_files}
        file_overlap = len(item_files & current_files)
        if file_overlap:
            score += FILE_OVERLAP_POINTS * min(file_overlap / 3, 1.0)

        if context.current_function and context.current_function in item.metadata.functions:
            score += FUNCTION_MATCH_POINTS

        keyword_overlap = len(set(item.metadata.keywords) & set(context.active_keywords))
        if keyword_overlap:
            score += KEYWORD_OVERLAP_POINTS * min(keyword_overlap / 5, 1.0)

        return min(score, 100.0)

    def score_temporal(self, item: ContextItem, context: ScoringContext) -> float:
        return BASELINE_SCORE

    def score_causal(self, item: ContextItem, context: ScoringContext) -> float:
        return BASELINE_SCORE

    @staticmethod
    def item_text(item: ContextItem) -> str:
        """Content plus files, functions and keywords, space-joined."""
        meta = item.metadata
        return " ".join([item.content, *meta.files, *meta.functions, *meta.keywords])

    @staticmethod
    def generate_reasoning(factors: ScoreFactors, score: float) -> str:
        reasons: list[str] = []
        if factors.recency > 80:
            reasons.append("very recent")
        if factors.semantic > 70:
            reasons.append("semantically similar")
        if factors.structural > 60:
            reasons.append("related to current files")
        if reasons:
            return f"High relevance: {', '.join(reasons)}"
        return "Moderately relevant" if score > 50 else "Low relevance"

    def clear_cache(self) -> None:
        """Drop cached embedding vectors."""
        if isinstance(self._strategy, EmbeddingSimilarity):
            self._strategy.cache.clear()
        self._logger.info("scoring.cache_cleared")

    def cache_stats(self) -> dict[str, int]:
        """Embedding cache counters; all zero when embeddings are disabled."""
        if isinstance(self._strategy, EmbeddingSimilarity):
            return self._strategy.cache.stats()
        return {"size": 0, "capacity": 0, "hits": 0, "misses": 0, "evictions": 0}

    async def aclose(self) -> None:
        if isinstance(self._strategy, EmbeddingSimilarity):
            await self._strategy.embedder.aclose()

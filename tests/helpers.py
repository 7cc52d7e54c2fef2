"""Builders shared by the test suite."""

from datetime import datetime, timedelta

from contextpilot.models import (
    ContextItem,
    ContextType,
    ItemMetadata,
    RelevanceScore,
    ScoredItem,
    ScoreFactors,
)
from contextpilot.utils.datetime import utc_now


def build_item(
    item_id: str,
    content: str,
    *,
    type: ContextType = ContextType.CONVERSATION,
    age_days: float = 0.0,
    files: tuple[str, ...] = (),
    functions: tuple[str, ...] = (),
    keywords: tuple[str, ...] = (),
    now: datetime | None = None,
) -> ContextItem:
    """ContextItem timestamped age_days before now."""
    reference = now or utc_now()
    return ContextItem(
        id=item_id,
        type=type,
        content=content,
        timestamp=reference - timedelta(days=age_days),
        metadata=ItemMetadata(files=files, functions=functions, keywords=keywords),
    )


def build_scored(item: ContextItem, score: int) -> ScoredItem:
    """ScoredItem with a fixed score and neutral factors."""
    factors = ScoreFactors(
        recency=score, semantic=score, frequency=score,
        structural=score, temporal=score, causal=score,
    )
    return ScoredItem(
        item=item,
        relevance=RelevanceScore(item_id=item.id, score=score, factors=factors, reasoning="test"),
    )

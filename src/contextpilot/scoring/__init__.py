"""Relevance scoring."""

from .scorer import BASELINE_SCORE, RECENCY_FLOOR, RECENCY_STEPS, WEIGHTS, RelevanceScorer
from .similarity import EmbeddingSimilarity, KeywordSimilarity, SimilarityStrategy

__all__ = [
    "BASELINE_SCORE",
    "EmbeddingSimilarity",
    "KeywordSimilarity",
    "RECENCY_FLOOR",
    "RECENCY_STEPS",
    "RelevanceScorer",
    "SimilarityStrategy",
    "WEIGHTS",
]

"""Context compression: fit ranked items into a token budget.

Pipeline, applied only when the input exceeds the budget:
1. Drop items below the strategy's relevance threshold (preserved types stay)
2. Summarize verbose items while still over budget
3. Merge items of the same type that cover the same files or text
"""

import asyncio
from collections.abc import Sequence
from dataclasses import replace

import structlog

from contextpilot.config import CompressionSettings, settings
from contextpilot.errors import ProviderError
from contextpilot.events import EventBus, EventName
from contextpilot.models import CompressionResult, CompressionStrategy, ScoredItem
from contextpilot.summarization import Summarizer, summarize_extractive
from contextpilot.utils.cache import BoundedCache, content_hash
from contextpilot.utils.text import jaccard, text_similarity

logger = structlog.get_logger()

RELEVANCE_THRESHOLDS: dict[str, int] = {
    "aggressive": 60,
    "balanced": 40,
    "conservative": 20,
}

FILE_SIMILARITY_THRESHOLD = 0.6
TEXT_SIMILARITY_THRESHOLD = 0.7

MERGE_SEPARATOR = "\n\n---\n\n"
SUMMARIZED_PREFIX = "[Summarized] "


def _unique(values: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _total_tokens(items: Sequence[ScoredItem]) -> int:
    return sum(s.tokens for s in items)


def compression_summary(
    original_count: int,
    compressed_count: int,
    original_tokens: int,
    compressed_tokens: int,
) -> str:
    item_reduction = (original_count - compressed_count) / original_count * 100
    token_reduction = (original_tokens - compressed_tokens) / original_tokens * 100
    return (
        f"Reduced from {original_count} items ({original_tokens} tokens) to "
        f"{compressed_count} items ({compressed_tokens} tokens). "
        f"{item_reduction:.1f}% fewer items, {token_reduction:.1f}% fewer tokens."
    )


class ContextCompressor:
    """Reduces a ranked item list to fit a token budget.

    Never increases the token total or the item count. Summaries come from
    the configured summarizer when there is one, falling back to local
    extractive summarization on provider failure.

    Example:
        compressor = ContextCompressor()
        result = await compressor.compress(ranked, max_tokens=8000)
        prompt_items = result.compressed
    """

    def __init__(
        self,
        summarizer: Summarizer | None = None,
        bus: EventBus | None = None,
        config: CompressionSettings | None = None,
    ) -> None:
        self.summarizer = summarizer
        self.bus = bus or EventBus()
        self.config = config or settings.compression
        self._cache: BoundedCache[str] = BoundedCache(self.config.summary_cache_size)
        self._logger = logger.bind(component="context_compressor")

    @property
    def summarization_enabled(self) -> bool:
        return self.summarizer is not None

    async def compress(
        self,
        items: Sequence[ScoredItem],
        max_tokens: int,
        strategy: CompressionStrategy | None = None,
    ) -> CompressionResult:
        """Compress items to fit max_tokens.

        Args:
            items: Ranked items
            max_tokens: Token budget
            strategy: Compression policy, balanced when omitted

        Returns:
            CompressionResult; the input unchanged when it already fits

        Raises:
            ValueError: If max_tokens is negative
        """
        if max_tokens < 0:
            raise ValueError(f"max_tokens must be non-negative, got {max_tokens}")
        strategy = strategy or CompressionStrategy.balanced()
        original = list(items)
        original_tokens = _total_tokens(original)

        if not original or original_tokens <= max_tokens:
            return CompressionResult(
                original=original,
                compressed=list(original),
                tokens_removed=0,
                items_removed=0,
                compression_ratio=1.0,
                summary="No compression needed",
            )

        filtered = self.filter_by_relevance(original, strategy)
        summarized = await self.summarize_verbose(filtered, max_tokens)
        compressed = await self.merge_similar(summarized)

        compressed_tokens = _total_tokens(compressed)
        if compressed_tokens > original_tokens or len(compressed) > len(original):
            self._logger.warning(
                "compression.grew",
                original_tokens=original_tokens,
                compressed_tokens=compressed_tokens,
            )
            compressed = original
            compressed_tokens = original_tokens

        result = CompressionResult(
            original=original,
            compressed=compressed,
            tokens_removed=original_tokens - compressed_tokens,
            items_removed=len(original) - len(compressed),
            compression_ratio=compressed_tokens / original_tokens,
            summary=compression_summary(
                len(original), len(compressed), original_tokens, compressed_tokens
            ),
        )
        self._logger.info(
            "compression.completed",
            strategy=strategy.name,
            original_tokens=original_tokens,
            compressed_tokens=compressed_tokens,
            budget=max_tokens,
        )
        return result

    def filter_by_relevance(
        self, items: Sequence[ScoredItem], strategy: CompressionStrategy
    ) -> list[ScoredItem]:
        """Items at or above the strategy threshold, plus every preserved type."""
        threshold = RELEVANCE_THRESHOLDS[strategy.name]
        return [
            s for s in items
            if s.type in strategy.preserve_types or s.score >= threshold
        ]

    async def summarize_verbose(
        self, items: Sequence[ScoredItem], max_tokens: int
    ) -> list[ScoredItem]:
        """Summarize items above the verbose threshold when over budget."""
        if _total_tokens(items) <= max_tokens:
            return list(items)
        return list(await asyncio.gather(*(self._summarize_item(s) for s in items)))

    async def _summarize_item(self, scored: ScoredItem) -> ScoredItem:
        item = scored.item
        if item.tokens <= self.config.verbose_token_threshold:
            return scored

        summary = await self.summarize_text(item.content, self.config.summary_max_chars)
        new_item = replace(
            item,
            content=f"{SUMMARIZED_PREFIX}{summary}",
            metadata=item.metadata.with_extra(summarized=True, original_tokens=item.tokens),
        )
        if new_item.tokens >= item.tokens:
            return scored
        return ScoredItem(item=new_item, relevance=scored.relevance)

    async def summarize_text(self, text: str, max_length: int = 200) -> str:
        """Summary of text in about max_length characters; short text is returned as is."""
        if len(text) <= max_length:
            return text

        key = content_hash(text, max_length)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        summary: str | None = None
        if self.summarizer is not None:
            try:
                summary = await self.summarizer.summarize(text, max_length)
            except ProviderError as e:
                self._logger.warning("compression.summarizer_failed", error=str(e))
                self.bus.emit(EventName.PROVIDER_ERROR, provider="summarization", error=e)
        if summary is None:
            summary = summarize_extractive(text, max_length)

        self._cache.put(key, summary)
        return summary

    def are_similar(self, a: ScoredItem, b: ScoredItem) -> bool:
        """Same type and overlapping files or near-identical text."""
        if a.type != b.type:
            return False
        files_a, files_b = a.item.metadata.files, b.item.metadata.files
        if (files_a or files_b) and jaccard(files_a, files_b) > FILE_SIMILARITY_THRESHOLD:
            return True
        return text_similarity(a.item.content, b.item.content) > TEXT_SIMILARITY_THRESHOLD

    async def merge_similar(self, items: Sequence[ScoredItem]) -> list[ScoredItem]:
        """Group items similar to a group's first member and merge each group.

        A merge that would not reduce the group's token total is skipped.
        """
        if len(items) < 2:
            return list(items)

        groups: list[list[ScoredItem]] = []
        grouped: set[int] = set()
        for i, seed in enumerate(items):
            if i in grouped:
                continue
            group = [seed]
            grouped.add(i)
            for j in range(i + 1, len(items)):
                if j not in grouped and self.are_similar(seed, items[j]):
                    group.append(items[j])
                    grouped.add(j)
            groups.append(group)

        merged: list[ScoredItem] = []
        for group in groups:
            if len(group) == 1:
                merged.append(group[0])
                continue
            combined = await self.merge_group(group)
            if combined.tokens <= _total_tokens(group):
                merged.append(combined)
            else:
                merged.extend(group)
        return merged

    async def merge_group(self, group: Sequence[ScoredItem]) -> ScoredItem:
        """Merge a group into one item carrying the first member's identity."""
        representative = group[0].item
        combined = MERGE_SEPARATOR.join(s.item.content for s in group)
        if len(combined) > self.config.merge_max_chars:
            combined = await self.summarize_text(combined, self.config.merge_max_chars)

        metadata = replace(
            representative.metadata,
            files=_unique([f for s in group for f in s.item.metadata.files]),
            functions=_unique([f for s in group for f in s.item.metadata.functions]),
            keywords=_unique([k for s in group for k in s.item.metadata.keywords]),
        ).with_extra(merged=True, merged_from=[s.id for s in group])

        new_item = replace(
            representative,
            content=f"[Merged from {len(group)} items] {combined}",
            metadata=metadata,
        )
        best = max(group, key=lambda s: s.score)
        return ScoredItem(
            item=new_item,
            relevance=replace(best.relevance, item_id=representative.id),
        )

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> dict[str, int]:
        return self._cache.stats()

    async def aclose(self) -> None:
        if self.summarizer is not None:
            await self.summarizer.aclose()

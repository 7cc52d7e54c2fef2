"""Shared data model for extraction, scoring, compression and health."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from contextpilot.utils.datetime import ensure_utc, utc_now
from contextpilot.utils.numeric import clamp_score
from contextpilot.utils.tokens import estimate_tokens


class ContextType(Enum):
    """Kinds of project knowledge a ContextItem can hold."""

    DECISION = "decision"
    CONVERSATION = "conversation"
    CODE = "code"
    FILE = "file"
    DOCUMENTATION = "documentation"


class ExtractedType(Enum):
    """Kinds of candidate context produced by the extractor."""

    CODE_CHANGE = "code_change"
    CONVERSATION = "conversation"
    DECISION = "decision"
    DOCUMENTATION = "documentation"


@dataclass(frozen=True)
class ItemMetadata:
    """Metadata attached to a ContextItem.

    ``extra`` carries derivation markers written by the compressor
    (``summarized``, ``merged``, ``original_tokens``, ``merged_from``).
    """

    project: str | None = None
    files: tuple[str, ...] = ()
    functions: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    author: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def with_extra(self, **values: Any) -> "ItemMetadata":
        """Copy with additional ``extra`` entries."""
        return replace(self, extra={**self.extra, **values})


@dataclass(frozen=True)
class ContextItem:
    """A unit of project knowledge eligible for inclusion in a model prompt.

    Items are immutable. The token estimate is derived from content and
    cannot be supplied by callers.
    """

    id: str
    type: ContextType
    content: str
    timestamp: datetime
    metadata: ItemMetadata = field(default_factory=ItemMetadata)
    tokens: int = field(init=False)

    def __post_init__(self) -> None:
        if not self.content:
            raise ValueError(f"ContextItem {self.id!r} must have non-empty content")
        if isinstance(self.type, str):
            object.__setattr__(self, "type", ContextType(self.type))
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "tokens", estimate_tokens(self.content))

    @property
    def is_summarized(self) -> bool:
        return bool(self.metadata.extra.get("summarized"))

    @property
    def is_merged(self) -> bool:
        return bool(self.metadata.extra.get("merged"))


@dataclass
class ExtractedContext:
    """Candidate context produced by the extractor, before it becomes an item."""

    type: ExtractedType
    source: str
    content: str
    confidence: int  # 0-100, fixed per extraction path
    files: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict form used in event payloads and persistence."""
        return {
            "type": self.type.value,
            "source": self.source,
            "content": self.content,
            "confidence": self.confidence,
            "files": list(self.files),
            "functions": list(self.functions),
            "keywords": list(self.keywords),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ScoringContext:
    """The query against which items are ranked."""

    current_files: list[str] = field(default_factory=list)
    current_function: str | None = None
    recent_conversation: list[str] = field(default_factory=list)
    active_keywords: list[str] = field(default_factory=list)
    reference_time: datetime = field(default_factory=utc_now)
    task_description: str | None = None
    # Root that relative and absolute file paths are compared against
    workspace: str | None = None

    def query_text(self) -> str:
        """Concatenated query text used for semantic comparison."""
        parts = [
            *self.current_files,
            *self.recent_conversation,
            *self.active_keywords,
            self.task_description or "",
        ]
        return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class ScoreFactors:
    """The six named relevance factors, each in [0, 100]."""

    recency: float
    semantic: float
    frequency: float
    structural: float
    temporal: float
    causal: float

    def __post_init__(self) -> None:
        for name in ("recency", "semantic", "frequency", "structural", "temporal", "causal"):
            object.__setattr__(self, name, clamp_score(getattr(self, name)))

    def as_dict(self) -> dict[str, float]:
        return {
            "recency": self.recency,
            "semantic": self.semantic,
            "frequency": self.frequency,
            "structural": self.structural,
            "temporal": self.temporal,
            "causal": self.causal,
        }


@dataclass(frozen=True)
class RelevanceScore:
    """Per-query relevance of one item. Recomputed on every call, never stored."""

    item_id: str
    score: int  # 0-100
    factors: ScoreFactors
    reasoning: str


@dataclass(frozen=True)
class ScoredItem:
    """A ContextItem paired with its RelevanceScore."""

    item: ContextItem
    relevance: RelevanceScore

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def type(self) -> ContextType:
        return self.item.type

    @property
    def tokens(self) -> int:
        return self.item.tokens

    @property
    def score(self) -> int:
        return self.relevance.score


@dataclass(frozen=True)
class CompressionStrategy:
    """Named policy controlling filter threshold and target reduction."""

    name: str  # "aggressive" | "balanced" | "conservative"
    target_reduction: float
    preserve_types: tuple[ContextType, ...] = ()

    VALID_NAMES: ClassVar[frozenset[str]] = frozenset(
        {"aggressive", "balanced", "conservative"}
    )

    def __post_init__(self) -> None:
        if self.name not in self.VALID_NAMES:
            raise ValueError(
                f"Invalid compression strategy '{self.name}'. "
                f"Valid: {', '.join(sorted(self.VALID_NAMES))}"
            )
        object.__setattr__(
            self,
            "preserve_types",
            tuple(ContextType(t) if isinstance(t, str) else t for t in self.preserve_types),
        )

    @classmethod
    def aggressive(cls) -> "CompressionStrategy":
        return cls("aggressive", 0.7, (ContextType.DECISION,))

    @classmethod
    def balanced(cls) -> "CompressionStrategy":
        return cls("balanced", 0.5, (ContextType.DECISION,))

    @classmethod
    def conservative(cls) -> "CompressionStrategy":
        return cls("conservative", 0.3, (ContextType.DECISION,))


@dataclass
class CompressionResult:
    """Outcome of one compress call. Recomputed per call, never stored."""

    original: list[ScoredItem]
    compressed: list[ScoredItem]
    tokens_removed: int
    items_removed: int
    compression_ratio: float
    summary: str

    @property
    def original_tokens(self) -> int:
        return sum(s.tokens for s in self.original)

    @property
    def compressed_tokens(self) -> int:
        return sum(s.tokens for s in self.compressed)


class Severity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(Enum):
    STALENESS = "staleness"
    CONFLICT = "conflict"
    GAP = "gap"
    REDUNDANCY = "redundancy"


@dataclass
class HealthIssue:
    """A single finding from the health monitor."""

    severity: Severity
    category: IssueCategory
    description: str
    affected: list[str]
    suggestion: str


@dataclass
class HealthMetrics:
    total_items: int
    fresh_items: int
    stale_items: int
    conflicts: int
    coverage: float  # percent of project files with context
    avg_relevance: float


@dataclass
class ContextHealth:
    """Aggregate quality report for a corpus of context items."""

    score: float  # 0-100
    issues: list[HealthIssue]
    metrics: HealthMetrics
    recommendations: list[str]

    def issues_of(self, category: IssueCategory) -> list[HealthIssue]:
        return [i for i in self.issues if i.category == category]

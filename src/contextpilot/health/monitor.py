"""Corpus health assessment: staleness, conflicts, coverage gaps, redundancy."""

import asyncio
import os
import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import structlog

from contextpilot.config import HealthSettings, settings
from contextpilot.models import (
    ContextHealth,
    ContextItem,
    ContextType,
    HealthIssue,
    HealthMetrics,
    IssueCategory,
    Severity,
)
from contextpilot.utils.datetime import age_in_days, utc_now
from contextpilot.utils.numeric import clamp
from contextpilot.utils.text import jaccard, text_similarity

logger = structlog.get_logger()

# Staleness is reported once it exceeds this share of the corpus
STALE_SHARE_THRESHOLD = 0.2

CRITICAL_PENALTY = 15
WARNING_PENALTY = 5
STALENESS_PENALTY = 20

DEFAULT_RELEVANCE = 50.0
MIN_HEALTHY_CORPUS = 10

TEXT_REDUNDANCY_THRESHOLD = 0.8
FILE_REDUNDANCY_THRESHOLD = 0.7
KEYWORD_REDUNDANCY_THRESHOLD = 0.6
REDUNDANCY_WARNING_SIZE = 4

MIN_GAP_DIRECTORY_FILES = 3
GAP_COVERAGE_PERCENT = 50
MAX_LISTED_GAPS = 5

SOURCE_EXTENSIONS = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".py", ".java", ".cs", ".cpp", ".c", ".h",
    ".go", ".rs", ".rb", ".php", ".swift", ".kt",
})

SKIPPED_DIRS = frozenset({
    "node_modules", "dist", "build", ".git", ".next", "out", "coverage",
    "__pycache__", "vendor", ".venv", "venv", ".tox", ".mypy_cache",
    ".pytest_cache",
})

ENTRY_POINT_NAMES = frozenset({
    "index.ts", "index.js", "main.ts", "main.js", "app.ts", "app.js",
    "server.ts", "server.js", "__init__.py", "main.py",
})

IMPORTANT_DIRS = frozenset({
    "api", "routes", "controllers", "handlers", "models", "schemas", "entities",
})

# (positive, negative) phrasings that contradict each other
OPPOSITE_PAIRS: tuple[tuple[re.Pattern[str], re.Pattern[str]], ...] = (
    (re.compile(r"\buse\b"), re.compile(r"\bavoid\b")),
    (re.compile(r"\bshould\b(?!\s+not\b)"), re.compile(r"\bshould\s+not\b")),
    (re.compile(r"\benable\b"), re.compile(r"\bdisable\b")),
    (re.compile(r"\badd\b"), re.compile(r"\bremove\b")),
)

_FILE_MENTION = re.compile(
    r"[\w/\-.]+\.(?:ts|tsx|js|jsx|py|java|cs|cpp|c|h|go|rs|rb|php|swift|kt)\b"
)

RECOMMENDATIONS: dict[IssueCategory, str] = {
    IssueCategory.STALENESS: "Review and update contexts older than 30 days",
    IssueCategory.CONFLICT: "Resolve conflicting decisions immediately",
    IssueCategory.GAP: "Add context for entry points, configuration and API modules",
    IssueCategory.REDUNDANCY: "Consolidate similar context items to reduce noise",
}
MORE_CONTEXT_RECOMMENDATION = "Add more context to improve AI assistance quality"


class HealthMonitor:
    """Assesses the quality of a context corpus against its workspace.

    The detectors are public so they can be run individually.

    Example:
        monitor = HealthMonitor("/path/to/project")
        health = await monitor.assess_health(items)
        if health.score < 70:
            print(health.recommendations)
    """

    def __init__(self, workspace: str | Path, config: HealthSettings | None = None) -> None:
        self.workspace = Path(workspace).resolve()
        self.config = config or settings.health
        self._logger = logger.bind(component="health_monitor", workspace=str(self.workspace))

    async def assess_health(
        self,
        items: Sequence[ContextItem],
        relevance_scores: Sequence[float] | None = None,
        reference_time: datetime | None = None,
    ) -> ContextHealth:
        """Build a health report for items.

        Args:
            items: The corpus
            relevance_scores: Optional scores used for the average relevance metric
            reference_time: "Now" for age calculations

        Returns:
            ContextHealth with score in [0, 100]; an empty corpus scores 100
        """
        now = reference_time or utc_now()
        if not items:
            return ContextHealth(
                score=100.0,
                issues=[],
                metrics=HealthMetrics(
                    total_items=0,
                    fresh_items=0,
                    stale_items=0,
                    conflicts=0,
                    coverage=0.0,
                    avg_relevance=self._average_relevance(relevance_scores),
                ),
                recommendations=[],
            )

        project_files: list[Path] | None
        try:
            project_files = await asyncio.to_thread(self.project_files)
        except OSError as e:
            self._logger.warning("health.walk_failed", error=str(e))
            project_files = None

        issues: list[HealthIssue] = []
        issues.extend(self.detect_staleness(items, now))
        issues.extend(self.detect_conflicts(items))
        issues.extend(self.detect_gaps(items, project_files))
        issues.extend(self.detect_redundancy(items))

        metrics = self.calculate_metrics(items, issues, project_files or [], relevance_scores, now)
        score = self.calculate_score(metrics, issues)
        recommendations = self.generate_recommendations(issues, metrics)

        self._logger.info(
            "health.assessed",
            score=score,
            issues=len(issues),
            total_items=metrics.total_items,
        )
        return ContextHealth(
            score=score,
            issues=issues,
            metrics=metrics,
            recommendations=recommendations,
        )

    # Detectors

    def stale_items(self, items: Sequence[ContextItem], now: datetime) -> list[ContextItem]:
        return [i for i in items if age_in_days(i.timestamp, now) > self.config.stale_after_days]

    def detect_staleness(
        self, items: Sequence[ContextItem], now: datetime | None = None
    ) -> list[HealthIssue]:
        stale = self.stale_items(items, now or utc_now())
        if not stale or len(stale) <= len(items) * STALE_SHARE_THRESHOLD:
            return []
        return [
            HealthIssue(
                severity=Severity.WARNING,
                category=IssueCategory.STALENESS,
                description=(
                    f"{len(stale)} contexts are over "
                    f"{self.config.stale_after_days} days old"
                ),
                affected=[i.id for i in stale],
                suggestion="Review and update or archive old contexts",
            )
        ]

    @staticmethod
    def are_conflicting(a: ContextItem, b: ContextItem) -> bool:
        """Decisions sharing a file whose texts take opposite positions."""
        if not set(a.metadata.files) & set(b.metadata.files):
            return False
        text_a = a.content.lower()
        text_b = b.content.lower()
        for positive, negative in OPPOSITE_PAIRS:
            if positive.search(text_a) and negative.search(text_b):
                return True
            if negative.search(text_a) and positive.search(text_b):
                return True
        return False

    def detect_conflicts(self, items: Sequence[ContextItem]) -> list[HealthIssue]:
        decisions = [i for i in items if i.type == ContextType.DECISION]
        issues: list[HealthIssue] = []
        for idx, first in enumerate(decisions):
            for second in decisions[idx + 1:]:
                if self.are_conflicting(first, second):
                    issues.append(
                        HealthIssue(
                            severity=Severity.CRITICAL,
                            category=IssueCategory.CONFLICT,
                            description="Conflicting decisions detected",
                            affected=[first.id, second.id],
                            suggestion="Resolve conflicting decisions - which one is current?",
                        )
                    )
        return issues

    def detect_gaps(
        self,
        items: Sequence[ContextItem],
        project_files: list[Path] | None = None,
    ) -> list[HealthIssue]:
        """Important files and directories without context coverage.

        Args:
            items: The corpus
            project_files: Pre-walked source files; the workspace is walked when
                omitted. None after a failed walk is reported as a gap issue.
        """
        if project_files is None:
            try:
                project_files = self.project_files()
            except OSError as e:
                self._logger.warning("health.walk_failed", error=str(e))
                return [
                    HealthIssue(
                        severity=Severity.WARNING,
                        category=IssueCategory.GAP,
                        description="Failed to analyze context gaps",
                        affected=[],
                        suggestion="Check file system permissions and workspace structure",
                    )
                ]

        covered = self.covered_files(items)
        issues: list[HealthIssue] = []

        important_uncovered = [
            f for f in project_files if f not in covered and self.is_important(f)
        ]
        if important_uncovered:
            issues.append(
                HealthIssue(
                    severity=Severity.WARNING,
                    category=IssueCategory.GAP,
                    description=(
                        f"{len(important_uncovered)} important files lack context coverage"
                    ),
                    affected=[self._relative(f) for f in important_uncovered[:MAX_LISTED_GAPS]],
                    suggestion=(
                        "Consider adding context for key files like entry points, "
                        "main modules, and frequently modified files"
                    ),
                )
            )

        by_directory: dict[Path, list[Path]] = {}
        for f in project_files:
            by_directory.setdefault(f.parent, []).append(f)

        for directory, files in by_directory.items():
            if len(files) < MIN_GAP_DIRECTORY_FILES:
                continue
            covered_count = sum(1 for f in files if f in covered)
            coverage = round(covered_count / len(files) * 100)
            if coverage >= GAP_COVERAGE_PERCENT:
                continue
            name = self._relative(directory) or "."
            issues.append(
                HealthIssue(
                    severity=Severity.INFO,
                    category=IssueCategory.GAP,
                    description=f'Directory "{name}" has low context coverage ({coverage}%)',
                    affected=[self._relative(f) for f in files if f not in covered][:3],
                    suggestion=f"Add context for key files in {name} to improve coverage",
                )
            )

        return issues

    def are_redundant(self, a: ContextItem, b: ContextItem) -> bool:
        if a.type != b.type:
            return False
        if text_similarity(a.content, b.content) > TEXT_REDUNDANCY_THRESHOLD:
            return True
        if jaccard(a.metadata.files, b.metadata.files) > FILE_REDUNDANCY_THRESHOLD:
            return True
        keywords_a = {k.lower() for k in a.metadata.keywords}
        keywords_b = {k.lower() for k in b.metadata.keywords}
        return jaccard(keywords_a, keywords_b) > KEYWORD_REDUNDANCY_THRESHOLD

    def find_redundant_groups(self, items: Sequence[ContextItem]) -> list[list[ContextItem]]:
        """Groups of two or more items redundant with the group's first member."""
        groups: list[list[ContextItem]] = []
        grouped: set[int] = set()
        for i, seed in enumerate(items):
            if i in grouped:
                continue
            grouped.add(i)
            group = [seed]
            for j in range(i + 1, len(items)):
                if j not in grouped and self.are_redundant(seed, items[j]):
                    group.append(items[j])
                    grouped.add(j)
            if len(group) > 1:
                groups.append(group)
        return groups

    def detect_redundancy(self, items: Sequence[ContextItem]) -> list[HealthIssue]:
        return [
            HealthIssue(
                severity=(
                    Severity.WARNING if len(group) >= REDUNDANCY_WARNING_SIZE else Severity.INFO
                ),
                category=IssueCategory.REDUNDANCY,
                description=(
                    f"Found {len(group)} similar context items that could be consolidated"
                ),
                affected=[i.id for i in group],
                suggestion=(
                    "Consider merging similar contexts to reduce redundancy and improve clarity"
                ),
            )
            for group in self.find_redundant_groups(items)
        ]

    # Workspace coverage

    def project_files(self) -> list[Path]:
        """Source files under the workspace, skipping build and VCS directories.

        Raises:
            OSError: If the workspace is not a readable directory
        """
        if not self.workspace.is_dir():
            raise NotADirectoryError(f"Workspace {self.workspace} is not a directory")

        files: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.workspace):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
            for name in sorted(filenames):
                if Path(name).suffix in SOURCE_EXTENSIONS:
                    files.append(Path(dirpath) / name)
        return files

    def covered_files(self, items: Sequence[ContextItem]) -> set[Path]:
        """Files referenced by item metadata or mentioned in item text."""
        covered: set[Path] = set()
        for item in items:
            for f in item.metadata.files:
                covered.add(self._resolve(f))
            for match in _FILE_MENTION.findall(item.content):
                candidate = self._resolve(match)
                if candidate.exists():
                    covered.add(candidate)
        return covered

    def is_important(self, path: Path) -> bool:
        name = path.name.lower()
        if name in ENTRY_POINT_NAMES:
            return True
        if "config" in name or "settings" in name:
            return True
        try:
            parents = path.relative_to(self.workspace).parts[:-1]
        except ValueError:
            parents = path.parts[:-1]
        return any(part.lower() in IMPORTANT_DIRS for part in parents)

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        if not p.is_absolute():
            p = self.workspace / p
        return p.resolve()

    def _relative(self, path: Path) -> str:
        try:
            rel = path.relative_to(self.workspace)
        except ValueError:
            return str(path)
        return "" if rel == Path(".") else rel.as_posix()

    # Aggregation

    @staticmethod
    def _average_relevance(scores: Sequence[float] | None) -> float:
        if not scores:
            return DEFAULT_RELEVANCE
        return sum(scores) / len(scores)

    def calculate_metrics(
        self,
        items: Sequence[ContextItem],
        issues: Sequence[HealthIssue],
        project_files: Sequence[Path],
        relevance_scores: Sequence[float] | None = None,
        now: datetime | None = None,
    ) -> HealthMetrics:
        now = now or utc_now()
        covered = self.covered_files(items)
        coverage = 0.0
        if project_files:
            coverage = float(round(
                sum(1 for f in project_files if f in covered) / len(project_files) * 100
            ))
        return HealthMetrics(
            total_items=len(items),
            fresh_items=sum(
                1 for i in items if age_in_days(i.timestamp, now) < self.config.fresh_within_days
            ),
            stale_items=len(self.stale_items(items, now)),
            conflicts=sum(1 for i in issues if i.category == IssueCategory.CONFLICT),
            coverage=coverage,
            avg_relevance=self._average_relevance(relevance_scores),
        )

    @staticmethod
    def calculate_score(metrics: HealthMetrics, issues: Sequence[HealthIssue]) -> float:
        score = 100.0
        score -= CRITICAL_PENALTY * sum(1 for i in issues if i.severity == Severity.CRITICAL)
        score -= WARNING_PENALTY * sum(1 for i in issues if i.severity == Severity.WARNING)
        if metrics.total_items and metrics.stale_items:
            score -= metrics.stale_items / metrics.total_items * STALENESS_PENALTY
        return round(clamp(score, 0.0, 100.0), 1)

    @staticmethod
    def generate_recommendations(
        issues: Sequence[HealthIssue], metrics: HealthMetrics
    ) -> list[str]:
        present = {i.category for i in issues}
        recs = [text for category, text in RECOMMENDATIONS.items() if category in present]
        if 0 < metrics.total_items < MIN_HEALTHY_CORPUS:
            recs.append(MORE_CONTEXT_RECOMMENDATION)
        return recs

"""Tests for HealthMonitor."""

from pathlib import Path

import pytest

from contextpilot.health import HealthMonitor
from contextpilot.models import ContextType, IssueCategory, Severity
from contextpilot.utils.datetime import utc_now
from tests.helpers import build_item

NOW = utc_now()


def decision(item_id: str, content: str, *files: str, age_days: float = 0):
    return build_item(
        item_id, content, type=ContextType.DECISION, files=files, age_days=age_days, now=NOW
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "index.ts").write_text("export {}")
    (tmp_path / "utils.ts").write_text("export const x = 1")
    return tmp_path


class TestAssessHealth:
    @pytest.mark.asyncio
    async def test_empty_corpus(self, workspace: Path) -> None:
        health = await HealthMonitor(workspace).assess_health([])

        assert health.score == 100.0
        assert health.issues == []
        assert health.recommendations == []

    @pytest.mark.asyncio
    async def test_gap_names_uncovered_entry_point(self, workspace: Path) -> None:
        items = [build_item("u", "helpers", files=("utils.ts",), now=NOW)]

        health = await HealthMonitor(workspace).assess_health(items, reference_time=NOW)

        [gap] = health.issues_of(IssueCategory.GAP)
        assert gap.affected == ["index.ts"]
        assert gap.severity == Severity.WARNING
        assert health.metrics.coverage == 50.0
        assert health.score == 95.0

    @pytest.mark.asyncio
    async def test_conflict_is_critical(self, tmp_path: Path) -> None:
        items = [
            decision("on", "enable caching", "config.ts"),
            decision("off", "disable caching", "config.ts"),
        ]

        health = await HealthMonitor(tmp_path).assess_health(items, reference_time=NOW)

        [conflict] = health.issues_of(IssueCategory.CONFLICT)
        assert conflict.severity == Severity.CRITICAL
        assert conflict.affected == ["on", "off"]
        assert health.metrics.conflicts == 1
        assert health.score == 85.0
        assert "Resolve conflicting decisions immediately" in health.recommendations

    @pytest.mark.asyncio
    async def test_staleness(self, tmp_path: Path) -> None:
        items = [
            build_item(f"old{n}", f"note number {n}", age_days=40, now=NOW) for n in range(3)
        ]

        health = await HealthMonitor(tmp_path).assess_health(items, reference_time=NOW)

        [stale] = health.issues_of(IssueCategory.STALENESS)
        assert stale.affected == ["old0", "old1", "old2"]
        assert health.metrics.stale_items == 3
        assert health.metrics.fresh_items == 0
        # one warning (-5) and full staleness (-20)
        assert health.score == 75.0

    @pytest.mark.asyncio
    async def test_score_clamped_at_zero(self, tmp_path: Path) -> None:
        items = [decision(f"e{n}", "enable the cache", "a.ts") for n in range(4)]
        items += [decision(f"d{n}", "disable the cache", "a.ts") for n in range(4)]

        health = await HealthMonitor(tmp_path).assess_health(items, reference_time=NOW)

        assert health.score == 0.0

    @pytest.mark.asyncio
    async def test_walk_failure_reported(self, tmp_path: Path) -> None:
        monitor = HealthMonitor(tmp_path / "missing")

        health = await monitor.assess_health([build_item("a", "note", now=NOW)], reference_time=NOW)

        [gap] = health.issues_of(IssueCategory.GAP)
        assert gap.description == "Failed to analyze context gaps"
        assert health.metrics.coverage == 0.0

    @pytest.mark.asyncio
    async def test_relevance_average(self, tmp_path: Path) -> None:
        items = [build_item("a", "note", now=NOW)]
        health = await HealthMonitor(tmp_path).assess_health(items, relevance_scores=[40, 80])
        assert health.metrics.avg_relevance == 60.0


class TestDetectors:
    def test_redundant_decisions_grouped(self, tmp_path: Path) -> None:
        items = [
            decision("a", "Use JWT tokens for user authentication sessions", "auth.ts"),
            decision("b", "Use JWT tokens for user authentication", "auth.ts"),
            build_item("c", "Unrelated conversation about lunch", now=NOW),
        ]

        [group] = HealthMonitor(tmp_path).find_redundant_groups(items)

        assert [i.id for i in group] == ["a", "b"]

    def test_large_redundancy_group_warns(self, tmp_path: Path) -> None:
        items = [decision(f"d{n}", f"item {n}", "auth.ts") for n in range(4)]
        [issue] = HealthMonitor(tmp_path).detect_redundancy(items)
        assert issue.severity == Severity.WARNING

    def test_should_not_conflicts_with_should(self) -> None:
        a = decision("a", "We should cache responses", "api.ts")
        b = decision("b", "We should not cache responses", "api.ts")
        assert HealthMonitor.are_conflicting(a, b)

    def test_no_shared_file_no_conflict(self) -> None:
        a = decision("a", "enable caching", "a.ts")
        b = decision("b", "disable caching", "b.ts")
        assert not HealthMonitor.are_conflicting(a, b)

    def test_directory_coverage(self, tmp_path: Path) -> None:
        lib = tmp_path / "lib"
        lib.mkdir()
        for name in ("a.py", "b.py", "c.py"):
            (lib / name).write_text("x = 1")

        [issue] = HealthMonitor(tmp_path).detect_gaps([])

        assert issue.severity == Severity.INFO
        assert issue.description == 'Directory "lib" has low context coverage (0%)'
        assert issue.affected == ["lib/a.py", "lib/b.py", "lib/c.py"]

    def test_textual_mention_counts_as_coverage(self, workspace: Path) -> None:
        items = [build_item("doc", "Start reading at index.ts then utils.ts", now=NOW)]
        assert HealthMonitor(workspace).detect_gaps(items) == []

    def test_skipped_directories(self, tmp_path: Path) -> None:
        modules = tmp_path / "node_modules"
        modules.mkdir()
        (modules / "index.js").write_text("")
        (tmp_path / "app.py").write_text("")

        assert HealthMonitor(tmp_path).project_files() == [tmp_path.resolve() / "app.py"]

"""Tests for beans.report: project and milestone progress."""

from __future__ import annotations

from beans.bean import Bean
from beans.core import Core
from beans.report import MilestoneProgress, milestone_progress, project_progress


class TestProjectProgress:
    def test_counts(self, core: Core) -> None:
        core.create(Bean(id="t001", title="A", type="bug"))
        core.create(Bean(id="t002", title="B", blocked_by=["t001"]))
        core.create(Bean(id="t003", title="C", status="completed", blocked_by=["t001"]))
        report = project_progress(core)
        assert report.total == 3
        assert report.by_status == {"todo": 2, "completed": 1}
        assert list(report.by_type) == ["bug", "untyped"]
        # Resolved beans are never counted as blocked.
        assert report.blocked == 1

    def test_empty(self, core: Core) -> None:
        report = project_progress(core)
        assert report.total == 0
        assert report.to_dict()["blocked_count"] == 0


class TestMilestoneProgress:
    def test_descendants_at_every_level(self, core: Core) -> None:
        core.create(Bean(id="m001", title="M", type="milestone"))
        core.create(Bean(id="e001", title="E", type="epic", parent="m001"))
        core.create(Bean(id="t001", title="T1", type="task", parent="e001", status="completed"))
        core.create(Bean(id="t002", title="T2", type="task", parent="e001", status="completed"))
        (report,) = milestone_progress(core)
        assert report.total == 3
        assert report.completed == 2
        assert round(report.completion_pct, 1) == 66.7

    def test_done_milestones_are_hidden(self, core: Core) -> None:
        core.create(Bean(id="m001", title="Open", type="milestone"))
        core.create(Bean(id="m002", title="Done", type="milestone", status="scrapped"))
        assert [r.milestone.id for r in milestone_progress(core)] == ["m001"]
        shown = milestone_progress(core, include_done=True)
        assert [r.milestone.id for r in shown] == ["m001", "m002"]

    def test_no_children(self) -> None:
        report = MilestoneProgress(milestone=Bean(id="m001"), total=0, by_status={})
        assert report.completion_pct == 0.0

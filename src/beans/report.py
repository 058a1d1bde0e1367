"""Project progress: counts by status and type, and milestone completion."""

# beans:domain=report

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from beans.query import sort_beans

if TYPE_CHECKING:
    from beans.bean import Bean
    from beans.core import Core

COMPLETED_STATUS = "completed"
UNTYPED = "untyped"


@dataclass(frozen=True)
class ProgressReport:
    """Bean counts for the whole project."""

    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    blocked: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "by_type": dict(self.by_type),
            "blocked_count": self.blocked,
        }


@dataclass(frozen=True)
class MilestoneProgress:
    """Status breakdown of everything below one milestone."""

    milestone: Bean
    total: int
    by_status: dict[str, int]

    @property
    def completed(self) -> int:
        return self.by_status.get(COMPLETED_STATUS, 0)

    @property
    def completion_pct(self) -> float:
        return self.completed / self.total * 100 if self.total else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "milestone": self.milestone.to_dict(),
            "total": self.total,
            "by_status": dict(self.by_status),
            "completion_pct": self.completion_pct,
        }


def _ordered(counts: Counter[str], order: tuple[str, ...]) -> dict[str, int]:
    """Configured names first, in order, then unknown names alphabetically."""
    known = [name for name in order if counts[name]]
    extra = sorted(name for name in counts if name not in order and counts[name])
    return {name: counts[name] for name in [*known, *extra]}


def project_progress(core: Core) -> ProgressReport:
    """Count beans by status and type, plus unresolved beans with an active blocker."""
    beans = core.all()
    by_status = Counter(b.status for b in beans)
    by_type = Counter(b.type or UNTYPED for b in beans)
    return ProgressReport(
        total=len(beans),
        by_status=_ordered(by_status, core.config.statuses),
        by_type=_ordered(by_type, core.config.types),
        blocked=len(core.blocked()),
    )


def milestone_progress(core: Core, *, include_done: bool = False) -> list[MilestoneProgress]:
    """Completion of every milestone over all of its descendants.

    Resolved milestones are skipped unless *include_done* is set.
    """
    milestones = [
        b
        for b in core.all()
        if b.type == "milestone" and (include_done or not core.config.is_resolved(b.status))
    ]
    result: list[MilestoneProgress] = []
    for milestone in sort_beans(milestones, core.config):
        below = core.descendants(milestone.id)
        counts = Counter(b.status for b in below)
        result.append(
            MilestoneProgress(
                milestone=milestone,
                total=len(below),
                by_status=_ordered(counts, core.config.statuses),
            )
        )
    return result

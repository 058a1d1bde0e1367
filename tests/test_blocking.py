"""Tests for direct vs transitive blocking."""

from __future__ import annotations

from conftest import make_beans

from beans.bean import Bean
from beans.config import Config
from beans.graph.links import LinkGraph


def _epic_scenario(epic_a_status: str = "todo") -> LinkGraph:
    """epicA blocks epicB; featureX is a child of epicB."""
    beans = make_beans(
        Bean(id="epicA", status=epic_a_status, type="epic", blocking=["epicB"]),
        Bean(id="epicB", status="todo", type="epic"),
        Bean(id="featureX", status="todo", type="feature", parent="epicB"),
    )
    return LinkGraph(beans, Config())


class TestDirectBlocking:
    def test_blocked_from_blocker_side(self) -> None:
        graph = _epic_scenario()
        assert graph.is_blocked("epicB")
        assert [b.id for b in graph.find_active_blockers("epicB")] == ["epicA"]

    def test_blocked_from_blocked_side(self) -> None:
        beans = make_beans(
            Bean(id="a", status="todo"),
            Bean(id="b", status="todo", blocked_by=["a"]),
        )
        graph = LinkGraph(beans, Config())
        assert graph.is_blocked("b")
        assert not graph.is_blocked("a")

    def test_resolved_blockers_do_not_count(self) -> None:
        beans = make_beans(
            Bean(id="a", status="completed", blocking=["c"]),
            Bean(id="b", status="scrapped"),
            Bean(id="c", status="todo", blocked_by=["b"]),
        )
        graph = LinkGraph(beans, Config())
        assert not graph.is_blocked("c")
        assert graph.find_active_blockers("c") == []

    def test_broken_blocker_is_absent(self) -> None:
        beans = make_beans(Bean(id="c", status="todo", blocked_by=["ghost"]))
        graph = LinkGraph(beans, Config())
        assert not graph.is_blocked("c")

    def test_unknown_bean(self) -> None:
        graph = _epic_scenario()
        assert not graph.is_blocked("nope")
        assert not graph.is_transitively_blocked("nope")
        assert graph.find_transitive_blockers("nope") == []


class TestTransitiveBlocking:
    def test_child_of_blocked_epic(self) -> None:
        graph = _epic_scenario()
        assert not graph.is_blocked("featureX")
        assert graph.is_transitively_blocked("featureX")
        assert [b.id for b in graph.find_transitive_blockers("featureX")] == ["epicA"]

    def test_resolving_the_blocker_clears_both(self) -> None:
        graph = _epic_scenario(epic_a_status="completed")
        assert not graph.is_blocked("featureX")
        assert not graph.is_transitively_blocked("featureX")
        assert not graph.is_blocked("epicB")

    def test_transitive_blockers_deduplicated(self) -> None:
        beans = make_beans(
            Bean(id="blocker", status="todo", blocking=["epic", "task"]),
            Bean(id="epic", status="todo"),
            Bean(id="task", status="todo", parent="epic"),
        )
        graph = LinkGraph(beans, Config())
        assert [b.id for b in graph.find_transitive_blockers("task")] == ["blocker"]

    def test_parent_cycle_on_disk_terminates(self) -> None:
        beans = make_beans(
            Bean(id="a", status="todo", parent="b"),
            Bean(id="b", status="todo", parent="a"),
        )
        graph = LinkGraph(beans, Config())
        assert not graph.is_transitively_blocked("a")

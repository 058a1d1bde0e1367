"""Tests for beans.graph.hierarchy: parent type rules and traversal."""

from __future__ import annotations

import pytest
from conftest import make_beans

from beans.bean import Bean
from beans.config import DEFAULT_TYPE_HIERARCHY
from beans.errors import NotFoundError, SelfLinkError, ValidationError
from beans.graph.hierarchy import ancestors, children, descendants, validate_parent


@pytest.fixture()
def typed_beans() -> dict[str, Bean]:
    return make_beans(
        Bean(id="m1", type="milestone"),
        Bean(id="e1", type="epic"),
        Bean(id="f1", type="feature"),
        Bean(id="t1", type="task"),
        Bean(id="x1"),
    )


class TestValidateParent:
    @pytest.mark.parametrize(
        ("child", "parent"),
        [("e1", "m1"), ("f1", "e1"), ("f1", "m1"), ("t1", "e1"), ("x1", "t1")],
    )
    def test_legal_pairs(self, typed_beans: dict[str, Bean], child: str, parent: str) -> None:
        validate_parent(typed_beans, typed_beans[child], parent, DEFAULT_TYPE_HIERARCHY)

    def test_milestone_has_no_parent(self, typed_beans: dict[str, Bean]) -> None:
        with pytest.raises(ValidationError, match="cannot have a parent"):
            validate_parent(typed_beans, typed_beans["m1"], "e1", DEFAULT_TYPE_HIERARCHY)

    def test_epic_under_feature(self, typed_beans: dict[str, Bean]) -> None:
        with pytest.raises(ValidationError, match="milestone"):
            validate_parent(typed_beans, typed_beans["e1"], "f1", DEFAULT_TYPE_HIERARCHY)

    def test_task_under_untyped_bean(self, typed_beans: dict[str, Bean]) -> None:
        with pytest.raises(ValidationError, match="without a type"):
            validate_parent(typed_beans, typed_beans["t1"], "x1", DEFAULT_TYPE_HIERARCHY)

    def test_self(self, typed_beans: dict[str, Bean]) -> None:
        with pytest.raises(SelfLinkError):
            validate_parent(typed_beans, typed_beans["e1"], "e1", DEFAULT_TYPE_HIERARCHY)

    def test_missing_parent(self, typed_beans: dict[str, Bean]) -> None:
        with pytest.raises(NotFoundError):
            validate_parent(typed_beans, typed_beans["f1"], "ghost", DEFAULT_TYPE_HIERARCHY)

    def test_custom_table(self, typed_beans: dict[str, Bean]) -> None:
        table = {"task": frozenset({"feature"})}
        validate_parent(typed_beans, typed_beans["t1"], "f1", table)
        with pytest.raises(ValidationError):
            validate_parent(typed_beans, typed_beans["t1"], "e1", table)


class TestTraversal:
    def test_ancestors_nearest_first(self) -> None:
        beans = make_beans(Bean(id="a"), Bean(id="b", parent="a"), Bean(id="c", parent="b"))
        assert [b.id for b in ancestors(beans, "c")] == ["b", "a"]
        assert ancestors(beans, "a") == []

    def test_ancestors_stop_on_cycle(self) -> None:
        beans = make_beans(Bean(id="a", parent="b"), Bean(id="b", parent="a"))
        assert [b.id for b in ancestors(beans, "a")] == ["b"]

    def test_children_sorted(self) -> None:
        beans = make_beans(Bean(id="p"), Bean(id="z", parent="p"), Bean(id="k", parent="p"))
        assert [b.id for b in children(beans, "p")] == ["k", "z"]

    def test_descendants_walk_all_levels(self) -> None:
        beans = make_beans(
            Bean(id="m"),
            Bean(id="e", parent="m"),
            Bean(id="t1", parent="e"),
            Bean(id="t2", parent="e"),
            Bean(id="x"),
        )
        assert sorted(b.id for b in descendants(beans, "m")) == ["e", "t1", "t2"]
        assert descendants(beans, "t1") == []

    def test_descendants_stop_on_cycle(self) -> None:
        beans = make_beans(Bean(id="a", parent="b"), Bean(id="b", parent="a"))
        assert [b.id for b in descendants(beans, "a")] == ["b"]

"""Tests for beans.graph.cycles: proposed-link checks and cycle scans."""

from __future__ import annotations

import itertools

import pytest
from conftest import make_beans

from beans.bean import BLOCKED_BY, BLOCKING, DUPLICATES, LINK_TYPES, PARENT, RELATED, Bean
from beans.errors import SelfLinkError
from beans.graph.cycles import (
    CycleFound,
    NoCycle,
    build_adjacency,
    canonical_cycle_key,
    detect_cycle,
    find_cycles,
    normalize_cycle,
)


class TestCanonicalKey:
    def test_rotations_share_a_key(self) -> None:
        keys = {
            canonical_cycle_key(["a", "b", "c", "a"]),
            canonical_cycle_key(["b", "c", "a", "b"]),
            canonical_cycle_key(["c", "a", "b", "c"]),
        }
        assert keys == {"a->b->c"}

    def test_open_path(self) -> None:
        assert normalize_cycle(["b", "a"]) == ("a", "b")

    def test_too_short(self) -> None:
        assert canonical_cycle_key(["a"]) == ""


class TestDetectCycle:
    def test_parent_chain_scenario(self) -> None:
        beans = make_beans(
            Bean(id="A"),
            Bean(id="B", parent="A"),
            Bean(id="C", parent="B"),
        )
        # Making C the parent of A closes A -> B -> C.
        check = detect_cycle(beans, "C", PARENT, "A")
        assert isinstance(check, CycleFound)
        assert check.found
        assert len(check.path) >= 3
        assert {"A", "B", "C"} <= set(check.path)
        assert check.path[0] == check.path[-1] == "C"

    def test_parent_without_cycle(self) -> None:
        beans = make_beans(Bean(id="A"), Bean(id="B", parent="A"), Bean(id="C"))
        check = detect_cycle(beans, "C", PARENT, "B")
        assert isinstance(check, NoCycle)
        assert not check.found

    def test_blocking_cycle(self) -> None:
        beans = make_beans(
            Bean(id="A", blocking=["B"]),
            Bean(id="B", blocking=["C"]),
            Bean(id="C"),
        )
        check = detect_cycle(beans, "C", BLOCKING, "A")
        assert isinstance(check, CycleFound)
        assert check.path == ("C", "A", "B", "C")

    def test_blocked_by_is_reverse_blocking(self) -> None:
        # A blocks B; proposing "A blocked_by B" closes the loop.
        beans = make_beans(Bean(id="A", blocking=["B"]), Bean(id="B"))
        assert detect_cycle(beans, "A", BLOCKED_BY, "B").found

    def test_blocked_by_declarations_count_as_edges(self) -> None:
        # B.blocked_by=[A] means A blocks B.
        beans = make_beans(Bean(id="A"), Bean(id="B", blocked_by=["A"]))
        assert detect_cycle(beans, "B", BLOCKING, "A").found
        assert not detect_cycle(beans, "A", BLOCKING, "B").found

    @pytest.mark.parametrize("link_type", [RELATED, DUPLICATES])
    def test_non_hierarchical_types_never_cycle(self, link_type: str) -> None:
        beans = make_beans(Bean(id="A", related=["B"]), Bean(id="B", related=["A"]))
        assert isinstance(detect_cycle(beans, "A", link_type, "B"), NoCycle)

    @pytest.mark.parametrize("link_type", LINK_TYPES)
    def test_self_reference_always_rejected(self, link_type: str) -> None:
        beans = make_beans(Bean(id="A"))
        with pytest.raises(SelfLinkError):
            detect_cycle(beans, "A", link_type, "A")

    def test_broken_targets_are_ignored(self) -> None:
        beans = make_beans(Bean(id="A", blocking=["ghost"]), Bean(id="B"))
        assert not detect_cycle(beans, "B", BLOCKING, "A").found

    def test_does_not_modify(self) -> None:
        beans = make_beans(Bean(id="A"), Bean(id="B", parent="A"))
        detect_cycle(beans, "B", PARENT, "A")
        assert beans["A"].parent is None


class TestAcyclicity:
    def test_every_accepted_edge_keeps_graph_acyclic(self) -> None:
        """Add every possible blocking edge among 5 beans, accepting only safe ones."""
        ids = ["a", "b", "c", "d", "e"]
        beans = make_beans(*(Bean(id=i) for i in ids))
        for src, dst in itertools.permutations(ids, 2):
            if not detect_cycle(beans, src, BLOCKING, dst).found:
                beans[src].add_blocking(dst)
        assert find_cycles(beans, BLOCKING) == []
        # A total order was built: every remaining edge would be rejected.
        for src, dst in itertools.permutations(ids, 2):
            if not beans[src].is_blocking(dst):
                assert detect_cycle(beans, src, BLOCKING, dst).found

    def test_parent_depth_five(self) -> None:
        ids = ["l0", "l1", "l2", "l3", "l4"]
        parents = [None, *ids[:-1]]
        beans = make_beans(*(Bean(id=i, parent=p) for i, p in zip(ids, parents)))
        for n, child in enumerate(ids):
            for ancestor in ids[:n]:
                assert detect_cycle(beans, child, PARENT, ancestor).found


class TestFindCycles:
    def test_each_cycle_once(self) -> None:
        beans = make_beans(
            Bean(id="a", blocking=["b"]),
            Bean(id="b", blocking=["c"]),
            Bean(id="c", blocking=["a"]),
        )
        cycles = find_cycles(beans, BLOCKING)
        assert len(cycles) == 1
        assert canonical_cycle_key(cycles[0]) == "a->b->c"
        assert cycles[0][0] == cycles[0][-1]

    def test_two_distinct_cycles(self) -> None:
        beans = make_beans(
            Bean(id="a", parent="b"),
            Bean(id="b", parent="a"),
            Bean(id="c", parent="d"),
            Bean(id="d", parent="c"),
        )
        keys = {canonical_cycle_key(c) for c in find_cycles(beans, PARENT)}
        assert keys == {"a->b", "c->d"}

    def test_self_links_are_not_cycles(self) -> None:
        beans = make_beans(Bean(id="a", blocking=["a"]))
        assert find_cycles(beans, BLOCKING) == []

    def test_adjacency_dedupes_both_declarations(self) -> None:
        beans = make_beans(Bean(id="a", blocking=["b"]), Bean(id="b", blocked_by=["a"]))
        assert build_adjacency(beans, BLOCKING) == {"a": ["b"]}

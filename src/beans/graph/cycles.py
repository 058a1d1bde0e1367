# beans:domain=graph
"""Cycle detection over the parent graph and the combined blocking graph.

Two graphs are checked:

* ``parent`` -- containment edges ``parent -> child``.
* ``blocking`` -- ``A -> B`` whenever A blocks B, whether that was declared
  as ``A.blocking: [B]`` or ``B.blocked_by: [A]``.  ``blocked_by`` links are
  checked against the same graph with the direction flipped.

``related`` and ``duplicates`` are non-hierarchical and never form cycles.
Links to beans that do not exist are ignored, as are self-references (those
are reported separately).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from beans.bean import BLOCKED_BY, BLOCKING, PARENT
from beans.errors import SelfLinkError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from beans.bean import Bean

# Link types whose graphs must stay acyclic.
CYCLE_LINK_TYPES: tuple[str, ...] = (PARENT, BLOCKING)


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoCycle:
    """The proposed link is safe."""

    @property
    def found(self) -> bool:
        return False


@dataclass(frozen=True)
class CycleFound:
    """The proposed link would close a cycle.

    *path* starts and ends with the source of the proposed link, e.g.
    ``("c", "a", "b", "c")``.
    """

    path: tuple[str, ...]

    @property
    def found(self) -> bool:
        return True


CycleCheck = NoCycle | CycleFound


# ---------------------------------------------------------------------------
# Canonical keys
# ---------------------------------------------------------------------------


def normalize_cycle(path: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """Rotate a closed cycle path so it starts at its smallest node.

    ``[b, c, a, b]`` becomes ``(a, b, c)``; the repeated end node is dropped.
    Paths shorter than two entries are not cycles and normalize to ``()``.
    """
    if len(path) < 2:
        return ()
    nodes = list(path[:-1]) if path[0] == path[-1] else list(path)
    min_idx = nodes.index(min(nodes))
    return tuple(nodes[min_idx:] + nodes[:min_idx])


def canonical_cycle_key(path: list[str] | tuple[str, ...]) -> str:
    """``a->b->c`` for any rotation of the cycle ``a -> b -> c -> a``."""
    return "->".join(normalize_cycle(path))


# ---------------------------------------------------------------------------
# Adjacency
# ---------------------------------------------------------------------------


def graph_kind(link_type: str) -> str | None:
    """Which acyclic graph *link_type* belongs to, or None."""
    if link_type == PARENT:
        return PARENT
    if link_type in (BLOCKING, BLOCKED_BY):
        return BLOCKING
    return None


def build_adjacency(beans: Mapping[str, Bean], kind: str) -> dict[str, list[str]]:
    """Adjacency lists for the ``parent`` or ``blocking`` graph."""
    adj: dict[str, list[str]] = {}

    def _add(src: str, dst: str) -> None:
        if src == dst or src not in beans or dst not in beans:
            return
        targets = adj.setdefault(src, [])
        if dst not in targets:
            targets.append(dst)

    for bean_id in sorted(beans):
        bean = beans[bean_id]
        if kind == PARENT:
            if bean.parent:
                _add(bean.parent, bean_id)
        elif kind == BLOCKING:
            for target in bean.blocking:
                _add(bean_id, target)
            for blocker in bean.blocked_by:
                _add(blocker, bean_id)
    return adj


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _find_path(adj: dict[str, list[str]], start: str, goal: str) -> list[str] | None:
    """Iterative DFS from *start*; returns the node path to *goal* or None."""
    came_from: dict[str, str | None] = {start: None}
    stack = [start]
    while stack:
        current = stack.pop()
        if current == goal:
            path = [current]
            prev = came_from[current]
            while prev is not None:
                path.append(prev)
                prev = came_from[prev]
            path.reverse()
            return path
        for neighbor in reversed(adj.get(current, [])):
            if neighbor not in came_from:
                came_from[neighbor] = current
                stack.append(neighbor)
    return None


def detect_cycle(
    beans: Mapping[str, Bean],
    from_id: str,
    link_type: str,
    to_id: str,
) -> CycleCheck:
    """Check whether adding ``from_id -[link_type]-> to_id`` would create a cycle.

    Meaning of the proposed link per type:

    * ``parent``: *from_id* becomes the parent of *to_id*.
    * ``blocking``: *from_id* blocks *to_id*.
    * ``blocked_by``: *from_id* is blocked by *to_id*.

    Nothing is modified.  Raises :class:`SelfLinkError` for ``A -> A``
    regardless of link type.
    """
    if from_id == to_id:
        raise SelfLinkError(from_id, link_type)

    kind = graph_kind(link_type)
    if kind is None:
        return NoCycle()

    src, dst = from_id, to_id
    if link_type == BLOCKED_BY:
        src, dst = to_id, from_id

    adj = build_adjacency(beans, kind)
    path = _find_path(adj, dst, src)
    if path is None:
        return NoCycle()
    return CycleFound(path=(src, *path))


def find_cycles(beans: Mapping[str, Bean], kind: str) -> list[list[str]]:
    """All distinct cycles reachable by a visited-set DFS over one graph.

    Each cycle is returned once as a closed path (first node == last node),
    regardless of which node the DFS entered it from.
    """
    adj = build_adjacency(beans, kind)
    nodes: set[str] = set(adj)
    for targets in adj.values():
        nodes.update(targets)

    done: set[str] = set()
    seen_keys: set[tuple[str, ...]] = set()
    cycles: list[list[str]] = []

    for start in sorted(nodes):
        if start in done:
            continue
        # Stack entries: (node, index of next neighbor to visit)
        stack: list[tuple[str, int]] = [(start, 0)]
        on_path: list[str] = [start]
        on_path_set: set[str] = {start}

        while stack:
            node, idx = stack[-1]
            neighbors = adj.get(node, [])
            if idx < len(neighbors):
                stack[-1] = (node, idx + 1)
                neighbor = neighbors[idx]
                if neighbor in on_path_set:
                    cycle = on_path[on_path.index(neighbor) :]
                    key = normalize_cycle(cycle)
                    if key not in seen_keys:
                        seen_keys.add(key)
                        cycles.append([*cycle, neighbor])
                elif neighbor not in done:
                    stack.append((neighbor, 0))
                    on_path.append(neighbor)
                    on_path_set.add(neighbor)
            else:
                stack.pop()
                on_path.pop()
                on_path_set.discard(node)
                done.add(node)

    return cycles

"""Graph domain: link graph engine, cycle detection, blocking, hierarchy rules."""

# beans:domain=graph

from beans.graph.blocking import (
    direct_blocker_ids,
    find_active_blockers,
    find_transitive_blockers,
    is_blocked,
    is_transitively_blocked,
)
from beans.graph.cycles import (
    CycleCheck,
    CycleFound,
    NoCycle,
    build_adjacency,
    canonical_cycle_key,
    detect_cycle,
    find_cycles,
    normalize_cycle,
)
from beans.graph.hierarchy import ancestors, children, descendants, validate_parent
from beans.graph.links import (
    BrokenLink,
    Cycle,
    IncomingLink,
    LinkCheckResult,
    LinkGraph,
    RepairResult,
    SelfLink,
)

__all__ = [
    "BrokenLink",
    "Cycle",
    "CycleCheck",
    "CycleFound",
    "IncomingLink",
    "LinkCheckResult",
    "LinkGraph",
    "NoCycle",
    "RepairResult",
    "SelfLink",
    "ancestors",
    "build_adjacency",
    "canonical_cycle_key",
    "children",
    "descendants",
    "detect_cycle",
    "direct_blocker_ids",
    "find_active_blockers",
    "find_cycles",
    "find_transitive_blockers",
    "is_blocked",
    "is_transitively_blocked",
    "normalize_cycle",
    "validate_parent",
]

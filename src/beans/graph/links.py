# beans:domain=graph
"""Link graph engine: incoming links, integrity checks, repairs, blocking queries.

:class:`LinkGraph` works directly on the caller's ``{id: Bean}`` mapping.
Derived views (incoming links, adjacency lists) are rebuilt from that
mapping on every call, so they always reflect the latest state.  The graph
does no locking; callers serialize access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from beans.bean import LINK_TYPES
from beans.graph import blocking, hierarchy
from beans.graph.cycles import (
    CYCLE_LINK_TYPES,
    CycleCheck,
    detect_cycle,
    find_cycles,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from beans.bean import Bean
    from beans.config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncomingLink:
    """A link pointing at some bean: ``from_bean -[link_type]-> target``."""

    from_bean: Bean
    link_type: str


@dataclass(frozen=True)
class BrokenLink:
    """A relation naming a bean ID that does not exist."""

    bean_id: str
    link_type: str
    target: str


@dataclass(frozen=True)
class SelfLink:
    """A relation pointing a bean at itself."""

    bean_id: str
    link_type: str


@dataclass(frozen=True)
class Cycle:
    """A cycle in the ``parent`` or ``blocking`` graph (closed path)."""

    link_type: str
    path: list[str]


@dataclass
class LinkCheckResult:
    """Result of :meth:`LinkGraph.check_all_links`."""

    broken_links: list[BrokenLink] = field(default_factory=list)
    self_links: list[SelfLink] = field(default_factory=list)
    cycles: list[Cycle] = field(default_factory=list)

    def has_issues(self) -> bool:
        return bool(self.broken_links or self.self_links or self.cycles)

    def total_issues(self) -> int:
        return len(self.broken_links) + len(self.self_links) + len(self.cycles)


@dataclass
class RepairResult:
    """Outcome of an in-memory link repair."""

    removed: int = 0
    touched: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# LinkGraph
# ---------------------------------------------------------------------------


class LinkGraph:
    """Relationship queries and repairs over a bean collection."""

    def __init__(self, beans: Mapping[str, Bean], config: Config) -> None:
        self.beans = beans
        self.config = config

    # -- incoming links -----------------------------------------------------

    def find_incoming_links(self, target_id: str) -> list[IncomingLink]:
        """Every ``(bean, link_type)`` whose relation names *target_id*.

        Self-references are not incoming links.  Unknown targets simply
        have none.
        """
        result: list[IncomingLink] = []
        for bean_id in sorted(self.beans):
            if bean_id == target_id:
                continue
            bean = self.beans[bean_id]
            for link_type, target in bean.links():
                if target == target_id:
                    result.append(IncomingLink(from_bean=bean, link_type=link_type))
        return result

    # -- validation ---------------------------------------------------------

    def detect_cycle(self, from_id: str, link_type: str, to_id: str) -> CycleCheck:
        """See :func:`beans.graph.cycles.detect_cycle`."""
        return detect_cycle(self.beans, from_id, link_type, to_id)

    def validate_parent(self, bean: Bean, parent_id: str) -> None:
        """See :func:`beans.graph.hierarchy.validate_parent`."""
        hierarchy.validate_parent(self.beans, bean, parent_id, self.config.type_hierarchy)

    # -- integrity ----------------------------------------------------------

    def check_all_links(self) -> LinkCheckResult:
        """Scan for broken links, self-references, and cycles.

        Nothing is modified; see :meth:`fix_broken_links` for the repair.
        """
        result = LinkCheckResult()
        for bean_id in sorted(self.beans):
            bean = self.beans[bean_id]
            for link_type, target in bean.links():
                if target == bean_id:
                    result.self_links.append(SelfLink(bean_id=bean_id, link_type=link_type))
                elif target not in self.beans:
                    result.broken_links.append(
                        BrokenLink(bean_id=bean_id, link_type=link_type, target=target)
                    )

        for kind in CYCLE_LINK_TYPES:
            for path in find_cycles(self.beans, kind):
                result.cycles.append(Cycle(link_type=kind, path=path))

        return result

    # -- repairs ------------------------------------------------------------

    def remove_links_to(self, target_id: str) -> RepairResult:
        """Strip every reference to *target_id* from every bean, in place.

        Each removed reference counts once: a bean that both blocks and is
        the child of *target_id* contributes two.
        """
        result = RepairResult()
        for bean_id in sorted(self.beans):
            bean = self.beans[bean_id]
            removed = sum(bean.remove_link(link_type, target_id) for link_type in LINK_TYPES)
            if removed:
                result.removed += removed
                result.touched.append(bean_id)
        if result.removed:
            logger.info(
                "Removed %d link(s) to %s from %d bean(s)",
                result.removed,
                target_id,
                len(result.touched),
            )
        return result

    def fix_broken_links(self) -> RepairResult:
        """Remove broken and self-referencing links, in place.

        Valid links are kept; cycles are reported by
        :meth:`check_all_links` but never broken automatically.
        """
        check = self.check_all_links()
        doomed: dict[str, list[tuple[str, str]]] = {}
        for broken in check.broken_links:
            doomed.setdefault(broken.bean_id, []).append((broken.link_type, broken.target))
        for self_link in check.self_links:
            pair = (self_link.link_type, self_link.bean_id)
            doomed.setdefault(self_link.bean_id, []).append(pair)

        result = RepairResult()
        for bean_id in sorted(doomed):
            bean = self.beans[bean_id]
            removed = 0
            for link_type, target in dict.fromkeys(doomed[bean_id]):
                removed += bean.remove_link(link_type, target)
            if removed:
                result.removed += removed
                result.touched.append(bean_id)
        if result.removed:
            logger.info(
                "Fixed %d broken link(s) in %d bean(s)", result.removed, len(result.touched)
            )
        return result

    # -- hierarchy ----------------------------------------------------------

    def ancestors(self, bean_id: str) -> list[Bean]:
        return hierarchy.ancestors(self.beans, bean_id)

    def children(self, bean_id: str) -> list[Bean]:
        return hierarchy.children(self.beans, bean_id)

    def descendants(self, bean_id: str) -> list[Bean]:
        return hierarchy.descendants(self.beans, bean_id)

    def parent_of(self, bean_id: str) -> Bean | None:
        bean = self.beans.get(bean_id)
        if bean is None or not bean.parent:
            return None
        return self.beans.get(bean.parent)

    # -- blocking -----------------------------------------------------------

    def is_blocked(self, bean_id: str) -> bool:
        """True iff an unresolved bean directly blocks *bean_id*."""
        return blocking.is_blocked(self.beans, bean_id, self.config.is_resolved)

    def find_active_blockers(self, bean_id: str) -> list[Bean]:
        return blocking.find_active_blockers(self.beans, bean_id, self.config.is_resolved)

    def is_transitively_blocked(self, bean_id: str) -> bool:
        """True iff *bean_id* or one of its ancestors is directly blocked."""
        return blocking.is_transitively_blocked(self.beans, bean_id, self.config.is_resolved)

    def find_transitive_blockers(self, bean_id: str) -> list[Bean]:
        return blocking.find_transitive_blockers(self.beans, bean_id, self.config.is_resolved)

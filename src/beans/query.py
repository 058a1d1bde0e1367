"""Filtering and sorting bean collections."""

# beans:domain=query

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from beans.bean import Bean
    from beans.config import Config
    from beans.graph.links import LinkGraph

SORT_KEYS: frozenset[str] = frozenset({"status", "priority", "created", "updated", "id"})


@dataclass(frozen=True)
class BeanFilter:
    """Criteria for :func:`filter_beans`.

    Values inside one field are OR-ed; fields are AND-ed.  ``None`` means
    "don't filter on this".  ``linked_as``/``not_linked_as`` and
    ``is_blocked`` need a :class:`~beans.graph.links.LinkGraph`.
    """

    statuses: tuple[str, ...] | None = None
    exclude_statuses: tuple[str, ...] | None = None
    types: tuple[str, ...] | None = None
    exclude_types: tuple[str, ...] | None = None
    priorities: tuple[str, ...] | None = None
    exclude_priorities: tuple[str, ...] | None = None
    tags: tuple[str, ...] | None = None
    exclude_tags: tuple[str, ...] | None = None
    has_links: tuple[str, ...] | None = None  # outgoing link types
    no_links: tuple[str, ...] | None = None
    linked_as: tuple[str, ...] | None = None  # incoming link types
    not_linked_as: tuple[str, ...] | None = None
    is_blocked: bool | None = None
    parent_id: str | None = None
    no_parent: bool = False

    def needs_graph(self) -> bool:
        return bool(self.linked_as or self.not_linked_as or self.is_blocked is not None)


# ---------------------------------------------------------------------------
# Field filters
# ---------------------------------------------------------------------------


def filter_by_field(
    beans: list[Bean], values: Iterable[str], getter: Callable[[Bean], str | None]
) -> list[Bean]:
    """Keep beans whose ``getter(bean)`` is one of *values*."""
    value_set = set(values)
    return [b for b in beans if getter(b) in value_set]


def exclude_by_field(
    beans: list[Bean], values: Iterable[str], getter: Callable[[Bean], str | None]
) -> list[Bean]:
    value_set = set(values)
    return [b for b in beans if getter(b) not in value_set]


def filter_by_tags(beans: list[Bean], tags: Iterable[str]) -> list[Bean]:
    """Keep beans carrying any of *tags*."""
    tag_set = {t.strip().lower() for t in tags}
    return [b for b in beans if tag_set.intersection(b.tags)]


def exclude_by_tags(beans: list[Bean], tags: Iterable[str]) -> list[Bean]:
    tag_set = {t.strip().lower() for t in tags}
    return [b for b in beans if not tag_set.intersection(b.tags)]


def _outgoing_types(bean: Bean) -> set[str]:
    return {link_type for link_type, _ in bean.links()}


def filter_by_outgoing_links(beans: list[Bean], link_types: Iterable[str]) -> list[Bean]:
    type_set = set(link_types)
    return [b for b in beans if type_set.intersection(_outgoing_types(b))]


def exclude_by_outgoing_links(beans: list[Bean], link_types: Iterable[str]) -> list[Bean]:
    type_set = set(link_types)
    return [b for b in beans if not type_set.intersection(_outgoing_types(b))]


def _incoming_types(graph: LinkGraph, bean: Bean) -> set[str]:
    return {link.link_type for link in graph.find_incoming_links(bean.id)}


def filter_by_incoming_links(
    beans: list[Bean], link_types: Iterable[str], graph: LinkGraph
) -> list[Bean]:
    """Keep beans that are the target of a link of one of *link_types*."""
    type_set = set(link_types)
    return [b for b in beans if type_set.intersection(_incoming_types(graph, b))]


def exclude_by_incoming_links(
    beans: list[Bean], link_types: Iterable[str], graph: LinkGraph
) -> list[Bean]:
    type_set = set(link_types)
    return [b for b in beans if not type_set.intersection(_incoming_types(graph, b))]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def filter_beans(
    beans: Iterable[Bean],
    flt: BeanFilter | None,
    graph: LinkGraph | None = None,
) -> list[Bean]:
    """Apply *flt* to *beans*; returns a new list, input order preserved."""
    result = list(beans)
    if flt is None:
        return result
    if flt.needs_graph() and graph is None:
        msg = "this filter needs a LinkGraph"
        raise ValueError(msg)

    if flt.statuses:
        result = filter_by_field(result, flt.statuses, lambda b: b.status)
    if flt.exclude_statuses:
        result = exclude_by_field(result, flt.exclude_statuses, lambda b: b.status)
    if flt.types:
        result = filter_by_field(result, flt.types, lambda b: b.type)
    if flt.exclude_types:
        result = exclude_by_field(result, flt.exclude_types, lambda b: b.type)
    if flt.priorities:
        result = filter_by_field(result, flt.priorities, lambda b: b.priority or "normal")
    if flt.exclude_priorities:
        result = exclude_by_field(result, flt.exclude_priorities, lambda b: b.priority or "normal")
    if flt.tags:
        result = filter_by_tags(result, flt.tags)
    if flt.exclude_tags:
        result = exclude_by_tags(result, flt.exclude_tags)
    if flt.has_links:
        result = filter_by_outgoing_links(result, flt.has_links)
    if flt.no_links:
        result = exclude_by_outgoing_links(result, flt.no_links)
    if flt.parent_id is not None:
        result = [b for b in result if b.parent == flt.parent_id]
    if flt.no_parent:
        result = [b for b in result if not b.parent]

    if graph is not None:
        if flt.linked_as:
            result = filter_by_incoming_links(result, flt.linked_as, graph)
        if flt.not_linked_as:
            result = exclude_by_incoming_links(result, flt.not_linked_as, graph)
        if flt.is_blocked is not None:
            result = [b for b in result if graph.is_blocked(b.id) == flt.is_blocked]

    return result


def sort_beans(beans: list[Bean], config: Config, by: str = "status") -> list[Bean]:
    """Return *beans* sorted for display.

    ``status`` (default): status order, priority, type, then ID.
    ``priority``: priority order, status, type, then ID.
    ``created``/``updated``: newest first, ID as tie-breaker.
    ``id``: plain ID order.
    """
    if by not in SORT_KEYS:
        msg = f"unknown sort key '{by}', expected one of {', '.join(sorted(SORT_KEYS))}"
        raise ValueError(msg)

    if by == "id":
        return sorted(beans, key=lambda b: b.id)
    if by == "priority":
        return sorted(
            beans,
            key=lambda b: (
                config.priority_order(b.priority),
                config.status_order(b.status),
                config.type_order(b.type),
                b.id,
            ),
        )
    if by in ("created", "updated"):
        attr = "created_at" if by == "created" else "updated_at"
        by_id = sorted(beans, key=lambda b: b.id)
        with_ts = [b for b in by_id if getattr(b, attr) is not None]
        without_ts = [b for b in by_id if getattr(b, attr) is None]
        with_ts.sort(key=lambda b: getattr(b, attr), reverse=True)
        return with_ts + without_ts
    return sorted(
        beans,
        key=lambda b: (
            config.status_order(b.status),
            config.priority_order(b.priority),
            config.type_order(b.type),
            b.id,
        ),
    )

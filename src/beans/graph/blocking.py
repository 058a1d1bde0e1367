# beans:domain=graph
"""Direct and transitive blocking.

A bean is *directly* blocked when at least one unresolved bean blocks it,
declared from either side (``blocker.blocking`` or ``bean.blocked_by``).
It is *transitively* blocked when it or any ancestor in its parent chain is
directly blocked.  List views that answer "what can I work on" use the
direct notion; planning views use the transitive one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from beans.graph.hierarchy import ancestors

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from beans.bean import Bean


def direct_blocker_ids(beans: Mapping[str, Bean], bean_id: str) -> list[str]:
    """IDs of beans declared as blockers of *bean_id*, in either direction.

    Broken references (IDs not in *beans*) and self-references are skipped.
    """
    bean = beans.get(bean_id)
    if bean is None:
        return []

    ids: list[str] = []
    for blocker_id in bean.blocked_by:
        if blocker_id != bean_id and blocker_id in beans and blocker_id not in ids:
            ids.append(blocker_id)
    for other_id in sorted(beans):
        if other_id != bean_id and other_id not in ids and beans[other_id].is_blocking(bean_id):
            ids.append(other_id)
    return ids


def find_active_blockers(
    beans: Mapping[str, Bean],
    bean_id: str,
    is_resolved: Callable[[str], bool],
) -> list[Bean]:
    """Direct blockers of *bean_id* whose status is not resolved."""
    return [
        beans[blocker_id]
        for blocker_id in direct_blocker_ids(beans, bean_id)
        if not is_resolved(beans[blocker_id].status)
    ]


def is_blocked(
    beans: Mapping[str, Bean],
    bean_id: str,
    is_resolved: Callable[[str], bool],
) -> bool:
    return bool(find_active_blockers(beans, bean_id, is_resolved))


def find_transitive_blockers(
    beans: Mapping[str, Bean],
    bean_id: str,
    is_resolved: Callable[[str], bool],
) -> list[Bean]:
    """Active blockers of *bean_id* and of every ancestor, deduplicated by ID."""
    if bean_id not in beans:
        return []

    result: list[Bean] = []
    seen: set[str] = set()
    chain = [beans[bean_id], *ancestors(beans, bean_id)]
    for member in chain:
        for blocker in find_active_blockers(beans, member.id, is_resolved):
            if blocker.id not in seen:
                seen.add(blocker.id)
                result.append(blocker)
    return result


def is_transitively_blocked(
    beans: Mapping[str, Bean],
    bean_id: str,
    is_resolved: Callable[[str], bool],
) -> bool:
    if bean_id not in beans:
        return False
    if is_blocked(beans, bean_id, is_resolved):
        return True
    return any(is_blocked(beans, a.id, is_resolved) for a in ancestors(beans, bean_id))

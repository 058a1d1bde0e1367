# beans:domain=graph
"""Parent/child type rules and hierarchy traversal."""

from __future__ import annotations

from typing import TYPE_CHECKING

from beans.bean import PARENT
from beans.errors import NotFoundError, SelfLinkError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from beans.bean import Bean


def validate_parent(
    beans: Mapping[str, Bean],
    bean: Bean,
    parent_id: str,
    hierarchy: Mapping[str, frozenset[str]],
) -> None:
    """Raise unless *parent_id* may become the parent of *bean*.

    *hierarchy* maps a child type to the set of legal parent types.  An
    empty set means beans of that type cannot have a parent at all; types
    missing from the table are unrestricted.
    """
    if parent_id == bean.id:
        raise SelfLinkError(bean.id, PARENT)

    parent = beans.get(parent_id)
    if parent is None:
        raise NotFoundError(parent_id)

    if not bean.type or bean.type not in hierarchy:
        return
    allowed = hierarchy[bean.type]
    if not allowed:
        msg = f"a {bean.type} cannot have a parent"
        raise ValidationError(msg)
    if parent.type not in allowed:
        allowed_str = ", ".join(sorted(allowed))
        msg = (
            f"a {bean.type} can only have a parent of type {allowed_str}, "
            f"but {parent_id} is a {parent.type or 'bean without a type'}"
        )
        raise ValidationError(msg)


def ancestors(beans: Mapping[str, Bean], bean_id: str) -> list[Bean]:
    """Parent chain of *bean_id*, nearest first.

    Stops at a missing parent (broken link) and at a repeated node, so a
    corrupt parent cycle on disk cannot loop forever.
    """
    chain: list[Bean] = []
    bean = beans.get(bean_id)
    seen = {bean_id}
    while bean is not None and bean.parent and bean.parent not in seen:
        parent = beans.get(bean.parent)
        if parent is None:
            break
        chain.append(parent)
        seen.add(parent.id)
        bean = parent
    return chain


def children(beans: Mapping[str, Bean], bean_id: str) -> list[Bean]:
    """Direct children of *bean_id*, sorted by ID."""
    return [beans[i] for i in sorted(beans) if beans[i].parent == bean_id and i != bean_id]


def descendants(beans: Mapping[str, Bean], bean_id: str) -> list[Bean]:
    """Every bean below *bean_id* in the parent tree, depth first.

    Each bean appears once even when a corrupt parent cycle leads back up.
    """
    result: list[Bean] = []
    seen = {bean_id}
    stack = [bean_id]
    while stack:
        current = stack.pop()
        found = [c for c in children(beans, current) if c.id not in seen]
        for child in found:
            seen.add(child.id)
            result.append(child)
        stack.extend(c.id for c in reversed(found))
    return result

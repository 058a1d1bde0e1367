"""Bean entity: a single work item plus its id, slug, tag and link helpers.

Nothing in here touches the filesystem; see :mod:`beans.frontmatter` for the
file format and :mod:`beans.store` for persistence.
"""

# beans:domain=bean

from __future__ import annotations

import copy
import hashlib
import json
import re
import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from beans.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

# ---------------------------------------------------------------------------
# Link types
# ---------------------------------------------------------------------------

PARENT = "parent"
BLOCKING = "blocking"
BLOCKED_BY = "blocked_by"
RELATED = "related"
DUPLICATES = "duplicates"

LINK_TYPES: tuple[str, ...] = (PARENT, BLOCKING, BLOCKED_BY, RELATED, DUPLICATES)
LIST_LINK_TYPES: tuple[str, ...] = (BLOCKING, BLOCKED_BY, RELATED, DUPLICATES)

# ---------------------------------------------------------------------------
# IDs, slugs, filenames
# ---------------------------------------------------------------------------

ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
MAX_SLUG_LENGTH = 50
FILE_SUFFIX = ".md"

_SLUG_STRIP_RE = re.compile(r"[^\w-]")
_SLUG_DASHES_RE = re.compile(r"-{2,}")


def new_id(prefix: str = "", length: int = 4) -> str:
    """Return a random bean ID: *prefix* followed by *length* id characters."""
    return prefix + "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def slugify(title: str) -> str:
    """Turn a title into a filename-safe slug of at most 50 characters."""
    slug = title.lower().replace(" ", "-").replace("_", "-")
    slug = _SLUG_STRIP_RE.sub("", slug)
    slug = _SLUG_DASHES_RE.sub("-", slug).strip("-")
    if len(slug) > MAX_SLUG_LENGTH:
        slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug


def build_filename(bean_id: str, slug: str = "") -> str:
    """``id--slug.md``, or ``id.md`` without a slug."""
    if slug:
        return f"{bean_id}--{slug}{FILE_SUFFIX}"
    return f"{bean_id}{FILE_SUFFIX}"


def parse_filename(name: str, prefix: str = "") -> tuple[str, str]:
    """Split a bean filename into ``(id, slug)``.

    Understands ``id--slug.md``, ``id.slug.md``, the legacy ``id-slug.md``
    and plain ``id.md``.  When *prefix* is given and the name starts with
    it, the prefix is kept as part of the ID instead of being mistaken for
    a legacy ID.
    """
    base = name[: -len(FILE_SUFFIX)] if name.endswith(FILE_SUFFIX) else name
    if prefix and base.startswith(prefix) and len(base) > len(prefix):
        bean_id, slug = parse_filename(base[len(prefix) :])
        return prefix + bean_id, slug

    if "--" in base:
        bean_id, slug = base.split("--", 1)
    elif "." in base:
        bean_id, slug = base.split(".", 1)
    elif "-" in base:
        bean_id, slug = base.split("-", 1)
    else:
        bean_id, slug = base, ""
    return bean_id, slug


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def normalize_tag(tag: str) -> str:
    """Lowercase and validate a tag; tags are non-empty and contain no whitespace."""
    normalized = tag.strip().lower()
    if not normalized:
        msg = "tag must not be empty"
        raise ValidationError(msg)
    if any(ch.isspace() for ch in normalized):
        msg = f"tag '{tag}' must not contain whitespace"
        raise ValidationError(msg)
    return normalized


# ---------------------------------------------------------------------------
# Bean
# ---------------------------------------------------------------------------


@dataclass
class Bean:
    """An issue stored as a markdown file with YAML front matter.

    ``id``, ``slug`` and ``path`` come from the filename and are never
    written into the front matter.  Relation fields hold bean IDs; they may
    name beans that do not exist (broken links).
    """

    id: str = ""
    title: str = ""
    status: str = ""
    type: str | None = None
    priority: str | None = None
    tags: list[str] = field(default_factory=list)
    parent: str | None = None
    blocking: list[str] = field(default_factory=list)
    blocked_by: list[str] = field(default_factory=list)
    related: list[str] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    body: str = ""
    slug: str = ""
    path: str = ""  # relative to the beans directory
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # -- tags ---------------------------------------------------------------

    def add_tag(self, tag: str) -> bool:
        """Add a normalized tag.  Returns False if it was already present."""
        normalized = normalize_tag(tag)
        if normalized in self.tags:
            return False
        self.tags.append(normalized)
        return True

    def remove_tag(self, tag: str) -> bool:
        normalized = tag.strip().lower()
        if normalized not in self.tags:
            return False
        self.tags.remove(normalized)
        return True

    def has_tag(self, tag: str) -> bool:
        return tag.strip().lower() in self.tags

    # -- relations ----------------------------------------------------------

    def add_blocking(self, target: str) -> bool:
        return _add_unique(self.blocking, target)

    def remove_blocking(self, target: str) -> bool:
        return _remove_all(self.blocking, target) > 0

    def add_blocked_by(self, target: str) -> bool:
        return _add_unique(self.blocked_by, target)

    def remove_blocked_by(self, target: str) -> bool:
        return _remove_all(self.blocked_by, target) > 0

    def is_blocking(self, target: str) -> bool:
        return target in self.blocking

    def is_blocked_by(self, target: str) -> bool:
        return target in self.blocked_by

    def link_targets(self, link_type: str) -> list[str]:
        """IDs referenced through *link_type* (a copy)."""
        if link_type == PARENT:
            return [self.parent] if self.parent else []
        if link_type in LIST_LINK_TYPES:
            return list(getattr(self, link_type))
        msg = f"unknown link type '{link_type}'"
        raise ValidationError(msg)

    def links(self) -> Iterator[tuple[str, str]]:
        """Yield every outgoing ``(link_type, target)`` pair."""
        for link_type in LINK_TYPES:
            for target in self.link_targets(link_type):
                yield link_type, target

    def add_link(self, link_type: str, target: str) -> bool:
        """Add a relation; for ``parent`` this replaces the current parent."""
        if link_type == PARENT:
            if self.parent == target:
                return False
            self.parent = target
            return True
        if link_type in LIST_LINK_TYPES:
            return _add_unique(getattr(self, link_type), target)
        msg = f"unknown link type '{link_type}'"
        raise ValidationError(msg)

    def remove_link(self, link_type: str, target: str) -> int:
        """Remove every reference to *target* under *link_type*; returns the count."""
        if link_type == PARENT:
            if self.parent == target:
                self.parent = None
                return 1
            return 0
        if link_type in LIST_LINK_TYPES:
            return _remove_all(getattr(self, link_type), target)
        msg = f"unknown link type '{link_type}'"
        raise ValidationError(msg)

    # -- identity / serialization ------------------------------------------

    def etag(self) -> str:
        """Content hash over the mutable fields, for optimistic concurrency."""
        payload = {
            "title": self.title,
            "status": self.status,
            "type": self.type or "",
            "priority": self.priority or "",
            "tags": self.tags,
            "parent": self.parent or "",
            "blocking": self.blocking,
            "blocked_by": self.blocked_by,
            "related": self.related,
            "duplicates": self.duplicates,
            "body": self.body,
        }
        encoded = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()[:16]

    def copy(self) -> Bean:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation; empty optional fields are omitted."""
        data: dict[str, Any] = {
            "id": self.id,
            "slug": self.slug,
            "path": self.path,
            "title": self.title,
            "status": self.status,
        }
        if self.type:
            data["type"] = self.type
        if self.priority:
            data["priority"] = self.priority
        if self.tags:
            data["tags"] = list(self.tags)
        if self.parent:
            data["parent"] = self.parent
        for link_type in LIST_LINK_TYPES:
            targets = getattr(self, link_type)
            if targets:
                data[link_type] = list(targets)
        if self.created_at is not None:
            data["created_at"] = self.created_at.isoformat()
        if self.updated_at is not None:
            data["updated_at"] = self.updated_at.isoformat()
        if self.body:
            data["body"] = self.body
        data["etag"] = self.etag()
        return data


def _add_unique(items: list[str], value: str) -> bool:
    if value in items:
        return False
    items.append(value)
    return True


def _remove_all(items: list[str], value: str) -> int:
    count = items.count(value)
    if count:
        items[:] = [item for item in items if item != value]
    return count

"""Markdown-with-YAML-front-matter format for bean files.

All the flexibility of hand-edited files (a relation given as a single
string or a list, the legacy ``links:`` mapping, unquoted YAML timestamps)
is absorbed here; the rest of the package only ever sees typed
:class:`~beans.bean.Bean` fields.
"""

# beans:domain=store

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

import yaml

from beans.bean import (
    BLOCKED_BY,
    BLOCKING,
    DUPLICATES,
    LIST_LINK_TYPES,
    PARENT,
    RELATED,
    Bean,
    normalize_tag,
)
from beans.errors import FrontMatterError, ValidationError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_FRONT_MATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.MULTILINE | re.DOTALL,
)

# Keys accepted inside a legacy ``links:`` mapping.
_LEGACY_LINK_KEYS: dict[str, str] = {
    "blocks": BLOCKING,
    "blocking": BLOCKING,
    "blocked_by": BLOCKED_BY,
    "blocked-by": BLOCKED_BY,
    "parent": PARENT,
    "related": RELATED,
    "duplicates": DUPLICATES,
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def split_front_matter(text: str) -> tuple[str | None, str]:
    """Return ``(yaml_text, body)``; *yaml_text* is None without front matter."""
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return None, text
    body = text[match.end() :]
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]
    return match.group("yaml"), body


def _as_id_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        ids: list[str] = []
        for item in value:
            if isinstance(item, (str, int)) and str(item).strip() and str(item) not in ids:
                ids.append(str(item))
        return ids
    msg = f"expected an ID or a list of IDs, got {type(value).__name__}"
    raise FrontMatterError(msg)


def _as_text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def _as_timestamp(value: object) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            result = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            msg = f"invalid timestamp '{value}'"
            raise FrontMatterError(msg) from exc
    else:
        msg = f"invalid timestamp {value!r}"
        raise FrontMatterError(msg)
    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result


def _as_tags(value: object, path: Path | None) -> list[str]:
    if value is None:
        return []
    raw: list[object]
    if isinstance(value, str):
        raw = [part for part in value.split(",") if part.strip()]
    elif isinstance(value, list):
        raw = value
    else:
        msg = "tags must be a list"
        raise FrontMatterError(msg, path)

    tags: list[str] = []
    for item in raw:
        try:
            tag = normalize_tag(str(item))
        except ValidationError:
            logger.warning("Dropping invalid tag %r in %s", item, path or "<bean>")
            continue
        if tag not in tags:
            tags.append(tag)
    return tags


def parse_bean(text: str, path: Path | None = None) -> Bean:
    """Parse a bean document.  ``id``/``slug``/``path`` are left for the caller.

    Raises :class:`FrontMatterError` for malformed YAML or ill-typed fields.
    """
    yaml_text, body = split_front_matter(text)
    if yaml_text is None:
        return Bean(body=body)

    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as exc:
        msg = f"invalid front matter: {exc}"
        raise FrontMatterError(msg, path) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "front matter must be a mapping"
        raise FrontMatterError(msg, path)

    relations: dict[str, list[str]] = {link_type: [] for link_type in LIST_LINK_TYPES}
    parents: list[str] = []

    try:
        legacy = data.get("links")
        if legacy is not None:
            if not isinstance(legacy, dict):
                msg = "'links' must be a mapping"
                raise FrontMatterError(msg, path)
            for key, value in legacy.items():
                link_type = _LEGACY_LINK_KEYS.get(str(key))
                if link_type is None:
                    logger.warning("Ignoring unknown link type %r in %s", key, path or "<bean>")
                    continue
                if link_type == PARENT:
                    parents.extend(_as_id_list(value))
                else:
                    relations[link_type].extend(_as_id_list(value))

        parents.extend(_as_id_list(data.get("parent")))
        for link_type in LIST_LINK_TYPES:
            relations[link_type].extend(_as_id_list(data.get(link_type)))

        bean = Bean(
            title=_as_text(data.get("title")),
            status=_as_text(data.get("status")),
            type=_as_text(data.get("type")) or None,
            priority=_as_text(data.get("priority")) or None,
            tags=_as_tags(data.get("tags"), path),
            parent=parents[0] if parents else None,
            body=body,
            created_at=_as_timestamp(data.get("created_at")),
            updated_at=_as_timestamp(data.get("updated_at")),
        )
    except FrontMatterError as exc:
        if exc.path is None and path is not None:
            raise FrontMatterError(str(exc), path) from exc
        raise

    if len(set(parents)) > 1:
        logger.warning("Multiple parents in %s, keeping %s", path or "<bean>", parents[0])
    for link_type, targets in relations.items():
        for target in targets:
            bean.add_link(link_type, target)
    return bean


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def render_bean(bean: Bean) -> str:
    """Serialize *bean* to its file contents."""
    front: dict[str, Any] = {"title": bean.title, "status": bean.status}
    if bean.type:
        front["type"] = bean.type
    if bean.priority:
        front["priority"] = bean.priority
    if bean.tags:
        front["tags"] = list(bean.tags)
    if bean.parent:
        front["parent"] = bean.parent
    for link_type in LIST_LINK_TYPES:
        targets = getattr(bean, link_type)
        if targets:
            front[link_type] = list(targets)
    if bean.created_at is not None:
        front["created_at"] = format_timestamp(bean.created_at)
    if bean.updated_at is not None:
        front["updated_at"] = format_timestamp(bean.updated_at)

    dumped = yaml.safe_dump(
        front, default_flow_style=False, sort_keys=False, allow_unicode=True
    )
    parts = ["---\n", dumped, "---\n"]
    if bean.body:
        parts.append("\n")
        parts.append(bean.body)
    return "".join(parts)

"""Project configuration: statuses, types, hierarchy, priorities, ids, launchers.

Read from ``.beans.yml`` at the project root.  The core never looks the
configuration up on its own; a :class:`Config` value is handed to
:class:`beans.core.Core` and flows from there into the link graph and the
query layer.
"""

# beans:domain=config

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from beans.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".beans.yml"
DEFAULT_BEANS_DIR = ".beans"

DEFAULT_STATUSES: tuple[str, ...] = ("in-progress", "todo", "draft", "completed", "scrapped")
DEFAULT_RESOLVED_STATUSES: frozenset[str] = frozenset({"completed", "scrapped"})
DEFAULT_TYPES: tuple[str, ...] = ("milestone", "epic", "feature", "bug", "task")
DEFAULT_PRIORITIES: tuple[str, ...] = ("critical", "high", "normal", "low", "deferred")

# child type -> legal parent types; an empty set means "no parent allowed".
DEFAULT_TYPE_HIERARCHY: dict[str, frozenset[str]] = {
    "milestone": frozenset(),
    "epic": frozenset({"milestone"}),
    "feature": frozenset({"epic", "milestone"}),
    "task": frozenset({"epic", "milestone"}),
    "bug": frozenset({"epic", "milestone"}),
}


@dataclass
class Config:
    """Plain configuration data consumed by the core."""

    statuses: tuple[str, ...] = DEFAULT_STATUSES
    resolved_statuses: frozenset[str] = DEFAULT_RESOLVED_STATUSES
    types: tuple[str, ...] = DEFAULT_TYPES
    priorities: tuple[str, ...] = DEFAULT_PRIORITIES
    type_hierarchy: dict[str, frozenset[str]] = field(
        default_factory=lambda: dict(DEFAULT_TYPE_HIERARCHY)
    )
    id_prefix: str = ""
    id_length: int = 4
    beans_dir: str = DEFAULT_BEANS_DIR
    launchers: dict[str, str] = field(default_factory=dict)

    @property
    def default_status(self) -> str:
        """Status given to new beans that do not name one."""
        if "todo" in self.statuses:
            return "todo"
        return self.statuses[0] if self.statuses else ""

    def status_order(self, status: str) -> int:
        """Position of *status* in the configured order; unknown sorts last."""
        try:
            return self.statuses.index(status)
        except ValueError:
            return len(self.statuses)

    def priority_order(self, priority: str | None) -> int:
        # Beans without a priority sort as "normal".
        if not priority:
            priority = "normal"
        try:
            return self.priorities.index(priority)
        except ValueError:
            return len(self.priorities)

    def type_order(self, bean_type: str | None) -> int:
        try:
            return self.types.index(bean_type or "")
        except ValueError:
            return len(self.types)

    def is_resolved(self, status: str) -> bool:
        return status in self.resolved_statuses

    def is_valid_status(self, status: str) -> bool:
        return status in self.statuses

    def is_valid_type(self, bean_type: str) -> bool:
        return bean_type in self.types

    def is_valid_priority(self, priority: str) -> bool:
        return priority in self.priorities


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _names(value: object, key: str) -> tuple[str, ...]:
    """Accept ``[a, b]`` or ``[{name: a}, {name: b}]``."""
    if not isinstance(value, list):
        msg = f"'{key}' must be a list"
        raise ConfigError(msg)
    names: list[str] = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("name")
        if not isinstance(item, str) or not item:
            msg = f"'{key}' entries must be non-empty strings"
            raise ConfigError(msg)
        names.append(item)
    return tuple(names)


def _hierarchy(value: object) -> dict[str, frozenset[str]]:
    if not isinstance(value, dict):
        msg = "'type_hierarchy' must be a mapping of type to parent types"
        raise ConfigError(msg)
    table: dict[str, frozenset[str]] = {}
    for child, parents in value.items():
        if parents is None:
            table[str(child)] = frozenset()
        elif isinstance(parents, str):
            table[str(child)] = frozenset({parents})
        elif isinstance(parents, list):
            table[str(child)] = frozenset(str(p) for p in parents)
        else:
            msg = f"'type_hierarchy.{child}' must be a list of types"
            raise ConfigError(msg)
    return table


def config_from_dict(data: dict[str, Any]) -> Config:
    """Build a :class:`Config` from a parsed ``.beans.yml`` mapping."""
    kwargs: dict[str, Any] = {}

    beans_section = data.get("beans") or {}
    if not isinstance(beans_section, dict):
        msg = "'beans' must be a mapping"
        raise ConfigError(msg)
    if "path" in beans_section:
        kwargs["beans_dir"] = str(beans_section["path"])
    if "prefix" in beans_section:
        kwargs["id_prefix"] = str(beans_section["prefix"] or "")
    if "id_length" in beans_section:
        try:
            kwargs["id_length"] = int(beans_section["id_length"])
        except (TypeError, ValueError) as exc:
            msg = "'beans.id_length' must be an integer"
            raise ConfigError(msg) from exc

    if "statuses" in data:
        kwargs["statuses"] = _names(data["statuses"], "statuses")
    if "resolved_statuses" in data:
        kwargs["resolved_statuses"] = frozenset(
            _names(data["resolved_statuses"], "resolved_statuses")
        )
    if "types" in data:
        kwargs["types"] = _names(data["types"], "types")
    if "priorities" in data:
        kwargs["priorities"] = _names(data["priorities"], "priorities")
    if "type_hierarchy" in data:
        kwargs["type_hierarchy"] = _hierarchy(data["type_hierarchy"])

    launchers = data.get("launchers") or {}
    if not isinstance(launchers, dict):
        msg = "'launchers' must be a mapping of name to script"
        raise ConfigError(msg)
    kwargs["launchers"] = {str(k): str(v) for k, v in launchers.items()}

    return Config(**kwargs)


def load_config(project_root: Path) -> Config:
    """Load ``.beans.yml`` from *project_root*, falling back to defaults.

    A missing file yields the default configuration.  A file that exists but
    cannot be read or parsed raises :class:`ConfigError`.
    """
    config_path = project_root / CONFIG_FILENAME
    if not config_path.is_file():
        logger.debug("No %s in %s, using defaults", CONFIG_FILENAME, project_root)
        return Config()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Failed to read {config_path}: {exc}"
        raise ConfigError(msg) from exc

    if data is None:
        return Config()
    if not isinstance(data, dict):
        msg = f"{config_path} must contain a mapping"
        raise ConfigError(msg)
    return config_from_dict(data)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk upward from *start* to the first directory holding beans."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / CONFIG_FILENAME).is_file() or (candidate / DEFAULT_BEANS_DIR).is_dir():
            return candidate
    return None

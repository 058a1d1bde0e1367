"""Tests for beans.config: defaults, .beans.yml loading, project discovery."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from beans.config import (
    CONFIG_FILENAME,
    Config,
    config_from_dict,
    find_project_root,
    load_config,
)
from beans.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path


class TestDefaults:
    def test_default_values(self) -> None:
        config = Config()
        assert config.default_status == "todo"
        assert config.is_resolved("completed")
        assert config.is_resolved("scrapped")
        assert not config.is_resolved("todo")
        assert config.type_hierarchy["milestone"] == frozenset()
        assert config.type_hierarchy["epic"] == frozenset({"milestone"})

    def test_orders(self) -> None:
        config = Config()
        assert config.status_order("in-progress") < config.status_order("todo")
        assert config.status_order("unknown") == len(config.statuses)
        assert config.priority_order(None) == config.priority_order("normal")
        assert config.priority_order("critical") < config.priority_order("low")


class TestConfigFromDict:
    def test_beans_section(self) -> None:
        config = config_from_dict({"beans": {"path": "issues", "prefix": "app-", "id_length": 6}})
        assert config.beans_dir == "issues"
        assert config.id_prefix == "app-"
        assert config.id_length == 6

    def test_named_lists(self) -> None:
        config = config_from_dict(
            {
                "statuses": ["open", {"name": "done"}],
                "resolved_statuses": ["done"],
                "types": ["story"],
            }
        )
        assert config.statuses == ("open", "done")
        assert config.resolved_statuses == frozenset({"done"})
        assert config.types == ("story",)
        assert config.default_status == "open"

    def test_type_hierarchy(self) -> None:
        config = config_from_dict({"type_hierarchy": {"story": "epic", "epic": None}})
        assert config.type_hierarchy == {"story": frozenset({"epic"}), "epic": frozenset()}

    def test_launchers(self) -> None:
        config = config_from_dict({"launchers": {"echo": "echo $BEANS_ID"}})
        assert config.launchers == {"echo": "echo $BEANS_ID"}

    def test_bad_shapes(self) -> None:
        with pytest.raises(ConfigError):
            config_from_dict({"statuses": "todo"})
        with pytest.raises(ConfigError):
            config_from_dict({"beans": {"id_length": "long"}})
        with pytest.raises(ConfigError):
            config_from_dict({"launchers": ["a"]})


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) == Config()

    def test_reads_file(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("beans:\n  prefix: x-\n")
        assert load_config(tmp_path).id_prefix == "x-"

    def test_empty_file(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert load_config(tmp_path) == Config()

    def test_malformed_file(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("beans: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to read"):
            load_config(tmp_path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- a\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path)


class TestFindProjectRoot:
    def test_finds_beans_dir_upward(self, tmp_project: Path) -> None:
        nested = tmp_project / "src" / "pkg"
        nested.mkdir(parents=True)
        assert find_project_root(nested) == tmp_project.resolve()

    def test_finds_config_file(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert find_project_root(tmp_path) == tmp_path.resolve()

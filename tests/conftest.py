"""Shared test fixtures for beans."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import yaml

from beans.bean import Bean
from beans.config import Config
from beans.core import Core

if TYPE_CHECKING:
    from pathlib import Path


def write_bean_file(
    beans_dir: Path,
    filename: str,
    front: dict[str, Any],
    body: str = "",
) -> Path:
    """Write a bean file by hand, bypassing all validation."""
    path = beans_dir / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "---\n" + yaml.safe_dump(front, sort_keys=False) + "---\n"
    if body:
        text += "\n" + body
    path.write_text(text, encoding="utf-8")
    return path


def make_beans(*beans: Bean) -> dict[str, Bean]:
    return {b.id: b for b in beans}


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a minimal project: a root holding an empty ``.beans`` directory."""
    (tmp_path / ".beans").mkdir()
    return tmp_path


@pytest.fixture()
def config() -> Config:
    return Config()


@pytest.fixture()
def core(tmp_project: Path, config: Config) -> Core:
    """A loaded Core over the empty project."""
    c = Core(tmp_project, config)
    c.load()
    return c

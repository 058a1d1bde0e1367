"""Tests for beans.store: loading, saving, renaming, ETag checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from conftest import write_bean_file

from beans.bean import Bean
from beans.errors import ConflictError, NotFoundError, StoreError
from beans.store import Store

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def store(tmp_project: Path) -> Store:
    return Store(tmp_project / ".beans")


class TestLoadAll:
    def test_loads_beans(self, store: Store) -> None:
        write_bean_file(store.root, "a001--first.md", {"title": "First", "status": "todo"})
        write_bean_file(store.root, "b002.md", {"title": "Second", "status": "todo"}, "Body\n")
        result = store.load_all()
        assert sorted(result.beans) == ["a001", "b002"]
        first = result.beans["a001"]
        assert first.slug == "first"
        assert first.path == "a001--first.md"
        assert result.beans["b002"].body == "Body\n"
        assert result.warnings == []

    def test_subdirectories(self, store: Store) -> None:
        front = {"title": "Old", "status": "completed"}
        write_bean_file(store.root, "archive/c003--old.md", front)
        result = store.load_all()
        assert result.beans["c003"].path == "archive/c003--old.md"

    def test_skips_hidden(self, store: Store) -> None:
        write_bean_file(store.root, ".hidden/d004.md", {"title": "Hidden", "status": "todo"})
        assert store.load_all().beans == {}

    def test_bad_file_is_a_warning(self, store: Store) -> None:
        write_bean_file(store.root, "a001.md", {"title": "Good", "status": "todo"})
        (store.root / "b002.md").write_text("---\ntitle: [broken\n---\n")
        result = store.load_all()
        assert list(result.beans) == ["a001"]
        assert len(result.warnings) == 1
        assert "b002.md" in result.warnings[0]

    def test_duplicate_ids_first_wins(self, store: Store) -> None:
        write_bean_file(store.root, "a001--one.md", {"title": "One", "status": "todo"})
        write_bean_file(store.root, "a001--two.md", {"title": "Two", "status": "todo"})
        result = store.load_all()
        assert result.beans["a001"].title == "One"
        assert len(result.warnings) == 1
        assert "duplicate" in result.warnings[0]

    def test_broken_links_load(self, store: Store) -> None:
        write_bean_file(store.root, "a001.md", {"title": "A", "status": "todo", "parent": "gone"})
        result = store.load_all()
        assert result.beans["a001"].parent == "gone"

    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(StoreError, match="not found"):
            Store(tmp_path / "nope").load_all()


class TestSave:
    def test_save_writes_canonical_path(self, store: Store) -> None:
        bean = Bean(id="a001", slug="hello", title="Hello", status="todo")
        path = store.save(bean)
        assert path == store.root / "a001--hello.md"
        assert bean.path == "a001--hello.md"
        assert store.read(path).title == "Hello"

    def test_slug_change_renames(self, store: Store) -> None:
        bean = Bean(id="a001", slug="old", title="Old", status="todo")
        store.save(bean)
        bean.slug = "new"
        store.save(bean)
        assert not (store.root / "a001--old.md").exists()
        assert (store.root / "a001--new.md").exists()

    def test_no_temp_files_left(self, store: Store) -> None:
        store.save(Bean(id="a001", title="T", status="todo"))
        assert [p.name for p in store.root.iterdir()] == ["a001.md"]

    def test_save_without_id(self, store: Store) -> None:
        with pytest.raises(StoreError):
            store.save(Bean(title="No id"))

    def test_move_into_directory(self, store: Store) -> None:
        bean = Bean(id="a001", slug="done", title="Done", status="completed")
        store.save(bean)
        path = store.move(bean, "archive")
        assert path == store.root / "archive" / "a001--done.md"
        assert bean.path == "archive/a001--done.md"
        assert not (store.root / "a001--done.md").exists()
        assert store.load_all().beans["a001"].path == "archive/a001--done.md"


class TestUpdate:
    def test_matching_etag(self, store: Store) -> None:
        bean = Bean(id="a001", title="T", status="todo")
        store.save(bean)
        etag = bean.etag()
        bean.status = "completed"
        store.update(bean, if_match=etag)
        assert store.read(store.root / bean.path).status == "completed"

    def test_conflict(self, store: Store) -> None:
        bean = Bean(id="a001", title="T", status="todo")
        store.save(bean)
        stale = bean.etag()

        other = store.read(store.root / bean.path)
        other.title = "Changed elsewhere"
        store.save(other)

        bean.status = "completed"
        with pytest.raises(ConflictError) as excinfo:
            store.update(bean, if_match=stale)
        assert excinfo.value.provided == stale
        assert excinfo.value.current == other.etag()

    def test_update_missing_file(self, store: Store) -> None:
        with pytest.raises(NotFoundError):
            store.update(Bean(id="zzzz", title="T", status="todo"), if_match="x")


class TestDelete:
    def test_delete(self, store: Store) -> None:
        store.save(Bean(id="a001", title="T", status="todo"))
        store.delete("a001")
        assert store.find_path("a001") is None

    def test_delete_missing(self, store: Store) -> None:
        with pytest.raises(NotFoundError):
            store.delete("a001")

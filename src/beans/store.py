"""File-per-bean store: load a beans directory, write and delete single beans."""

# beans:domain=store

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from beans.bean import FILE_SUFFIX, Bean, build_filename, parse_filename
from beans.errors import (
    ConflictError,
    FrontMatterError,
    NotFoundError,
    StoreError,
)
from beans.frontmatter import parse_bean, render_bean

logger = logging.getLogger(__name__)

# Resolved beans are moved here by the archive command.
ARCHIVE_DIR = "archive"


@dataclass
class LoadResult:
    """Summary of a full load: beans by ID plus non-fatal warnings."""

    beans: dict[str, Bean] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def write_atomic(path: Path, content: str) -> None:
    """Write *content* to *path* via a temp file in the same directory + rename."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            Path(tmp_name).unlink()
        raise


class Store:
    """Maps beans to ``<root>/<dir>/<id>--<slug>.md`` files and back.

    The store keeps no state besides its root; every call reads or writes
    the filesystem directly.
    """

    def __init__(self, root: Path, *, id_prefix: str = "") -> None:
        self.root = root
        self.id_prefix = id_prefix

    # -- reading ------------------------------------------------------------

    def _iter_files(self) -> list[Path]:
        files: list[Path] = []
        for path in sorted(self.root.rglob(f"*{FILE_SUFFIX}")):
            rel = path.relative_to(self.root)
            # Skip hidden files/dirs and leftovers from interrupted writes.
            if any(part.startswith(".") for part in rel.parts):
                continue
            if path.is_file():
                files.append(path)
        return files

    def read(self, path: Path) -> Bean:
        """Parse the bean stored at *path* (absolute or relative to root)."""
        if not path.is_absolute():
            path = self.root / path
        text = path.read_text(encoding="utf-8")
        bean = parse_bean(text, path)
        bean.id, bean.slug = parse_filename(path.name, self.id_prefix)
        bean.path = path.relative_to(self.root).as_posix()
        return bean

    def load_all(self) -> LoadResult:
        """Load every bean file below the root.

        Loading is best-effort: unreadable or malformed files and duplicate
        IDs are reported in :attr:`LoadResult.warnings` and skipped.  Only an
        inaccessible root raises :class:`StoreError`.
        """
        if not self.root.is_dir():
            msg = f"beans directory not found: {self.root}"
            raise StoreError(msg)

        try:
            files = self._iter_files()
        except OSError as exc:
            msg = f"cannot read beans directory {self.root}: {exc}"
            raise StoreError(msg) from exc

        result = LoadResult()
        for path in files:
            rel = path.relative_to(self.root).as_posix()
            try:
                bean = self.read(path)
            except (OSError, UnicodeDecodeError, FrontMatterError) as exc:
                warning = f"{rel}: {exc}"
                logger.warning("Skipping bean file %s", warning)
                result.warnings.append(warning)
                continue

            if not bean.id:
                warning = f"{rel}: cannot derive a bean ID from the filename"
                logger.warning("Skipping bean file %s", warning)
                result.warnings.append(warning)
                continue

            existing = result.beans.get(bean.id)
            if existing is not None:
                warning = f"{rel}: duplicate ID '{bean.id}' (already loaded from {existing.path})"
                logger.warning("Skipping bean file %s", warning)
                result.warnings.append(warning)
                continue

            result.beans[bean.id] = bean

        logger.debug("Loaded %d beans from %s", len(result.beans), self.root)
        return result

    def find_path(self, bean_id: str) -> Path | None:
        """Locate the file holding *bean_id*, or None."""
        if not self.root.is_dir():
            return None
        for path in self._iter_files():
            if parse_filename(path.name, self.id_prefix)[0] == bean_id:
                return path
        return None

    def current_etag(self, bean: Bean) -> str | None:
        """ETag of the on-disk version of *bean*, or None if it has no file."""
        path = self.root / bean.path if bean.path else self.find_path(bean.id)
        if path is None or not path.is_file():
            return None
        return self.read(path).etag()

    # -- writing ------------------------------------------------------------

    def path_for(self, bean: Bean) -> str:
        """Canonical path of *bean* relative to the root.

        Derived from ID and slug; a bean already living in a subdirectory
        stays in it.
        """
        filename = build_filename(bean.id, bean.slug)
        parent = Path(bean.path).parent if bean.path else Path()
        return (parent / filename).as_posix()

    def save(self, bean: Bean) -> Path:
        """Write *bean* to its canonical path atomically.  Returns the path.

        A bean whose ID or slug changed is moved: the old file is removed
        after the new one is in place.
        """
        if not bean.id:
            msg = "cannot save a bean without an ID"
            raise StoreError(msg)

        rel = self.path_for(bean)
        target = self.root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        write_atomic(target, render_bean(bean))

        if bean.path and bean.path != rel:
            old = self.root / bean.path
            with contextlib.suppress(FileNotFoundError):
                old.unlink()
            logger.debug("Renamed %s -> %s", bean.path, rel)
        bean.path = rel
        return target

    def move(self, bean: Bean, directory: str) -> Path:
        """Write *bean* into *directory* below the root and drop its old file."""
        old = bean.path
        bean.path = (Path(directory) / build_filename(bean.id, bean.slug)).as_posix()
        try:
            target = self.save(bean)
        except OSError:
            bean.path = old
            raise
        if old and old != bean.path:
            with contextlib.suppress(FileNotFoundError):
                (self.root / old).unlink()
            logger.debug("Moved %s -> %s", old, bean.path)
        return target

    def update(self, bean: Bean, *, if_match: str | None = None) -> Path:
        """Save *bean*, first checking the on-disk ETag against *if_match*.

        Raises :class:`ConflictError` when the file changed since the caller
        read it, :class:`NotFoundError` when there is no file to update.
        """
        if if_match is not None:
            current = self.current_etag(bean)
            if current is None:
                raise NotFoundError(bean.id)
            if current != if_match:
                raise ConflictError(bean.id, if_match, current)
        return self.save(bean)

    def delete(self, bean_id: str) -> None:
        """Remove the file of *bean_id*; :class:`NotFoundError` if there is none."""
        path = self.find_path(bean_id)
        if path is None:
            raise NotFoundError(bean_id)
        path.unlink()
        logger.debug("Deleted %s", path)

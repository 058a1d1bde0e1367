"""Core: the in-memory bean collection and its validated mutations.

A :class:`Core` is built once per project from a root path and a
:class:`~beans.config.Config` and handed to whatever needs beans (CLI,
launchers, tests).  It owns the ``{id: Bean}`` mapping; the link graph and
the store only ever see what the core gives them.
"""

# beans:domain=core

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from beans.bean import LINK_TYPES, PARENT, Bean, new_id, normalize_tag, slugify
from beans.config import Config
from beans.errors import (
    BeansError,
    CycleError,
    FrontMatterError,
    LinkRepairError,
    NotFoundError,
    SelfLinkError,
    ValidationError,
)
from beans.graph.cycles import CycleFound, detect_cycle
from beans.graph.hierarchy import validate_parent
from beans.graph.links import LinkGraph
from beans.query import sort_beans
from beans.store import ARCHIVE_DIR, LoadResult, Store

if TYPE_CHECKING:
    from beans.graph.cycles import CycleCheck
    from beans.graph.links import IncomingLink, LinkCheckResult, RepairResult

logger = logging.getLogger(__name__)

# Statuses that keep a bean off the "ready to start" list besides resolved ones.
_NOT_READY_STATUSES: frozenset[str] = frozenset({"in-progress", "draft"})
_MAX_ID_ATTEMPTS = 100


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class Core:
    """Bean collection accessor plus link-graph queries and checked mutations."""

    def __init__(
        self,
        root: Path,
        config: Config | None = None,
        store: Store | None = None,
    ) -> None:
        self.root = root
        self.config = config or Config()
        self.store = store or Store(self.beans_dir, id_prefix=self.config.id_prefix)
        self._beans: dict[str, Bean] = {}
        self.warnings: list[str] = []

    @property
    def beans_dir(self) -> Path:
        return self.root / self.config.beans_dir

    @property
    def graph(self) -> LinkGraph:
        """A link graph over the live collection."""
        return LinkGraph(self._beans, self.config)

    # -- loading ------------------------------------------------------------

    def init(self) -> None:
        """Create the beans directory if it does not exist yet."""
        self.beans_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> LoadResult:
        """(Re)load every bean from disk.  Per-file problems become warnings."""
        result = self.store.load_all()
        self._beans = result.beans
        self.warnings = list(result.warnings)
        return result

    # -- accessors ----------------------------------------------------------

    def all(self) -> list[Bean]:
        """All beans, sorted by ID."""
        return [self._beans[bean_id] for bean_id in sorted(self._beans)]

    def get(self, bean_id: str) -> Bean:
        bean = self._beans.get(bean_id)
        if bean is None:
            raise NotFoundError(bean_id)
        return bean

    def __contains__(self, bean_id: object) -> bool:
        return bean_id in self._beans

    def __len__(self) -> int:
        return len(self._beans)

    def normalize_id(self, short_id: str) -> tuple[str, bool]:
        """Resolve an abbreviated ID.

        Tries an exact match, then the configured prefix + *short_id*, then a
        unique ID starting with either.  Returns ``(id, True)`` on success and
        ``(short_id, False)`` otherwise.
        """
        if short_id in self._beans:
            return short_id, True
        prefix = self.config.id_prefix
        if prefix and not short_id.startswith(prefix) and prefix + short_id in self._beans:
            return prefix + short_id, True

        candidates = {short_id}
        if prefix and not short_id.startswith(prefix):
            candidates.add(prefix + short_id)
        matches = [
            bean_id
            for bean_id in self._beans
            if any(bean_id.startswith(c) for c in candidates)
        ]
        if len(matches) == 1:
            return matches[0], True
        return short_id, False

    # -- validation ---------------------------------------------------------

    def _validate_fields(self, bean: Bean, existing: Bean | None) -> None:
        """Check status/type/priority/tags.  Unchanged legacy values pass."""
        if not bean.status:
            bean.status = self.config.default_status
        status_changed = existing is None or bean.status != existing.status
        if status_changed and not self.config.is_valid_status(bean.status):
            msg = (
                f"invalid status '{bean.status}', "
                f"expected one of {', '.join(self.config.statuses)}"
            )
            raise ValidationError(msg)
        if (
            bean.type
            and (existing is None or bean.type != existing.type)
            and not self.config.is_valid_type(bean.type)
        ):
            msg = f"invalid type '{bean.type}', expected one of {', '.join(self.config.types)}"
            raise ValidationError(msg)
        if (
            bean.priority
            and (existing is None or bean.priority != existing.priority)
            and not self.config.is_valid_priority(bean.priority)
        ):
            msg = (
                f"invalid priority '{bean.priority}', "
                f"expected one of {', '.join(self.config.priorities)}"
            )
            raise ValidationError(msg)

        tags: list[str] = []
        for tag in bean.tags:
            normalized = normalize_tag(tag)
            if normalized not in tags:
                tags.append(normalized)
        bean.tags = tags

    def _check_link(self, beans: dict[str, Bean], bean: Bean, link_type: str, target: str) -> None:
        """Reject one proposed link of *bean* against the collection *beans*.

        Order: self-reference, target existence, hierarchy (parent only),
        cycles.
        """
        if target == bean.id:
            raise SelfLinkError(bean.id, link_type)
        if target not in beans:
            raise NotFoundError(target)
        if link_type == PARENT:
            validate_parent(beans, bean, target, self.config.type_hierarchy)
            check: CycleCheck = detect_cycle(beans, target, PARENT, bean.id)
        else:
            check = detect_cycle(beans, bean.id, link_type, target)
        if isinstance(check, CycleFound):
            raise CycleError(link_type, list(check.path))

    def _validate_links(self, bean: Bean, existing: Bean | None) -> None:
        """Check every relation of *bean* that *existing* does not already have.

        The check runs against the graph as it will look after the update:
        links *bean* drops are removed from a scratch copy first, then new
        links are applied one by one, so two links that only form a cycle
        together are caught as well.
        """
        scratch = dict(self._beans)
        working = existing.copy() if existing is not None else Bean(id=bean.id, type=bean.type)
        working.type = bean.type
        for link_type, target in list(working.links()):
            if target not in bean.link_targets(link_type):
                working.remove_link(link_type, target)
        scratch[bean.id] = working
        for link_type, target in bean.links():
            if target in working.link_targets(link_type):
                continue
            self._check_link(scratch, working, link_type, target)
            working.add_link(link_type, target)

    # -- mutations ----------------------------------------------------------

    def _persist(self, bean: Bean, *, if_match: str | None = None) -> Bean:
        bean.updated_at = _now()
        self.store.update(bean, if_match=if_match)
        self._beans[bean.id] = bean
        return bean

    def _generate_id(self) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = new_id(self.config.id_prefix, self.config.id_length)
            if candidate not in self._beans and self.store.find_path(candidate) is None:
                return candidate
        msg = "could not generate a unique bean ID; consider a longer id_length"
        raise ValidationError(msg)

    def create(self, bean: Bean, *, validate_links: bool = True) -> Bean:
        """Assign an ID if needed, validate, and write the new bean.

        Every relation goes through the same checks as :meth:`add_link`.
        Pass ``validate_links=False`` to store relations exactly as given,
        the way a hand-edited file would hold them.
        """
        if bean.id and bean.id in self._beans:
            msg = f"bean {bean.id} already exists"
            raise ValidationError(msg)
        self._validate_fields(bean, None)
        if not bean.id:
            bean.id = self._generate_id()
        if validate_links:
            self._validate_links(bean, None)
        if not bean.slug and bean.title:
            bean.slug = slugify(bean.title)
        if bean.created_at is None:
            bean.created_at = _now()

        self._persist(bean)
        logger.debug("Created bean %s", bean.id)
        return bean

    def _baseline(self, bean: Bean) -> Bean | None:
        """The last saved version of *bean*, for diffing an update."""
        existing = self.get(bean.id)
        if existing is not bean:
            return existing
        # Mutated in place: fall back to the file on disk.
        if not bean.path:
            return None
        try:
            return self.store.read(Path(bean.path))
        except (OSError, FrontMatterError):
            return None

    def update(
        self,
        bean: Bean,
        *,
        if_match: str | None = None,
        validate_links: bool = True,
    ) -> Bean:
        """Validate and write *bean* over its stored version.

        Only values that changed are validated, so legacy statuses or
        broken links already on disk do not block unrelated edits.
        *if_match* is the ETag the caller last saw; a mismatch with the file
        on disk raises :class:`~beans.errors.ConflictError`.

        When *bean* is the stored object itself (edited in place) and the
        update fails, the collection gets the last saved version back.
        """
        in_place = self._beans.get(bean.id) is bean
        baseline = self._baseline(bean)
        try:
            self._validate_fields(bean, baseline)
            if validate_links:
                self._validate_links(bean, baseline)
            return self._persist(bean, if_match=if_match)
        except (BeansError, OSError):
            if in_place and baseline is not None:
                self._beans[bean.id] = baseline
            raise

    def delete(self, bean_id: str) -> Bean:
        """Remove a bean and its file.  Links pointing at it are left alone."""
        bean = self.get(bean_id)
        self.store.delete(bean_id)
        del self._beans[bean_id]
        logger.debug("Deleted bean %s", bean_id)
        return bean

    # -- link mutations -----------------------------------------------------

    def set_parent(
        self,
        bean_id: str,
        parent_id: str | None,
        *,
        if_match: str | None = None,
    ) -> Bean:
        """Reparent *bean_id* (``None`` clears the parent)."""
        bean = self.get(bean_id)
        if parent_id == bean.parent:
            return bean
        if parent_id:
            self._check_link(self._beans, bean, PARENT, parent_id)
        updated = bean.copy()
        updated.parent = parent_id or None
        return self._persist(updated, if_match=if_match)

    def add_link(self, bean_id: str, link_type: str, target_id: str) -> Bean:
        """Add one relation after validation; ``parent`` replaces the parent."""
        if link_type not in LINK_TYPES:
            msg = f"unknown link type '{link_type}', expected one of {', '.join(LINK_TYPES)}"
            raise ValidationError(msg)
        if link_type == PARENT:
            return self.set_parent(bean_id, target_id)

        bean = self.get(bean_id)
        if target_id in bean.link_targets(link_type):
            return bean
        self._check_link(self._beans, bean, link_type, target_id)
        updated = bean.copy()
        updated.add_link(link_type, target_id)
        return self._persist(updated)

    def remove_link(self, bean_id: str, link_type: str, target_id: str) -> int:
        """Remove a relation; returns how many references were removed."""
        bean = self.get(bean_id)
        updated = bean.copy()
        removed = updated.remove_link(link_type, target_id)
        if removed:
            self._persist(updated)
        return removed

    def _apply_repair(self, repair: RepairResult, scratch: dict[str, Bean]) -> int:
        """Persist beans changed by a repair run on *scratch* copies."""
        failures: list[tuple[str, Exception]] = []
        removed = 0
        for bean_id in repair.touched:
            updated = scratch[bean_id]
            count = sum(
                1
                for link_type, target in self._beans[bean_id].links()
                if target not in updated.link_targets(link_type)
            )
            try:
                self._persist(updated)
            except OSError as exc:
                logger.warning("Could not save %s during link repair: %s", bean_id, exc)
                failures.append((bean_id, exc))
                continue
            removed += count
        if failures:
            raise LinkRepairError(removed, failures)
        return removed

    def remove_links_to(self, target_id: str) -> int:
        """Strip every reference to *target_id*; returns the number removed.

        Each touched bean is saved on its own; see
        :class:`~beans.errors.LinkRepairError` for partial failures.
        """
        scratch = {bean_id: bean.copy() for bean_id, bean in self._beans.items()}
        repair = LinkGraph(scratch, self.config).remove_links_to(target_id)
        return self._apply_repair(repair, scratch)

    def fix_broken_links(self) -> int:
        """Remove broken and self-referencing links; returns the number removed."""
        scratch = {bean_id: bean.copy() for bean_id, bean in self._beans.items()}
        repair = LinkGraph(scratch, self.config).fix_broken_links()
        return self._apply_repair(repair, scratch)

    # -- graph queries ------------------------------------------------------

    def find_incoming_links(self, target_id: str) -> list[IncomingLink]:
        return self.graph.find_incoming_links(target_id)

    def detect_cycle(self, from_id: str, link_type: str, to_id: str) -> CycleCheck:
        return self.graph.detect_cycle(from_id, link_type, to_id)

    def check_all_links(self) -> LinkCheckResult:
        return self.graph.check_all_links()

    def is_blocked(self, bean_id: str) -> bool:
        return self.graph.is_blocked(bean_id)

    def find_active_blockers(self, bean_id: str) -> list[Bean]:
        return self.graph.find_active_blockers(bean_id)

    def is_transitively_blocked(self, bean_id: str) -> bool:
        return self.graph.is_transitively_blocked(bean_id)

    def find_transitive_blockers(self, bean_id: str) -> list[Bean]:
        return self.graph.find_transitive_blockers(bean_id)

    def children(self, bean_id: str) -> list[Bean]:
        return self.graph.children(bean_id)

    def descendants(self, bean_id: str) -> list[Bean]:
        return self.graph.descendants(bean_id)

    def ancestors(self, bean_id: str) -> list[Bean]:
        return self.graph.ancestors(bean_id)

    def ready(self) -> list[Bean]:
        """Beans that can be started now: not directly blocked, not begun, not done."""
        graph = self.graph
        return [
            b
            for b in self.all()
            if not self.config.is_resolved(b.status)
            and b.status not in _NOT_READY_STATUSES
            and not graph.is_blocked(b.id)
        ]

    def blocked(self) -> list[Bean]:
        """Unresolved beans with at least one active direct blocker."""
        graph = self.graph
        return [
            b
            for b in self.all()
            if not self.config.is_resolved(b.status) and graph.is_blocked(b.id)
        ]

    # -- workflow -----------------------------------------------------------

    def set_status(self, bean_id: str, status: str, *, note: str = "") -> Bean:
        """Move *bean_id* to *status*, appending *note* to the body when given."""
        updated = self.get(bean_id).copy()
        updated.status = status
        if note:
            body = updated.body.rstrip("\n")
            updated.body = f"{body}\n\n{note}\n" if body else f"{note}\n"
        return self.update(updated)

    def next_ready(self) -> Bean | None:
        """The highest-priority bean that can be started now, if any."""
        beans = sort_beans(self.ready(), self.config, by="priority")
        return beans[0] if beans else None

    def archivable(self) -> list[Bean]:
        """Resolved beans that are not in the archive directory yet."""
        return [
            b
            for b in self.all()
            if self.config.is_resolved(b.status)
            and Path(b.path).parts[:1] != (ARCHIVE_DIR,)
        ]

    def archive(self) -> list[Bean]:
        """Move resolved beans into the archive directory; returns those moved.

        Archived beans stay in the collection, so links to them still resolve.
        """
        moved: list[Bean] = []
        for bean in self.archivable():
            updated = bean.copy()
            self.store.move(updated, ARCHIVE_DIR)
            self._beans[bean.id] = updated
            moved.append(updated)
        if moved:
            logger.info("Archived %d bean(s)", len(moved))
        return moved

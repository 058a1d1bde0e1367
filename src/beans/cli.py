"""Beans CLI entry point."""

# beans:service=cli

from __future__ import annotations

import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from beans import __version__
from beans.config import CONFIG_FILENAME, find_project_root, load_config
from beans.core import Core
from beans.errors import BeansError, BlockedError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from beans.bean import Bean
    from beans.graph.links import LinkCheckResult

_project_option = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: nearest directory with .beans.yml or .beans/).",
)


# beans:service=cli
@click.group()
@click.version_option(version=__version__, prog_name="beans")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Beans - a file-based issue tracker with a link graph."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", force=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextlib.contextmanager
def _errors() -> Iterator[None]:
    """Turn domain errors into ``Error: ...`` on stderr and exit code 1."""
    try:
        yield
    except BeansError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _project_root(project: Path | None) -> Path:
    return project or find_project_root() or Path.cwd()


def _open_core(project: Path | None) -> Core:
    root = _project_root(project)
    core = Core(root, load_config(root))
    core.load()
    return core


def _resolve(core: Core, short_id: str) -> str:
    bean_id, ok = core.normalize_id(short_id)
    if not ok:
        raise NotFoundError(short_id)
    return bean_id


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


def _print_beans(beans: Iterable[Bean], *, title: str | None = None) -> None:
    from rich.console import Console
    from rich.table import Table

    table = Table(title=title, box=None, padding=(0, 1))
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Type")
    table.add_column("Priority")
    table.add_column("Title")
    table.add_column("Tags", style="dim")
    for bean in beans:
        table.add_row(
            bean.id,
            bean.status,
            bean.type or "",
            bean.priority or "",
            bean.title,
            ", ".join(bean.tags),
        )
    Console().print(table)


def _print_bean(core: Core, bean: Bean) -> None:
    from rich.console import Console

    console = Console()
    console.print(f"[bold cyan]{bean.id}[/] [bold]{bean.title}[/]", highlight=False)
    rows = [
        ("Status", bean.status),
        ("Type", bean.type or ""),
        ("Priority", bean.priority or ""),
        ("Tags", ", ".join(bean.tags)),
        ("Parent", bean.parent or ""),
        ("Blocking", ", ".join(bean.blocking)),
        ("Blocked by", ", ".join(bean.blocked_by)),
        ("Related", ", ".join(bean.related)),
        ("Duplicates", ", ".join(bean.duplicates)),
        ("Path", bean.path),
    ]
    for label, value in rows:
        if value:
            console.print(f"  {label}: {value}", highlight=False, markup=False)

    blockers = core.find_active_blockers(bean.id)
    if blockers:
        ids = ", ".join(b.id for b in blockers)
        console.print(f"  Blocked: yes ({ids})", highlight=False, markup=False)
    elif core.is_transitively_blocked(bean.id):
        ids = ", ".join(b.id for b in core.find_transitive_blockers(bean.id))
        console.print(f"  Blocked: via ancestor ({ids})", highlight=False, markup=False)

    if bean.body:
        console.print()
        console.print(bean.body, highlight=False, markup=False)


def _check_to_dict(result: LinkCheckResult) -> dict[str, Any]:
    return {
        "broken_links": [
            {"bean_id": b.bean_id, "link_type": b.link_type, "target": b.target}
            for b in result.broken_links
        ],
        "self_links": [
            {"bean_id": s.bean_id, "link_type": s.link_type} for s in result.self_links
        ],
        "cycles": [{"link_type": c.link_type, "path": c.path} for c in result.cycles],
        "total_issues": result.total_issues(),
    }


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


@main.command()
@_project_option
@click.option("--prefix", default="", help="ID prefix for new beans (e.g. 'app-').")
def init(*, project: Path | None, prefix: str) -> None:
    """Create the beans directory and a default .beans.yml."""
    import yaml

    root = project or Path.cwd()
    config_path = root / CONFIG_FILENAME
    with _errors():
        config = load_config(root)
        if not config_path.exists():
            data = {"beans": {"path": config.beans_dir, "prefix": prefix}}
            config_path.write_text(
                yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8"
            )
            config = load_config(root)
        Core(root, config).init()
    click.echo(f"Initialized beans in {root / config.beans_dir}")


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


@main.command("list")
@click.option("--status", "-s", "statuses", multiple=True, help="Only these statuses.")
@click.option("--exclude-status", "exclude_statuses", multiple=True, help="Hide these statuses.")
@click.option("--type", "-t", "types", multiple=True, help="Only these types.")
@click.option("--exclude-type", "exclude_types", multiple=True, help="Hide these types.")
@click.option("--priority", "-p", "priorities", multiple=True, help="Only these priorities.")
@click.option("--tag", "tags", multiple=True, help="Only beans with any of these tags.")
@click.option("--exclude-tag", "exclude_tags", multiple=True, help="Hide beans with these tags.")
@click.option("--parent", "parent_id", default=None, help="Only children of this bean.")
@click.option("--no-parent", is_flag=True, help="Only top-level beans.")
@click.option(
    "--blocked/--not-blocked",
    "is_blocked",
    default=None,
    help="Only (un)blocked beans.",
)
@click.option(
    "--sort",
    "sort_by",
    type=click.Choice(["status", "priority", "created", "updated", "id"]),
    default="status",
    show_default=True,
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def list_beans(
    *,
    statuses: tuple[str, ...],
    exclude_statuses: tuple[str, ...],
    types: tuple[str, ...],
    exclude_types: tuple[str, ...],
    priorities: tuple[str, ...],
    tags: tuple[str, ...],
    exclude_tags: tuple[str, ...],
    parent_id: str | None,
    no_parent: bool,
    is_blocked: bool | None,
    sort_by: str,
    output_json: bool,
    project: Path | None,
) -> None:
    """List beans, optionally filtered."""
    from beans.query import BeanFilter, filter_beans, sort_beans

    with _errors():
        core = _open_core(project)
        if parent_id is not None:
            parent_id = _resolve(core, parent_id)
        flt = BeanFilter(
            statuses=statuses or None,
            exclude_statuses=exclude_statuses or None,
            types=types or None,
            exclude_types=exclude_types or None,
            priorities=priorities or None,
            tags=tags or None,
            exclude_tags=exclude_tags or None,
            parent_id=parent_id,
            no_parent=no_parent,
            is_blocked=is_blocked,
        )
        beans = sort_beans(filter_beans(core.all(), flt, core.graph), core.config, by=sort_by)

    if output_json:
        _echo_json([b.to_dict() for b in beans])
        return
    if not beans:
        click.echo("No beans found.")
        return
    _print_beans(beans)


@main.command()
@click.argument("bean_id")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def show(*, bean_id: str, output_json: bool, project: Path | None) -> None:
    """Show one bean with its relations."""
    with _errors():
        core = _open_core(project)
        bean = core.get(_resolve(core, bean_id))

    if output_json:
        data = bean.to_dict()
        data["blocked"] = core.is_blocked(bean.id)
        data["transitively_blocked"] = core.is_transitively_blocked(bean.id)
        data["children"] = [c.id for c in core.children(bean.id)]
        _echo_json(data)
        return
    _print_bean(core, bean)


@main.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def ready(*, output_json: bool, project: Path | None) -> None:
    """List beans that can be started now."""
    from beans.query import sort_beans

    with _errors():
        core = _open_core(project)
        beans = sort_beans(core.ready(), core.config)

    if output_json:
        _echo_json([b.to_dict() for b in beans])
        return
    if not beans:
        click.echo("Nothing is ready.")
        return
    _print_beans(beans, title="Ready")


@main.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def blocked(*, output_json: bool, project: Path | None) -> None:
    """List unresolved beans with an active blocker."""
    from beans.query import sort_beans

    with _errors():
        core = _open_core(project)
        beans = sort_beans(core.blocked(), core.config)
        blockers = {b.id: [x.id for x in core.find_active_blockers(b.id)] for b in beans}

    if output_json:
        _echo_json([{**b.to_dict(), "blocked_by_active": blockers[b.id]} for b in beans])
        return
    if not beans:
        click.echo("Nothing is blocked.")
        return
    for bean in beans:
        click.echo(f"{bean.id}  {bean.title}  <- {', '.join(blockers[bean.id])}")


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


@main.command()
@click.argument("title")
@click.option("--type", "-t", "bean_type", default=None, help="Bean type.")
@click.option("--status", "-s", default=None, help="Initial status (default: todo).")
@click.option("--priority", "-p", default=None, help="Priority.")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable).")
@click.option("--parent", "parent_id", default=None, help="Parent bean ID.")
@click.option("--blocking", multiple=True, help="ID of a bean this one blocks (repeatable).")
@click.option("--blocked-by", "blocked_by", multiple=True, help="ID of a blocker (repeatable).")
@click.option("--body", "-d", default="", help="Description (markdown).")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def create(
    *,
    title: str,
    bean_type: str | None,
    status: str | None,
    priority: str | None,
    tags: tuple[str, ...],
    parent_id: str | None,
    blocking: tuple[str, ...],
    blocked_by: tuple[str, ...],
    body: str,
    output_json: bool,
    project: Path | None,
) -> None:
    """Create a new bean."""
    from beans.bean import Bean

    with _errors():
        core = _open_core(project)
        bean = Bean(
            title=title,
            status=status or "",
            type=bean_type,
            priority=priority,
            tags=list(tags),
            parent=_resolve(core, parent_id) if parent_id else None,
            blocking=[_resolve(core, b) for b in blocking],
            blocked_by=[_resolve(core, b) for b in blocked_by],
            body=body,
        )
        core.create(bean)

    if output_json:
        _echo_json(bean.to_dict())
        return
    click.echo(f"Created {bean.id} {bean.path}")


@main.command()
@click.argument("bean_id")
@click.option("--title", default=None, help="New title.")
@click.option("--status", "-s", default=None, help="New status.")
@click.option("--type", "-t", "bean_type", default=None, help="New type.")
@click.option("--priority", "-p", default=None, help="New priority.")
@click.option("--tag", "add_tags", multiple=True, help="Add a tag (repeatable).")
@click.option("--remove-tag", "remove_tags", multiple=True, help="Remove a tag (repeatable).")
@click.option("--body", "-d", default=None, help="Replace the description.")
@click.option("--if-match", default=None, help="Only update if the bean's ETag still matches.")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def update(
    *,
    bean_id: str,
    title: str | None,
    status: str | None,
    bean_type: str | None,
    priority: str | None,
    add_tags: tuple[str, ...],
    remove_tags: tuple[str, ...],
    body: str | None,
    if_match: str | None,
    output_json: bool,
    project: Path | None,
) -> None:
    """Change fields of a bean."""
    with _errors():
        core = _open_core(project)
        bean = core.get(_resolve(core, bean_id)).copy()
        if title is not None:
            bean.title = title
        if status is not None:
            bean.status = status
        if bean_type is not None:
            bean.type = bean_type
        if priority is not None:
            bean.priority = priority
        for tag in add_tags:
            bean.add_tag(tag)
        for tag in remove_tags:
            bean.remove_tag(tag)
        if body is not None:
            bean.body = body
        core.update(bean, if_match=if_match)

    if output_json:
        _echo_json(bean.to_dict())
        return
    click.echo(f"Updated {bean.id}")


@main.command()
@click.argument("bean_id")
@click.option(
    "--remove-links",
    is_flag=True,
    help="Also remove every link pointing at the bean.",
)
@_project_option
def delete(*, bean_id: str, remove_links: bool, project: Path | None) -> None:
    """Delete a bean.

    Refuses when other beans still link to it unless --remove-links is given.
    """
    with _errors():
        core = _open_core(project)
        bean_id = _resolve(core, bean_id)
        incoming = core.find_incoming_links(bean_id)
        if incoming and not remove_links:
            refs = ", ".join(f"{link.from_bean.id} ({link.link_type})" for link in incoming)
            click.echo(
                f"Error: {bean_id} is still referenced by {refs}. "
                "Use --remove-links to remove those links.",
                err=True,
            )
            sys.exit(1)
        removed = core.remove_links_to(bean_id) if incoming else 0
        core.delete(bean_id)

    if removed:
        click.echo(f"Removed {removed} link(s) to {bean_id}")
    click.echo(f"Deleted {bean_id}")


_LINK_TYPE_CHOICE = click.Choice(["parent", "blocking", "blocked_by", "related", "duplicates"])


@main.command()
@click.argument("bean_id")
@click.argument("link_type", type=_LINK_TYPE_CHOICE)
@click.argument("target_id")
@_project_option
def link(*, bean_id: str, link_type: str, target_id: str, project: Path | None) -> None:
    """Add a relation: BEAN_ID -[LINK_TYPE]-> TARGET_ID."""
    with _errors():
        core = _open_core(project)
        source = _resolve(core, bean_id)
        target = _resolve(core, target_id)
        core.add_link(source, link_type, target)
    click.echo(f"Linked {source} -[{link_type}]-> {target}")


@main.command()
@click.argument("bean_id")
@click.argument("link_type", type=_LINK_TYPE_CHOICE)
@click.argument("target_id")
@_project_option
def unlink(*, bean_id: str, link_type: str, target_id: str, project: Path | None) -> None:
    """Remove a relation (broken targets may be given verbatim)."""
    with _errors():
        core = _open_core(project)
        source = _resolve(core, bean_id)
        target, _ = core.normalize_id(target_id)
        removed = core.remove_link(source, link_type, target)
    if not removed:
        click.echo(f"No '{link_type}' link from {source} to {target}")
        return
    click.echo(f"Unlinked {source} -[{link_type}]-> {target}")


@main.command()
@click.argument("bean_id")
@click.argument("parent_id", required=False)
@click.option("--clear", is_flag=True, help="Remove the current parent.")
@_project_option
def parent(*, bean_id: str, parent_id: str | None, clear: bool, project: Path | None) -> None:
    """Set or clear the parent of a bean."""
    if not clear and parent_id is None:
        raise click.UsageError("Give a PARENT_ID or --clear.")
    with _errors():
        core = _open_core(project)
        child = _resolve(core, bean_id)
        new_parent = None if clear else _resolve(core, parent_id or "")
        core.set_parent(child, new_parent)
    if new_parent is None:
        click.echo(f"Cleared parent of {child}")
    else:
        click.echo(f"Set parent of {child} to {new_parent}")


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


def _transition(
    core: Core,
    bean_ids: Iterable[str],
    status: str,
    *,
    note: str = "",
    guard: Callable[[Bean], None] | None = None,
) -> tuple[list[Bean], list[str], bool]:
    """Move each bean to *status*.

    Errors are reported per bean and do not stop the remaining ones.
    Returns the changed beans, the IDs already in *status*, and whether
    anything failed.
    """
    changed: list[Bean] = []
    unchanged: list[str] = []
    failed = False
    for short_id in bean_ids:
        try:
            bean = core.get(_resolve(core, short_id))
            if bean.status == status:
                unchanged.append(bean.id)
                continue
            if guard is not None:
                guard(bean)
            changed.append(core.set_status(bean.id, status, note=note))
        except BeansError as exc:
            click.echo(f"Error: {exc}", err=True)
            failed = True
    return changed, unchanged, failed


def _finish_transition(
    result: tuple[list[Bean], list[str], bool],
    *,
    verb: str,
    status: str,
    output_json: bool,
) -> None:
    changed, unchanged, failed = result
    if output_json:
        _echo_json([b.to_dict() for b in changed])
    else:
        for bean_id in unchanged:
            click.echo(f"Already {status}: {bean_id}")
        for bean in changed:
            click.echo(f"{verb} {bean.id}")
    if failed:
        sys.exit(1)


@main.command()
@click.argument("bean_ids", nargs=-1, required=True)
@click.option("--force", "-f", is_flag=True, help="Start even if a bean is blocked.")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def start(
    *,
    bean_ids: tuple[str, ...],
    force: bool,
    output_json: bool,
    project: Path | None,
) -> None:
    """Mark beans as in-progress.

    A bean with an active blocker is refused unless --force is given.
    """
    with _errors():
        core = _open_core(project)

    def guard(bean: Bean) -> None:
        blockers = core.find_active_blockers(bean.id)
        if not blockers:
            return
        if not force:
            raise BlockedError(bean.id, [(b.id, b.title) for b in blockers])
        click.echo(f"Warning: {bean.id} is blocked, starting anyway", err=True)

    result = _transition(core, bean_ids, "in-progress", guard=guard)
    _finish_transition(result, verb="Started", status="in-progress", output_json=output_json)


@main.command()
@click.argument("bean_ids", nargs=-1, required=True)
@click.option("--summary", "-m", default="", help="Summary of changes, appended to the body.")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def complete(
    *,
    bean_ids: tuple[str, ...],
    summary: str,
    output_json: bool,
    project: Path | None,
) -> None:
    """Mark beans as completed."""
    with _errors():
        core = _open_core(project)
    note = f"## Summary of Changes\n\n{summary}" if summary else ""
    result = _transition(core, bean_ids, "completed", note=note)
    _finish_transition(result, verb="Completed", status="completed", output_json=output_json)


@main.command()
@click.argument("bean_ids", nargs=-1, required=True)
@click.option("--reason", "-m", required=True, help="Why the work was dropped.")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def scrap(
    *,
    bean_ids: tuple[str, ...],
    reason: str,
    output_json: bool,
    project: Path | None,
) -> None:
    """Mark beans as scrapped, recording the reason in the body."""
    with _errors():
        core = _open_core(project)
    note = f"## Reasons for Scrapping\n\n{reason}"
    result = _transition(core, bean_ids, "scrapped", note=note)
    _finish_transition(result, verb="Scrapped", status="scrapped", output_json=output_json)


@main.command("next")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def next_bean(*, output_json: bool, project: Path | None) -> None:
    """Show the highest-priority bean that can be started now."""
    with _errors():
        core = _open_core(project)
        bean = core.next_ready()

    if output_json:
        _echo_json(bean.to_dict() if bean is not None else None)
        return
    if bean is None:
        click.echo("No beans ready to start.")
        return
    _print_bean(core, bean)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON (implies --force).")
@_project_option
def archive(*, force: bool, output_json: bool, project: Path | None) -> None:
    """Move completed and scrapped beans into the archive directory."""
    with _errors():
        core = _open_core(project)
        pending = core.archivable()
        if not pending:
            if output_json:
                _echo_json({"archived": []})
            else:
                click.echo("No beans to archive.")
            return
        if not (force or output_json):
            click.confirm(f"Archive {len(pending)} bean(s)?", abort=True)
        moved = core.archive()

    if output_json:
        _echo_json({"archived": [b.id for b in moved]})
        return
    click.echo(f"Archived {len(moved)} bean(s)")


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _bar(done: int, total: int, width: int = 20) -> str:
    filled = round(width * done / total) if total else 0
    return "█" * filled + "░" * (width - filled)


@main.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def progress(*, output_json: bool, project: Path | None) -> None:
    """Summarize the project by status and type."""
    from beans.report import project_progress

    with _errors():
        report = project_progress(_open_core(project))

    if output_json:
        _echo_json(report.to_dict())
        return
    click.echo(f"Project Progress ({report.total} beans)")
    click.echo()
    click.echo("By Status")
    for status, count in report.by_status.items():
        click.echo(f"  {status:<12} {_bar(count, report.total)} {count}")
    click.echo()
    click.echo("By Type")
    for bean_type, count in report.by_type.items():
        click.echo(f"  {bean_type:<12} {count}")
    click.echo()
    if report.blocked:
        click.echo(f"Blocked: {report.blocked} bean(s)")
    else:
        click.echo("No blocked beans")


@main.command()
@click.option("--include-done", is_flag=True, help="Also show completed and scrapped milestones.")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def milestones(*, include_done: bool, output_json: bool, project: Path | None) -> None:
    """Show every milestone with the completion of the work below it."""
    from beans.report import milestone_progress

    with _errors():
        reports = milestone_progress(_open_core(project), include_done=include_done)

    if output_json:
        _echo_json([r.to_dict() for r in reports])
        return
    if not reports:
        click.echo("No milestones found.")
        return
    for index, report in enumerate(reports):
        if index:
            click.echo()
        milestone = report.milestone
        click.echo(f"{milestone.id} {milestone.status} {milestone.title}")
        if not report.total:
            click.echo("  No children")
            continue
        click.echo(
            f"  {_bar(report.completed, report.total)} "
            f"{report.completion_pct:.0f}% ({report.completed}/{report.total})"
        )
        breakdown = ", ".join(f"{status}: {count}" for status, count in report.by_status.items())
        click.echo(f"  {breakdown}")


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------


@main.command()
@click.option("--fix", is_flag=True, help="Remove broken and self-referencing links.")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@_project_option
def check(*, fix: bool, output_json: bool, project: Path | None) -> None:
    """Check links for broken targets, self-references and cycles.

    Exit codes: 0 = clean, 1 = issues remain.
    """
    with _errors():
        core = _open_core(project)
        fixed = 0
        if fix:
            fixed = core.fix_broken_links()
        result = core.check_all_links()

    if output_json:
        data = _check_to_dict(result)
        data["fixed"] = fixed
        data["warnings"] = core.warnings
        _echo_json(data)
    else:
        for warning in core.warnings:
            click.echo(f"  [warn] {warning}")
        if fixed:
            click.echo(f"  [fixed] removed {fixed} broken link(s)")
        for broken in result.broken_links:
            click.echo(
                f"  [ERR] {broken.bean_id}: {broken.link_type} -> {broken.target} (not found)"
            )
        for self_link in result.self_links:
            click.echo(f"  [ERR] {self_link.bean_id}: {self_link.link_type} points at itself")
        for cycle in result.cycles:
            click.echo(f"  [ERR] {cycle.link_type} cycle: {' -> '.join(cycle.path)}")
        if not result.has_issues():
            click.echo("  [ok] all links are valid")

    if result.has_issues():
        sys.exit(1)


# ---------------------------------------------------------------------------
# Launchers
# ---------------------------------------------------------------------------


@main.command()
@click.argument("launcher")
@click.argument("bean_ids", nargs=-1, required=True)
@_project_option
def launch(*, launcher: str, bean_ids: tuple[str, ...], project: Path | None) -> None:
    """Run the LAUNCHER script from .beans.yml once per bean, in parallel."""
    from beans.launcher import LaunchManager, LaunchStatus

    with _errors():
        core = _open_core(project)
        script = core.config.launchers.get(launcher)
        if script is None:
            known = ", ".join(sorted(core.config.launchers)) or "none configured"
            click.echo(f"Error: unknown launcher '{launcher}' ({known})", err=True)
            sys.exit(1)
        beans = [core.get(_resolve(core, bean_id)) for bean_id in bean_ids]

        manager = LaunchManager(script, beans)
        manager.start(core.beans_dir.resolve(), interactive=len(beans) == 1)
        try:
            manager.wait()
        except KeyboardInterrupt:
            manager.stop()
            manager.wait()

    summary = manager.get_summary()
    for run in summary.launches:
        marker = "[ok]" if run.status is LaunchStatus.SUCCESS else "[ERR]"
        click.echo(f"  {marker} {run.bean.id} {run.status} ({run.duration:.1f}s)")
    if summary.first_error is not None:
        click.echo(f"Error: {summary.first_error.bean.id}: {summary.first_error.error}", err=True)
    if not summary.all_successful:
        sys.exit(1)

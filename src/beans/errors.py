"""Error taxonomy shared by the store, link graph, and launcher."""

# beans:domain=core

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class BeansError(Exception):
    """Base class for all errors raised by beans."""


class ConfigError(BeansError):
    """Raised when the project configuration cannot be read."""


class NotFoundError(BeansError):
    """Raised when a referenced bean ID does not exist."""

    def __init__(self, bean_id: str) -> None:
        self.bean_id = bean_id
        super().__init__(f"bean not found: {bean_id}")


class ValidationError(BeansError):
    """Raised for illegal values: bad tags, statuses, parent types, ..."""


class SelfLinkError(ValidationError):
    """Raised when a relation would point a bean at itself."""

    def __init__(self, bean_id: str, link_type: str) -> None:
        self.bean_id = bean_id
        self.link_type = link_type
        super().__init__(f"bean {bean_id} cannot reference itself via '{link_type}'")


class FrontMatterError(ValidationError):
    """Raised when a bean file cannot be parsed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class CycleError(BeansError):
    """Raised before a mutation that would close a cycle."""

    def __init__(self, link_type: str, path: list[str]) -> None:
        self.link_type = link_type
        self.path = list(path)
        super().__init__(
            f"adding this '{link_type}' link would create a cycle: {' -> '.join(path)}"
        )


class ConflictError(BeansError):
    """Raised when an update's expected ETag no longer matches the file on disk."""

    def __init__(self, bean_id: str, provided: str, current: str) -> None:
        self.bean_id = bean_id
        self.provided = provided
        self.current = current
        super().__init__(
            f"bean {bean_id} was modified concurrently (expected etag {provided}, "
            f"current etag {current})"
        )


class LinkRepairError(BeansError):
    """Raised after a bulk link repair when some beans could not be saved.

    The repair keeps going past individual failures; ``removed`` counts the
    link removals that were persisted.
    """

    def __init__(self, removed: int, failures: list[tuple[str, Exception]]) -> None:
        self.removed = removed
        self.failures = failures
        ids = ", ".join(bean_id for bean_id, _ in failures)
        super().__init__(f"failed to save {len(failures)} bean(s) during link repair: {ids}")


class LaunchError(BeansError):
    """Raised when a launcher process cannot be built, started, or exits non-zero."""

    def __init__(self, message: str, *, stderr: str = "") -> None:
        self.stderr = stderr
        if stderr:
            message = f"{message}\n\nOutput:\n{stderr}"
        super().__init__(message)


class StoreError(BeansError):
    """Raised when the beans directory itself cannot be read or written."""


class BlockedError(BeansError):
    """Raised when starting a bean that still has active blockers."""

    def __init__(self, bean_id: str, blockers: list[tuple[str, str]]) -> None:
        self.bean_id = bean_id
        self.blockers = list(blockers)
        names = ", ".join(f"{blocker_id} ({title})" for blocker_id, title in blockers)
        super().__init__(f"{bean_id} is blocked by: {names}")

"""Parallel launcher runs: one external process per bean, tracked to completion.

Starting is synchronous and sequential; each started process is then waited
on by its own worker thread (one :class:`~concurrent.futures.Future` per
launch).  All launch state lives in the manager and changes only under its
write lock.  Readers (:meth:`LaunchManager.get_summary`) share a read lock,
so frequent UI refreshes do not block each other.
"""

# beans:domain=launcher

from __future__ import annotations

import contextlib
import copy
import dataclasses
import logging
import subprocess
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from beans.errors import LaunchError
from beans.launcher.command import create_exec_command

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from beans.bean import Bean

logger = logging.getLogger(__name__)

STOPPED_MESSAGE = "stopped by user"


class LaunchStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass
class BeanLaunch:
    """State of one bean's launcher process."""

    bean: Bean
    status: LaunchStatus = LaunchStatus.PENDING
    error: LaunchError | None = None
    output: str = ""  # captured stderr
    started: float | None = None  # time.monotonic()
    finished: float | None = None

    @property
    def duration(self) -> float:
        """Seconds the launch took, or has been running so far."""
        if self.started is None:
            return 0.0
        end = self.finished if self.finished is not None else time.monotonic()
        return end - self.started

    @property
    def done(self) -> bool:
        return self.status in (LaunchStatus.SUCCESS, LaunchStatus.FAILED)


@dataclass(frozen=True)
class LaunchCounts:
    pending: int = 0
    running: int = 0
    success: int = 0
    failed: int = 0
    total: int = 0


@dataclass(frozen=True)
class LaunchSummary:
    """Consistent snapshot of a :class:`LaunchManager`.

    ``launches`` are independent copies, down to their bean and error;
    ``first_error`` is one of them.
    """

    launches: list[BeanLaunch]
    complete: bool
    all_successful: bool
    first_error: BeanLaunch | None
    counts: LaunchCounts


# ---------------------------------------------------------------------------
# Read/write lock
# ---------------------------------------------------------------------------


class _ReadWriteLock:
    """Many readers or one writer.  Waiting writers keep new readers out."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextlib.contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextlib.contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class LaunchManager:
    """Run one launcher script per bean in parallel and track the outcomes."""

    def __init__(self, exec_script: str, beans: Iterable[Bean]) -> None:
        self.exec_script = exec_script
        self._launches = [BeanLaunch(bean=bean) for bean in beans]
        self._processes: dict[int, subprocess.Popen[str]] = {}
        self._futures: list[Future[LaunchStatus]] = []
        self._executor: ThreadPoolExecutor | None = None
        self._lock = _ReadWriteLock()
        self._stop_guard = threading.Lock()
        self._stop_requested = False
        self._started = False
        self._stopped = False

    def __len__(self) -> int:
        return len(self._launches)

    # -- starting -----------------------------------------------------------

    def start(self, beans_dir: Path | str, *, interactive: bool = False) -> None:
        """Start every launch.

        A launch whose process cannot be built or started is marked failed
        right away; the remaining launches are started regardless.  With
        *interactive* the processes write to this terminal's stdout,
        otherwise their stdout is discarded.  stderr is always captured.
        """
        with self._lock.write_locked():
            if self._stopped:
                msg = "launch manager has been stopped"
                raise LaunchError(msg)
            if self._started:
                msg = "launches have already been started"
                raise LaunchError(msg)
            self._started = True
            self._executor = ThreadPoolExecutor(
                max_workers=max(1, len(self._launches)),
                thread_name_prefix="beans-launch",
            )
            for index, launch in enumerate(self._launches):
                self._start_one(index, launch, beans_dir, interactive=interactive)

    def _start_one(
        self, index: int, launch: BeanLaunch, beans_dir: Path | str, *, interactive: bool
    ) -> None:
        """Build and start one process.  Caller holds the write lock."""
        try:
            command = create_exec_command(
                self.exec_script, beans_dir, launch.bean.id, launch.bean.title
            )
        except LaunchError as exc:
            self._fail(launch, LaunchError(f"failed to create command: {exc}"))
            return

        try:
            proc = command.popen(
                stdout=None if interactive else subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            self._fail(launch, LaunchError(f"failed to start command: {exc}"))
            return

        launch.status = LaunchStatus.RUNNING
        launch.started = time.monotonic()
        self._processes[index] = proc
        assert self._executor is not None
        self._futures.append(self._executor.submit(self._monitor, index, proc, command.stdin))
        logger.debug("Started launcher for %s (pid %d)", launch.bean.id, proc.pid)

    def _fail(self, launch: BeanLaunch, error: LaunchError) -> None:
        launch.status = LaunchStatus.FAILED
        launch.error = error
        launch.finished = time.monotonic()
        logger.warning("Launch for %s failed: %s", launch.bean.id, error)

    # -- monitoring ---------------------------------------------------------

    def _monitor(self, index: int, proc: subprocess.Popen[str], stdin: str | None) -> LaunchStatus:
        """Wait for *proc* in a worker thread, then record its outcome."""
        try:
            _, stderr = proc.communicate(input=stdin)
        except OSError as exc:
            proc.kill()
            proc.wait()
            stderr = f"{exc}"
        returncode = proc.returncode
        stderr = stderr or ""

        with self._lock.write_locked():
            launch = self._launches[index]
            # stop() got here first
            if launch.status is not LaunchStatus.RUNNING:
                return launch.status
            launch.finished = time.monotonic()
            launch.output = stderr
            if returncode == 0:
                launch.status = LaunchStatus.SUCCESS
                logger.debug("Launch for %s succeeded", launch.bean.id)
            else:
                if returncode < 0:
                    reason = f"launcher terminated by signal {-returncode}"
                else:
                    reason = f"launcher exited with status {returncode}"
                self._fail(launch, LaunchError(reason, stderr=stderr))
            return launch.status

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every started launch has finished.

        Returns False if *timeout* seconds passed first.
        """
        with self._lock.read_locked():
            futures = list(self._futures)
        _, not_done = wait_futures(futures, timeout=timeout)
        if not not_done and self._executor is not None:
            self._executor.shutdown(wait=False)
        return not not_done

    # -- stopping -----------------------------------------------------------

    def stop(self) -> None:
        """Kill every running process and mark it failed.  Later calls do nothing."""
        with self._stop_guard:
            if self._stop_requested:
                return
            self._stop_requested = True

        with self._lock.write_locked():
            self._stopped = True
            for index, launch in enumerate(self._launches):
                if launch.status is not LaunchStatus.RUNNING:
                    continue
                proc = self._processes.get(index)
                if proc is not None:
                    with contextlib.suppress(ProcessLookupError):
                        proc.kill()
                launch.status = LaunchStatus.FAILED
                launch.error = LaunchError(STOPPED_MESSAGE)
                launch.finished = time.monotonic()
                logger.info("Stopped launch for %s", launch.bean.id)

        if self._executor is not None:
            self._executor.shutdown(wait=False)

    # -- reading ------------------------------------------------------------

    def get_summary(self) -> LaunchSummary:
        """Copies of all launches plus aggregates, taken under one read lock."""
        pending = running = success = failed = 0
        first_error: BeanLaunch | None = None
        launches: list[BeanLaunch] = []

        with self._lock.read_locked():
            for launch in self._launches:
                snapshot = dataclasses.replace(
                    launch, bean=launch.bean.copy(), error=copy.copy(launch.error)
                )
                launches.append(snapshot)
                if snapshot.status is LaunchStatus.PENDING:
                    pending += 1
                elif snapshot.status is LaunchStatus.RUNNING:
                    running += 1
                elif snapshot.status is LaunchStatus.SUCCESS:
                    success += 1
                else:
                    failed += 1
                    if first_error is None and snapshot.error is not None:
                        first_error = snapshot

        return LaunchSummary(
            launches=launches,
            complete=pending == 0 and running == 0,
            all_successful=success == len(launches),
            first_error=first_error,
            counts=LaunchCounts(
                pending=pending,
                running=running,
                success=success,
                failed=failed,
                total=len(launches),
            ),
        )

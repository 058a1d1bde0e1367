"""Build the external process for one bean launch."""

# beans:domain=launcher

from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from beans.errors import LaunchError

ENV_ROOT = "BEANS_ROOT"
ENV_DIR = "BEANS_DIR"
ENV_ID = "BEANS_ID"
ENV_TASK = "BEANS_TASK"

Stream = int | IO[Any] | None


@dataclass(frozen=True)
class ExecCommand:
    """Everything needed to start one launcher process.

    ``stdin`` is the script text for multi-line scripts (fed to the
    interpreter named by the shebang) and ``None`` otherwise.
    """

    args: tuple[str, ...]
    env: dict[str, str]
    cwd: Path
    stdin: str | None = None

    def popen(self, *, stdout: Stream = None, stderr: Stream = None) -> subprocess.Popen[str]:
        """Start the process without waiting for it."""
        return subprocess.Popen(  # noqa: S603
            list(self.args),
            cwd=self.cwd,
            env=self.env,
            stdin=subprocess.PIPE if self.stdin is not None else subprocess.DEVNULL,
            stdout=stdout,
            stderr=stderr,
            text=True,
        )


def create_exec_command(
    exec_script: str,
    beans_dir: Path | str,
    bean_id: str,
    bean_title: str,
) -> ExecCommand:
    """Turn a launcher script into an :class:`ExecCommand` for one bean.

    A single-line script runs through ``sh -c``.  A multi-line script must
    start with a shebang; its interpreter is started directly and reads the
    whole script from stdin.  The process runs in the project root (the
    parent of *beans_dir*) with ``BEANS_ROOT``, ``BEANS_DIR``, ``BEANS_ID``
    and ``BEANS_TASK`` added to the inherited environment.
    """
    beans_dir = Path(beans_dir)
    project_root = beans_dir.parent

    env = dict(os.environ)
    env.update(
        {
            ENV_ROOT: str(project_root),
            ENV_DIR: str(beans_dir),
            ENV_ID: bean_id,
            ENV_TASK: bean_title,
        }
    )

    if "\n" not in exec_script:
        return ExecCommand(args=("sh", "-c", exec_script), env=env, cwd=project_root)

    first_line = exec_script.split("\n", 1)[0]
    if not first_line.startswith("#!"):
        msg = "multi-line launcher script must start with a shebang (#!)"
        raise LaunchError(msg)

    interpreter = shlex.split(first_line[2:].strip())
    if not interpreter:
        msg = f"invalid shebang: {first_line!r}"
        raise LaunchError(msg)

    return ExecCommand(args=tuple(interpreter), env=env, cwd=project_root, stdin=exec_script)

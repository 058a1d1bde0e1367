"""Launcher domain: run an external script per bean and track the runs."""

# beans:domain=launcher

from beans.launcher.command import (
    ENV_DIR,
    ENV_ID,
    ENV_ROOT,
    ENV_TASK,
    ExecCommand,
    create_exec_command,
)
from beans.launcher.manager import (
    BeanLaunch,
    LaunchCounts,
    LaunchManager,
    LaunchStatus,
    LaunchSummary,
)

__all__ = [
    "ENV_DIR",
    "ENV_ID",
    "ENV_ROOT",
    "ENV_TASK",
    "BeanLaunch",
    "ExecCommand",
    "LaunchCounts",
    "LaunchManager",
    "LaunchStatus",
    "LaunchSummary",
    "create_exec_command",
]

"""
Boot-time scheduled task for the supervisor.

Registers "guestvisor run" with the Windows Task Scheduler so the agent is
supervised from boot, under the SYSTEM account with highest privileges.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from guestvisor.exceptions import TaskRegistrationError

if TYPE_CHECKING:
    from guestvisor.log import Logger

DEFAULT_TASK_NAME = "GuestAgentSupervisor"

# schtasks limits /TR to 261 characters
MAX_TASK_COMMAND_LEN = 261


def _quote(arg: str) -> str:
    return f'"{arg}"' if (" " in arg or not arg) else arg


@dataclass
class ScheduledTask:
    """
    Scheduled task definition.

    Attributes:
        config_file: Config file passed to "guestvisor run"
        name: Task name in the scheduler
        python: Interpreter that runs the supervisor (defaults to the
            current one)
        user: Account the task runs as
    """

    config_file: Path
    name: str = DEFAULT_TASK_NAME
    python: Path = field(default_factory=lambda: Path(sys.executable))
    user: str = "SYSTEM"

    def command(self) -> str:
        """
        Command line the task runs.

        Raises:
            TaskRegistrationError: If the command exceeds the scheduler limit
        """
        parts = [str(self.python), "-m", "guestvisor"]
        parts += ["-c", str(self.config_file), "run"]
        cmd = " ".join(_quote(part) for part in parts)
        if len(cmd) > MAX_TASK_COMMAND_LEN:
            raise TaskRegistrationError(
                "task command too long", length=len(cmd), limit=MAX_TASK_COMMAND_LEN
            )
        return cmd

    def create_args(self) -> list[str]:
        return [
            "schtasks", "/Create",
            "/TN", self.name,
            "/TR", self.command(),
            "/SC", "ONSTART",
            "/RU", self.user,
            "/RL", "HIGHEST",
            "/F",
        ]  # fmt: skip

    def delete_args(self) -> list[str]:
        return ["schtasks", "/Delete", "/TN", self.name, "/F"]

    def query_args(self) -> list[str]:
        return ["schtasks", "/Query", "/TN", self.name]


class TaskScheduler:
    """
    Registers and removes ScheduledTasks through schtasks.

    Args:
        lg: Logger for registration events
    """

    def __init__(self, lg: Logger) -> None:
        self._lg = lg

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        if shutil.which(args[0]) is None:
            raise TaskRegistrationError("task scheduler not available", tool=args[0])
        try:
            return subprocess.run(
                list(args), capture_output=True, text=True, check=False
            )
        except OSError as e:
            raise TaskRegistrationError(
                "failed to run task scheduler", tool=args[0], error=str(e)
            ) from e

    def _check(
        self, result: subprocess.CompletedProcess, action: str, task: ScheduledTask
    ) -> None:
        if result.returncode != 0:
            raise TaskRegistrationError(
                f"task {action} failed",
                task=task.name,
                code=result.returncode,
                error=(result.stderr or result.stdout or "").strip(),
            )

    def exists(self, task: ScheduledTask) -> bool:
        return self._run(task.query_args()).returncode == 0

    def install(self, task: ScheduledTask) -> None:
        """
        Create or replace the task.

        Raises:
            TaskRegistrationError: If schtasks is missing or rejects the task
        """
        self._check(self._run(task.create_args()), "create", task)
        self._lg.info(
            "scheduled task installed",
            extra={"task": task.name, "user": task.user, "command": task.command()},
        )

    def remove(self, task: ScheduledTask) -> bool:
        """
        Delete the task.

        Returns:
            False if there was no such task
        """
        if not self.exists(task):
            self._lg.info("scheduled task not installed", extra={"task": task.name})
            return False
        self._check(self._run(task.delete_args()), "delete", task)
        self._lg.info("scheduled task removed", extra={"task": task.name})
        return True

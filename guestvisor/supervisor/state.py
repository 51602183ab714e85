"""
Run state and the supervised process record.
"""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from guestvisor.exceptions import StateError


class RunState(enum.Enum):
    """Supervisor run state."""

    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"
    STOPPING = "stopping"
    STOPPED = "stopped"


# Restarting -> Restarting covers a spawn that failed again after a cool-down
_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.STARTING: frozenset(
        {RunState.RUNNING, RunState.RESTARTING, RunState.STOPPING, RunState.STOPPED}
    ),
    RunState.RUNNING: frozenset({RunState.RESTARTING, RunState.STOPPING}),
    RunState.RESTARTING: frozenset(
        {RunState.RUNNING, RunState.RESTARTING, RunState.STOPPING}
    ),
    RunState.STOPPING: frozenset({RunState.STOPPED}),
    RunState.STOPPED: frozenset(),
}


def check_transition(current: RunState, target: RunState) -> None:
    """
    Validate a run state change.

    Raises:
        StateError: If target is not reachable from current
    """
    if target not in _TRANSITIONS[current]:
        raise StateError(
            "illegal state transition", current=current.value, target=target.value
        )


@dataclass
class SupervisedProcess:
    """
    The child process owned by a supervisor.

    Attributes:
        executable: Interpreter or binary to invoke
        script: Script passed as the first argument, if any
        args: Further launch arguments
        cwd: Working directory of the child
        handle: Live process handle, None while no child runs
        restart_count: Restarts within the current observation window
        window_start: Monotonic time of the oldest restart still in the window
        pid: PID of the live child, None while no child runs
        spawn_count: Total successful spawns
        restart_times: Monotonic times of the restarts in the window
    """

    executable: Path
    script: Path | None = None
    args: list[str] = field(default_factory=list)
    cwd: Path | None = None
    handle: Any = None
    restart_count: int = 0
    window_start: float = 0.0
    pid: int | None = None
    spawn_count: int = 0
    restart_times: deque[float] = field(default_factory=deque, repr=False)

    def __post_init__(self) -> None:
        self.executable = Path(self.executable)
        if self.script is not None:
            self.script = Path(self.script)
        if self.cwd is not None:
            self.cwd = Path(self.cwd)
        self.args = [str(a) for a in self.args]

    @property
    def running(self) -> bool:
        return self.handle is not None

    def argv(self) -> list[str]:
        """Full command line: executable, script, then args."""
        argv = [str(self.executable)]
        if self.script is not None:
            argv.append(str(self.script))
        argv.extend(self.args)
        return argv

    def working_directory(self) -> Path:
        """Configured cwd, else the script's directory, else the executable's."""
        if self.cwd is not None:
            return self.cwd
        if self.script is not None:
            return self.script.parent
        return self.executable.parent

    def attach(self, handle: Any, pid: int | None) -> None:
        """Record a freshly spawned child."""
        if self.handle is not None:
            raise StateError("a child process is already attached", pid=self.pid)
        self.handle = handle
        self.pid = pid
        self.spawn_count += 1

    def release(self) -> None:
        """Drop the handle of a child that has exited or was killed."""
        self.handle = None
        self.pid = None

    def roll_window(self, now: float, window: float) -> int:
        """
        Forget restarts that happened window seconds or more before now.

        The window is rolling: restart_count is the number of restarts in
        the last window seconds and window_start the time of the oldest.

        Returns:
            The remaining restart count
        """
        while self.restart_times and now - self.restart_times[0] >= window:
            self.restart_times.popleft()
        self.restart_count = len(self.restart_times)
        self.window_start = self.restart_times[0] if self.restart_times else now
        return self.restart_count

    def record_restart(self, now: float) -> None:
        if not self.restart_times:
            self.window_start = now
        self.restart_times.append(now)
        self.restart_count = len(self.restart_times)

    def reset_window(self, now: float) -> None:
        self.restart_times.clear()
        self.restart_count = 0
        self.window_start = now

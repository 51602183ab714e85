"""
Agent supervisor.

Keeps exactly one instance of the agent process alive for the lifetime of
the host service. The loop runs on the thread that calls start(); stop()
may be called from any thread (or a signal handler) and is observed at the
next wait.

Example Usage:
    process = SupervisedProcess(
        executable=Path("C:/Python311/python.exe"),
        script=Path("C:/agent/agent.py"),
    )
    supervisor = Supervisor(lg, process, RestartPolicy())

    with ServiceContext(lg, supervisor):
        supervisor.start()  # blocks until stop()
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from guestvisor.exceptions import (
    ConfigurationError,
    RestartStormDetected,
    SpawnError,
    StateError,
    TerminationTimeout,
)
from guestvisor.time.delta import delta_str

from .host import HostProcess, PopenHost
from .policy import RestartPolicy
from .state import RunState, SupervisedProcess, check_transition

if TYPE_CHECKING:
    from guestvisor.log import Logger

# Upper bound on waiting for a killed child to be reaped
KILL_WAIT_SECS = 5.0


class Supervisor:
    """
    Supervises one agent process.

    State machine:
        Starting -> Running -> Restarting -> Running -> ... -> Stopping -> Stopped

    Stopping is reachable from Starting, Running and Restarting. A
    ConfigurationError moves Starting straight to Stopped.

    Args:
        lg: Logger receiving every spawn, exit, restart and stop event
        process: Definition and runtime record of the agent process
        policy: Timing values (defaults to RestartPolicy())
        host: Host process API (defaults to PopenHost())
        clock: Monotonic clock used for restart accounting
    """

    def __init__(
        self,
        lg: Logger,
        process: SupervisedProcess,
        policy: RestartPolicy | None = None,
        host: HostProcess | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lg = lg
        self._process = process
        self._policy = policy or RestartPolicy()
        self._host: HostProcess = host or PopenHost()
        self._clock = clock

        self._state: RunState | None = None
        self._stop_event = threading.Event()
        self._stopped_event = threading.Event()
        self._started_at = 0.0
        self._restart_total = 0

    @property
    def state(self) -> RunState | None:
        """Current run state, None before start()."""
        return self._state

    @property
    def process(self) -> SupervisedProcess:
        return self._process

    @property
    def policy(self) -> RestartPolicy:
        return self._policy

    @property
    def restart_total(self) -> int:
        """Restarts since start(), across observation windows."""
        return self._restart_total

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """
        Ask the supervision loop to terminate.

        Safe to call from any thread or from a signal handler, and more than
        once. The loop terminates the agent (graceful first, then forced)
        before reaching Stopped; use wait() to block until it has.
        """
        if not self._stop_event.is_set():
            self._lg.info("stop requested", extra={"state": self._state_name()})
        self._stop_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the supervisor reaches Stopped.

        Returns:
            True if Stopped was reached, False on timeout
        """
        return self._stopped_event.wait(timeout)

    def start(self) -> None:
        """
        Run the supervision loop until stop() is observed.

        Raises:
            ConfigurationError: If the executable, script or working directory
                does not exist. Nothing is spawned in that case.
            StateError: If the supervisor was already started
        """
        if self._state is not None:
            raise StateError("supervisor already started", state=self._state.value)

        self._set_state(RunState.STARTING)
        try:
            self._validate()
        except ConfigurationError as e:
            self._lg.error("cannot start supervisor", extra={"exception": e})
            self._set_state(RunState.STOPPED)
            self._stopped_event.set()
            raise

        self._lg.info(
            "supervisor starting",
            extra={"argv": " ".join(self._process.argv()), **self._policy.describe()},
        )

        try:
            if self._policy.warmup > 0:
                self._lg.info(
                    "waiting for host warm-up",
                    extra={"warmup": delta_str(self._policy.warmup)},
                )
            if not self._sleep(self._policy.warmup):
                self._process.reset_window(self._clock())
                self._supervise()
        except Exception:
            self._lg.critical("supervision loop failed", exc_info=True)
            raise
        finally:
            self._shutdown()

    def _validate(self) -> None:
        """Check the start preconditions; fatal, never retried."""
        problems = validate_process(self._process)
        if problems:
            raise problems[0]

    def _supervise(self) -> None:
        """Spawn, monitor and restart until a stop is requested."""
        while True:
            self._spawn()
            if self._process.running:
                exit_code = self._monitor()
                if exit_code is None:
                    return
                self._on_exit(exit_code)
            if self._before_restart():
                return

    def _spawn(self) -> None:
        argv = self._process.argv()
        try:
            handle, pid = self._host.spawn(argv, self._process.working_directory())
        except SpawnError as e:
            self._lg.error(
                "agent spawn failed",
                extra={"exception": e, "restarts": self._process.restart_count},
            )
            self._set_state(RunState.RESTARTING)
            return

        self._process.attach(handle, pid)
        self._started_at = self._clock()
        self._set_state(RunState.RUNNING)
        self._lg.info(
            "agent started",
            extra={"pid": pid, "spawns": self._process.spawn_count},
        )

    def _monitor(self) -> int | None:
        """
        Poll until the child exits or a stop is requested.

        Returns:
            The child's exit code, or None if a stop was requested
        """
        while True:
            if self._stop_event.wait(self._policy.poll_interval):
                return None
            exit_code = self._host.poll(self._process.handle)
            if exit_code is not None:
                return exit_code

    def _on_exit(self, exit_code: int) -> None:
        pid = self._process.pid
        uptime = max(0.0, self._clock() - self._started_at)
        self._process.release()
        self._set_state(RunState.RESTARTING)
        self._lg.warning(
            "agent exited",
            extra={"pid": pid, "exit_code": exit_code, "uptime": delta_str(uptime)},
        )

    def _before_restart(self) -> bool:
        """
        Apply cool-down or restart-storm back-off before the next spawn.

        Returns:
            True if a stop was requested while waiting
        """
        policy = self._policy
        count = self._process.roll_window(self._clock(), policy.window)

        if count >= policy.max_restarts:
            storm = RestartStormDetected(
                "restart storm detected",
                restarts=count,
                window=delta_str(policy.window),
            )
            self._lg.warning(
                storm.message,
                extra={
                    "restarts": count,
                    "window": delta_str(policy.window),
                    "backoff": delta_str(policy.backoff),
                },
            )
            if self._sleep(policy.backoff):
                return True
            self._process.reset_window(self._clock())
            self._lg.info("restart back-off finished")
        else:
            if self._sleep(policy.cooldown):
                return True
            self._process.record_restart(self._clock())

        self._restart_total += 1
        self._lg.info(
            "restarting agent",
            extra={
                "attempt": self._restart_total,
                "restarts": self._process.restart_count,
            },
        )
        return False

    def _shutdown(self) -> None:
        """Terminate the child if one is live, release the host, reach Stopped."""
        if self._state is RunState.STOPPED:
            self._stopped_event.set()
            return

        self._set_state(RunState.STOPPING)
        try:
            if self._process.running:
                self._terminate_child()
            self._host.close()
        finally:
            self._set_state(RunState.STOPPED)
            self._stopped_event.set()
            self._lg.info(
                "supervisor stopped",
                extra={
                    "spawns": self._process.spawn_count,
                    "restarts": self._restart_total,
                },
            )

    def _terminate_child(self) -> None:
        """Graceful terminate, then a forced kill if the child is still alive."""
        handle, pid = self._process.handle, self._process.pid
        grace = self._policy.grace_period

        self._lg.info(
            "terminating agent", extra={"pid": pid, "grace": delta_str(grace)}
        )
        exit_code: int | None = None
        try:
            self._host.terminate(handle)
        except OSError as e:
            self._lg.warning(
                "graceful terminate failed, killing",
                extra={"exception": e, "pid": pid},
            )
        else:
            exit_code = self._host.wait(handle, grace)
            if exit_code is None:
                timeout = TerminationTimeout(
                    "agent ignored terminate", pid=pid, grace=delta_str(grace)
                )
                self._lg.warning(
                    "agent did not exit within grace period, killing",
                    extra={"exception": timeout, "pid": pid},
                )

        try:
            if exit_code is None:
                exit_code = self._kill_child(handle, pid)
        finally:
            self._process.release()

        if exit_code is None:
            self._lg.error("agent did not exit after kill", extra={"pid": pid})
        else:
            self._lg.info("agent stopped", extra={"pid": pid, "exit_code": exit_code})

    def _kill_child(self, handle: Any, pid: int | None) -> int | None:
        try:
            self._host.kill(handle)
        except OSError as e:
            self._lg.error("failed to kill agent", extra={"exception": e, "pid": pid})
            return None
        return self._host.wait(handle, KILL_WAIT_SECS)

    def _sleep(self, secs: float) -> bool:
        """Interruptible sleep; True if a stop was requested."""
        if secs <= 0:
            return self._stop_event.is_set()
        return self._stop_event.wait(secs)

    def _set_state(self, target: RunState) -> None:
        if self._state is not None:
            check_transition(self._state, target)
        previous = self._state_name()
        self._state = target
        self._lg.trace("state change", extra={"from": previous, "to": target.value})

    def _state_name(self) -> str:
        return self._state.value if self._state is not None else "created"


def validate_process(process: SupervisedProcess) -> list[ConfigurationError]:
    """
    Check that everything the agent needs exists on disk.

    Returns:
        One ConfigurationError per problem, empty when the process can start
    """
    problems = []
    if not process.executable.is_file():
        problems.append(
            ConfigurationError("executable not found", path=str(process.executable))
        )
    if process.script is not None and not process.script.is_file():
        problems.append(
            ConfigurationError("agent script not found", path=str(process.script))
        )
    cwd = process.working_directory()
    if not cwd.is_dir():
        problems.append(
            ConfigurationError("working directory not found", path=str(cwd))
        )
    return problems

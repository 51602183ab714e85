"""
Host process API.

The supervisor only talks to child processes through the HostProcess
protocol. PopenHost is the implementation used in production; tests swap in
fakes.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import IO, Any, Protocol

from guestvisor.exceptions import SpawnError

from .job import ProcessJob, default_job


class HostProcess(Protocol):
    """Boundary between the supervisor and the operating system."""

    def spawn(self, argv: Sequence[str], cwd: Path) -> tuple[Any, int | None]:
        """Start a child and return (handle, pid). Raises SpawnError."""
        ...

    def terminate(self, handle: Any) -> None:
        """Ask the child to exit. Raises OSError if it cannot be asked."""
        ...

    def kill(self, handle: Any) -> None:
        """Force the child to exit."""
        ...

    def poll(self, handle: Any) -> int | None:
        """Exit code, or None while the child is still running."""
        ...

    def wait(self, handle: Any, timeout: float) -> int | None:
        """Wait up to timeout seconds; exit code, or None if still running."""
        ...

    def close(self) -> None:
        """Release host resources once the supervisor has stopped."""
        ...


def _popen_kwargs() -> dict[str, Any]:
    """
    Platform-specific Popen arguments.

    The child gets its own process group (Windows) or session (POSIX) so a
    console Ctrl+C aimed at the supervisor does not reach the agent, and so
    a CTRL_BREAK can be addressed to the agent alone. On Windows the child
    shares the supervisor's console, which CTRL_BREAK needs to reach it.
    """
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def _read_pipe(pipe: IO[bytes], lg: logging.Logger, level: int) -> None:
    """Reader thread target: relay lines of a child pipe to the logger."""
    try:
        for raw in iter(pipe.readline, b""):
            line = raw.decode("utf-8", errors="replace").rstrip()
            if line:
                lg.log(level, line)
    except (OSError, ValueError) as e:
        lg.debug("pipe reader exited", extra={"error": str(e)})
    finally:
        pipe.close()


def _relay_output(proc: subprocess.Popen, lg: logging.Logger) -> None:
    for pipe, level, name in (
        (proc.stdout, logging.INFO, "stdout"),
        (proc.stderr, logging.WARNING, "stderr"),
    ):
        if pipe is not None:
            threading.Thread(
                target=_read_pipe,
                args=(pipe, lg, level),
                name=f"agent-{name}-{proc.pid}",
                daemon=True,
            ).start()


class PopenHost:
    """
    HostProcess built on subprocess.Popen.

    Args:
        output_lg: Logger receiving the child's stdout (info) and stderr
            (warning) lines. None leaves the child's output attached to the
            supervisor's own stdout/stderr.
        job_factory: Creates the job every child is assigned to, on the
            first spawn. The default is a kill-on-close Job Object on
            Windows and no job elsewhere.
    """

    def __init__(
        self,
        output_lg: logging.Logger | None = None,
        job_factory: Callable[[], ProcessJob | None] = default_job,
    ) -> None:
        self._output_lg = output_lg
        self._job_factory = job_factory
        self._job: ProcessJob | None = None
        self._job_created = False

    def spawn(self, argv: Sequence[str], cwd: Path) -> tuple[subprocess.Popen, int]:
        job = self._get_job()
        capture = self._output_lg is not None
        try:
            proc = subprocess.Popen(
                list(argv),
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.PIPE if capture else None,
                **_popen_kwargs(),
            )
        except (OSError, ValueError) as e:
            raise SpawnError(
                "failed to spawn child", argv=" ".join(argv), error=str(e)
            ) from e

        if job is not None:
            try:
                job.assign(proc.pid)
            except SpawnError:
                # An agent outside the job would outlive the supervisor
                proc.kill()
                proc.wait()
                raise

        if self._output_lg is not None:
            _relay_output(proc, self._output_lg)
        return proc, proc.pid

    def _get_job(self) -> ProcessJob | None:
        if not self._job_created:
            self._job = self._job_factory()
            self._job_created = True
        return self._job

    def close(self) -> None:
        """Release the job, killing any child still assigned to it."""
        if self._job is not None:
            self._job.close()
            self._job = None
        self._job_created = False

    def terminate(self, handle: subprocess.Popen) -> None:
        """
        Ask the child to exit.

        Raises:
            OSError: If the request could not be delivered, e.g. CTRL_BREAK
                without a console shared with the child
        """
        if handle.poll() is not None:
            return
        try:
            if sys.platform == "win32":
                # TerminateProcess is not graceful; CTRL_BREAK reaches the
                # child's process group and raises KeyboardInterrupt in Python
                os.kill(handle.pid, signal.CTRL_BREAK_EVENT)
            else:
                handle.terminate()
        except ProcessLookupError:
            pass

    def kill(self, handle: subprocess.Popen) -> None:
        if handle.poll() is not None:
            return
        try:
            handle.kill()
        except ProcessLookupError:
            pass

    def poll(self, handle: subprocess.Popen) -> int | None:
        return handle.poll()

    def wait(self, handle: subprocess.Popen, timeout: float) -> int | None:
        try:
            return handle.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

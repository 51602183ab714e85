"""
Tie the agent's lifetime to the supervisor's on Windows.

Task Scheduler ends a task with TerminateProcess, so the supervisor gets no
stop signal and never runs its shutdown. Every agent is assigned to a Job
Object created with JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE. The supervisor holds
the only handle to the job, so when the OS tears the supervisor down the job
closes and the agent is killed with it.

POSIX hosts have no such manager in front of the supervisor and use no job.
"""

from __future__ import annotations

import sys
from typing import Protocol

from guestvisor.exceptions import SpawnError


class ProcessJob(Protocol):
    """Container that kills its processes when the supervisor goes away."""

    def assign(self, pid: int) -> None: ...

    def close(self) -> None: ...


class KillOnCloseJob:
    """
    Windows Job Object with JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE (pywin32).

    Raises:
        SpawnError: If the job cannot be created or a process cannot be
            assigned to it
    """

    def __init__(self) -> None:
        import pywintypes
        import win32api
        import win32con
        import win32job

        self._error = pywintypes.error
        self._win32api = win32api
        self._win32con = win32con
        self._win32job = win32job

        try:
            self._handle = win32job.CreateJobObject(None, "")
            info = win32job.QueryInformationJobObject(
                self._handle, win32job.JobObjectExtendedLimitInformation
            )
            info["BasicLimitInformation"]["LimitFlags"] |= (
                win32job.JOB_OBJECT_LIMIT_KILL_ON_JOB_CLOSE
            )
            win32job.SetInformationJobObject(
                self._handle, win32job.JobObjectExtendedLimitInformation, info
            )
        except self._error as e:
            raise SpawnError("failed to create job object", error=str(e)) from e

    def assign(self, pid: int) -> None:
        access = self._win32con.PROCESS_TERMINATE | self._win32con.PROCESS_SET_QUOTA
        try:
            process = self._win32api.OpenProcess(access, False, pid)
            try:
                self._win32job.AssignProcessToJobObject(self._handle, process)
            finally:
                self._win32api.CloseHandle(process)
        except self._error as e:
            raise SpawnError(
                "failed to assign agent to job object", pid=pid, error=str(e)
            ) from e

    def close(self) -> None:
        """Close the job handle, killing every process still in it."""
        if self._handle is not None:
            self._win32api.CloseHandle(self._handle)
            self._handle = None


def default_job() -> ProcessJob | None:
    """KillOnCloseJob on Windows, None elsewhere."""
    if sys.platform == "win32":
        return KillOnCloseJob()
    return None

"""
Agent process supervision.

Supervisor keeps one agent process alive: warm-up delay, spawn, poll,
restart with cool-down, restart-storm back-off, graceful stop.
"""

from .builder import process_from_config, supervisor_from_config
from .host import HostProcess, PopenHost
from .job import KillOnCloseJob, ProcessJob
from .policy import RestartPolicy
from .state import RunState, SupervisedProcess
from .supervisor import Supervisor, validate_process

__all__ = [
    "HostProcess",
    "KillOnCloseJob",
    "PopenHost",
    "ProcessJob",
    "RestartPolicy",
    "RunState",
    "SupervisedProcess",
    "Supervisor",
    "process_from_config",
    "supervisor_from_config",
    "validate_process",
]

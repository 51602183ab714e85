"""
Host service boundary.

ServiceContext maps the host's stop signals to Supervisor.stop();
ScheduledTask and TaskScheduler register the supervisor to start at boot.
"""

from .context import ServiceContext
from .task import DEFAULT_TASK_NAME, ScheduledTask, TaskScheduler

__all__ = ["DEFAULT_TASK_NAME", "ScheduledTask", "ServiceContext", "TaskScheduler"]

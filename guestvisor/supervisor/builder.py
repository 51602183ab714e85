"""
Build a Supervisor from the configuration file.

Sections used:
    agent:
      executable: C:/Python311/python.exe   # absolute path, or a name on PATH
      script: C:/agent/agent.py             # optional
      args: []                              # optional
      cwd: C:/agent                         # optional, defaults to the script's dir
      capture_output: true                  # relay agent stdout/stderr to the log
    supervisor:
      warmup: 30s
      poll_interval: 5s
      ...
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

from guestvisor.exceptions import ConfigurationError
from guestvisor.log import LoggerFactory

from .host import HostProcess, PopenHost
from .policy import RestartPolicy
from .state import SupervisedProcess
from .supervisor import Supervisor

if TYPE_CHECKING:
    from guestvisor.config import Config
    from guestvisor.log import Logger


def _resolve_executable(value: str) -> Path:
    """Absolute paths are kept, bare names are looked up on PATH."""
    path = Path(value)
    if path.is_absolute() or len(path.parts) > 1:
        return path
    found = shutil.which(value)
    return Path(found) if found else path


def process_from_config(section: Any) -> SupervisedProcess:
    """
    Build the SupervisedProcess from the "agent" config section.

    Raises:
        ConfigurationError: If agent.executable is missing or args is not a list
    """
    if section is None or not section.get("executable"):
        raise ConfigurationError("missing required setting", key="agent.executable")

    args = section.get("args") or []
    if not isinstance(args, list):
        raise ConfigurationError(
            "agent.args must be a list", type=type(args).__name__
        )

    script = section.get("script")
    cwd = section.get("cwd")
    return SupervisedProcess(
        executable=_resolve_executable(str(section.get("executable"))),
        script=Path(str(script)) if script else None,
        args=[str(a) for a in args],
        cwd=Path(str(cwd)) if cwd else None,
    )


def supervisor_from_config(
    config: Config, lg: Logger, host: HostProcess | None = None
) -> Supervisor:
    """
    Build a Supervisor with the process, policy and host the config describes.

    The supervisor logs to "/supervisor"; agent output, when captured,
    goes to "/agent".
    """
    process = process_from_config(config.get("agent"))
    policy = RestartPolicy.from_config(config.get("supervisor"))

    if host is None:
        capture = config.get("agent.capture_output", True)
        host = PopenHost(LoggerFactory.derive(lg, "agent") if capture else None)

    return Supervisor(LoggerFactory.derive(lg, "supervisor"), process, policy, host)

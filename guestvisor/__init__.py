"""
Guest agent supervisor.

Keeps one agent process alive inside a sandbox VM: waits for the host to
warm up, spawns the agent, restarts it when it exits, backs off on restart
storms and terminates it cleanly when the host service stops.
"""

from importlib.metadata import PackageNotFoundError, version

from .config import Config, get_config_file_path
from .dot_dict import DotDict
from .exceptions import (
    ConfigurationError,
    GuestvisorError,
    RestartStormDetected,
    SpawnError,
    StateError,
    TaskRegistrationError,
    TerminationTimeout,
)
from .supervisor import (
    HostProcess,
    PopenHost,
    RestartPolicy,
    RunState,
    SupervisedProcess,
    Supervisor,
)

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("guestvisor")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

__all__ = [
    "__version__",
    # Core classes
    "Config",
    "DotDict",
    "get_config_file_path",
    # Supervisor
    "HostProcess",
    "PopenHost",
    "RestartPolicy",
    "RunState",
    "SupervisedProcess",
    "Supervisor",
    # Exceptions
    "ConfigurationError",
    "GuestvisorError",
    "RestartStormDetected",
    "SpawnError",
    "StateError",
    "TaskRegistrationError",
    "TerminationTimeout",
]

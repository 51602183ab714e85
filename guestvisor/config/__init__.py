"""
Configuration management package.

This module provides:
- Config class for loading the supervisor's YAML configuration file
- Default config file resolution (GUESTVISOR_CONFIG or ./etc/guestvisor.yaml)
"""

import os
from pathlib import Path

from .config import Config
from .constants import (
    CONFIG_FILE_ENV,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_ENV_PREFIX,
    MAX_CONFIG_SIZE_BYTES,
)


def get_config_file_path(config_file: str | None = None) -> Path:
    """
    Resolve the configuration file path.

    Precedence: explicit argument, then the GUESTVISOR_CONFIG environment
    variable, then etc/guestvisor.yaml under the current directory.
    """
    if config_file:
        return Path(config_file)
    env_path = os.environ.get(CONFIG_FILE_ENV)
    if env_path:
        return Path(env_path)
    return Path.cwd() / "etc" / DEFAULT_CONFIG_FILENAME


__all__ = [
    "Config",
    "get_config_file_path",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_ENV_PREFIX",
    "MAX_CONFIG_SIZE_BYTES",
]

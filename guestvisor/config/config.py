"""
Configuration loading for the supervisor.

Provides a Config class that extends DotDict to load a YAML file, apply
environment variable overrides and resolve ${section.key} references.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from guestvisor.dot_dict import DotDict, DotDictPathNotFoundError
from guestvisor.exceptions import ConfigurationError

from .constants import CONFIG_FILE_ENV, DEFAULT_ENV_PREFIX, MAX_CONFIG_SIZE_BYTES


def _check_file(fname_path: Path) -> None:
    """Check the file exists and is within the size limit."""
    if not fname_path.is_file():
        raise ConfigurationError("configuration file not found", path=str(fname_path))

    file_size = fname_path.stat().st_size
    if file_size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigurationError(
            "configuration file too large",
            path=str(fname_path),
            size=file_size,
            limit=MAX_CONFIG_SIZE_BYTES,
        )


def _read_yaml(fname_path: Path) -> dict[str, Any]:
    """Parse the YAML file, an empty file yields an empty mapping."""
    try:
        with open(fname_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            "malformed configuration file", path=str(fname_path), error=str(e)
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "configuration root must be a mapping",
            path=str(fname_path),
            type=type(data).__name__,
        )
    return data


class Config(DotDict):
    """
    Configuration loaded from a YAML file.

    Supports variable substitution using ${variable_name} syntax in values and
    environment variable overrides using the GUESTVISOR_ prefix.

    Environment Variable Override Format:
        GUESTVISOR_<SECTION>_<KEY>=value

    Keys that themselves contain underscores are matched against the keys
    already present in the file, so GUESTVISOR_SUPERVISOR_POLL_INTERVAL=2
    sets supervisor.poll_interval.

    Example:
        config = Config("C:/guestvisor/etc/guestvisor.yaml")
        executable = config.agent.executable
        backoff = config.get("supervisor.backoff", 60)
    """

    def __init__(
        self,
        fname: str | Path,
        enable_env_overrides: bool = True,
        env_prefix: str = DEFAULT_ENV_PREFIX,
    ):
        """
        Initialize configuration from a YAML file.

        Args:
            fname: Path to the YAML configuration file
            enable_env_overrides: Whether to apply environment variable overrides
            env_prefix: Prefix for environment variables

        Raises:
            ConfigurationError: If the file is missing, too large or malformed
        """
        super().__init__()
        self._enable_env_overrides = enable_env_overrides
        self._env_prefix = env_prefix
        self._config_path = Path(fname).resolve()
        self._load()

    def get_source_file(self) -> Path:
        """Return the resolved path of the loaded file."""
        return self._config_path

    def _load(self) -> None:
        _check_file(self._config_path)
        config_data = _read_yaml(self._config_path)

        if self._enable_env_overrides:
            config_data = self._apply_env_overrides(config_data)

        self.clear()
        self.set(**config_data)
        try:
            self.set(**self._resolve(self.dict()))
        except DotDictPathNotFoundError as e:
            raise ConfigurationError(
                "undefined variable reference",
                path=str(self._config_path),
                variable=e.path,
            ) from e

    def reload(self) -> "Config":
        """Re-read the file, re-applying substitution and overrides."""
        self._load()
        return self

    def _resolve(self, content: Any) -> Any:
        """
        Recursively resolve ${name} references against this config.

        Args:
            content: Configuration content (dict, list, str, or other)

        Returns:
            Content with variable references replaced
        """
        if isinstance(content, dict):
            return {k: self._resolve(v) for k, v in content.items()}
        if isinstance(content, list):
            return [self._resolve(v) for v in content]
        if isinstance(content, str):
            # Restrict to valid config keys to keep the pattern linear
            return re.sub(r"\$\{([a-zA-Z0-9_.]+)\}", self._substitute_var, content)
        return content

    def _substitute_var(self, match: re.Match) -> str:
        var_name = match.group(1)
        if not self.has(var_name):
            raise DotDictPathNotFoundError(self, var_name)
        return str(self.get(var_name))

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply GUESTVISOR_* environment variables on top of the file data."""
        for env_key, env_value in self._collect_env_vars().items():
            parts = env_key[len(self._env_prefix) :].lower().split("_")
            value = self._convert_env_value(env_value)
            self._set_nested_value(config_data, parts, value)
        return config_data

    def _collect_env_vars(self) -> dict[str, str]:
        return {
            k: v
            for k, v in os.environ.items()
            if k.startswith(self._env_prefix) and k != CONFIG_FILE_ENV
        }

    def _set_nested_value(self, data: dict, parts: list[str], value: Any) -> None:
        """
        Set a value following underscore-split key parts.

        At each level the longest run of parts that names an existing key wins,
        otherwise a single part is used and intermediate sections are created.
        """
        if not parts or not all(parts):
            return

        current = data
        while parts:
            size = len(parts)
            while size > 1 and "_".join(parts[:size]) not in current:
                size -= 1
            key = "_".join(parts[:size])
            parts = parts[size:]

            if not parts:
                current[key] = value
                return
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]

    def _convert_env_value(self, value: str) -> bool | int | float | str | list | None:
        """
        Convert an environment variable string to a typed value.

        Args:
            value: Environment variable value as string

        Returns:
            None, bool, list (comma-separated), int, float or the original string
        """
        if value.lower() in ("null", "none", ""):
            return None

        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        if "," in value:
            return [self._convert_env_value(v.strip()) for v in value.split(",")]

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def get_env_overrides(self) -> dict[str, Any]:
        """Return the raw GUESTVISOR_* overrides that apply, keyed by env name."""
        if not self._enable_env_overrides:
            return {}
        return {
            k: self._convert_env_value(v) for k, v in self._collect_env_vars().items()
        }

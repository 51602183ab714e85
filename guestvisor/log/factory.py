"""
Factory for creating and configuring loggers.

Loggers are named like paths: the root logger is "/", derived loggers are
"/supervisor", "/agent" and so on. Derived loggers own no handlers; they
write through the root's handlers.
"""

import logging
import sys
from pathlib import Path
from typing import Any, cast

from .callback import CallbackRegistry
from .config import LogConfig
from .exceptions import LogConfigurationError
from .formatters import JSONFormatter, TextFormatter
from .logger import Logger


def _create_formatter(config: LogConfig, colors: bool) -> logging.Formatter:
    if config.format == "json":
        return JSONFormatter(config)
    if colors == config.colors:
        return TextFormatter(config)
    return TextFormatter(LogConfig(**{**config.__dict__, "colors": colors}))


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(config: LogConfig, stream: Any = None) -> Logger:
        """
        Create the root logger "/" with the specified configuration.

        Args:
            config: Logger configuration
            stream: Console stream (defaults to sys.stderr)

        Returns:
            Configured root logger

        Example:
            >>> config = LogConfig.from_params(level="info")
            >>> lg = LoggerFactory.create_root(config)
            >>> lg.info("supervisor starting", extra={"warmup": "30s"})
            [2026-10-19 08:00:00,001] [I] supervisor starting      [warmup:30s] [4120] [/]
        """
        return LoggerFactory.create("/", config, stream=stream)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        extra: dict[str, Any] | None = None,
        stream: Any = None,
    ) -> Logger:
        """
        Create a logger with its own console (and optional file) handler.

        An existing logger of the same name is replaced, so calling this
        again with a new config reconfigures logging.

        Raises:
            LogConfigurationError: If the log file cannot be opened
        """
        lg = Logger(name, config, CallbackRegistry(), extra)
        lg.propagate = False

        handler_level = logging.CRITICAL + 1 if config.level is False else config.level

        console = logging.StreamHandler(stream if stream is not None else sys.stderr)
        console.setLevel(handler_level)
        console.setFormatter(_create_formatter(config, config.colors))
        lg.addHandler(console)

        if config.file:
            lg.addHandler(LoggerFactory._create_file_handler(config, handler_level))

        logging.root.manager.loggerDict[name] = lg
        lg.trace(
            "created logger",
            extra={"level": logging.getLevelName(handler_level), "file": config.file},
        )
        return lg

    @staticmethod
    def _create_file_handler(config: LogConfig, level: int) -> logging.Handler:
        path = Path(cast(str, config.file))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            raise LogConfigurationError(
                "cannot open log file", file=str(path), error=str(e)
            ) from e
        handler.setLevel(level)
        # Files never get ANSI colors
        handler.setFormatter(_create_formatter(config, colors=False))
        return handler

    @staticmethod
    def derive(
        parent: Logger, tags: str | list[str], extra: dict[str, Any] | None = None
    ) -> Logger:
        """
        Derive a "view" logger that delegates to the root's handlers.

        Examples:
            >>> root = LoggerFactory.create_root(config)
            >>> LoggerFactory.derive(root, "supervisor").name
            '/supervisor'
            >>> LoggerFactory.derive(root, ["agent", "stderr"]).name
            '/agent/stderr'

        Args:
            parent: Parent logger instance
            tags: Single tag string OR list of tag strings to form hierarchy
            extra: Fields added to the parent's pre-populated extra fields

        Returns:
            Derived logger sharing the parent's level, callbacks and handlers
        """
        if isinstance(tags, str):
            tags = [tags]

        prefix = parent.name if parent.name == "/" else parent.name + "/"
        name = prefix + "/".join(tags)

        callbacks = CallbackRegistry()
        parent.callbacks.inherit_to(callbacks)

        lg = Logger(name, parent.config, callbacks, {**parent.extra, **(extra or {})})
        lg.setLevel(parent.level)
        lg.propagate = False
        lg._root_logger = parent._root_logger or parent
        logging.root.manager.loggerDict[name] = lg
        return lg

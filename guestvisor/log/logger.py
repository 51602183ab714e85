"""
Logger class for the logging system.

Extends the standard logger with structured extra fields, a callback
registry and "view" loggers that share the root's handlers.
"""

import logging
import sys
from typing import Any

from .callback import CallbackRegistry
from .config import LogConfig
from .constants import LogConstants


class Logger(logging.Logger):
    """
    Logger with structured fields and callback support.

    Extends the standard Python logger with:
    - Pre-populated extra fields merged into every record
    - Merged extras attached to the record for formatters
    - Callbacks triggered per level after handlers ran
    - Handler and format failures reported on stderr instead of raised,
      so logging never interrupts the caller
    """

    def __init__(
        self,
        name: str,
        config: LogConfig | None = None,
        callback_registry: CallbackRegistry | None = None,
        extra: dict[str, Any] | None = None,
    ):
        """
        Initialize the logger.

        Args:
            name: Logger name
            config: Logger configuration (defaults to info level)
            callback_registry: Callback registry (a new one if None)
            extra: Pre-populated extra fields to include in all log records
        """
        if config is None:
            config = LogConfig()

        if config.level is False:
            super().__init__(name, logging.CRITICAL + 1)
            self._logging_disabled = True
        else:
            super().__init__(name, config.level)
            self._logging_disabled = False

        self._config = config
        self._callbacks = callback_registry or CallbackRegistry()
        self._extra = dict(extra or {})
        self._root_logger: Logger | None = None  # Set for derived "view" loggers

    @property
    def config(self) -> LogConfig:
        return self._config

    @property
    def callbacks(self) -> CallbackRegistry:
        return self._callbacks

    @property
    def extra(self) -> dict[str, Any]:
        """Pre-populated fields copied into every record."""
        return dict(self._extra)

    def makeRecord(  # type: ignore[override]
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: Any,
        args: Any,
        exc_info: Any,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        """Create log record with pre-populated and per-call extra fields."""
        merged = dict(self._extra)
        if extra:
            merged.update(extra)

        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info,
            func=func, extra=merged, sinfo=sinfo,
        )
        setattr(record, LogConstants.EXTRA_ATTR, merged)
        return record

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a TRACE level message."""
        trace_level = LogConstants.CUSTOM_LEVELS["TRACE"]
        if self.isEnabledFor(trace_level):
            self._log(trace_level, msg, args, **kwargs)

    def _log(self, level: int, msg: Any, args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        """Log without ever raising into the caller, then run callbacks."""
        if self._logging_disabled:
            return

        try:
            super()._log(level, msg, args, **kwargs)
        except Exception as e:
            sys.stderr.write(
                f"LOG_ERROR [{self.name}]: {e.__class__.__name__}: {e} | msg={msg!r}\n"
            )

        self._callbacks.trigger(level, self, msg, args, kwargs)

    def findCaller(
        self, stack_info: bool = False, stacklevel: int = 1
    ) -> tuple[str, int, str, str | None]:
        """Find the first frame outside the logging modules."""
        f = logging.currentframe()
        while f is not None and f.f_code.co_filename in (logging.__file__, __file__):
            f = f.f_back
        if f is None:
            return "(unknown file)", 0, "(unknown function)", None
        return f.f_code.co_filename, f.f_lineno, f.f_code.co_name, None

    def isEnabledFor(self, level: int) -> bool:
        """Check if enabled, also honouring the root of a view logger."""
        if self._logging_disabled or not super().isEnabledFor(level):
            return False
        if self._root_logger is not None:
            return self._root_logger.isEnabledFor(level)
        return True

    def callHandlers(self, record: logging.LogRecord) -> None:
        """
        Pass a record to all relevant handlers.

        Derived "view" loggers use the root logger's handlers instead of
        their own.
        """
        if self._root_logger is None:
            super().callHandlers(record)
            return

        for handler in self._root_logger.handlers:
            if record.levelno >= handler.level:
                handler.handle(record)

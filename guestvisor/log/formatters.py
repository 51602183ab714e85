"""
Log formatters for the logging system.

TextFormatter renders one line per record with extra fields as [key:value]
pairs after a fixed rule column. JSONFormatter renders one JSON object per
record for log shippers.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from .config import LogConfig
from .constants import LogConstants


def _record_extra(record: logging.LogRecord) -> dict[str, Any]:
    extra = getattr(record, LogConstants.EXTRA_ATTR, None)
    return extra if isinstance(extra, dict) else {}


def _format_value(key: str, value: Any) -> str:
    """Render a single extra value."""
    if key == "exception" and isinstance(value, BaseException):
        return f"{value.__class__.__name__}: {value}"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


class TextFormatter(logging.Formatter):
    """
    Single-line text formatter.

    Output:
        [2026-10-19 08:00:01,512] [W] restart storm detected   [backoff:60s] [restarts:5] [4120] [/supervisor]
    """

    def __init__(self, config: LogConfig) -> None:
        super().__init__(LogConstants.DEFAULT_FORMAT)
        self._config = config

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        s = super().formatTime(record, datefmt)
        if self._config.micros:
            s += f".{int((record.created % 1) * 1_000_000) % 1000:03d}"
        return s

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        # Exception text from exc_info is appended by the base class; keep
        # the first line for the rule so fields stay on the message line.
        head, sep, tail = line.partition("\n")
        rule = (
            LogConstants.MICRO_RULE_WIDTH
            if self._config.micros
            else LogConstants.DEFAULT_RULE_WIDTH
        )
        head += " " * max(1, rule - len(head))

        extra = sorted(_record_extra(record).items())
        fields = [f"[{k}:{_format_value(k, v)}]" for k, v in extra]
        fields.append(f"[{record.process}]")
        fields.append(f"[{record.name}]")
        if self._config.location:
            fields.append(f"[{os.path.basename(record.pathname)}:{record.lineno}]")
        head += " ".join(fields)

        if self._config.colors:
            color = LogConstants.LEVEL_COLORS.get(record.levelno, "")
            head = color + head + LogConstants.RESET if color else head

        return head + sep + tail


class JSONFormatter(logging.Formatter):
    """
    Formatter that converts log records to JSON objects.

    Keys: timestamp (ISO 8601, UTC), level, logger, message, process_id,
    extra (when present), location (when enabled) and exception (when the
    record carries exc_info).
    """

    def __init__(self, config: LogConfig, pretty_print: bool = False) -> None:
        super().__init__()
        self._config = config
        self._pretty_print = pretty_print

    def _record_to_dict(self, record: logging.LogRecord) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "process_id": record.process,
        }

        extra = _record_extra(record)
        if extra:
            data["extra"] = {k: self._sanitize(k, v) for k, v in extra.items()}
        if self._config.location:
            data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return data

    @staticmethod
    def _sanitize(key: str, value: Any) -> Any:
        """Keep JSON-native values, stringify the rest."""
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        if isinstance(value, (list, tuple)):
            return [JSONFormatter._sanitize(key, v) for v in value]
        return _format_value(key, value)

    def format(self, record: logging.LogRecord) -> str:
        data = self._record_to_dict(record)
        if self._pretty_print:
            return json.dumps(data, indent=2, ensure_ascii=False)
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False)

"""
Callback registry for log events.

Lets other components react to log events of a given level, for example to
count restart-storm warnings or forward errors to the host.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .exceptions import CallbackError

if TYPE_CHECKING:
    from .logger import Logger


class CallbackRegistry:
    """
    Manages log event callbacks.

    Callbacks receive ``(logger, level, msg, args, **kwargs)``. A failing
    callback is reported through the standard logging module and never
    interrupts the caller.

    Example:
        >>> registry = CallbackRegistry()
        >>> def on_warning(logger, level, msg, args, **kwargs):
        ...     storms.append(kwargs.get("extra"))
        >>> registry.register(logging.WARNING, on_warning, inherit=True)
        >>> registry.has_callbacks(logging.WARNING)
        True
    """

    def __init__(self) -> None:
        self._callbacks: dict[int, list[tuple[Callable, bool]]] = {}

    def register(self, level: int, callback: Callable, inherit: bool = False) -> None:
        """
        Register a callback for a specific level.

        Args:
            level: Log level to register callback for
            callback: Callback function to register
            inherit: Whether derived loggers receive this callback too

        Raises:
            CallbackError: If callback is not callable
        """
        if not callable(callback):
            raise CallbackError(f"Callback must be callable, got {type(callback)}")

        self._callbacks.setdefault(level, []).append((callback, inherit))

    def trigger(
        self, level: int, logger: Logger, msg: str, args: tuple, kwargs: dict
    ) -> None:
        """Invoke the callbacks registered for level."""
        for callback, _ in self._callbacks.get(level, []):
            try:
                callback(logger, level, msg, args, **kwargs)
            except Exception as e:
                logging.getLogger(__name__).warning(
                    "callback error", extra={"exception": e}
                )

    def inherit_to(self, other: CallbackRegistry) -> None:
        """Copy inheritable callbacks to another registry."""
        for level, callbacks in self._callbacks.items():
            for callback, inherit in callbacks:
                if inherit:
                    other.register(level, callback, inherit=True)

    def has_callbacks(self, level: int) -> bool:
        return bool(self._callbacks.get(level))

    def remove_callback(self, level: int, callback: Callable) -> bool:
        """
        Remove a specific callback from a level.

        Returns:
            True if callback was removed, False if not found
        """
        callbacks = self._callbacks.get(level, [])
        for i, (cb, _) in enumerate(callbacks):
            if cb == callback:
                callbacks.pop(i)
                if not callbacks:
                    del self._callbacks[level]
                return True
        return False

    def clear(self) -> None:
        self._callbacks.clear()


def listens_for(logger: Logger, level: int, inherit: bool = False) -> Callable:
    """
    Decorator for registering callbacks with a logger.

    Example:
        @listens_for(lg, logging.WARNING)
        def on_warning(logger, level, msg, args, **kwargs):
            ...
    """

    def decorator(func: Callable) -> Callable:
        logger.callbacks.register(level, func, inherit)
        return func

    return decorator

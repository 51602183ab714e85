"""
Context manager that ties a Supervisor to the host's stop signals.

The service or task manager stops the supervisor process with a console
signal: SIGTERM or SIGINT on POSIX, CTRL_C or CTRL_BREAK on Windows.
"""

from __future__ import annotations

import signal
import threading
from types import FrameType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from guestvisor.log import Logger
    from guestvisor.supervisor import Supervisor


def _stop_signals() -> list[signal.Signals]:
    signals = [signal.SIGTERM, signal.SIGINT]
    if hasattr(signal, "SIGBREAK"):
        signals.append(signal.SIGBREAK)
    return signals


class ServiceContext:
    """
    Route host stop signals to Supervisor.stop().

    Usage:
        with ServiceContext(lg, supervisor):
            supervisor.start()

    Signal handlers can only be installed from the main thread; elsewhere
    the context does nothing and the caller is expected to call stop().
    Previous handlers are restored on exit.

    Args:
        lg: Logger for signal events
        supervisor: Supervisor to stop
        handle_signals: Whether to install signal handlers (default: True)
    """

    def __init__(
        self, lg: Logger, supervisor: Supervisor, handle_signals: bool = True
    ) -> None:
        self._lg = lg
        self._supervisor = supervisor
        self._handle_signals = handle_signals
        self._original_handlers: dict[signal.Signals, Any] = {}
        self._received: signal.Signals | None = None

    @property
    def received(self) -> signal.Signals | None:
        """Signal that triggered the stop, if any."""
        return self._received

    def __enter__(self) -> ServiceContext:
        if self._handle_signals:
            if threading.current_thread() is threading.main_thread():
                for sig in _stop_signals():
                    self._original_handlers[sig] = signal.signal(
                        sig, self._handle_stop_signal
                    )
            else:
                self._lg.debug("not on main thread, stop signals not handled")
        return self

    def __exit__(self, *args: object) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def _handle_stop_signal(self, signum: int, frame: FrameType | None) -> None:
        """Stop the supervisor; the loop performs the actual shutdown."""
        sig = signal.Signals(signum)
        if self._received is None:
            self._received = sig
            self._lg.info(f"received {sig.name}, stopping")
        self._supervisor.stop()


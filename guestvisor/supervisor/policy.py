"""
Restart policy: the supervisor's timing values.

The defaults are the values the sandbox images were provisioned with. They
have not been tuned against operational data, so every one of them can be
overridden from the "supervisor" config section.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from guestvisor.exceptions import ConfigurationError
from guestvisor.time.delta import InvalidDurationError, delta_str, to_secs

_DURATION_FIELDS = (
    "warmup",
    "poll_interval",
    "grace_period",
    "cooldown",
    "window",
    "backoff",
)


@dataclass(frozen=True)
class RestartPolicy:
    """
    Timing values of the supervision loop, in seconds.

    Attributes:
        warmup: Delay before the first spawn, for late host networking
        poll_interval: Period of the stop/exit checks
        grace_period: Time a child gets to exit after a graceful terminate
        cooldown: Delay before an ordinary restart
        max_restarts: Restarts allowed inside one observation window
        window: Length of the observation window
        backoff: Sleep after a restart storm is detected
    """

    warmup: float = 30.0
    poll_interval: float = 5.0
    grace_period: float = 10.0
    cooldown: float = 5.0
    max_restarts: int = 5
    window: float = 60.0
    backoff: float = 60.0

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ConfigurationError(
                "poll_interval must be positive", poll_interval=self.poll_interval
            )
        if self.max_restarts < 1:
            raise ConfigurationError(
                "max_restarts must be at least 1", max_restarts=self.max_restarts
            )
        for name in _DURATION_FIELDS:
            if getattr(self, name) < 0:
                raise ConfigurationError(
                    f"{name} cannot be negative", **{name: getattr(self, name)}
                )

    @classmethod
    def from_config(cls, section: Any) -> RestartPolicy:
        """
        Build a policy from the "supervisor" config section.

        Durations accept numbers of seconds or strings like "30s" or "1m".
        Missing keys keep their defaults.

        Raises:
            ConfigurationError: If a value is not a valid duration or count
        """
        if section is None:
            return cls()
        values = section.dict() if hasattr(section, "dict") else dict(section)

        kwargs: dict[str, Any] = {}
        for name in _DURATION_FIELDS:
            if values.get(name) is None:
                continue
            try:
                kwargs[name] = to_secs(values[name])
            except InvalidDurationError as e:
                raise ConfigurationError(
                    "invalid duration", key=f"supervisor.{name}", value=values[name]
                ) from e

        if values.get("max_restarts") is not None:
            raw = values["max_restarts"]
            if isinstance(raw, bool) or not isinstance(raw, (int, str)):
                raise ConfigurationError(
                    "invalid restart count", key="supervisor.max_restarts", value=raw
                )
            try:
                kwargs["max_restarts"] = int(raw)
            except ValueError as e:
                raise ConfigurationError(
                    "invalid restart count", key="supervisor.max_restarts", value=raw
                ) from e

        return cls(**kwargs)

    def describe(self) -> dict[str, Any]:
        """Policy as log-friendly fields."""
        return {
            k: (v if k == "max_restarts" else delta_str(v))
            for k, v in asdict(self).items()
        }

"""
Dictionary-like object with attribute access and dotted-path lookup.

Used as the base of Config so that values can be read either as
``config.supervisor.backoff`` or ``config.get("supervisor.backoff", 60)``.
"""

from __future__ import annotations

from collections.abc import ItemsView, Iterator, KeysView
from typing import Any


class DotDict:
    """
    Dictionary-like object with attribute-style access.

    Nested dictionaries are converted to DotDict instances on assignment,
    dictionaries inside lists too.
    """

    # Keys that would shadow methods used by callers
    _RESERVED_KEYS = frozenset({"set", "clear", "dict", "get", "has"})

    def __init__(self, **kwargs: Any) -> None:
        self.set(**kwargs)

    def set(self, **kwargs: Any) -> "DotDict":
        """
        Set multiple key-value pairs.

        Returns:
            self: For method chaining
        """
        for key, val in kwargs.items():
            self._set_item(key, val)
        return self

    def _set_item(self, key: Any, val: Any) -> None:
        """
        Set a single key-value pair, converting nested dicts.

        Raises:
            ValueError: If key would shadow a method name
        """
        key = str(key)
        if key in self._RESERVED_KEYS:
            raise ValueError(
                f"Key '{key}' is reserved and cannot be used (would shadow method)"
            )

        if isinstance(val, dict):
            setattr(self, key, DotDict(**{str(k): v for k, v in val.items()}))
        elif isinstance(val, list):
            setattr(self, key, [self._map_entry(v) for v in val])
        else:
            setattr(self, key, val)

    @staticmethod
    def _map_entry(entry: Any) -> Any:
        if isinstance(entry, dict):
            return DotDict(**{str(k): v for k, v in entry.items()})
        return entry

    def clear(self) -> None:
        """Remove all public keys, keeping private attributes."""
        for key in [k for k in self.__dict__ if not k.startswith("_")]:
            delattr(self, key)

    def dict(self) -> dict[str, Any]:
        """
        Recursively convert to plain dicts and lists.

        Private attributes (leading underscore) are not part of the data.
        """
        result: dict[str, Any] = {}
        for key, val in self.items():
            if isinstance(val, DotDict):
                result[key] = val.dict()
            elif isinstance(val, list):
                result[key] = [v.dict() if isinstance(v, DotDict) else v for v in val]
            else:
                result[key] = val
        return result

    def keys(self) -> KeysView[str]:
        return self._data().keys()

    def items(self) -> ItemsView[str, Any]:
        return self._data().items()

    def _data(self) -> dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    def __contains__(self, key: Any) -> bool:
        return key in self._data()

    def __iter__(self) -> Iterator[str]:
        return iter(self._data())

    def __getitem__(self, key: str) -> Any:
        return self._data().get(key)

    def __setitem__(self, key: str, val: Any) -> None:
        self._set_item(key, val)

    def __len__(self) -> int:
        return len(self._data())

    def __str__(self) -> str:
        return str(self.dict())

    def has(self, path: str) -> bool:
        """
        Check if a dot-separated path exists.

        Args:
            path: Dot-separated path to check (e.g., "agent.executable")
        """
        sentinel = object()
        return self.get(path, sentinel) is not sentinel

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get value by dot-separated path.

        Follows dict.get() semantics: returns default if path not found.

        Args:
            path: Dot-separated path (e.g., "supervisor.poll_interval")
            default: Value returned if the path does not exist
        """
        if not path:
            return default

        cur: Any = self
        for item in (part for part in path.split(".") if part):
            if not isinstance(cur, DotDict) or item not in cur:
                return default
            cur = cur[item]
        return cur


class DotDictPathNotFoundError(Exception):
    """Raised when a referenced path is not present in a DotDict."""

    def __init__(self, obj: DotDict, path: str) -> None:
        self.obj = obj
        self.path = path
        super().__init__(f"Path '{path}' not found")

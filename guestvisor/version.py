"""
Build information recorded by setup.py at install time.

An installed supervisor carries a guestvisor/_build_info.py module with the
git commit it was built from. Source checkouts and sdists built outside git
have none.
"""

from __future__ import annotations

import importlib
import importlib.util
from dataclasses import dataclass
from datetime import datetime
from typing import Any

BUILD_INFO_MODULE = "guestvisor._build_info"


@dataclass(frozen=True)
class BuildInfo:
    """
    Git commit and build time of the installed package.

    Attributes:
        commit: Full commit hash
        commit_short: Abbreviated commit hash
        message: First line of the commit message
        build_time: UTC time of the build, if recorded
        modified: Whether the working tree had uncommitted changes
    """

    commit: str
    commit_short: str
    message: str = ""
    build_time: datetime | None = None
    modified: bool | None = None

    @classmethod
    def load(cls, module_name: str = BUILD_INFO_MODULE) -> BuildInfo | None:
        """Read the build info module, or None if the package has none."""
        try:
            if importlib.util.find_spec(module_name) is None:
                return None
        except (ModuleNotFoundError, ValueError):
            return None
        return cls.from_module(importlib.import_module(module_name))

    @classmethod
    def from_module(cls, module: Any) -> BuildInfo | None:
        commit = getattr(module, "COMMIT_HASH", None)
        if not commit:
            return None

        build_time = None
        raw_time = getattr(module, "BUILD_TIME", None)
        if raw_time:
            try:
                build_time = datetime.fromisoformat(raw_time.replace("Z", "+00:00"))
            except ValueError:
                build_time = None

        return cls(
            commit=commit,
            commit_short=getattr(module, "COMMIT_SHORT", None) or commit[:7],
            message=getattr(module, "COMMIT_MESSAGE", "") or "",
            build_time=build_time,
            modified=getattr(module, "MODIFIED", None),
        )

    def log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"commit": self.commit_short}
        if self.message:
            fields["commit_msg"] = self.message[:50]
        if self.build_time is not None:
            fields["built"] = self.build_time.strftime("%Y-%m-%d %H:%M:%S")
        if self.modified is not None:
            fields["modified"] = self.modified
        return fields

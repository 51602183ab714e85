"""Custom setup.py to generate _build_info.py during build.

Works alongside pyproject.toml - pyproject.toml provides the configuration,
this script adds the build-time hook that records the git commit the
supervisor was built from. "guestvisor run" logs it at startup so the
commit running inside a sandbox image can be identified from its log.
"""

import subprocess
import sys
from datetime import UTC, datetime
from pathlib import Path

from setuptools import setup
from setuptools.command.build_py import build_py

_BUILD_INFO_TEMPLATE = '''\
"""Build information - auto-generated during install, do not edit."""

COMMIT_HASH = "{commit_full}"
COMMIT_SHORT = "{commit_short}"
COMMIT_MESSAGE = "{commit_message}"
BUILD_TIME = "{build_time}"
MODIFIED = {modified}
'''


def _run_git(*args: str) -> str | None:
    """Run git command and return stdout, or None on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=Path(__file__).parent,
        )
        return result.stdout.strip() if result.returncode == 0 else None
    except (subprocess.SubprocessError, OSError):
        return None


def _write_build_info(package_dir: Path) -> None:
    full = _run_git("rev-parse", "HEAD")
    if not full:
        print("guestvisor: not a git checkout, no _build_info.py", file=sys.stderr)
        return

    message = _run_git("log", "-1", "--format=%s") or ""
    status = _run_git("status", "--porcelain")

    content = _BUILD_INFO_TEMPLATE.format(
        commit_full=full,
        commit_short=full[:7],
        commit_message=message.replace("\\", "\\\\").replace('"', '\\"'),
        build_time=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
        modified=bool(status),
    )
    (package_dir / "_build_info.py").write_text(content)
    print(f"guestvisor: generated _build_info.py ({full[:7]})", file=sys.stderr)


class BuildPyWithBuildInfo(build_py):
    """build_py that writes _build_info.py into the build directory only."""

    def run(self):
        super().run()
        if self.build_lib:
            package_dir = Path(self.build_lib) / "guestvisor"
            if package_dir.is_dir():
                _write_build_info(package_dir)


setup(cmdclass={"build_py": BuildPyWithBuildInfo})

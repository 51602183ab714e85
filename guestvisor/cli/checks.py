"""
Pre-flight checks for "guestvisor check".

Runs the same preconditions Supervisor.start() enforces, plus config and
logging validation, and reports each one with an actionable suggestion.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from guestvisor.config import Config
from guestvisor.exceptions import ConfigurationError
from guestvisor.log import LogConfig
from guestvisor.supervisor import RestartPolicy, SupervisedProcess, process_from_config


@dataclass
class CheckResult:
    """Result of a single check."""

    name: str
    passed: bool
    message: str
    suggestion: str | None = None


def run_checks(config_file: Path) -> list[CheckResult]:
    """Check the config file and everything the agent needs to start."""
    try:
        config = Config(str(config_file))
    except ConfigurationError as e:
        return [
            CheckResult(
                name="config",
                passed=False,
                message=str(e),
                suggestion="Pass -c CONFIG or set GUESTVISOR_CONFIG",
            )
        ]

    results = [CheckResult(name="config", passed=True, message=str(config_file))]
    results.append(_check_logging(config))
    results.append(_check_policy(config))

    try:
        process = process_from_config(config.get("agent"))
    except ConfigurationError as e:
        results.append(
            CheckResult(
                name="agent",
                passed=False,
                message=str(e),
                suggestion="Set agent.executable to the agent interpreter",
            )
        )
        return results

    results.extend(_check_process(process))
    return results


def _check_logging(config: Config) -> CheckResult:
    try:
        log_config = LogConfig.from_config(config.dict())
    except ConfigurationError as e:
        return CheckResult(
            name="logging",
            passed=False,
            message=str(e),
            suggestion="Use one of trace, debug, info, warning, error, critical",
        )
    return CheckResult(name="logging", passed=True, message=log_config.format)


def _check_policy(config: Config) -> CheckResult:
    try:
        policy = RestartPolicy.from_config(config.get("supervisor"))
    except ConfigurationError as e:
        return CheckResult(
            name="supervisor",
            passed=False,
            message=str(e),
            suggestion='Durations are seconds or strings like "30s", "1m"',
        )
    fields = policy.describe()
    return CheckResult(
        name="supervisor",
        passed=True,
        message=" ".join(f"{k}={v}" for k, v in fields.items()),
    )


def _check_process(process: SupervisedProcess) -> list[CheckResult]:
    results = []
    if process.executable.is_file():
        results.append(
            CheckResult(
                name="executable", passed=True, message=str(process.executable)
            )
        )
    else:
        results.append(
            CheckResult(
                name="executable",
                passed=False,
                message=f"not found: {process.executable}",
                suggestion="Use an absolute path or a name on PATH",
            )
        )

    if process.script is not None:
        found = process.script.is_file()
        results.append(
            CheckResult(
                name="script",
                passed=found,
                message=(
                    str(process.script) if found else f"not found: {process.script}"
                ),
                suggestion=None if found else "Check agent.script",
            )
        )

    cwd = process.working_directory()
    found = cwd.is_dir()
    results.append(
        CheckResult(
            name="cwd",
            passed=found,
            message=str(cwd) if found else f"not found: {cwd}",
            suggestion=None if found else "Check agent.cwd",
        )
    )
    return results

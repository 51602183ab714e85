"""
guestvisor command line.

Usage:
    guestvisor -c etc/guestvisor.yaml run
    guestvisor -c etc/guestvisor.yaml check
    guestvisor -c etc/guestvisor.yaml task install
    guestvisor task remove --name GuestAgentSupervisor
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from guestvisor import __version__
from guestvisor.config import Config, get_config_file_path
from guestvisor.exceptions import ConfigurationError, TaskRegistrationError
from guestvisor.log import LogConfig, Logger, LoggerFactory, setup_logging
from guestvisor.service import (
    DEFAULT_TASK_NAME,
    ScheduledTask,
    ServiceContext,
    TaskScheduler,
)
from guestvisor.supervisor import supervisor_from_config
from guestvisor.version import BuildInfo

from .checks import run_checks
from .output import ConsoleOutput, OutputWriter

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guestvisor", description="Keep the guest agent process alive"
    )
    parser.add_argument(
        "-c", "--config", help="config file (default: $GUESTVISOR_CONFIG)"
    )
    parser.add_argument("--log-level", help="override logging.level")
    parser.add_argument(
        "-v", "--version", action="version", version=f"guestvisor {__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("run", help="supervise the agent until stopped")
    commands.add_parser("check", help="verify config and agent paths")

    task = commands.add_parser("task", help="manage the boot-time scheduled task")
    task_commands = task.add_subparsers(dest="task_command", required=True)
    install = task_commands.add_parser("install", help="register the task")
    install.add_argument("--name", help="task name (default: task.name)")
    install.add_argument("--user", default="SYSTEM", help="account to run as")
    remove = task_commands.add_parser("remove", help="delete the task")
    remove.add_argument("--name", help="task name (default: task.name)")
    return parser


def _setup_logging(config: Config, level: str | None) -> Logger:
    config_dict = config.dict()
    if level:
        config_dict["logging"] = {**(config_dict.get("logging") or {}), "level": level}
    return setup_logging(LogConfig.from_config(config_dict))


def _log_build_info(lg: Logger) -> None:
    info = BuildInfo.load()
    if info is None:
        lg.debug("no build info", extra={"version": __version__})
    elif info.modified:
        lg.warning("build info", extra={"version": __version__, **info.log_fields()})
    else:
        lg.info("build info", extra={"version": __version__, **info.log_fields()})


def _run(config: Config, lg: Logger) -> int:
    _log_build_info(lg)
    supervisor = supervisor_from_config(config, lg)
    with ServiceContext(lg, supervisor):
        supervisor.start()
    return EXIT_OK


def _check(config_file: Path, out: OutputWriter) -> int:
    results = run_checks(config_file)
    for result in results:
        status = "[ok]" if result.passed else "[fail]"
        out.write(f"{status} {result.name}: {result.message}")
        if result.suggestion:
            out.write(f"     -> {result.suggestion}")
    return EXIT_OK if all(r.passed for r in results) else EXIT_FAILURE


def _task(
    args: argparse.Namespace,
    config: Config,
    config_file: Path,
    lg: Logger,
    out: OutputWriter,
) -> int:
    name = args.name or config.get("task.name", DEFAULT_TASK_NAME)
    scheduler = TaskScheduler(LoggerFactory.derive(lg, "task"))

    if args.task_command == "install":
        task = ScheduledTask(config_file.resolve(), name=name, user=args.user)
        scheduler.install(task)
        out.write(f"installed task {name}")
    elif scheduler.remove(ScheduledTask(config_file.resolve(), name=name)):
        out.write(f"removed task {name}")
    else:
        out.write(f"task {name} is not installed")
    return EXIT_OK


def main(argv: Sequence[str] | None = None, out: OutputWriter | None = None) -> int:
    """
    Entry point of the guestvisor command.

    Returns:
        0 on a normal stop, 1 if a check or task command failed, 2 on a
        configuration error
    """
    args = _build_parser().parse_args(argv)
    out = out if out is not None else ConsoleOutput()
    config_file = get_config_file_path(args.config)

    if args.command == "check":
        return _check(config_file, out)

    try:
        config = Config(str(config_file))
        lg = _setup_logging(config, args.log_level)
    except ConfigurationError as e:
        fallback = LoggerFactory.create_root(LogConfig())
        fallback.error("configuration error", extra={"exception": e})
        return EXIT_CONFIG_ERROR

    try:
        if args.command == "run":
            return _run(config, lg)
        return _task(args, config, config_file, lg, out)
    except ConfigurationError as e:
        lg.error("configuration error", extra={"exception": e})
        return EXIT_CONFIG_ERROR
    except TaskRegistrationError as e:
        lg.error("task registration failed", extra={"exception": e})
        return EXIT_FAILURE

"""
Tests for the Supervisor loop.

The host is a FakeHost and the clock a FakeClock, so spawn, exit, restart,
storm and stop behave deterministically and run in milliseconds. Waits that
must be interrupted use real (but short) timers.
"""

import logging
import threading
import time
from dataclasses import replace
from pathlib import Path

import pytest

from guestvisor.exceptions import (
    ConfigurationError,
    StateError,
    TerminationTimeout,
)
from guestvisor.supervisor import RunState, SupervisedProcess, Supervisor
from guestvisor.supervisor.supervisor import KILL_WAIT_SECS, validate_process
from tests.fixtures.supervisor import FakeClock, FakeHost, RealTimeHost

# Scheduling allowance for latency bounds on a loaded test machine
SLACK = 0.25


def _supervisor(lg, process, policy, host, clock=None) -> Supervisor:
    supervisor = Supervisor(lg, process, policy, host, clock=clock or FakeClock())
    host.supervisor = supervisor
    return supervisor


def _states(log_handler) -> list[str]:
    return log_handler.values("state change", "to")


def _stop_on(lg, supervisor, message, delay=0.05):
    """Stop the supervisor shortly after `message` is logged at WARNING."""

    def callback(logger, level, msg, args, **kwargs):
        if msg == message:
            threading.Timer(delay, supervisor.stop).start()

    lg.callbacks.register(logging.WARNING, callback)


def _start_in_thread(supervisor) -> threading.Thread:
    """Run start() on a thread and return once the agent is running."""
    thread = threading.Thread(target=supervisor.start)
    thread.start()
    deadline = time.monotonic() + 5
    while supervisor.state is not RunState.RUNNING and time.monotonic() < deadline:
        time.sleep(0.001)
    assert supervisor.state is RunState.RUNNING
    return thread


# =============================================================================
# Start and Stop
# =============================================================================


@pytest.mark.unit
class TestStartStop:
    """Test the basic lifecycle."""

    def test_spawn_then_stop(self, lg, log_handler, process, fast_policy):
        host = FakeHost(exit_after_polls=None, stop_after=1)
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        assert supervisor.state is RunState.STOPPED
        assert supervisor.wait(0)
        assert host.spawned == [(process.argv(), process.working_directory())]
        assert host.children[0].terminated
        assert not host.children[0].killed
        assert not process.running
        assert _states(log_handler) == ["starting", "running", "stopping", "stopped"]
        assert host.closed

    def test_lifecycle_messages(self, lg, log_handler, process, fast_policy):
        host = FakeHost(exit_after_polls=None, stop_after=1)
        _supervisor(lg, process, fast_policy, host).start()

        messages = log_handler.messages(logging.INFO)
        for expected in (
            "supervisor starting",
            "agent started",
            "stop requested",
            "terminating agent",
            "agent stopped",
            "supervisor stopped",
        ):
            assert expected in messages
        assert log_handler.values("agent started", "pid") == [1000]
        assert log_handler.values("agent stopped", "exit_code") == [0]

    def test_graceful_stop_waits_grace_period(self, lg, process, fast_policy):
        host = FakeHost(exit_after_polls=None, stop_after=1)
        _supervisor(lg, process, fast_policy, host).start()
        assert host.waits == [fast_policy.grace_period]

    def test_stop_before_start(self, lg, log_handler, process, fast_policy):
        host = FakeHost()
        supervisor = _supervisor(lg, process, fast_policy, host)
        supervisor.stop()
        supervisor.stop()

        supervisor.start()

        assert host.attempts == 0
        assert supervisor.state is RunState.STOPPED
        assert log_handler.values("stop requested", "state") == ["created"]

    def test_start_twice(self, lg, process, fast_policy):
        host = FakeHost(exit_after_polls=None, stop_after=1)
        supervisor = _supervisor(lg, process, fast_policy, host)
        supervisor.start()
        with pytest.raises(StateError, match="already started"):
            supervisor.start()

    def test_state_none_before_start(self, lg, process, fast_policy):
        supervisor = _supervisor(lg, process, fast_policy, FakeHost())
        assert supervisor.state is None
        assert not supervisor.stop_requested
        assert not supervisor.wait(0)

    def test_stop_from_other_thread(self, lg, process, fast_policy):
        host = FakeHost(exit_after_polls=None)
        supervisor = _supervisor(lg, process, fast_policy, host)
        thread = _start_in_thread(supervisor)

        supervisor.stop()
        assert supervisor.wait(5)
        thread.join(5)
        assert not thread.is_alive()
        assert host.children[0].terminated


# =============================================================================
# Configuration Errors
# =============================================================================


@pytest.mark.unit
class TestConfigurationErrors:
    """Start preconditions are fatal and nothing is spawned."""

    def test_missing_executable(self, lg, log_handler, temp_dir, fast_policy):
        process = SupervisedProcess(executable=temp_dir / "missing.exe")
        host = FakeHost()
        supervisor = _supervisor(lg, process, fast_policy, host)

        with pytest.raises(ConfigurationError, match="executable not found"):
            supervisor.start()

        assert host.attempts == 0
        assert supervisor.state is RunState.STOPPED
        assert supervisor.wait(0)
        assert log_handler.messages(logging.ERROR) == ["cannot start supervisor"]
        assert _states(log_handler) == ["starting", "stopped"]

    def test_missing_script(self, lg, process, fast_policy):
        process.script = process.script.with_name("gone.py")
        supervisor = _supervisor(lg, process, fast_policy, FakeHost())
        with pytest.raises(ConfigurationError, match="agent script not found"):
            supervisor.start()

    def test_missing_cwd(self, lg, process, temp_dir, fast_policy):
        process.cwd = temp_dir / "nowhere"
        supervisor = _supervisor(lg, process, fast_policy, FakeHost())
        with pytest.raises(ConfigurationError, match="working directory not found"):
            supervisor.start()

    def test_validate_process_reports_all(self, temp_dir):
        process = SupervisedProcess(
            executable=temp_dir / "python.exe",
            script=temp_dir / "agent.py",
            cwd=temp_dir / "nowhere",
        )
        problems = validate_process(process)
        assert [p.message for p in problems] == [
            "executable not found",
            "agent script not found",
            "working directory not found",
        ]

    def test_validate_process_ok(self, process):
        assert validate_process(process) == []


# =============================================================================
# Restarts
# =============================================================================


@pytest.mark.unit
class TestRestarts:
    """Test restart after exit and spawn failure."""

    def test_restart_after_exit(self, lg, log_handler, process, fast_policy):
        host = FakeHost(exit_after_polls=2, stop_after=3)
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        assert len(host.children) == 3
        assert supervisor.restart_total == 2
        assert process.spawn_count == 3
        assert log_handler.values("agent exited", "exit_code") == [1, 1]
        assert log_handler.values("restarting agent", "attempt") == [1, 2]
        assert [c.terminated for c in host.children] == [False, False, True]
        assert _states(log_handler) == [
            "starting",
            "running",
            "restarting",
            "running",
            "restarting",
            "running",
            "stopping",
            "stopped",
        ]

    def test_exit_logs_uptime(self, lg, log_handler, process, fast_policy):
        host = FakeHost(exit_after_polls=1, stop_after=2)
        supervisor = _supervisor(
            lg, process, fast_policy, host, clock=FakeClock(step=1.0)
        )
        supervisor.start()
        assert log_handler.values("agent exited", "uptime") == ["1s"]

    def test_spawn_failure_counts_as_restart(
        self, lg, log_handler, process, fast_policy
    ):
        host = FakeHost(exit_after_polls=None, spawn_failures=2, stop_after=1)
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        assert host.attempts == 3
        assert supervisor.restart_total == 2
        assert log_handler.messages(logging.ERROR) == ["agent spawn failed"] * 2
        assert _states(log_handler) == [
            "starting",
            "restarting",
            "restarting",
            "running",
            "stopping",
            "stopped",
        ]

    def test_cooldown_applied_before_restart(self, lg, process, fast_policy):
        policy = replace(fast_policy, cooldown=0.05)
        host = FakeHost(exit_after_polls=1, stop_after=3)
        start = time.monotonic()
        _supervisor(lg, process, policy, host).start()
        assert time.monotonic() - start >= 0.1


# =============================================================================
# Restart Storms
# =============================================================================


@pytest.mark.unit
class TestRestartStorm:
    """Test the restart ceiling and back-off."""

    def test_storm_after_max_restarts(self, lg, log_handler, process, fast_policy):
        host = FakeHost(exit_after_polls=1, stop_after=7)
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        storms = log_handler.find("restart storm detected")
        assert len(storms) == 1
        assert storms[0].levelno == logging.WARNING
        assert storms[0].restarts == 5
        assert storms[0].window == "1m0s"

        # Initial spawn plus five restarts, the sixth exit trips the ceiling
        index = log_handler.records.index(storms[0])
        exits_before = [
            r
            for r in log_handler.records[:index]
            if r.getMessage() == "agent exited"
        ]
        assert len(exits_before) == 6

        assert log_handler.messages(logging.INFO).count(
            "restart back-off finished"
        ) == 1
        assert supervisor.restart_total == 6
        assert process.restart_count == 0
        assert len(host.children) == 7

    def test_backoff_sleeps(self, lg, process, fast_policy):
        policy = replace(fast_policy, max_restarts=1, backoff=0.1)
        host = FakeHost(exit_after_polls=1, stop_after=3)
        start = time.monotonic()
        _supervisor(lg, process, policy, host).start()
        assert time.monotonic() - start >= 0.1

    def test_no_storm_when_restarts_are_spread(
        self, lg, log_handler, process, fast_policy
    ):
        host = FakeHost(exit_after_polls=1, stop_after=10)
        clock = FakeClock(step=100.0)
        supervisor = _supervisor(lg, process, fast_policy, host, clock=clock)

        supervisor.start()

        assert log_handler.find("restart storm detected") == []
        assert supervisor.restart_total == 9

    def test_spawn_failures_trip_storm(self, lg, log_handler, process, fast_policy):
        host = FakeHost(exit_after_polls=None, spawn_failures=7, stop_after=1)
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        assert host.attempts == 8
        assert len(log_handler.find("restart storm detected")) == 1
        assert supervisor.restart_total == 7


# =============================================================================
# Interruptible Waits
# =============================================================================


@pytest.mark.unit
class TestInterruptibleWaits:
    """stop() cuts warm-up, cool-down and back-off short."""

    def test_stop_during_warmup(self, lg, log_handler, process, fast_policy):
        policy = replace(fast_policy, warmup=30)
        host = FakeHost()
        supervisor = _supervisor(lg, process, policy, host)
        threading.Timer(0.05, supervisor.stop).start()

        start = time.monotonic()
        supervisor.start()

        assert time.monotonic() - start < 5
        assert host.attempts == 0
        assert "waiting for host warm-up" in log_handler.messages(logging.INFO)
        assert supervisor.state is RunState.STOPPED

    def test_stop_during_cooldown(self, lg, process, fast_policy):
        policy = replace(fast_policy, cooldown=30)
        host = FakeHost(exit_after_polls=1)
        supervisor = _supervisor(lg, process, policy, host)
        _stop_on(lg, supervisor, "agent exited")

        start = time.monotonic()
        supervisor.start()

        assert time.monotonic() - start < 5
        assert host.attempts == 1
        assert supervisor.restart_total == 0

    def test_stop_during_backoff(self, lg, process, fast_policy):
        policy = replace(fast_policy, max_restarts=1, backoff=30)
        host = FakeHost(exit_after_polls=1)
        supervisor = _supervisor(lg, process, policy, host)
        _stop_on(lg, supervisor, "restart storm detected")

        start = time.monotonic()
        supervisor.start()

        assert time.monotonic() - start < 5
        assert host.attempts == 2
        assert supervisor.state is RunState.STOPPED


# =============================================================================
# Termination
# =============================================================================


@pytest.mark.unit
class TestTermination:
    """Test graceful terminate and forced kill."""

    def test_kill_after_grace_period(self, lg, log_handler, process, fast_policy):
        host = FakeHost(exit_after_polls=None, ignore_terminate=True, stop_after=1)
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        child = host.children[0]
        assert child.terminated
        assert child.killed
        assert host.waits == [fast_policy.grace_period, KILL_WAIT_SECS]

        warning = log_handler.find("agent did not exit within grace period, killing")
        assert len(warning) == 1
        assert isinstance(warning[0].exception, TerminationTimeout)
        assert log_handler.values("agent stopped", "exit_code") == [-9]
        assert supervisor.state is RunState.STOPPED

    def test_terminate_error_goes_straight_to_kill(
        self, lg, log_handler, process, fast_policy
    ):
        error = OSError(6, "The handle is invalid")
        host = FakeHost(exit_after_polls=None, stop_after=1, terminate_error=error)
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        child = host.children[0]
        assert child.killed
        assert host.waits == [KILL_WAIT_SECS]
        assert not process.running
        assert host.closed
        assert supervisor.state is RunState.STOPPED

        warning = log_handler.find("graceful terminate failed, killing")
        assert len(warning) == 1
        assert warning[0].exception is error
        assert log_handler.values("agent stopped", "exit_code") == [-9]

    def test_kill_error_still_reaches_stopped(
        self, lg, log_handler, process, fast_policy
    ):
        host = FakeHost(
            exit_after_polls=None,
            stop_after=1,
            terminate_error=OSError(6, "The handle is invalid"),
            kill_error=PermissionError(13, "Access is denied"),
        )
        supervisor = _supervisor(lg, process, fast_policy, host)

        supervisor.start()

        assert log_handler.messages(logging.ERROR) == [
            "failed to kill agent",
            "agent did not exit after kill",
        ]
        assert "agent stopped" not in log_handler.messages(logging.INFO)
        assert not process.running
        assert supervisor.state is RunState.STOPPED
        assert supervisor.wait(0)

    def test_unexpected_error_still_stops_child(
        self, lg, log_handler, process, fast_policy
    ):
        class BrokenHost(FakeHost):
            def poll(self, handle):
                raise RuntimeError("handle lost")

        host = BrokenHost(exit_after_polls=None)
        supervisor = _supervisor(lg, process, fast_policy, host)

        with pytest.raises(RuntimeError, match="handle lost"):
            supervisor.start()

        assert log_handler.messages(logging.CRITICAL) == ["supervision loop failed"]
        assert host.children[0].terminated
        assert supervisor.state is RunState.STOPPED
        assert supervisor.wait(0)


# =============================================================================
# Latency
# =============================================================================


@pytest.mark.unit
class TestLatency:
    """Restart and stop happen within bounded delays on the wall clock."""

    def test_restart_within_cooldown_plus_poll(self, lg, process, fast_policy):
        policy = replace(fast_policy, poll_interval=0.05, cooldown=0.1)
        host = RealTimeHost(lifetime=0.02, stop_after=3)
        _supervisor(lg, process, policy, host, clock=time.monotonic).start()

        assert len(host.exit_times) == 2
        for exited, respawned in zip(host.exit_times, host.spawn_times[1:]):
            delay = respawned - exited
            assert policy.cooldown <= delay
            assert delay < policy.cooldown + policy.poll_interval + SLACK

    def test_terminate_within_one_poll_of_stop(self, lg, process, fast_policy):
        policy = replace(fast_policy, poll_interval=0.5)
        host = RealTimeHost()
        supervisor = _supervisor(lg, process, policy, host)
        thread = _start_in_thread(supervisor)

        stopped_at = time.monotonic()
        supervisor.stop()
        assert supervisor.wait(5)
        thread.join(5)

        assert host.terminate_times[0] - stopped_at < policy.poll_interval

    def test_loop_exit_within_grace_plus_poll(self, lg, process, fast_policy):
        policy = replace(fast_policy, poll_interval=0.2, grace_period=0.2)
        host = RealTimeHost(ignore_terminate=True)
        supervisor = _supervisor(lg, process, policy, host)
        thread = _start_in_thread(supervisor)

        stopped_at = time.monotonic()
        supervisor.stop()
        assert supervisor.wait(5)
        elapsed = time.monotonic() - stopped_at
        thread.join(5)

        assert host.children[0].killed
        assert policy.grace_period <= elapsed
        assert elapsed < policy.grace_period + policy.poll_interval


def test_working_directory_passed_to_host(lg, process, fast_policy, temp_dir):
    process.cwd = temp_dir
    host = FakeHost(exit_after_polls=None, stop_after=1)
    _supervisor(lg, process, fast_policy, host).start()
    assert host.spawned[0][1] == Path(temp_dir)

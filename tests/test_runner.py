"""Tests for Runner."""

import sys
import threading
import time
from pathlib import Path

import pytest

from linkretry.core.runner import Runner

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="POSIX-only shell commands"
)


def test_successful_command():
    result = Runner().execute("echo 'Hello World'", timeout=5)

    assert result.exited == 0
    assert "Hello World" in result.stdout


def test_failed_command_does_not_raise():
    result = Runner().execute("echo broken >&2; exit 3", timeout=5)

    assert result.exited == 3
    assert "broken" in result.stderr


def test_timeout_handling():
    result = Runner().execute("sleep 10", timeout=1)

    assert result.exited == -1


def test_working_directory(tmp_path):
    result = Runner().execute("pwd", cwd=tmp_path, timeout=5)

    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


def test_environment_is_added(tmp_path):
    result = Runner().execute(
        'echo "$LINKRETRY_TEST_VALUE"',
        env={"LINKRETRY_TEST_VALUE": "from-env"},
        timeout=5,
    )

    assert result.stdout.strip() == "from-env"


def test_kill_stops_command_and_its_children():
    """kill() ends a running command, including processes the
    shell started, so execute() returns at once."""
    runner = Runner()
    timer = threading.Timer(0.5, runner.kill)
    timer.start()

    started = time.monotonic()
    result = runner.execute("sleep 30; echo done", timeout=60)
    elapsed = time.monotonic() - started
    timer.join()

    assert elapsed < 10
    assert result.exited != 0
    assert "done" not in result.stdout


def test_kill_before_start_kills_on_start():
    runner = Runner()
    runner.kill()

    started = time.monotonic()
    result = runner.execute("sleep 30", timeout=60)

    assert time.monotonic() - started < 10
    assert result.exited != 0

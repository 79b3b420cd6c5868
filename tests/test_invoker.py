"""Tests for CheckerInvoker against real processes."""

import sys
import threading
import time

import pytest

from linkretry.checker.invoker import CheckerInvoker
from linkretry.core.config import CheckerConfig
from linkretry.core.errors import InvocationFault
from linkretry.core.result import CheckTarget

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="POSIX-only (uses sh, true, false)"
)


def write_checker(tmp_path, body: str):
    """Create an executable shell script acting as the checker."""
    script = tmp_path / "fake-checker"
    script.write_text("#!/bin/sh\n" + body)
    script.chmod(0o755)
    return str(script)


def test_successful_check(tmp_path):
    invoker = CheckerInvoker(CheckerConfig(command="true"))

    result = invoker.invoke(CheckTarget(path=tmp_path / "a.md"))

    assert result.success is True
    assert result.returncode == 0
    assert result.attempt == 1
    assert result.elapsed >= 0


def test_failed_check_is_a_result_not_an_error(tmp_path):
    invoker = CheckerInvoker(CheckerConfig(command="false"))

    result = invoker.invoke(CheckTarget(path=tmp_path / "a.md"), attempt=2)

    assert result.success is False
    assert result.returncode != 0
    assert result.attempt == 2


def test_output_is_captured_unmodified(tmp_path):
    command = write_checker(
        tmp_path,
        'echo "FILE: $1"\n'
        'echo "  [✖] https://dead.example → Status: 404"\n'
        'echo "oops" >&2\n'
        "exit 1\n",
    )
    invoker = CheckerInvoker(CheckerConfig(command=command))

    result = invoker.invoke(CheckTarget(path="docs/a b.md"))

    assert result.stdout.startswith("FILE: docs/a b.md\n")
    assert "oops" in result.stderr
    assert result.dead_links == ["https://dead.example (Status: 404)"]


def test_args_come_before_file(tmp_path):
    command = write_checker(tmp_path, 'echo "$@"\n')
    invoker = CheckerInvoker(
        CheckerConfig(command=command, args=["--config", "mlc.json"])
    )

    result = invoker.invoke(CheckTarget(path="a.md"))

    assert result.stdout.strip() == "--config mlc.json a.md"


def test_runs_in_workdir(tmp_path):
    (tmp_path / "marker.md").write_text("# hi\n")
    invoker = CheckerInvoker(
        CheckerConfig(command="test", args=["-f"]), workdir=tmp_path
    )

    result = invoker.invoke(CheckTarget(path="marker.md"))

    assert result.success is True


def test_missing_checker_fails_preflight():
    invoker = CheckerInvoker(
        CheckerConfig(command="linkretry-no-such-checker")
    )

    with pytest.raises(InvocationFault, match="not found"):
        invoker.preflight()


def test_missing_checker_is_invocation_fault():
    invoker = CheckerInvoker(
        CheckerConfig(command="linkretry-no-such-checker")
    )

    with pytest.raises(InvocationFault):
        invoker.invoke(CheckTarget(path="a.md"))


def test_non_executable_checker_is_invocation_fault(tmp_path):
    script = tmp_path / "not-executable"
    script.write_text("#!/bin/sh\nexit 0\n")
    script.chmod(0o644)
    invoker = CheckerInvoker(CheckerConfig(command=str(script)))

    with pytest.raises(InvocationFault):
        invoker.invoke(CheckTarget(path="a.md"))


def test_timeout_is_a_failed_attempt(tmp_path):
    command = write_checker(tmp_path, "sleep 10\n")
    invoker = CheckerInvoker(CheckerConfig(command=command, timeout=1))

    result = invoker.invoke(CheckTarget(path="a.md"))

    assert result.success is False
    assert result.timed_out is True
    assert result.returncode == -1


def test_command_line_quotes_paths():
    invoker = CheckerInvoker(CheckerConfig(command="markdown-link-check"))

    command = invoker.command_for(CheckTarget(path="docs/it's here.md"))

    assert command.startswith("markdown-link-check ")
    assert "'docs/it'\"'\"'s here.md'" in command


def test_stop_kills_running_checker(tmp_path):
    command = write_checker(tmp_path, "sleep 30\n")
    invoker = CheckerInvoker(CheckerConfig(command=command, timeout=60))
    timer = threading.Timer(0.5, invoker.stop)
    timer.start()

    started = time.monotonic()
    result = invoker.invoke(CheckTarget(path="a.md"))
    timer.join()

    assert time.monotonic() - started < 10
    assert result.success is False
    assert result.timed_out is False

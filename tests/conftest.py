"""Pytest configuration and fixtures for linkretry tests."""

import tempfile
from pathlib import Path

import pytest

from linkretry.core.errors import InvocationFault
from linkretry.core.log import ConsoleSink, setup_logger
from linkretry.core.result import AttemptResult, CheckTarget


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging for the whole test session.

    Nothing is sent to logfire.dev and no log files are written.
    """
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "linkretry-tests",
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


class FakeInvoker:
    """Checker stand-in following a script of outcomes per file.

    ``script`` maps a path to a list of outcomes, one per attempt:
    True (links OK), False (broken links) or an exception to raise.
    Once a script runs out, its last outcome repeats.
    """

    def __init__(self, script: dict[str, list]):
        self.script = script
        self.calls: list[tuple[str, int]] = []
        self.stopped = False

    def invoke(self, target: CheckTarget, attempt: int = 1) -> AttemptResult:
        path = str(target.path)
        self.calls.append((path, attempt))
        outcomes = self.script[path]
        outcome = outcomes[min(attempt, len(outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        output = (
            f"FILE: {path}\n  [✓] https://ok.example\n"
            if outcome
            else f"FILE: {path}\n  [✖] https://dead.example → Status: 404\n"
        )
        return AttemptResult(
            target=target,
            attempt=attempt,
            success=outcome,
            returncode=0 if outcome else 1,
            stdout=output,
        )

    def stop(self) -> None:
        self.stopped = True

    def attempts_for(self, path: str) -> int:
        return sum(1 for called, _ in self.calls if called == path)


class RecordingSleep:
    """Async sleep replacement that records delays and returns at
    once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fault():
    return InvocationFault("markdown-link-check", "executable not found")


@pytest.fixture
def make_invoker():
    """Factory for FakeInvoker scripts."""
    return FakeInvoker

"""Check command - validate links in a batch of files."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from linkretry.checker.invoker import CheckerInvoker
from linkretry.coordinator import RetryCoordinator
from linkretry.core.errors import InvocationFault
from linkretry.core.log import logger
from linkretry.core.result import EXIT_FAILED, EXIT_FAULT, CheckTarget
from linkretry.retry.policy import RetryPolicy

if TYPE_CHECKING:
    from linkretry.core.config import State


def read_paths(stream) -> list[Path]:
    """Newline-separated paths, blank lines ignored."""
    return [Path(line.strip()) for line in stream if line.strip()]


class CheckCommand(BaseModel):
    """Check every link in the given files, retrying files whose
    check fails in case the failure was transient.

    Exits 0 when every file passes, 1 when any file still fails
    after its retries or the run is cut short, and 3 when the
    checker cannot be run.
    """

    files: CliPositionalArg[list[Path]] = Field(
        default_factory=list,
        description="Files to check, in report order",
    )
    stdin: bool = Field(
        default=False,
        description="Also read newline-separated file paths from stdin",
    )

    def targets(self) -> list[CheckTarget]:
        paths = list(self.files)
        if self.stdin:
            paths.extend(read_paths(sys.stdin))
        return [CheckTarget(path=path) for path in paths]

    async def run_workflow(self, state: State) -> int:
        """Run the check workflow.

        Args:
            state: Loaded configuration

        Returns:
            Exit code
        """
        config = state.config
        targets = self.targets()
        invoker = CheckerInvoker(config.checker)
        coordinator = RetryCoordinator(
            invoker,
            RetryPolicy.from_config(config.retry),
            concurrency=config.run.concurrency,
            timeout=config.run.timeout,
        )

        # SIGTERM (a CI job timing out) cancels the run like Ctrl-C
        loop = asyncio.get_running_loop()
        handles_sigterm = False
        # No loop signal handlers on Windows or off the main thread
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(
                signal.SIGTERM, asyncio.current_task().cancel
            )
            handles_sigterm = True

        try:
            if targets:
                invoker.preflight()
            report = await coordinator.run(targets)
        except InvocationFault as e:
            logger.error(
                "Aborting: {error}", error=str(e), command=e.command
            )
            print(f"linkretry: {e}", file=sys.stderr)
            return EXIT_FAULT
        except asyncio.CancelledError:
            # The partial report has been written already
            logger.error("Interrupted")
            return EXIT_FAILED
        finally:
            if handles_sigterm:
                loop.remove_signal_handler(signal.SIGTERM)

        passed = len(report.verdicts) - len(report.failures)
        if report.passed:
            logger.info(
                "All {count} file(s) passed link checks",
                count=passed,
            )
        else:
            logger.error(
                "{failed} of {count} file(s) failed link checks",
                failed=len(report.failures),
                count=len(report.verdicts),
            )
        return report.exit_code

"""Runs the external link checker against one file."""

import shlex
import shutil
import threading
import time
from pathlib import Path

from linkretry.checker.output import parse_dead_links
from linkretry.core.config import CheckerConfig
from linkretry.core.errors import InvocationFault
from linkretry.core.log import logger
from linkretry.core.result import AttemptResult, CheckTarget
from linkretry.core.runner import Runner

# Shell statuses for "cannot execute" and "command not found"
NOT_EXECUTABLE = 126
NOT_FOUND = 127


class CheckerInvoker:
    """Invoke the configured checker once per call.

    A checker that runs and reports broken links produces a failed
    AttemptResult. Only a checker that cannot run at all raises
    InvocationFault. invoke() blocks, so callers run it in worker
    threads; stop() kills whatever those threads are still running.
    """

    def __init__(
        self,
        config: CheckerConfig,
        workdir: Path | None = None,
        runner: Runner | None = None,
    ):
        """Initialize the invoker.

        Args:
            config: Checker command, arguments and per-attempt timeout
            workdir: Directory the checker runs in (default: cwd)
            runner: Command runner to reuse for every call; by default
                each call gets its own so calls may run in parallel
        """
        self.config = config
        self.workdir = workdir
        self.runner = runner
        # Runners with a command in flight, keyed by id()
        self._active: dict[int, Runner] = {}
        self._lock = threading.Lock()
        self._stopped = False

    def command_for(self, target: CheckTarget) -> str:
        """Shell command line checking a single target."""
        return shlex.join(
            [self.config.command, *self.config.args, str(target.path)]
        )

    def preflight(self) -> None:
        """Fail fast when the checker executable is missing.

        Raises:
            InvocationFault: If the command is not found on PATH
        """
        if shutil.which(self.config.command) is None:
            raise InvocationFault(
                self.config.command, "executable not found on PATH"
            )

    def invoke(self, target: CheckTarget, attempt: int = 1) -> AttemptResult:
        """Run the checker against one target.

        Args:
            target: File to check
            attempt: 1-based attempt index recorded in the result

        Returns:
            AttemptResult, successful iff the checker exited with 0

        Raises:
            InvocationFault: If the checker could not be executed
        """
        command = self.command_for(target)
        started = time.monotonic()
        runner = self.runner or Runner()
        with self._lock:
            self._active[id(runner)] = runner
            if self._stopped:
                runner.kill()
        try:
            result = runner.execute(
                command,
                cwd=self.workdir,
                timeout=self.config.timeout,
                log_level="spew",
            )
        except OSError as e:
            raise InvocationFault(self.config.command, str(e)) from e
        finally:
            with self._lock:
                self._active.pop(id(runner), None)
        elapsed = time.monotonic() - started

        if result.exited in (NOT_EXECUTABLE, NOT_FOUND):
            reason = result.stderr.strip() or f"exit status {result.exited}"
            raise InvocationFault(self.config.command, reason)

        timed_out = result.exited == -1
        if timed_out:
            logger.warn(
                "Checker timed out after {timeout}s",
                target=str(target),
                timeout=self.config.timeout,
            )

        return AttemptResult(
            target=target,
            attempt=attempt,
            success=result.exited == 0,
            returncode=result.exited,
            stdout=result.stdout,
            stderr=result.stderr,
            elapsed=elapsed,
            timed_out=timed_out,
            dead_links=parse_dead_links(result.stdout + result.stderr),
        )

    def stop(self) -> None:
        """Kill every checker process still running.

        The invoke() calls they belong to return at once with a
        failed result, which nobody is waiting for any more. Calls
        starting after stop() are killed as soon as they start.
        """
        with self._lock:
            self._stopped = True
            runners = list(self._active.values())
        if runners:
            logger.debug(
                "Killing {count} running checker(s)", count=len(runners)
            )
        for runner in runners:
            runner.kill()

"""Command execution on top of invoke."""

import contextlib
import os
import signal
import threading
from pathlib import Path
from subprocess import PIPE, Popen

from invoke import Config, Context, Local, Result
from invoke.exceptions import CommandTimedOut

from linkretry.core.log import logger


class SessionLocal(Local):
    """invoke's local runner, starting each command in a session of
    its own so kill() reaches every process the command spawned.

    A checker script that forks (``sh`` running ``node``, say) would
    otherwise leave orphans holding the output pipes open.
    """

    def start(self, command: str, shell: str, env: dict) -> None:
        if self.using_pty:
            super().start(command, shell, env)
            return
        self.process = Popen(
            command,
            shell=True,
            executable=shell,
            env=env,
            stdout=PIPE,
            stderr=PIPE,
            stdin=PIPE,
            start_new_session=True,
        )

    def kill(self) -> None:
        """Kill the command's whole process group.

        Windows has neither process groups via killpg nor
        signal.SIGKILL; os.kill() there passes the number to
        TerminateProcess().
        """
        if self.using_pty:
            super().kill()
            return
        pid = self.process.pid
        with contextlib.suppress(ProcessLookupError, PermissionError):
            if hasattr(os, "killpg"):
                os.killpg(pid, signal.SIGKILL)
            else:
                os.kill(pid, 9)


class Runner(Context):
    """invoke.Context with an execute() method suited to one-shot
    checker runs: output captured, never raising on a non-zero
    exit, timeouts turned into a result.

    cd() mutates the context, so concurrent callers each need
    their own Runner. kill() may be called from any thread.
    """

    # Class attributes keep invoke's DataProxy from treating these
    # as config keys
    lock = None
    promise = None
    killed = False

    def __init__(self, config: Config | None = None):
        if config is None:
            config = Config(overrides={"runners": {"local": SessionLocal}})
        super().__init__(config=config)
        self.lock = threading.Lock()

    def kill(self) -> None:
        """Kill the command execute() is running.

        Once killed, the runner also kills every command it starts
        afterwards, as soon as it starts.
        """
        with self.lock:
            self.killed = True
            if self.promise is not None:
                self.promise.runner.kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
        log_level: str | None = None,
    ) -> Result:
        """Run a shell command and return its result.

        Args:
            command: Command string, run through the shell
            cwd: Working directory
            timeout: Maximum run time in seconds
            env: Variables added to os.environ for the command
            log_level: If set, log each output line at this level

        Returns:
            invoke.Result; ``exited`` is -1 when the command timed out
            and negative (the signal) when it was killed

        Raises:
            OSError: If the shell itself cannot be started
        """
        kwargs = {
            "hide": True,
            "warn": True,
            "in_stream": False,
            "asynchronous": True,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.spew("Executing {command}", command=command)
        try:
            if cwd:
                with self.cd(str(cwd)):
                    promise = self.run(command, **kwargs)
            else:
                promise = self.run(command, **kwargs)
            with self.lock:
                self.promise = promise
                if self.killed:
                    promise.runner.kill()
            result = promise.join()
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1
        finally:
            with self.lock:
                self.promise = None

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result

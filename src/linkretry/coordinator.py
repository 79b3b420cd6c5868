"""Retry coordinator - runs every target to a verdict."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TextIO

from linkretry.core.errors import InvocationFault
from linkretry.core.log import logger
from linkretry.core.result import (
    BatchReport,
    CheckTarget,
    TargetVerdict,
    VerdictStatus,
)
from linkretry.report import write_failures
from linkretry.retry.policy import RetryPolicy
from linkretry.workflow.graph import create_target_workflow
from linkretry.workflow.state import Invoker, TargetDeps, TargetState


class RetryCoordinator:
    """Check a batch of targets, retrying each one independently.

    Every target runs its own Attempt/Retrying graph with its own
    TargetState. Verdicts land in a slot per input position, so the
    report keeps input order whatever the completion order.
    """

    def __init__(
        self,
        invoker: Invoker,
        policy: RetryPolicy,
        concurrency: int = 1,
        timeout: float | None = None,
        sleep=asyncio.sleep,
        stream: TextIO | None = None,
    ):
        """Initialize the coordinator.

        Args:
            invoker: Runs the checker once against one target
            policy: Attempt budget, delays and transient classification
            concurrency: Targets processed at the same time
            timeout: Overall run timeout in seconds, or None
            sleep: Coroutine function used for retry delays
            stream: Where failure diagnostics are written
                (default: stderr)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.deps = TargetDeps(invoker=invoker, policy=policy, sleep=sleep)
        self.concurrency = concurrency
        self.timeout = timeout
        self.stream = stream
        self.workflow = create_target_workflow()

    async def process(self, target: CheckTarget) -> TargetVerdict:
        """Run one target through its retry state machine.

        Raises:
            InvocationFault: If the checker cannot be executed
        """
        return await self._process(TargetState(target=target))

    async def _process(self, state: TargetState) -> TargetVerdict:
        from linkretry.workflow.nodes.attempt import Attempt

        target = state.target
        with logger.span("Checking {target}", target=str(target)):
            result = await self.workflow.run(
                Attempt(), state=state, deps=self.deps
            )
        return result.output

    async def run(self, targets: Iterable[CheckTarget]) -> BatchReport:
        """Check every target and aggregate the verdicts.

        A target's failure never stops the others. An InvocationFault
        cancels all outstanding work and propagates. When the overall
        timeout fires, or the run itself is cancelled, running
        checkers are killed and targets without a verdict are
        reported as unfinished; the verdicts already reached are
        still written out before a cancellation propagates.
        """
        targets = list(targets)
        if not targets:
            logger.info("No files to check")
            return BatchReport()

        states = [TargetState(target=target) for target in targets]
        slots: list[TargetVerdict | None] = [None] * len(targets)
        semaphore = asyncio.Semaphore(self.concurrency)
        aborted = asyncio.Event()

        async def worker(index: int) -> None:
            async with semaphore:
                # A faulting worker sets this while still holding the slot
                if aborted.is_set():
                    return
                try:
                    slots[index] = await self._process(states[index])
                except InvocationFault:
                    aborted.set()
                    raise

        logger.info(
            "Checking {count} file(s)",
            count=len(targets),
            concurrency=self.concurrency,
            max_attempts=self.deps.policy.max_attempts,
        )
        tasks = [
            asyncio.create_task(worker(i)) for i in range(len(targets))
        ]
        try:
            done, pending = await asyncio.wait(
                tasks,
                timeout=self.timeout,
                return_when=asyncio.FIRST_EXCEPTION,
            )
        except asyncio.CancelledError:
            await self._cancel(tasks)
            report = self._report(states, slots, interrupted=True)
            logger.error(
                "Run interrupted with {count} file(s) unfinished",
                count=slots.count(None),
            )
            write_failures(report, self.stream)
            raise

        faulted = [t for t in done if t.exception() is not None]
        if faulted or pending:
            await self._cancel(pending)
        if faulted:
            # Report the fault of the earliest target in input order
            raise min(faulted, key=tasks.index).exception()

        if pending:
            logger.error(
                "Run timed out after {timeout}s with {count} file(s) "
                "unfinished",
                timeout=self.timeout,
                count=len(pending),
            )

        report = self._report(states, slots, timed_out=bool(pending))
        write_failures(report, self.stream)
        return report

    async def _cancel(self, tasks) -> None:
        """Cancel tasks and kill the checkers they are waiting on."""
        for task in tasks:
            task.cancel()
        self.deps.invoker.stop()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _report(
        self,
        states: list[TargetState],
        slots: list[TargetVerdict | None],
        timed_out: bool = False,
        interrupted: bool = False,
    ) -> BatchReport:
        """Fill empty slots with unfinished verdicts."""
        reason = "timed out" if timed_out else "was interrupted"
        verdicts = []
        for state, verdict in zip(states, slots, strict=True):
            if verdict is None:
                verdict = TargetVerdict(
                    target=state.target,
                    status=VerdictStatus.UNFINISHED,
                    attempts=len(state.attempts),
                    diagnostic=f"Not finished before the run {reason}",
                )
            verdicts.append(verdict)
        return BatchReport(
            verdicts=verdicts, timed_out=timed_out, interrupted=interrupted
        )

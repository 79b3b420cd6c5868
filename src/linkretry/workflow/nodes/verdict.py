"""Terminal nodes - record the target's final verdict."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from linkretry.core.log import logger
from linkretry.core.result import TargetVerdict, VerdictStatus
from linkretry.workflow.state import TargetDeps, TargetState


@dataclass
class Passed(BaseNode[TargetState, TargetDeps, TargetVerdict]):
    """Some attempt succeeded."""

    async def run(
        self, ctx: GraphRunContext[TargetState, TargetDeps]
    ) -> End[TargetVerdict]:
        attempts = len(ctx.state.attempts)
        logger.info(
            "{target} passed",
            target=str(ctx.state.target),
            attempts=attempts,
        )
        return End(
            TargetVerdict(
                target=ctx.state.target,
                status=VerdictStatus.PASSED,
                attempts=attempts,
            )
        )


@dataclass
class FailedPermanent(BaseNode[TargetState, TargetDeps, TargetVerdict]):
    """No attempt succeeded and no retry is left."""

    async def run(
        self, ctx: GraphRunContext[TargetState, TargetDeps]
    ) -> End[TargetVerdict]:
        last = ctx.state.last_attempt
        if last is None:
            raise ValueError("FailedPermanent reached without an attempt")

        diagnostic = last.output.strip()
        if not diagnostic:
            diagnostic = f"checker exited with status {last.returncode}"

        logger.error(
            "{target} failed after {attempts} attempt(s)",
            target=str(ctx.state.target),
            attempts=len(ctx.state.attempts),
            dead_links=len(last.dead_links),
        )
        return End(
            TargetVerdict(
                target=ctx.state.target,
                status=VerdictStatus.FAILED_PERMANENT,
                attempts=len(ctx.state.attempts),
                diagnostic=diagnostic,
            )
        )

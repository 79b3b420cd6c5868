"""Retrying node - wait out the backoff delay."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from linkretry.core.log import logger
from linkretry.core.result import TargetVerdict
from linkretry.workflow.state import TargetDeps, TargetState


@dataclass
class Retrying(BaseNode[TargetState, TargetDeps, TargetVerdict]):
    """Sleep before the next attempt without blocking other
    targets."""

    async def run(
        self, ctx: GraphRunContext[TargetState, TargetDeps]
    ) -> Attempt:
        from linkretry.workflow.nodes.attempt import Attempt

        last = ctx.state.last_attempt
        delay = ctx.deps.policy.delay_for(last.attempt)
        logger.warn(
            "{target} failed (attempt {attempt}/{max_attempts}), "
            "retrying in {delay}s",
            target=str(ctx.state.target),
            attempt=last.attempt,
            max_attempts=ctx.deps.policy.max_attempts,
            delay=delay,
            returncode=last.returncode,
        )
        await ctx.deps.sleep(delay)
        return Attempt()

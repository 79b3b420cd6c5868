"""Attempt node - run the checker once."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from linkretry.core.log import logger
from linkretry.core.result import TargetVerdict
from linkretry.workflow.state import TargetDeps, TargetState


@dataclass
class Attempt(BaseNode[TargetState, TargetDeps, TargetVerdict]):
    """Run the checker against the target and route on the result."""

    async def run(
        self, ctx: GraphRunContext[TargetState, TargetDeps]
    ) -> Passed | Retrying | FailedPermanent:
        """Invoke the checker in a worker thread.

        Returns:
            Passed: The checker exited successfully
            Retrying: It failed, transiently, with budget left
            FailedPermanent: It failed and no retry is allowed

        Raises:
            InvocationFault: The checker could not be run at all
        """
        from linkretry.workflow.nodes.retrying import Retrying
        from linkretry.workflow.nodes.verdict import FailedPermanent, Passed

        state = ctx.state
        policy = ctx.deps.policy
        attempt = state.next_attempt
        if attempt > policy.max_attempts:
            raise RuntimeError(
                f"Attempt budget exceeded for {state.target}"
            )

        logger.debug(
            "Checking {target} (attempt {attempt}/{max_attempts})",
            target=str(state.target),
            attempt=attempt,
            max_attempts=policy.max_attempts,
        )
        result = await asyncio.to_thread(
            ctx.deps.invoker.invoke, state.target, attempt
        )
        state.attempts.append(result)

        if result.success:
            return Passed()
        if policy.should_retry(result):
            return Retrying()
        return FailedPermanent()

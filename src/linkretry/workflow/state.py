"""State and dependencies of one target's check workflow."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from linkretry.core.result import AttemptResult, CheckTarget
from linkretry.retry.policy import RetryPolicy


class Invoker(Protocol):
    """Anything that can run the checker once against a target."""

    def invoke(
        self, target: CheckTarget, attempt: int = 1
    ) -> AttemptResult: ...

    def stop(self) -> None:
        """Kill checker runs still in flight."""


@dataclass
class TargetState:
    """Attempts made so far for one target.

    Each target owns its state; nothing here is shared between
    targets.
    """

    target: CheckTarget
    attempts: list[AttemptResult] = field(default_factory=list)

    @property
    def last_attempt(self) -> AttemptResult | None:
        return self.attempts[-1] if self.attempts else None

    @property
    def next_attempt(self) -> int:
        return len(self.attempts) + 1


@dataclass
class TargetDeps:
    """Collaborators shared read-only by all target workflows."""

    invoker: Invoker
    policy: RetryPolicy
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

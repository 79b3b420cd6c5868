"""Bounded, deterministic retry policy."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from linkretry.core.config import RetryConfig
from linkretry.core.result import AttemptResult


@dataclass(frozen=True)
class RetryPolicy:
    """Decides whether a failed attempt is retried and how long to
    wait first.

    Delays grow geometrically from ``delay`` by ``backoff`` and are
    capped at ``max_delay``; ``backoff=1`` gives a fixed delay. There
    is no jitter: the delay depends on the attempt index alone.
    """

    max_attempts: int = 3
    delay: float = 5.0
    backoff: float = 2.0
    max_delay: float = 60.0
    transient_patterns: tuple[str, ...] = ()
    _compiled: tuple[re.Pattern, ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")
        if self.backoff < 1:
            raise ValueError("backoff must be at least 1")
        object.__setattr__(
            self,
            "_compiled",
            tuple(re.compile(p) for p in self.transient_patterns),
        )

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            delay=config.delay,
            backoff=config.backoff,
            max_delay=config.max_delay,
            transient_patterns=tuple(config.transient_patterns),
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt ``attempt`` (1-based)
        before the next one."""
        if attempt < 1:
            raise ValueError("attempt is 1-based")
        return min(self.delay * self.backoff ** (attempt - 1), self.max_delay)

    def is_transient(self, result: AttemptResult) -> bool:
        """Whether a failed attempt may succeed when repeated.

        Without transient patterns every failure counts. Timeouts
        always count.
        """
        if not self._compiled or result.timed_out:
            return True
        output = result.output
        return any(pattern.search(output) for pattern in self._compiled)

    def should_retry(self, result: AttemptResult) -> bool:
        """Whether another attempt follows ``result``."""
        if result.success:
            return False
        if result.attempt >= self.max_attempts:
            return False
        return self.is_transient(result)

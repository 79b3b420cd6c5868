"""Value objects for link check attempts, verdicts and reports."""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

EXIT_PASSED = 0
EXIT_FAILED = 1
# Distinct from 2, which argparse uses for usage errors
EXIT_FAULT = 3


class CheckTarget(BaseModel):
    """One document file to validate."""

    model_config = ConfigDict(frozen=True)

    path: Path

    def __str__(self) -> str:
        return str(self.path)


class AttemptResult(BaseModel):
    """Outcome of one checker run against one target."""

    target: CheckTarget
    attempt: int = Field(ge=1, description="1-based attempt index")
    success: bool
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed: float = Field(default=0.0, description="Seconds")
    timed_out: bool = False
    dead_links: list[str] = Field(
        default_factory=list,
        description="Links the checker reported as dead",
    )

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as the checker wrote them."""
        if self.stdout and self.stderr:
            return self.stdout.rstrip("\n") + "\n" + self.stderr
        return self.stdout or self.stderr


class VerdictStatus(StrEnum):
    """Final per-target outcome."""

    PASSED = "passed"
    FAILED_PERMANENT = "failed_permanent"
    # Run timed out or was interrupted first; counted as a failure
    UNFINISHED = "unfinished"


class TargetVerdict(BaseModel):
    """Final outcome for a target after all of its attempts."""

    model_config = ConfigDict(frozen=True)

    target: CheckTarget
    status: VerdictStatus
    attempts: int = 0
    diagnostic: str = ""

    @property
    def passed(self) -> bool:
        return self.status is VerdictStatus.PASSED


class BatchReport(BaseModel):
    """Verdicts for a whole batch, in input order."""

    verdicts: list[TargetVerdict] = Field(default_factory=list)
    timed_out: bool = False
    interrupted: bool = False

    @computed_field
    @property
    def passed(self) -> bool:
        return all(verdict.passed for verdict in self.verdicts)

    @property
    def failures(self) -> list[TargetVerdict]:
        return [v for v in self.verdicts if not v.passed]

    @property
    def exit_code(self) -> int:
        return EXIT_PASSED if self.passed else EXIT_FAILED

"""Human-readable failure report."""

import sys
import textwrap
from typing import TextIO

from linkretry.core.result import BatchReport, TargetVerdict, VerdictStatus

_HEADINGS = {
    VerdictStatus.FAILED_PERMANENT: "FAILED",
    VerdictStatus.UNFINISHED: "UNFINISHED",
}


def format_verdict(verdict: TargetVerdict) -> str:
    """Heading line plus the indented checker output."""
    heading = (
        f"{_HEADINGS.get(verdict.status, verdict.status.value.upper())} "
        f"{verdict.target} ({verdict.attempts} attempt(s))"
    )
    if not verdict.diagnostic:
        return heading
    return heading + "\n" + textwrap.indent(verdict.diagnostic, "    ")


def format_failures(report: BatchReport) -> str:
    """Every non-passed verdict in report order, then a summary.

    Empty when the report passed.
    """
    failures = report.failures
    if not failures:
        return ""
    sections = [format_verdict(verdict) for verdict in failures]
    summary = (
        f"{len(failures)} of {len(report.verdicts)} file(s) failed "
        f"link checks"
    )
    if report.timed_out:
        summary += " (run timed out)"
    elif report.interrupted:
        summary += " (run interrupted)"
    return "\n\n".join(sections) + "\n\n" + summary + "\n"


def write_failures(report: BatchReport, stream: TextIO | None = None):
    """Write the failure report to stream (default: stderr)."""
    text = format_failures(report)
    if text:
        stream = stream or sys.stderr
        stream.write(text)
        stream.flush()

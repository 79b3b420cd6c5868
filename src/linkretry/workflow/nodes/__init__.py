"""Workflow nodes for the per-target state machine."""

from linkretry.workflow.nodes.attempt import Attempt
from linkretry.workflow.nodes.retrying import Retrying
from linkretry.workflow.nodes.verdict import FailedPermanent, Passed

__all__ = [
    "Attempt",
    "Retrying",
    "Passed",
    "FailedPermanent",
]

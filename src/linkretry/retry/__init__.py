"""Retry policy for failed link checks."""

from linkretry.retry.policy import RetryPolicy

__all__ = ["RetryPolicy"]

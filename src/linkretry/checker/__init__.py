"""External link checker integration."""

from linkretry.checker.invoker import CheckerInvoker
from linkretry.checker.output import parse_dead_links

__all__ = ["CheckerInvoker", "parse_dead_links"]

"""CLI command modules for linkretry."""

from linkretry.command.check import CheckCommand
from linkretry.command.discover import DiscoverCommand

__all__ = ["CheckCommand", "DiscoverCommand"]

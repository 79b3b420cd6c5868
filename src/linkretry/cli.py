#!/usr/bin/env python3
"""linkretry CLI - retrying link checks for documentation trees."""

import asyncio
import sys
from datetime import datetime

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from linkretry.command.check import CheckCommand
from linkretry.command.discover import DiscoverCommand
from linkretry.core.config import State


class CliState(State):
    """Validate documentation links, retrying transient failures.

    Each file is checked by an external link checker
    (markdown-link-check by default). Files whose check fails are
    retried with a bounded backoff before being reported as broken.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.retry.max_attempts 5)
    2. Environment variables
       (LINKRETRY_CONFIG__RETRY__MAX_ATTEMPTS=5)
    3. .env file
    4. --include files, ./linkretry.yaml, user config, defaults
    """

    check: CliSubCommand[CheckCommand]
    discover: CliSubCommand[DiscoverCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help if none
        was given."""
        subcommand = get_subcommand(self, is_required=False)
        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        name = type(subcommand).__name__.removesuffix("Command").lower()
        run_name = f"{name}-{datetime.now().strftime('%Y%m%d-%H%M%S')}"
        self.config.setup_logging(run_name)

        # Closing the config closes the logger and its sinks
        with self.config:
            exit_code = asyncio.run(subcommand.run_workflow(self))
        raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()

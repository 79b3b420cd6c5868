"""Discover command - list the files a CI run should check."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from linkretry.core.log import logger
from linkretry.selector import discover_targets

if TYPE_CHECKING:
    from linkretry.core.config import State


class DiscoverCommand(BaseModel):
    """Print the Markdown files under ROOT that qualify for link
    checking, one per line, ready to pipe into ``linkretry check
    --stdin``.

    Selection follows config.selector: changelogs are excluded by
    default, and .git, node_modules, virtualenv and __pycache__
    directories are not searched (config.selector.skip_dirs).
    """

    root: CliPositionalArg[Path] = Field(
        default=Path("."),
        description="Directory to search",
    )

    async def run_workflow(self, state: State) -> int:
        if not self.root.is_dir():
            logger.error("Not a directory: {root}", root=str(self.root))
            return 1
        targets = discover_targets(self.root, state.config.selector)
        for target in targets:
            print(target)
        logger.debug("Discovered {count} file(s)", count=len(targets))
        return 0

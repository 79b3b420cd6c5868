"""File selection - which documents qualify for link checking."""

from fnmatch import fnmatch
from pathlib import Path

from linkretry.core.config import SelectorConfig
from linkretry.core.result import CheckTarget


def _matches(path: Path, patterns: list[str]) -> bool:
    posix = path.as_posix()
    return any(
        fnmatch(path.name, pattern) or fnmatch(posix, pattern)
        for pattern in patterns
    )


def discover_targets(root: Path, config: SelectorConfig) -> list[CheckTarget]:
    """List files under root matching ``include`` and not ``exclude``.

    Patterns are tried against the file name and against the path
    relative to root, so ``CHANGELOG.md`` excludes changelogs at any
    depth and ``docs/generated/*`` excludes one directory. Files
    inside a directory named in ``skip_dirs`` are never listed.
    Results are sorted for a stable batch order.
    """
    skipped = set(config.skip_dirs)
    found = []
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if skipped.intersection(relative.parts[:-1]):
            continue
        if not path.is_file():
            continue
        if not _matches(relative, config.include):
            continue
        if _matches(relative, config.exclude):
            continue
        found.append(CheckTarget(path=path))
    return found

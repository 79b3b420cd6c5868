"""YAML configuration loading with include directive support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from linkretry.core.log import logger

PACKAGE_DEFAULTS = Path(__file__).parent.parent / "defaults" / "default.yaml"
CONFIG_FILENAME = "linkretry.yaml"


def _cli_includes(argv: list[str]) -> list[str]:
    """Collect ``--include FILE`` values ahead of pydantic's CLI
    parsing."""
    includes = []
    args = iter(argv[1:])
    for arg in args:
        if arg == "--include":
            value = next(args, None)
            if value is not None:
                includes.append(value)
        elif arg.startswith("--include="):
            includes.append(arg.split("=", 1)[1])
    return includes


def deep_merge(base: dict, override: dict) -> dict:
    """Return base with override merged in recursively; override
    wins on conflicts."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source layering several files.

    Files are deep-merged in this order, later ones winning:
    package defaults < user config < ./linkretry.yaml < --include
    files. Any file may name others under an ``include:`` key; those
    are loaded first and then overridden by the including file.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        """Initialize the source.

        Args:
            settings_cls: The settings class being loaded
            yaml_file: Extra file(s) to merge on top of the standard
                locations; --include arguments are appended
        """
        extra = []
        if yaml_file:
            if isinstance(yaml_file, (str, os.PathLike)):
                extra.append(yaml_file)
            else:
                extra.extend(yaml_file)
        extra.extend(_cli_includes(sys.argv))
        super().__init__(settings_cls, extra or None)

    def _read_files(self, files, **kwargs):  # noqa: ARG002
        # Always deep-merges, whatever pydantic-settings asks for
        files_to_load = [
            PACKAGE_DEFAULTS,
            Path(user_config_dir("linkretry", appauthor=False))
            / CONFIG_FILENAME,
            Path(CONFIG_FILENAME),
        ]
        if files:
            if isinstance(files, (str, os.PathLike)):
                files = [files]
            files_to_load.extend(Path(f).expanduser() for f in files)

        result = {}
        for file_path in files_to_load:
            if not file_path.is_file():
                logger.debug(
                    "Configuration file not found (skipping)",
                    file=str(file_path),
                )
                continue
            data = self._load_file_recursive(file_path, set())
            result = deep_merge(result, data)
        return result

    def _load_file_recursive(self, filepath: Path, visited: set[Path]) -> dict:
        """Load one YAML file with its ``include:`` files resolved.

        Raises:
            ValueError: If an include cycle is found
            FileNotFoundError: If an included file does not exist
        """
        filepath = filepath.resolve()
        if filepath in visited:
            raise ValueError(f"Circular include: {filepath}")
        visited.add(filepath)

        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]

        merged = {}
        for inc in includes:
            inc_path = Path(inc)
            if not inc_path.is_absolute():
                inc_path = filepath.parent / inc_path
            logger.debug(
                "Including configuration",
                included_from=str(filepath),
                include_file=str(inc_path),
            )
            merged = deep_merge(
                merged, self._load_file_recursive(inc_path, visited.copy())
            )
        return deep_merge(merged, data)

"""Application configuration."""

from __future__ import annotations

import re
from pathlib import Path

import platformdirs
from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from linkretry.core.base import BaseConfig
from linkretry.core.log import LEVELS, Logger
from linkretry.core.yaml_settings import YamlWithIncludesSettingsSource

# ============================================================
# CONFIG SECTIONS (loaded from YAML/env/CLI)
# ============================================================


class CheckerConfig(BaseConfig):
    """External link checker invocation."""

    command: str = Field(
        default="markdown-link-check",
        description="Checker executable, looked up on PATH",
    )
    args: list[str] = Field(
        default_factory=list,
        description=(
            "Arguments placed before the file path "
            "(e.g. ['--config', '.markdown-link-check.json'])"
        ),
    )
    timeout: int = Field(
        default=300,
        gt=0,
        description="Timeout for one attempt in seconds",
    )


class RetryConfig(BaseConfig):
    """Per-target retry policy."""

    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per file, first one included",
    )
    delay: float = Field(
        default=5.0,
        ge=0,
        description="Seconds to wait before the first retry",
    )
    backoff: float = Field(
        default=2.0,
        ge=1,
        description="Delay multiplier per retry; 1 gives a fixed delay",
    )
    max_delay: float = Field(
        default=60.0,
        ge=0,
        description="Upper bound for any single delay in seconds",
    )
    transient_patterns: list[str] = Field(
        default_factory=list,
        description=(
            "Regular expressions marking a failure as transient. "
            "Empty means every failure is retried"
        ),
    )

    @field_validator("transient_patterns")
    @classmethod
    def _patterns_compile(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(
                    f"Invalid transient pattern {pattern!r}: {e}"
                ) from e
        return patterns


class RunConfig(BaseConfig):
    """Batch scheduling."""

    concurrency: int = Field(
        default=1,
        ge=1,
        description="Files checked at the same time; 1 is sequential",
    )
    timeout: float | None = Field(
        default=None,
        gt=0,
        description=(
            "Overall timeout in seconds; unfinished files count "
            "as failed"
        ),
    )


class SelectorConfig(BaseConfig):
    """Which files the discover command lists."""

    include: list[str] = Field(
        default_factory=lambda: ["*.md"],
        description="Glob patterns a file name must match",
    )
    exclude: list[str] = Field(
        default_factory=lambda: ["CHANGELOG.md"],
        description="Glob patterns excluding a file name or path",
    )
    skip_dirs: list[str] = Field(
        default_factory=lambda: [
            ".git", "node_modules", ".venv", "venv", "__pycache__"
        ],
        description=(
            "Directory names never searched; empty to search every "
            "directory"
        ),
    )


class Config(BaseConfig):
    """Application configuration, grouped into sections."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    checker: CheckerConfig = Field(default_factory=CheckerConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    run: RunConfig = Field(default_factory=RunConfig)
    selector: SelectorConfig = Field(default_factory=SelectorConfig)

    log_level: str | None = Field(
        default=None,
        alias="log-level",
        description=(
            "Console log level override: spew, trace, debug, info, "
            "warn, error, fatal"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "linkretry"
        ),
        description="Root directory for log files",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str | None) -> str | None:
        if value is not None and value.lower() not in LEVELS:
            raise ValueError(
                f"Unknown log level {value!r}; "
                f"expected one of {', '.join(LEVELS)}"
            )
        return value.lower() if value else value

    @model_validator(mode='after')
    def _default_logger(self) -> Config:
        if self.logger is None:
            self.logger = Logger()
        if self.log_level:
            self.logger.console.level = self.log_level
        return self

    def setup_logging(self, run_name: str) -> None:
        """Install the configured logger as the global logger."""
        from linkretry.core.log import setup_logger

        setup_logger(
            log_root=self.log_root,
            run_name=run_name,
            level=self.logger.level,
            console=self.logger.console,
            otlp=self.logger.otlp,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )

    def close(self):
        """Close the global logger, then any closeable sections."""
        from linkretry.core.log import close_logger

        close_logger()
        super().close()


# ============================================================
# STATE (what the CLI loads)
# ============================================================


class State(BaseSettings):
    """Loaded configuration plus CLI-only options.

    Sources, highest priority first:
    1. init arguments (and CLI arguments through CliApp)
    2. Environment variables (LINKRETRY_CONFIG__RETRY__MAX_ATTEMPTS=5)
    3. .env file
    4. YAML files: --include > ./linkretry.yaml > user config >
       package defaults
    5. File secrets
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to merge, highest priority last"
        ),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LINKRETRY_",
        env_nested_delimiter="__",
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            file_secret_settings,
        )


__all__ = [
    "CheckerConfig",
    "Config",
    "RetryConfig",
    "RunConfig",
    "SelectorConfig",
    "State",
]

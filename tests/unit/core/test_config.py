"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from linkretry.core.config import Config, RetryConfig, RunConfig, State
from linkretry.core.yaml_settings import (
    YamlWithIncludesSettingsSource,
    deep_merge,
)


@pytest.fixture
def project_dir(tmp_path, monkeypatch):
    """Run from an empty directory so no stray linkretry.yaml is
    picked up."""
    monkeypatch.chdir(tmp_path)
    for name in ("LINKRETRY_CONFIG__RETRY__MAX_ATTEMPTS",):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_package_defaults(project_dir):
    state = State()

    assert state.config.checker.command == "markdown-link-check"
    assert state.config.retry.max_attempts == 3
    assert state.config.retry.transient_patterns == []
    assert state.config.run.concurrency == 1
    assert state.config.run.timeout is None
    assert state.config.selector.exclude == ["CHANGELOG.md"]
    assert "node_modules" in state.config.selector.skip_dirs


def test_project_file_overrides_defaults(project_dir):
    (project_dir / "linkretry.yaml").write_text(
        "config:\n"
        "  retry:\n"
        "    max_attempts: 5\n"
        "  checker:\n"
        "    args: ['--config', '.markdown-link-check.json']\n"
    )

    state = State()

    assert state.config.retry.max_attempts == 5
    # Untouched keys in the same section keep their defaults
    assert state.config.retry.delay == 5.0
    assert state.config.checker.args == [
        "--config", ".markdown-link-check.json"
    ]


def test_include_directive(project_dir):
    (project_dir / "ci.yaml").write_text(
        "config:\n  run:\n    concurrency: 4\n    timeout: 600\n"
    )
    (project_dir / "linkretry.yaml").write_text(
        "include: ci.yaml\n"
        "config:\n  run:\n    concurrency: 2\n"
    )

    state = State()

    # The including file wins over what it includes
    assert state.config.run.concurrency == 2
    assert state.config.run.timeout == 600


def test_environment_overrides(project_dir, monkeypatch):
    monkeypatch.setenv("LINKRETRY_CONFIG__RETRY__MAX_ATTEMPTS", "7")

    state = State()

    assert state.config.retry.max_attempts == 7


def test_init_arguments_win(project_dir):
    state = State(config={"retry": {"max_attempts": 1}})

    assert state.config.retry.max_attempts == 1


def test_circular_include_detected(tmp_path):
    (tmp_path / "a.yaml").write_text("include: b.yaml\n")
    (tmp_path / "b.yaml").write_text("include: a.yaml\n")

    with pytest.raises(ValueError, match="Circular include"):
        YamlWithIncludesSettingsSource(
            State, yaml_file=str(tmp_path / "a.yaml")
        )


def test_missing_include_raises(tmp_path):
    (tmp_path / "a.yaml").write_text("include: missing.yaml\n")

    with pytest.raises(FileNotFoundError):
        YamlWithIncludesSettingsSource(
            State, yaml_file=str(tmp_path / "a.yaml")
        )


def test_deep_merge():
    base = {"config": {"retry": {"delay": 1, "backoff": 2}, "x": 1}}
    override = {"config": {"retry": {"delay": 3}}}

    assert deep_merge(base, override) == {
        "config": {"retry": {"delay": 3, "backoff": 2}, "x": 1}
    }
    assert base["config"]["retry"]["delay"] == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"delay": -1},
        {"backoff": 0.5},
        {"transient_patterns": ["(unclosed"]},
    ],
)
def test_invalid_retry_config(kwargs):
    with pytest.raises(ValidationError):
        RetryConfig(**kwargs)


def test_invalid_run_config():
    with pytest.raises(ValidationError):
        RunConfig(concurrency=0)


def test_log_level_override_applies_to_console():
    config = Config(log_level="DEBUG")

    assert config.log_level == "debug"
    assert config.logger.console.level == "debug"


def test_unknown_log_level_rejected():
    with pytest.raises(ValidationError):
        Config(log_level="loud")

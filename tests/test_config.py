"""Tests for configuration system."""

import pytest
from pydantic import ValidationError

from lsr.core.config import (
    DEFAULT_BATCH_DELIMITER,
    LLMConfig,
    LSRConfig,
    SchedulerConfig,
    _deep_merge,
    load_config,
)


def test_default_config_loads():
    """Config loads without errors and has all required sections."""
    config = load_config()
    assert config.llm is not None
    assert config.scheduler is not None
    assert config.sync is not None
    assert config.llm.provider  # non-empty
    assert config.llm.target_language


def test_cli_overrides():
    """CLI overrides take precedence over defaults."""
    config = load_config(**{"scheduler.batch_size": 5, "llm.target_language": "de"})
    assert config.scheduler.batch_size == 5
    assert config.llm.target_language == "de"


def test_cli_override_none_ignored():
    """None values in CLI overrides are ignored, defaults preserved."""
    default = load_config()
    overridden = load_config(**{"scheduler.max_concurrent": None})
    assert overridden.scheduler.max_concurrent == default.scheduler.max_concurrent


def test_env_override(monkeypatch):
    monkeypatch.setenv("LSR_SCHEDULER__WINDOW_RADIUS", "3")
    assert LSRConfig().scheduler.window_radius == 3


def test_deep_merge():
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    override = {"a": {"b": 10, "e": 5}, "f": 6}
    result = _deep_merge(base, override)
    assert result == {"a": {"b": 10, "c": 2, "e": 5}, "d": 3, "f": 6}


def test_deep_merge_no_mutation():
    """Deep merge does not mutate the base dict."""
    base = {"a": {"b": 1}}
    override = {"a": {"c": 2}}
    _deep_merge(base, override)
    assert "c" not in base["a"]


def test_scheduler_defaults():
    config = SchedulerConfig()
    assert config.max_concurrent == 1
    assert config.batch_size == 3
    assert config.window_radius == 1
    assert config.cooldown_seconds == 20.0
    assert config.batch_delimiter == DEFAULT_BATCH_DELIMITER == "\n\n###PAGE_SPLIT###\n\n"


@pytest.mark.parametrize(
    "field,value", [("max_concurrent", 0), ("batch_size", 0), ("window_radius", -1)]
)
def test_scheduler_bounds(field, value):
    with pytest.raises(ValidationError):
        SchedulerConfig(**{field: value})


def test_llm_config_has_required_fields():
    config = LLMConfig()
    assert hasattr(config, "provider")
    assert hasattr(config, "api_base")
    assert config.source_language
    assert config.target_language


def test_cache_dir_under_workspace(tmp_path):
    config = LSRConfig(workspace_dir=tmp_path)
    assert config.cache_dir == tmp_path / ".cache" / "translations"

"""Configuration system for Lockstep Reader.

Layered config loading (lowest to highest priority):
1. config/default.toml (shipped with package)
2. ~/.config/lsr/config.toml (user-level)
3. ./lsr.toml (project-level)
4. Environment variables (LSR_SCHEDULER__BATCH_SIZE, etc.)
5. CLI flags
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent.parent.parent
_DEFAULT_CONFIG = _PACKAGE_ROOT / "config" / "default.toml"
_USER_CONFIG = Path.home() / ".config" / "lsr" / "config.toml"
_PROJECT_CONFIG = Path("lsr.toml")

DEFAULT_BATCH_DELIMITER = "\n\n###PAGE_SPLIT###\n\n"


class LLMConfig(BaseModel):
    provider: str = "gemini/gemini-2.0-flash"
    api_base: str | None = None  # Custom endpoint (e.g. http://localhost:11434 for Ollama)
    temperature: float = 0.3
    max_tokens: int = 8192
    source_language: str = "en"
    target_language: str = "zh"
    timeout: float = 120.0


class SchedulerConfig(BaseModel):
    max_concurrent: int = Field(default=1, ge=1)
    batch_size: int = Field(default=3, ge=1)
    window_radius: int = Field(default=1, ge=0)
    cooldown_seconds: float = 20.0
    context_chars: int = 300  # Neighbouring-page context sent with single-page requests
    batch_delimiter: str = DEFAULT_BATCH_DELIMITER


class SyncConfig(BaseModel):
    debounce_seconds: float = 0.3


class LSRConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LSR_",
        env_nested_delimiter="__",
    )

    llm: LLMConfig = LLMConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    sync: SyncConfig = SyncConfig()
    workspace_dir: Path = Path("./lsr_workspace")

    @property
    def cache_dir(self) -> Path:
        """Translation cache directory, under the shared workspace cache."""
        return self.workspace_dir / ".cache" / "translations"


def _load_toml(path: Path) -> dict:
    """Load a TOML file if it exists, return empty dict otherwise."""
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(**cli_overrides: object) -> LSRConfig:
    """Load configuration from all layers and merge.

    Args:
        **cli_overrides: Direct overrides from CLI flags. Keys can be
            dot-separated (e.g. scheduler.batch_size=5).
    """
    # Layer 1-3: TOML files
    config_data: dict = {}
    for path in (_DEFAULT_CONFIG, _USER_CONFIG, _PROJECT_CONFIG):
        layer = _load_toml(path)
        config_data = _deep_merge(config_data, layer)

    # Flatten 'general' section into top-level
    if "general" in config_data:
        general = config_data.pop("general")
        config_data = _deep_merge(config_data, general)

    # Apply CLI overrides (dot-separated keys)
    for key, value in cli_overrides.items():
        if value is None:
            continue
        parts = key.split(".")
        target = config_data
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    # Layer 4: env vars are handled by Pydantic BaseSettings
    return LSRConfig(**config_data)

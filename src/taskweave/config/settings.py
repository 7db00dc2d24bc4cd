"""
config/settings.py — taskweave Runtime Settings

One Settings object built from two sources:

    config/config.yaml   structure and defaults (agent, llm, memory, logging)
    environment / .env   provider secrets (ANTHROPIC_API_KEY, OPENAI_API_KEY)

Bad single values fail at parse time (pydantic ValidationError). Problems
that involve several fields are collected by validate_all() and reported
together in one ConfigError.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = Path("config/config.yaml")
CONFIG_ENV_VAR = "TASKWEAVE_CONFIG"

MODES = ("autonomous", "interactive", "planning")
REASONING_STRATEGIES = ("llm", "rules")
PROVIDERS = ("anthropic", "openai")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_KEY_ENV_NAMES = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}


class ConfigError(Exception):
    """Startup configuration is inconsistent. The message lists every problem."""


def _choice(label: str, value: str, allowed: tuple[str, ...]) -> str:
    if value not in allowed:
        raise ValueError(f"{label} must be one of {list(allowed)}, got '{value}'")
    return value


# ─────────────────────────────────────────────────────────────────────────────
# Sections
# ─────────────────────────────────────────────────────────────────────────────


class AgentConfig(BaseModel):
    name: str = "taskweave"
    description: str = "General purpose research agent"
    system_prompt: str = "You are a helpful agent. Use the available capabilities when they help."
    mode: str = "autonomous"
    reasoning: str = "llm"
    # null = unlimited
    max_iterations: Optional[int] = Field(default=10, ge=1)
    max_subagents: int = Field(default=5, ge=0)
    can_spawn_subagents: bool = False
    # [] = every registered capability
    capabilities: list[str] = Field(default_factory=list)

    @field_validator("mode")
    @classmethod
    def _mode(cls, v: str) -> str:
        return _choice("agent.mode", v, MODES)

    @field_validator("reasoning")
    @classmethod
    def _reasoning(cls, v: str) -> str:
        return _choice("agent.reasoning", v.strip().lower(), REASONING_STRATEGIES)


class LLMConfig(BaseModel):
    provider: str = "anthropic"
    model: str = "claude-3-haiku-20240307"
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4000, ge=1)
    timeout_seconds: float = Field(default=60.0, gt=0)
    base_url: Optional[str] = None

    @field_validator("provider")
    @classmethod
    def _provider(cls, v: str) -> str:
        return _choice("llm.provider", v.strip().lower(), PROVIDERS)


class MemoryConfig(BaseModel):
    enabled: bool = True
    persist_to_disk: bool = False
    memory_dir: str = "./data/memory"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = Field(default=100, ge=1)
    backup_count: int = Field(default=5, ge=0)
    console_output: bool = False
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def _level(cls, v: str) -> str:
        return _choice("logging.level", v.upper(), LOG_LEVELS)


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Precedence: explicit init values (YAML sections) > environment > .env > defaults.

    Secrets are read by their conventional variable names; nested sections
    can also be overridden from the environment, e.g. LLM__MODEL=gpt-4o.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")

    agent: AgentConfig = Field(default_factory=AgentConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def llm_api_key(self) -> Optional[str]:
        """Key for the configured provider, None when unset."""
        if self.llm.provider == "openai":
            return self.openai_api_key
        return self.anthropic_api_key

    @property
    def log_level(self) -> str:
        return self.logging.level

    def problems(self) -> list[str]:
        """Cross-field configuration problems, in a stable order."""
        found: list[str] = []
        if self.agent.reasoning == "llm" and not self.llm_api_key:
            found.append(
                f"llm.provider '{self.llm.provider}' needs "
                f"{_KEY_ENV_NAMES[self.llm.provider]} (set it in the environment or .env), "
                f"or set agent.reasoning to 'rules'."
            )
        if self.agent.can_spawn_subagents and self.agent.max_subagents == 0:
            found.append(
                "agent.can_spawn_subagents is true but agent.max_subagents is 0."
            )
        if self.memory.persist_to_disk and not self.memory.memory_dir.strip():
            found.append("memory.persist_to_disk is true but memory.memory_dir is empty.")
        return found

    def validate_all(self) -> None:
        """Raise ConfigError listing every problem from problems(), numbered."""
        found = self.problems()
        if not found:
            return
        listing = "\n".join(f"  {n}. {text}" for n, text in enumerate(found, start=1))
        raise ConfigError(
            f"taskweave cannot start: {len(found)} configuration problem(s) found:\n"
            f"{listing}\n"
            f"Edit config/config.yaml or the environment and try again."
        )


# ─────────────────────────────────────────────────────────────────────────────
# Loading
# ─────────────────────────────────────────────────────────────────────────────

_SECTIONS = frozenset({"agent", "llm", "memory", "logging"})

_current: Optional[Settings] = None
_current_lock = threading.Lock()


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """Argument, then $TASKWEAVE_CONFIG, then config/config.yaml."""
    if config_path is not None:
        return Path(config_path)
    from_env = os.environ.get(CONFIG_ENV_VAR)
    return Path(from_env) if from_env else DEFAULT_CONFIG_PATH


def _read_sections(path: Path) -> dict[str, Any]:
    """Known top-level sections of a YAML file. Missing or empty file → {}."""
    if not path.is_file():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return {key: value for key, value in data.items() if key in _SECTIONS}


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Build Settings from YAML + environment and make it the current instance."""
    global _current
    settings = Settings(**_read_sections(_resolve_config_path(config_path)))
    with _current_lock:
        _current = settings
    return settings


def get_settings() -> Settings:
    """The current Settings, loaded from the default location on first use."""
    global _current
    with _current_lock:
        if _current is None:
            _current = Settings(**_read_sections(_resolve_config_path(None)))
        return _current

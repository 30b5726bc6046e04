"""Application configuration."""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class InstallPolicy(StrEnum):
    """How individual dependency failures affect a setup run."""

    BEST_EFFORT = "best-effort"
    STRICT = "strict"


class Settings(BaseSettings):
    """Settings loaded from `LAUNCHPAD_*` environment variables."""

    model_config = SettingsConfigDict(env_prefix="LAUNCHPAD_", env_file=".env", extra="ignore")

    db_path: Path = Path(".launchpad/launchpad.db")
    log_level: str = "INFO"

    # Dependency installation
    install_retry_count: int = 2
    install_retry_delay_seconds: float = 2.0
    install_policy: InstallPolicy = InstallPolicy.BEST_EFFORT

    # Readiness probing after launch
    readiness_timeout_seconds: float = 15.0
    readiness_interval_seconds: float = 1.0

    # Visible terminal mode
    use_system_terminal: bool = False
    default_shell: str = "powershell"

    # Language-model backend (OpenAI-compatible chat completions)
    llm_api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    llm_api_key: str = ""
    llm_model: str = "llama-3.3-70b-versatile"
    llm_timeout_seconds: float = 15.0
    llm_probe_timeout_seconds: float = 5.0
    llm_max_tokens: int = 500
    llm_temperature: float = 0.7

    # Rule responses at or above this confidence skip the language model
    rule_confidence_threshold: float = 0.8


@lru_cache
def get_settings() -> Settings:
    return Settings()

"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `BOOKLOOM_ENV_FILE` to point to it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Bookloom settings.

    All fields are environment-configurable. Prefix is `BOOKLOOM_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOKLOOM_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    app_env: Literal["dev", "prod"] = Field(default="dev")
    log_level: str = Field(default="INFO")

    # Generation backend
    backend: Literal["openai", "gemini"] = Field(default="openai")

    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")

    gemini_api_key: str | None = Field(default=None)
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    gemini_model: str = Field(default="gemini-2.0-flash")

    # Retry policy shared by the shell call and every section call
    generation_timeout_s: float = Field(default=90.0, ge=1.0, le=300.0)
    generation_max_retries: int = Field(default=3, ge=0, le=5)
    generation_backoff_base_s: float = Field(default=5.0, ge=0.0, le=60.0)
    retry_on_server_error: bool = Field(default=False)

    # Safety gate
    safety_enabled: bool = Field(default=True)
    safety_timeout_s: float = Field(default=15.0, ge=1.0, le=120.0)

    # Shell and sections
    shell_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    section_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    shell_max_output_tokens: int = Field(default=8192, ge=256, le=65536)
    section_max_output_tokens: int = Field(default=8192, ge=256, le=65536)
    default_section_count: int = Field(default=10, ge=2, le=40)
    draft_excerpt_chars: int = Field(default=2000, ge=100, le=20000)

    # Burst orchestrator
    burst_group_size: int = Field(default=2, ge=1, le=10)
    burst_delay_s: float = Field(default=3.0, ge=0.0, le=120.0)

    # Persistence
    storage_backend: Literal["memory", "file", "redis"] = Field(default="file")
    storage_dir: Path = Field(default=Path("artifacts/documents"))
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = Field(default="bookloom")

    # Static keyword tables (allow-list, watchlist, topic patterns)
    keyword_tables_path: Path | None = Field(default=None)

    # Artifacts
    artifacts_dir: Path = Field(default=Path("artifacts"))


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("BOOKLOOM_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()

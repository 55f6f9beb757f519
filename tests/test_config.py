"""Tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from bookloom.config import Settings, load_settings


def test_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOOKLOOM_BURST_GROUP_SIZE", "3")
    monkeypatch.setenv("BOOKLOOM_STORAGE_BACKEND", "memory")

    settings = Settings(_env_file=None)

    assert settings.burst_group_size == 3
    assert settings.storage_backend == "memory"
    assert settings.generation_timeout_s == 90.0
    assert settings.generation_backoff_base_s == 5.0


def test_env_file_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("BOOKLOOM_BURST_DELAY_S=7.5\nBOOKLOOM_BACKEND=gemini\n", encoding="utf-8")
    monkeypatch.setenv("BOOKLOOM_ENV_FILE", str(env_file))
    monkeypatch.delenv("BOOKLOOM_BURST_DELAY_S", raising=False)
    monkeypatch.delenv("BOOKLOOM_BACKEND", raising=False)

    settings = load_settings()

    assert settings.burst_delay_s == 7.5
    assert settings.backend == "gemini"


def test_bounds_are_enforced() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, generation_max_retries=9)

"""Tests for the Typer CLI."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from bookloom.cli import app
from bookloom.models.shell import DocumentShell, OutlineEntry
from bookloom.storage import FileGateway

runner = CliRunner()


@pytest.fixture
def storage_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.delenv("BOOKLOOM_ENV_FILE", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BOOKLOOM_STORAGE_BACKEND", "file")
    monkeypatch.setenv("BOOKLOOM_STORAGE_DIR", str(tmp_path / "docs"))
    return tmp_path / "docs"


def test_show_prints_stored_document(storage_env: Path) -> None:
    shell = DocumentShell(
        title="Night Trains",
        display_title="Night Trains",
        subtitle="Sleeping Across Europe",
        table_of_contents=[OutlineEntry(index=1, title="Boarding"), OutlineEntry(index=2, title="Borders")],
        first_section_content="All aboard.",
    )
    gateway = FileGateway(storage_env)
    asyncio.run(gateway.upsert_shell("doc-cli", shell))
    asyncio.run(gateway.upsert_section("doc-cli", 2, "Passports, please."))

    result = runner.invoke(app, ["show", "doc-cli"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["shell"]["title"] == "Night Trains"
    assert data["sections"]["2"]["content"] == "Passports, please."


def test_show_unknown_document_exits_nonzero(storage_env: Path) -> None:
    result = runner.invoke(app, ["show", "missing-doc"])

    assert result.exit_code == 1

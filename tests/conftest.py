"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from quartopreview.preview import EditingContext
from quartopreview.services.settings import PreviewSettings
from tests.helpers import FakePreviewHost

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("QUARTOPREVIEW_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("QUARTOPREVIEW_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def host() -> FakePreviewHost:
    return FakePreviewHost()


@pytest.fixture
def settings() -> PreviewSettings:
    return PreviewSettings()


@pytest.fixture
def quarto_file(tmp_path: Path) -> Path:
    path = tmp_path / "loose" / "notes.qmd"
    path.parent.mkdir(parents=True)
    path.write_text("---\ntitle: notes\n---\n", encoding="utf-8")
    return path


@pytest.fixture
def project_file(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    (root / "chapters").mkdir(parents=True)
    (root / "_quarto.yml").write_text("project:\n  type: book\n", encoding="utf-8")
    path = root / "chapters" / "intro.qmd"
    path.write_text("# Intro\n", encoding="utf-8")
    return path


@pytest.fixture
def file_context(quarto_file: Path) -> EditingContext:
    return EditingContext(id="buf-1", path=quarto_file)

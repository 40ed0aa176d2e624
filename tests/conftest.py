from __future__ import annotations

from pathlib import Path

import pytest

from fresh.config import Settings, load_settings


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    for variable in (
        "FRESH_PATH",
        "FRESH_LOCAL",
        "FRESH_RCFILE",
        "FRESH_NO_PATH_EXPORT",
        "FRESH_NO_BIN_CHECK",
        "FRESH_NO_LOCAL_CHECK",
        "FRESH_NO_BIN_CONFLICT_CHECK",
    ):
        monkeypatch.delenv(variable, raising=False)
    return home


@pytest.fixture
def settings(fake_home: Path) -> Settings:
    (fake_home / ".dotfiles").mkdir()
    return load_settings(environ={"HOME": str(fake_home), "FRESH_NO_BIN_CHECK": "true"})

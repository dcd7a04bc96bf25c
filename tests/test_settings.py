from __future__ import annotations

import os
from pathlib import Path

import pytest

from doctrans.errors import ConfigError
from doctrans.settings import get_settings, require_include_dirs


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DOCTRANS_INCLUDE_DIRS", os.pathsep.join(["/sdk/a", " ", "/sdk/b"]))
    monkeypatch.setenv("DOCTRANS_EXCLUDE_FILES", "A.xml, B.xml,")
    monkeypatch.setenv("DOCTRANS_PARALLELISM", "4")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "  sk-ant-test \n")

    settings = get_settings()

    assert settings.include_dirs == ("/sdk/a", "/sdk/b")
    assert settings.exclude_files == ("A.xml", "B.xml")
    assert settings.parallelism == 4
    assert settings.database_url == f"sqlite:///{(tmp_path / 'data').resolve() / 'intellisense.db'}"
    assert settings.require_api_key() == "sk-ant-test"


def test_invalid_parallelism_is_a_configuration_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATA_ROOT", str(tmp_path))
    monkeypatch.setenv("DOCTRANS_PARALLELISM", "many")
    with pytest.raises(ConfigError):
        get_settings()


def test_missing_key_and_dirs_fail_early(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATA_ROOT", str(tmp_path))
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    with pytest.raises(ConfigError):
        get_settings().require_api_key()
    with pytest.raises(ConfigError):
        require_include_dirs(())
    assert require_include_dirs(["/sdk"]) == ("/sdk",)

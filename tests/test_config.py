"""Tests for the persisted user configuration."""

from __future__ import annotations

import json
import pathlib

import pytest

from getoai.config import ConfigError, ConfigStore, Settings, default_config_path
from getoai.models import InstallMethod


class TestConfigStore:
    def test_defaults_when_missing(self, isolated_config: pathlib.Path) -> None:
        settings = ConfigStore().load()

        assert settings == Settings()
        assert ConfigStore().path == isolated_config

    def test_malformed_file_falls_back_to_defaults(self, isolated_config: pathlib.Path) -> None:
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("{not json")

        assert ConfigStore().load() == Settings()

    def test_non_object_falls_back_to_defaults(self, isolated_config: pathlib.Path) -> None:
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("[1, 2]")

        assert ConfigStore().load() == Settings()

    def test_set_value_persists(self, isolated_config: pathlib.Path) -> None:
        store = ConfigStore()

        store.set_value("npm_registry", "https://registry.npmmirror.com")
        store.set_value("preferred_method.ollama", "brew")

        data = json.loads(isolated_config.read_text())
        assert data["npm_registry"] == "https://registry.npmmirror.com"
        assert data["preferred_method"] == {"ollama": "brew"}
        settings = ConfigStore().load()
        assert settings.preferred_method_for("ollama") == InstallMethod.BREW

    def test_empty_preferred_method_clears_it(self, isolated_config: pathlib.Path) -> None:
        store = ConfigStore()
        store.set_value("preferred_method.ollama", "brew")

        settings = store.set_value("preferred_method.ollama", "")

        assert settings.preferred_method == {}

    def test_invalid_method_rejected(self, isolated_config: pathlib.Path) -> None:
        with pytest.raises(ConfigError) as excinfo:
            ConfigStore().set_value("preferred_method.ollama", "snap")
        assert "brew" in excinfo.value.hint
        assert not isolated_config.exists()

    def test_unknown_key_rejected(self, isolated_config: pathlib.Path) -> None:
        with pytest.raises(ConfigError) as excinfo:
            ConfigStore().set_value("color", "blue")
        assert excinfo.value.message == "Unknown config key: color"

    def test_default_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
        monkeypatch.delenv("GETOAI_CONFIG", raising=False)
        monkeypatch.setattr(pathlib.Path, "home", classmethod(lambda cls: tmp_path))

        assert default_config_path() == tmp_path / ".config" / "getoai" / "config.json"


class TestSettings:
    def test_unknown_keys_ignored(self) -> None:
        settings = Settings.from_dict({"go_proxy": "https://goproxy.cn", "theme": "dark"})

        assert settings.go_proxy == "https://goproxy.cn"

    def test_invalid_stored_method_ignored(self) -> None:
        settings = Settings(preferred_method={"ollama": "snap"})

        assert settings.preferred_method_for("ollama") is None
        assert settings.preferred_method_for("aider") is None

    def test_apply_env(self) -> None:
        environ: dict = {}
        Settings(https_proxy="http://127.0.0.1:7890", go_proxy="https://goproxy.cn").apply_env(environ)

        assert environ == {
            "HTTPS_PROXY": "http://127.0.0.1:7890",
            "https_proxy": "http://127.0.0.1:7890",
            "GOPROXY": "https://goproxy.cn",
        }

    def test_appimage_dir(self, tmp_path: pathlib.Path) -> None:
        assert Settings().appimage_dir(tmp_path) == tmp_path / ".local" / "bin"
        assert Settings(bin_path=str(tmp_path / "apps")).appimage_dir(tmp_path) == tmp_path / "apps"

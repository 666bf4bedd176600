"""User configuration: proxies, registry mirrors and per-tool preferences.

Stored as JSON at ``~/.config/getoai/config.json`` (``GETOAI_CONFIG``
overrides the location).
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

from getoai.errors import GetoaiError
from getoai.models import InstallMethod
from getoai.probe import home_dir

logger = logging.getLogger("getoai.config")

CONFIG_ENV_VAR = "GETOAI_CONFIG"

# Settable via `getoai config set <key> <value>`
CONFIG_KEYS = {
    "http_proxy": "HTTP proxy URL",
    "https_proxy": "HTTPS proxy URL",
    "npm_registry": "npm registry mirror",
    "pypi_mirror": "PyPI index mirror",
    "go_proxy": "Go module proxy (GOPROXY)",
    "bin_path": "Directory for AppImages and standalone binaries",
    "preferred_method.<tool>": "Install method used for <tool> without prompting",
}


class ConfigError(GetoaiError):
    """Configuration could not be saved or a key/value is invalid"""


@dataclass
class Settings:
    """Values persisted in the config file"""

    http_proxy: str = ""
    https_proxy: str = ""
    npm_registry: str = ""
    pypi_mirror: str = ""
    go_proxy: str = ""
    bin_path: str = ""
    preferred_method: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.debug("Ignoring unknown config key %r", key)
                continue
            if key == "preferred_method":
                if isinstance(value, dict):
                    values[key] = {str(k): str(v) for k, v in value.items()}
            elif value is not None:
                values[key] = str(value)
        return cls(**values)

    def to_dict(self) -> dict:
        return asdict(self)

    def preferred_method_for(self, tool: str) -> Optional[InstallMethod]:
        value = self.preferred_method.get(tool)
        if not value:
            return None
        try:
            return InstallMethod(value)
        except ValueError:
            logger.warning("Ignoring invalid preferred method %r for %s", value, tool)
            return None

    def appimage_dir(self, home: Path) -> Path:
        if self.bin_path:
            return Path(self.bin_path).expanduser()
        return home / ".local" / "bin"

    def apply_env(self, environ: Optional[dict] = None):
        """Export proxy settings into the process environment"""
        env = os.environ if environ is None else environ
        if self.http_proxy:
            env["HTTP_PROXY"] = self.http_proxy
            env["http_proxy"] = self.http_proxy
        if self.https_proxy:
            env["HTTPS_PROXY"] = self.https_proxy
            env["https_proxy"] = self.https_proxy
        if self.go_proxy:
            env["GOPROXY"] = self.go_proxy


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return home_dir() / ".config" / "getoai" / "config.json"


class ConfigStore:
    """Loads and saves ``Settings`` at a fixed path"""

    def __init__(self, path: Optional[Path] = None):
        self.path = path or default_config_path()

    def load(self) -> Settings:
        if not self.path.exists():
            return Settings()
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Cannot read config %s: %s; using defaults", self.path, e)
            return Settings()
        if not isinstance(data, dict):
            logger.warning("Config %s is not a JSON object; using defaults", self.path)
            return Settings()
        return Settings.from_dict(data)

    def save(self, settings: Settings):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(settings.to_dict(), f, indent=2)
                f.write("\n")
        except OSError as e:
            raise ConfigError(f"Cannot write config {self.path}: {e}")
        logger.debug("Saved config to %s", self.path)

    def set_value(self, key: str, value: str) -> Settings:
        """Validate and persist one key, returning the updated settings"""
        settings = self.load()
        if key.startswith("preferred_method."):
            tool = key.split(".", 1)[1]
            if not tool:
                raise ConfigError("Missing tool name in preferred_method.<tool>")
            if value == "":
                settings.preferred_method.pop(tool, None)
            else:
                try:
                    InstallMethod(value)
                except ValueError:
                    valid = ", ".join(m.value for m in InstallMethod)
                    raise ConfigError(
                        f"Invalid install method: {value}", hint=f"Valid methods: {valid}"
                    )
                settings.preferred_method[tool] = value
        elif key in CONFIG_KEYS:
            setattr(settings, key, value)
        else:
            raise ConfigError(
                f"Unknown config key: {key}",
                hint=f"Valid keys: {', '.join(CONFIG_KEYS)}",
            )
        self.save(settings)
        return settings

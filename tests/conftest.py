"""Shared test fixtures for getoai tests."""

from __future__ import annotations

import pathlib
from typing import Callable, Optional, Sequence

import pytest

from getoai.catalog import Catalog
from getoai.errors import InstallError
from getoai.managers import Installer
from getoai.models import (
    Category,
    InstallConfig,
    InstallMethod,
    ToolRecord,
)
from getoai.probe import PlatformProbe


class FakePath:
    """Stand-in for ``shutil.which`` backed by a mutable set of names."""

    def __init__(self, names: Sequence[str] = ()) -> None:
        self.names = set(names)

    def add(self, name: str) -> None:
        self.names.add(name)

    def __call__(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.names else None


def make_probe(
    home: pathlib.Path, os_name: str = "linux", tools: Sequence[str] = ()
) -> PlatformProbe:
    return PlatformProbe(
        which=FakePath(tools), os_name=os_name, arch="amd64", home=home, wsl=False
    )


class FakeDriver(Installer):
    """Records install/uninstall calls instead of running anything."""

    def __init__(
        self,
        method: InstallMethod,
        available: bool = True,
        error: Optional[InstallError] = None,
        uninstall_error: Optional[InstallError] = None,
        on_install: Optional[Callable[[], None]] = None,
        on_uninstall: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__(probe=None)
        self.method = method
        self.tool = method.value
        self.requirement = f"{method.value} (fake)"
        self.available = available
        self.error = error
        self.uninstall_error = uninstall_error
        self.on_install = on_install
        self.on_uninstall = on_uninstall
        self.calls: list[tuple] = []

    def is_available(self) -> bool:
        return self.available

    def install(self, target: str, args: Sequence[str] = ()) -> None:
        self.calls.append(("install", target, tuple(args)))
        if self.error is not None:
            raise self.error
        if self.on_install is not None:
            self.on_install()

    def uninstall(self, target: str, args: Sequence[str] = ()) -> None:
        self.calls.append(("uninstall", target, tuple(args)))
        if self.uninstall_error is not None:
            raise self.uninstall_error
        if self.on_uninstall is not None:
            self.on_uninstall()


class FakeChecker:
    """Installed state kept in a set; versions looked up in a dict."""

    def __init__(
        self,
        installed: Sequence[str] = (),
        versions: Optional[dict[str, str]] = None,
        containers: Optional[dict[str, bool]] = None,
    ) -> None:
        self.installed = set(installed)
        self.versions = versions or {}
        self.containers = containers or {}

    def is_installed(self, tool: ToolRecord) -> bool:
        return tool.name in self.installed

    def get_version(self, tool: ToolRecord) -> Optional[str]:
        return self.versions.get(tool.name)

    def container_name(self, tool: ToolRecord) -> str:
        docker = tool.docker_config
        if docker is None:
            return ""
        return docker.container_name

    def container_present(self, name: str) -> bool:
        return self.containers.get(name, False)


def sample_tools() -> list[ToolRecord]:
    return [
        ToolRecord(
            name="ollama",
            description="Run large language models locally",
            category=Category.LLM,
            website="https://ollama.com",
            command="ollama",
            install_methods={
                InstallMethod.BREW: InstallConfig(package="ollama"),
                InstallMethod.SCRIPT: InstallConfig(package="https://ollama.com/install.sh"),
            },
            platform_overrides={
                "linux": {
                    InstallMethod.SCRIPT: InstallConfig(package="https://ollama.com/install.sh"),
                },
            },
        ),
        ToolRecord(
            name="cursor",
            description="AI-first code editor built on VS Code",
            category=Category.CODING,
            website="https://cursor.sh",
            command="cursor",
            app_name="Cursor.app",
            install_methods={
                InstallMethod.BREW: InstallConfig(package="cursor", args=["--cask"]),
                InstallMethod.DOWNLOAD: InstallConfig(
                    package="https://cursor.sh",
                    download_urls={"darwin": "https://downloader.cursor.sh/mac/universal"},
                ),
            },
        ),
        ToolRecord(
            name="aider",
            description="AI pair programming in your terminal",
            category=Category.CODING,
            website="https://aider.chat",
            command="aider",
            install_methods={InstallMethod.PIP: InstallConfig(package="aider-chat")},
        ),
        ToolRecord(
            name="claude-code",
            description="Agentic coding tool in your terminal",
            category=Category.CODING,
            website="https://claude.ai/code",
            command="claude",
            install_methods={
                InstallMethod.NPM: InstallConfig(package="@anthropic-ai/claude-code"),
            },
        ),
        ToolRecord(
            name="node",
            description="JavaScript runtime built on Chrome's V8 engine",
            category=Category.UTILITY,
            website="https://nodejs.org",
            command="node",
            install_methods={InstallMethod.BREW: InstallConfig(package="node")},
            platform_overrides={
                "linux": {InstallMethod.APT: InstallConfig(package="nodejs")},
            },
        ),
        ToolRecord(
            name="open-webui",
            description="User-friendly WebUI for LLMs",
            category=Category.UI,
            website="https://openwebui.com",
            command="open-webui",
            install_methods={
                InstallMethod.PIP: InstallConfig(package="open-webui"),
                InstallMethod.DOCKER: InstallConfig(
                    package="ghcr.io/open-webui/open-webui:main",
                    container_name="open-webui",
                    ports=["3000:8080"],
                    volumes=["open-webui-data:/app/backend/data"],
                ),
            },
        ),
        ToolRecord(
            name="copilot",
            description="Hosted AI pair programmer",
            category=Category.CODING,
            website="https://github.com/features/copilot",
            manual=True,
        ),
    ]


@pytest.fixture
def catalog() -> Catalog:
    return Catalog(sample_tools())


@pytest.fixture
def drivers() -> dict[InstallMethod, FakeDriver]:
    """One available fake driver per method except binary."""
    return {
        method: FakeDriver(method)
        for method in InstallMethod
        if method != InstallMethod.BINARY
    }


@pytest.fixture
def isolated_config(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> pathlib.Path:
    """Point the config file at a temporary location."""
    path = tmp_path / "config" / "config.json"
    monkeypatch.setenv("GETOAI_CONFIG", str(path))
    return path

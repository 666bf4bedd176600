"""Tests for the catalog data model."""

from __future__ import annotations

from conftest import sample_tools
from getoai.models import Category, InstallConfig, InstallMethod, ToolRecord


def _tool(name: str) -> ToolRecord:
    return next(t for t in sample_tools() if t.name == name)


class TestToolRecord:
    def test_declared_methods_append_overrides_without_duplicates(self) -> None:
        assert _tool("ollama").declared_methods("linux") == [InstallMethod.BREW, InstallMethod.SCRIPT]
        assert _tool("node").declared_methods("linux") == [InstallMethod.BREW, InstallMethod.APT]
        assert _tool("node").declared_methods("windows") == [InstallMethod.BREW]

    def test_docker_config(self) -> None:
        assert _tool("open-webui").docker_config.container_name == "open-webui"
        assert _tool("aider").docker_config is None
        assert not _tool("open-webui").is_compose_install

    def test_compose_install(self) -> None:
        tool = ToolRecord(
            name="dify",
            description="LLM app platform",
            category=Category.PLATFORM,
            website="https://dify.ai",
            install_methods={
                InstallMethod.DOCKER: InstallConfig(compose_repo_url="https://github.com/langgenius/dify.git")
            },
        )

        assert tool.is_compose_install


class TestInstallConfig:
    def test_defaults_are_independent(self) -> None:
        first = InstallConfig()
        second = InstallConfig()
        first.args.append("--cask")

        assert second.args == []
        assert first.ports == [] and first.env == {} and first.download_urls == {}

    def test_method_strings(self) -> None:
        assert str(InstallMethod.BREW) == "brew"
        assert InstallMethod("docker") is InstallMethod.DOCKER
        assert InstallMethod.PIP.description == "Pip package manager (Python)"
        assert Category.LLM.display_name == "LLM Runners"

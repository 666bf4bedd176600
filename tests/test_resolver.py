"""Tests for install method resolution."""

from __future__ import annotations

import pytest

from conftest import FakeDriver, sample_tools
from getoai.catalog import load_catalog
from getoai.managers import INSTALLERS
from getoai.models import OS_NAMES, Category, InstallConfig, InstallMethod, ToolRecord
from getoai.resolver import (
    PRIORITY,
    available_methods,
    config_for,
    is_method_available,
    preferred_method,
)


def _tool(name: str) -> ToolRecord:
    return next(t for t in sample_tools() if t.name == name)


def _drivers(*methods: InstallMethod) -> dict:
    return {method: FakeDriver(method) for method in methods}


class TestAvailableMethods:
    def test_filters_unavailable(self) -> None:
        drivers = _drivers(InstallMethod.SCRIPT)
        drivers[InstallMethod.BREW] = FakeDriver(InstallMethod.BREW, available=False)

        assert available_methods(_tool("ollama"), "darwin", drivers) == [InstallMethod.SCRIPT]

    def test_override_comes_first(self) -> None:
        drivers = _drivers(InstallMethod.BREW, InstallMethod.SCRIPT)

        assert available_methods(_tool("ollama"), "linux", drivers) == [
            InstallMethod.SCRIPT,
            InstallMethod.BREW,
        ]
        assert available_methods(_tool("ollama"), "darwin", drivers) == [
            InstallMethod.BREW,
            InstallMethod.SCRIPT,
        ]

    def test_priority_order(self) -> None:
        tool = ToolRecord(
            name="example",
            description="Example",
            category=Category.UTILITY,
            website="https://example.com",
            install_methods={
                InstallMethod.DOWNLOAD: InstallConfig(),
                InstallMethod.DOCKER: InstallConfig(),
                InstallMethod.PIP: InstallConfig(),
                InstallMethod.NPM: InstallConfig(),
                InstallMethod.BREW: InstallConfig(),
            },
        )
        drivers = _drivers(*tool.install_methods)

        assert available_methods(tool, "linux", drivers) == [
            InstallMethod.BREW,
            InstallMethod.PIP,
            InstallMethod.NPM,
            InstallMethod.DOCKER,
            InstallMethod.DOWNLOAD,
        ]

    def test_override_only_method_included(self) -> None:
        drivers = _drivers(InstallMethod.APT)

        assert available_methods(_tool("node"), "linux", drivers) == [InstallMethod.APT]
        assert available_methods(_tool("node"), "darwin", drivers) == []

    def test_binary_never_available(self) -> None:
        tool = ToolRecord(
            name="example",
            description="Example",
            category=Category.UTILITY,
            website="https://example.com",
            install_methods={InstallMethod.BINARY: InstallConfig(package="https://example.com/x")},
        )

        assert not is_method_available(InstallMethod.BINARY, _drivers(InstallMethod.BREW))
        assert available_methods(tool, "linux", _drivers(InstallMethod.BREW)) == []

    def test_manual_tool_has_none(self) -> None:
        assert available_methods(_tool("copilot"), "linux", _drivers(*InstallMethod)) == []


class TestConfigFor:
    def test_preferred_method(self) -> None:
        assert preferred_method(_tool("ollama"), "linux") == InstallMethod.SCRIPT
        assert preferred_method(_tool("ollama"), "windows") is None

    def test_override_config_wins(self) -> None:
        assert config_for(_tool("node"), InstallMethod.APT, "linux").package == "nodejs"
        assert config_for(_tool("node"), InstallMethod.BREW, "linux").package == "node"

    def test_missing_method_gives_empty_config(self) -> None:
        config = config_for(_tool("aider"), InstallMethod.GO, "linux")

        assert config.package == ""
        assert config.args == []


_AVAILABILITY = {
    "all": lambda i: True,
    "none": lambda i: False,
    "even": lambda i: i % 2 == 0,
    "odd": lambda i: i % 2 == 1,
    "first-three": lambda i: i < 3,
}


def _pattern_drivers(pattern: str) -> dict:
    available = _AVAILABILITY[pattern]
    return {
        method: FakeDriver(method, available=available(i))
        for i, method in enumerate(InstallMethod)
        if method in INSTALLERS
    }


class TestBundledCatalogResolution:
    @pytest.mark.parametrize("os_name", OS_NAMES)
    @pytest.mark.parametrize("pattern", sorted(_AVAILABILITY))
    def test_available_methods_properties(self, os_name: str, pattern: str) -> None:
        drivers = _pattern_drivers(pattern)

        for tool in load_catalog().list():
            declared = tool.declared_methods(os_name)
            methods = available_methods(tool, os_name, drivers)

            assert len(methods) == len(set(methods)), tool.name
            assert set(methods) <= set(declared), tool.name
            assert all(drivers[m].is_available() for m in methods), tool.name
            expected = {m for m in declared if m in drivers and drivers[m].is_available()}
            assert set(methods) == expected, tool.name

            preferred = preferred_method(tool, os_name)
            rest = methods
            if preferred in expected:
                assert methods[0] == preferred, tool.name
                rest = methods[1:]
            ranks = [PRIORITY[m] for m in rest]
            assert ranks == sorted(ranks), tool.name

    def test_declared_methods_have_drivers(self) -> None:
        for tool in load_catalog().list():
            for os_name in OS_NAMES:
                for method in tool.declared_methods(os_name):
                    assert method in INSTALLERS, (tool.name, os_name, method)

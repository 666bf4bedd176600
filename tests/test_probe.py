"""Tests for platform detection."""

from __future__ import annotations

import pathlib

from conftest import FakePath
from getoai.probe import PlatformProbe


def _probe(home: pathlib.Path, os_name: str, path: FakePath) -> PlatformProbe:
    return PlatformProbe(which=path, os_name=os_name, arch="arm64", home=home, wsl=False)


class TestPlatformProbe:
    def test_snapshot(self, tmp_path: pathlib.Path) -> None:
        snapshot = _probe(tmp_path, "darwin", FakePath(["brew", "git"])).detect()

        assert snapshot.is_darwin
        assert snapshot.has("brew")
        assert not snapshot.has("npm")
        assert snapshot.home_dir == tmp_path
        assert str(snapshot) == "darwin/arm64"

    def test_cached_until_refresh(self, tmp_path: pathlib.Path) -> None:
        path = FakePath()
        probe = _probe(tmp_path, "linux", path)
        first = probe.detect()

        path.add("npm")

        assert probe.detect() is first
        assert not probe.has("npm")
        assert probe.refresh() is not first
        assert probe.has("npm")

    def test_which_is_live(self, tmp_path: pathlib.Path) -> None:
        path = FakePath()
        probe = _probe(tmp_path, "linux", path)
        probe.detect()

        path.add("aider")

        assert probe.which("aider") == "/usr/bin/aider"

    def test_native_package_manager(self, tmp_path: pathlib.Path) -> None:
        assert _probe(tmp_path, "linux", FakePath(["apt-get", "brew"])).native_package_manager() == "apt"
        assert _probe(tmp_path, "linux", FakePath(["brew"])).native_package_manager() == "brew"
        assert _probe(tmp_path, "darwin", FakePath(["apt-get"])).native_package_manager() == ""
        assert _probe(tmp_path, "windows", FakePath(["scoop"])).native_package_manager() == "scoop"

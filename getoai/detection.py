"""Installed-state checks: compose stacks, containers, desktop apps, then PATH."""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from getoai.managers import (
    compose_command,
    compose_install_dir,
    container_exists,
    find_compose_file,
)
from getoai.models import ToolRecord
from getoai.probe import PlatformProbe
from getoai.process import run_captured

logger = logging.getLogger("getoai.detection")

VERSION_FLAGS = ("--version", "-v", "version")

_CONTAINER_ID = re.compile(r"^[0-9a-f]{12}")


class InstalledStateChecker:
    """Answers "is this tool installed?" and "which version?"."""

    def __init__(
        self,
        probe: PlatformProbe,
        appimage_dir: Optional[Path] = None,
        environ: Optional[dict] = None,
    ):
        self.probe = probe
        self._appimage_dir = appimage_dir
        self._environ = os.environ if environ is None else environ

    @property
    def home(self) -> Path:
        return self.probe.detect().home_dir

    def is_installed(self, tool: ToolRecord) -> bool:
        docker = tool.docker_config
        if docker is not None and docker.compose_repo_url:
            return self._compose_running(tool)
        container = self.container_name(tool)
        if container and self.container_present(container):
            return True
        if tool.app_name:
            return self._desktop_app_present(tool)
        if not tool.command:
            return False
        return self.probe.which(tool.command) is not None

    def container_name(self, tool: ToolRecord) -> str:
        """Name of the long-running container a docker install creates, if any"""
        docker = tool.docker_config
        if docker is None or docker.compose_repo_url:
            return ""
        if docker.container_name:
            return docker.container_name
        return tool.name if docker.ports else ""

    def get_version(self, tool: ToolRecord) -> Optional[str]:
        """First output line of the first version flag that succeeds"""
        if not tool.command:
            return None
        for flag in VERSION_FLAGS:
            result = run_captured([tool.command, flag])
            if result.success and result.output.strip():
                return result.output.strip().splitlines()[0].strip()
        return None

    def _compose_running(self, tool: ToolRecord) -> bool:
        install_dir = compose_install_dir(self.home, tool.name)
        if not install_dir.is_dir():
            return False
        compose_file = find_compose_file(install_dir)
        if compose_file is None:
            return False
        if not self.probe.has("docker"):
            return False
        compose = compose_command(self.probe)
        if compose is None:
            return False
        result = run_captured(
            [*compose, "-f", str(compose_file), "ps", "--status=running", "-q"],
            cwd=str(compose_file.parent),
        )
        if not result.success:
            logger.debug("compose ps failed for %s: %s", tool.name, result.output.strip())
            return False
        return any(_CONTAINER_ID.match(line.strip()) for line in result.output.splitlines())

    def container_present(self, name: str) -> bool:
        if not self.probe.has("docker"):
            return False
        return container_exists(name)

    def _desktop_app_present(self, tool: ToolRecord) -> bool:
        snapshot = self.probe.detect()
        for path in self.desktop_app_paths(tool, snapshot.os):
            if path.exists():
                logger.debug("Found %s at %s", tool.name, path)
                return True
        # Some desktop apps also ship a CLI
        return bool(tool.command) and self.probe.which(tool.command) is not None

    def desktop_app_paths(self, tool: ToolRecord, os_name: str) -> list[Path]:
        """Locations where a desktop app bundle or launcher may live"""
        app = tool.app_name
        if os_name == "darwin":
            return [Path("/Applications") / app, self.home / "Applications" / app]
        if os_name == "linux":
            desktop_file = f"{tool.name}.desktop"
            return [
                Path("/usr/share/applications") / desktop_file,
                Path("/usr/local/share/applications") / desktop_file,
                self.home / ".local" / "share" / "applications" / desktop_file,
                (self._appimage_dir or self.home / ".local" / "bin") / f"{tool.name}.appimage",
            ]
        if os_name == "windows":
            stem = app[:-4] if app.lower().endswith(".exe") else app
            paths = []
            for var in ("ProgramFiles", "ProgramFiles(x86)", "LOCALAPPDATA"):
                base = self._environ.get(var)
                if base:
                    paths.append(Path(base) / stem)
            return paths
        return []

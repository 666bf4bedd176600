"""Platform detection: OS, architecture and the external tools on PATH."""

import logging
import os
import platform
import shutil
import sys
from pathlib import Path
from typing import Callable, Optional

from getoai.models import PlatformSnapshot

logger = logging.getLogger("getoai.probe")

# Binaries whose presence gates install methods and helper steps
PROBED_TOOLS = [
    "brew",
    "apt-get",
    "yum",
    "dnf",
    "pacman",
    "choco",
    "scoop",
    "npm",
    "pip",
    "pip3",
    "docker",
    "docker-compose",
    "go",
    "curl",
    "wget",
    "git",
    "dpkg",
]

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def _current_os() -> str:
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def _current_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


def _is_wsl() -> bool:
    """Check if running under WSL"""
    if not sys.platform.startswith("linux"):
        return False
    if os.environ.get("WSL_DISTRO_NAME"):
        return True
    try:
        with open("/proc/version", "r") as f:
            return "microsoft" in f.read().lower()
    except OSError:
        return False


def home_dir() -> Path:
    """User home, or the current directory when it cannot be determined"""
    try:
        return Path.home()
    except (KeyError, RuntimeError):
        logger.warning("Cannot determine home directory, using current directory")
        return Path.cwd()


class PlatformProbe:
    """Detects the platform once and caches it until ``refresh()``.

    ``which``, ``os_name``, ``arch`` and ``home`` may be injected so tests can
    describe a fake platform without touching the real PATH.
    """

    def __init__(
        self,
        which: Callable[[str], Optional[str]] = shutil.which,
        os_name: Optional[str] = None,
        arch: Optional[str] = None,
        home: Optional[Path] = None,
        wsl: Optional[bool] = None,
    ):
        self._which = which
        self._os_name = os_name
        self._arch = arch
        self._home = home
        self._wsl = wsl
        self._snapshot: Optional[PlatformSnapshot] = None

    def detect(self) -> PlatformSnapshot:
        if self._snapshot is None:
            self._snapshot = self._probe()
        return self._snapshot

    def refresh(self) -> PlatformSnapshot:
        """Drop the cached snapshot and probe again"""
        self._snapshot = None
        return self.detect()

    def has(self, tool: str) -> bool:
        return self.detect().has(tool)

    def which(self, command: str) -> Optional[str]:
        """Live PATH lookup, for commands outside ``PROBED_TOOLS``"""
        return self._which(command)

    def _probe(self) -> PlatformSnapshot:
        os_name = self._os_name or _current_os()
        tools = {name: self._which(name) is not None for name in PROBED_TOOLS}
        snapshot = PlatformSnapshot(
            os=os_name,
            arch=self._arch or _current_arch(),
            tools=tools,
            home_dir=self._home or home_dir(),
            is_wsl=self._wsl if self._wsl is not None else (os_name == "linux" and _is_wsl()),
        )
        logger.debug(
            "Detected %s, tools on PATH: %s",
            snapshot,
            ", ".join(name for name, found in tools.items() if found) or "none",
        )
        return snapshot

    def native_package_manager(self) -> str:
        """Preferred OS package manager, or an empty string when none is present"""
        snapshot = self.detect()
        if snapshot.is_darwin:
            candidates = ["brew"]
        elif snapshot.is_linux:
            candidates = ["apt-get", "dnf", "yum", "pacman", "brew"]
        elif snapshot.is_windows:
            candidates = ["choco", "scoop"]
        else:
            candidates = []
        for name in candidates:
            if snapshot.has(name):
                return "apt" if name == "apt-get" else name
        return ""

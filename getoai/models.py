from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class InstallMethod(str, Enum):
    """Mechanism used to install a tool"""

    SCRIPT = "script"
    BREW = "brew"
    APT = "apt"
    NPM = "npm"
    PIP = "pip"
    GO = "go"
    DOCKER = "docker"
    BINARY = "binary"
    CHOCO = "choco"
    SCOOP = "scoop"
    DOWNLOAD = "download"

    def __str__(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        return METHOD_DESCRIPTIONS.get(self, self.value)


METHOD_DESCRIPTIONS = {
    InstallMethod.BREW: "Homebrew package manager (macOS/Linux)",
    InstallMethod.APT: "APT package manager (Debian/Ubuntu)",
    InstallMethod.NPM: "NPM package manager (Node.js)",
    InstallMethod.PIP: "Pip package manager (Python)",
    InstallMethod.GO: "Go install (requires Go toolchain)",
    InstallMethod.SCRIPT: "Installation script (curl/wget)",
    InstallMethod.DOCKER: "Docker container",
    InstallMethod.BINARY: "Pre-built binary",
    InstallMethod.DOWNLOAD: "Manual download and install",
    InstallMethod.CHOCO: "Chocolatey package manager (Windows)",
    InstallMethod.SCOOP: "Scoop package manager (Windows)",
}


class Category(str, Enum):
    """Catalog grouping for tools"""

    LLM = "llm"
    CODING = "coding"
    UI = "ui"
    UTILITY = "utility"
    PLATFORM = "platform"
    INFRA = "infra"

    def __str__(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return CATEGORY_TITLES[self]


CATEGORY_TITLES = {
    Category.LLM: "LLM Runners",
    Category.CODING: "Coding Assistants",
    Category.UI: "Chat Interfaces",
    Category.UTILITY: "CLI Utilities",
    Category.PLATFORM: "AI Platforms",
    Category.INFRA: "AI Infrastructure",
}

# Display order for grouped listings
CATEGORY_ORDER = [
    Category.LLM,
    Category.CODING,
    Category.UI,
    Category.UTILITY,
    Category.PLATFORM,
    Category.INFRA,
]

OS_NAMES = ("darwin", "linux", "windows")


@dataclass
class InstallConfig:
    """Per-method install parameters for a tool"""

    package: str = ""  # Package name, image name, or canonical URL
    args: list[str] = None  # Extra CLI flags (e.g., --cask)

    # Docker
    ports: list[str] = None  # "host:container" mappings
    env: dict[str, str] = None
    volumes: list[str] = None
    container_name: str = ""
    compose_repo_url: str = ""  # Takes precedence over pull/run when set

    # Download (desktop apps)
    download_urls: dict[str, str] = None  # OS name -> URL
    file_type: str = ""  # dmg, pkg, deb, appimage, exe, msi

    def __post_init__(self):
        if self.args is None:
            self.args = []
        if self.ports is None:
            self.ports = []
        if self.env is None:
            self.env = {}
        if self.volumes is None:
            self.volumes = []
        if self.download_urls is None:
            self.download_urls = {}


@dataclass
class ToolRecord:
    """Declarative description of one installable tool"""

    name: str
    description: str
    category: Category
    website: str
    command: str = ""  # Binary looked up on PATH; empty for GUI-only apps
    app_name: str = ""  # Desktop bundle name (e.g., "Cursor.app")
    install_methods: dict[InstallMethod, InstallConfig] = field(default_factory=dict)
    platform_overrides: dict[str, dict[InstallMethod, InstallConfig]] = field(
        default_factory=dict
    )
    manual: bool = False  # No install path at all (SaaS, IDE plugins)

    def declared_methods(self, os_name: str) -> list[InstallMethod]:
        """Base methods followed by the OS override methods, in declaration order."""
        methods = list(self.install_methods)
        for method in self.platform_overrides.get(os_name, {}):
            if method not in methods:
                methods.append(method)
        return methods

    @property
    def docker_config(self) -> Optional[InstallConfig]:
        return self.install_methods.get(InstallMethod.DOCKER)

    @property
    def is_compose_install(self) -> bool:
        config = self.docker_config
        return config is not None and bool(config.compose_repo_url)


@dataclass
class PlatformSnapshot:
    """Detected OS, architecture and the external tools found on PATH"""

    os: str
    arch: str
    tools: dict[str, bool]
    home_dir: Path
    is_wsl: bool = False

    def has(self, tool: str) -> bool:
        return self.tools.get(tool, False)

    @property
    def is_darwin(self) -> bool:
        return self.os == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.os == "linux"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"  # Driver succeeded but the tool is not detected yet
    NOOP = "noop"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"


@dataclass
class InstallationOutcome:
    """Result of one install/uninstall/update for a single tool"""

    tool: str
    status: OutcomeStatus
    succeeded: bool
    method_used: Optional[InstallMethod] = None
    verified_installed: bool = False
    message: str = ""


@dataclass
class CommandResult:
    """Result of a captured command execution"""

    success: bool
    output: str = ""

"""Installer drivers: one per install method, registered in ``INSTALLERS``."""

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from getoai.config import Settings
from getoai.desktop import DesktopPackageInstaller, open_in_browser, infer_file_type
from getoai.errors import (
    ExternalProcessFailure,
    InstallError,
    NetworkFailure,
    UnsupportedOperation,
)
from getoai.models import InstallConfig, InstallMethod, ToolRecord
from getoai.probe import PlatformProbe
from getoai.process import privileged, run, run_captured, run_pipe
from getoai.ui import console, print_info, print_success, print_warning

logger = logging.getLogger("getoai.managers")


# =============================================================================
# Docker helpers (shared with installed-state detection)
# =============================================================================

# Checked in order relative to the clone directory
COMPOSE_FILE_LOCATIONS = [
    "docker/docker-compose.yaml",
    "docker/docker-compose.yml",
    "docker-compose.yaml",
    "docker-compose.yml",
    "compose.yaml",
    "compose.yml",
    "deploy/docker-compose.yaml",
    "deploy/docker-compose.yml",
]

DOCKER_MIRROR_HINT = """\
Image pulls timing out? Configure a registry mirror in /etc/docker/daemon.json:
  {"registry-mirrors": ["https://docker.1ms.run", "https://docker.xuanyuan.me"]}
Then restart Docker (Linux: sudo systemctl restart docker, macOS: restart Docker Desktop)
Docker Desktop: Settings -> Docker Engine -> add registry-mirrors"""

_DAEMON_DOWN_MARKERS = (
    "Cannot connect to the Docker daemon",
    "Is the docker daemon running",
    "permission denied",
)


def compose_install_dir(home: Path, name: str) -> Path:
    return home / ".getoai" / "tools" / name


def find_compose_file(base_dir: Path) -> Optional[Path]:
    for location in COMPOSE_FILE_LOCATIONS:
        path = base_dir / location
        if path.is_file():
            return path
    return None


def compose_command(probe: PlatformProbe) -> Optional[list[str]]:
    """``docker compose`` (v2) when present, else ``docker-compose`` (v1)"""
    if probe.has("docker"):
        result = run_captured(["docker", "compose", "version"])
        if "Docker Compose" in result.output:
            return ["docker", "compose"]
    if probe.has("docker-compose"):
        return ["docker-compose"]
    return None


def container_exists(name: str) -> bool:
    """Whether a container (running or stopped) has exactly this name"""
    result = run_captured(
        ["docker", "ps", "-a", "--filter", f"name=^{name}$", "--format", "{{.Names}}"]
    )
    return result.success and name in result.output.split()


def host_port(mapping: str) -> str:
    """Host side of a ``[ip:]host:container`` port mapping"""
    parts = mapping.split(":")
    return parts[-2] if len(parts) >= 2 else parts[0]


# =============================================================================
# Installer Abstraction
# =============================================================================


class Installer(ABC):
    """Abstract base class for install-method drivers"""

    method: InstallMethod
    color: str = "white"
    tool: str = ""  # Binary that must be on PATH
    requirement: str = ""  # Shown when the method is blocked by a missing binary

    def __init__(self, probe: PlatformProbe, settings: Optional[Settings] = None):
        self.probe = probe
        self.settings = settings or Settings()

    def is_available(self) -> bool:
        """Check if the driver's tool is available"""
        return bool(self.tool) and self.probe.has(self.tool)

    def availability_problem(self) -> str:
        """Why the method cannot run here, or an empty string when it can"""
        if self.is_available():
            return ""
        return f"{self.requirement or self.tool} not found"

    @abstractmethod
    def install(self, target: str, args: Sequence[str] = ()):
        pass

    @abstractmethod
    def uninstall(self, target: str, args: Sequence[str] = ()):
        pass

    def install_tool(self, tool: ToolRecord, config: InstallConfig):
        """Install a catalog tool using its config for this method"""
        self.install(config.package or tool.name, config.args)

    def uninstall_tool(self, tool: ToolRecord, config: InstallConfig):
        self.uninstall(config.package or tool.name, config.args)

    def _run_command(self, cmd: Sequence[str], env: Optional[dict] = None, hint: str = ""):
        run(cmd, env=env, hint=hint)


class ScriptInstaller(Installer):
    """Remote install script piped into sh"""

    method = InstallMethod.SCRIPT
    color = "green"
    tool = "curl"
    requirement = "curl or wget"

    def is_available(self) -> bool:
        snapshot = self.probe.detect()
        return not snapshot.is_windows and (snapshot.has("curl") or snapshot.has("wget"))

    def install(self, target: str, args: Sequence[str] = ()):
        if self.probe.has("curl"):
            fetch = ["curl", "-fsSL", target]
        elif self.probe.has("wget"):
            fetch = ["wget", "-qO-", target]
        else:
            raise InstallError(
                "curl or wget is required to run install scripts",
                hint="Install curl and try again",
            )
        run_pipe(fetch, ["sh", "-s", "--", *args])

    def uninstall(self, target: str, args: Sequence[str] = ()):
        raise UnsupportedOperation("Tools installed by script cannot be uninstalled automatically")


class BrewInstaller(Installer):
    """Homebrew formulae and casks"""

    method = InstallMethod.BREW
    color = "bright_yellow"
    tool = "brew"
    requirement = "brew (Homebrew)"

    def install(self, target: str, args: Sequence[str] = ()):
        self._run_command(["brew", "install", target, *args])

    def uninstall(self, target: str, args: Sequence[str] = ()):
        flags = ["--cask"] if "--cask" in args else []
        self._run_command(["brew", "uninstall", *flags, target])


class AptInstaller(Installer):
    """APT packages (Debian/Ubuntu)"""

    method = InstallMethod.APT
    color = "red"
    tool = "apt-get"
    requirement = "apt-get"

    def install(self, target: str, args: Sequence[str] = ()):
        try:
            self._run_command(privileged(["apt-get", "update"]))
        except ExternalProcessFailure as e:
            print_warning(f"apt-get update failed (exit code {e.returncode}), continuing")
        self._run_command(privileged(["apt-get", "install", "-y", target, *args]))

    def uninstall(self, target: str, args: Sequence[str] = ()):
        self._run_command(privileged(["apt-get", "remove", "-y", target]))


class NpmInstaller(Installer):
    """Global npm packages"""

    method = InstallMethod.NPM
    color = "bright_magenta"
    tool = "npm"
    requirement = "npm (install Node.js)"

    def install(self, target: str, args: Sequence[str] = ()):
        cmd = ["npm", "install", "-g", target, *args]
        if self.settings.npm_registry:
            cmd += ["--registry", self.settings.npm_registry]
        self._run_command(cmd)

    def uninstall(self, target: str, args: Sequence[str] = ()):
        self._run_command(["npm", "uninstall", "-g", target])


class PipInstaller(Installer):
    """Python packages via pip3 (or pip)"""

    method = InstallMethod.PIP
    color = "yellow"
    tool = "pip3"
    requirement = "pip (install Python)"

    def is_available(self) -> bool:
        return self.probe.has("pip3") or self.probe.has("pip")

    @property
    def pip(self) -> str:
        return "pip3" if self.probe.has("pip3") else "pip"

    def install(self, target: str, args: Sequence[str] = ()):
        cmd = [self.pip, "install", target, *args]
        if self.settings.pypi_mirror:
            cmd += ["--index-url", self.settings.pypi_mirror]
        self._run_command(cmd)

    def uninstall(self, target: str, args: Sequence[str] = ()):
        self._run_command([self.pip, "uninstall", "-y", target])


class GoInstaller(Installer):
    """Go modules via `go install`"""

    method = InstallMethod.GO
    color = "cyan"
    tool = "go"
    requirement = "go (install Go)"

    def install(self, target: str, args: Sequence[str] = ()):
        if "@" not in target:
            target = f"{target}@latest"
        env = {"GOPROXY": self.settings.go_proxy} if self.settings.go_proxy else None
        self._run_command(["go", "install", target, *args], env=env)

    def uninstall(self, target: str, args: Sequence[str] = ()):
        raise UnsupportedOperation(
            "go install does not support uninstall",
            hint="Remove the binary manually from $GOPATH/bin (usually ~/go/bin)",
        )


class ChocoInstaller(Installer):
    """Chocolatey packages (Windows)"""

    method = InstallMethod.CHOCO
    color = "bright_blue"
    tool = "choco"
    requirement = "choco (Chocolatey)"

    def install(self, target: str, args: Sequence[str] = ()):
        self._run_command(["choco", "install", target, "-y", *args])

    def uninstall(self, target: str, args: Sequence[str] = ()):
        self._run_command(["choco", "uninstall", target, "-y"])


class ScoopInstaller(Installer):
    """Scoop packages (Windows)"""

    method = InstallMethod.SCOOP
    color = "bright_cyan"
    tool = "scoop"
    requirement = "scoop"

    def install(self, target: str, args: Sequence[str] = ()):
        self._run_command(["scoop", "install", target, *args])

    def uninstall(self, target: str, args: Sequence[str] = ()):
        self._run_command(["scoop", "uninstall", target])


class DockerInstaller(Installer):
    """Docker images, long-running containers and compose deployments"""

    method = InstallMethod.DOCKER
    color = "blue"
    tool = "docker"
    requirement = "docker"

    def __init__(self, probe: PlatformProbe, settings: Optional[Settings] = None):
        super().__init__(probe, settings)
        self._daemon_snapshot = None
        self._daemon_output = ""
        self._daemon_ok = False

    def is_available(self) -> bool:
        return self.probe.has("docker") and self.daemon_running()

    def daemon_running(self) -> bool:
        """Whether `docker info` succeeds (cached until the probe refreshes)"""
        snapshot = self.probe.detect()
        if self._daemon_snapshot is not snapshot:
            result = run_captured(["docker", "info"])
            self._daemon_snapshot = snapshot
            self._daemon_ok = result.success
            self._daemon_output = result.output.strip()
            logger.debug("Docker daemon running: %s", self._daemon_ok)
        return self._daemon_ok

    def availability_problem(self) -> str:
        if not self.probe.has("docker"):
            return "Docker is not installed"
        if not self.daemon_running():
            return "Docker is installed but not running"
        return ""

    def availability_hint(self) -> str:
        if not self.probe.has("docker"):
            return "Install Docker first: getoai install docker\nOr install manually from https://www.docker.com"
        if any(marker in self._daemon_output for marker in _DAEMON_DOWN_MARKERS):
            return (
                "Start Docker Desktop or the Docker service:\n"
                "  macOS/Windows: start the Docker Desktop application\n"
                "  Linux:         sudo systemctl start docker"
            )
        return self._daemon_output

    def _require_daemon(self):
        problem = self.availability_problem()
        if problem:
            raise InstallError(problem, hint=self.availability_hint())

    def install(self, target: str, args: Sequence[str] = ()):
        """Pull an image"""
        self._require_daemon()
        self._pull(target, args)

    def _pull(self, image: str, args: Sequence[str] = ()):
        try:
            self._run_command(["docker", "pull", image, *args])
        except ExternalProcessFailure as e:
            raise NetworkFailure(
                f"Failed to pull image {image} (exit code {e.returncode})",
                hint=DOCKER_MIRROR_HINT,
            ) from e

    def install_tool(self, tool: ToolRecord, config: InstallConfig):
        if config.compose_repo_url:
            self.install_compose(config.compose_repo_url, tool.name)
        elif config.ports:
            self.run_service(
                config.package,
                config.container_name or tool.name,
                config.ports,
                config.env,
                config.volumes,
            )
        else:
            self.install(config.package, config.args)

    def run_service(
        self,
        image: str,
        name: str,
        ports: Sequence[str],
        env: Optional[dict] = None,
        volumes: Sequence[str] = (),
    ):
        """Pull the image and (re)create a detached, auto-restarting container"""
        self._require_daemon()
        console.print(f"Pulling image {image}...")
        self._pull(image)

        if container_exists(name):
            print_info(f"Container '{name}' already exists, removing it")
            self._run_command(["docker", "rm", "-f", name])

        cmd = ["docker", "run", "-d", "--name", name, "--restart", "unless-stopped"]
        for port in ports:
            cmd += ["-p", port]
        for key, value in (env or {}).items():
            cmd += ["-e", f"{key}={value}"]
        for volume in volumes:
            cmd += ["-v", volume]
        cmd.append(image)

        console.print(f"Starting container '{name}'...")
        self._run_command(cmd)

        print_success(f"Container '{name}' started")
        if ports:
            console.print("\nAccess URLs:")
            for port in ports:
                console.print(f"  http://localhost:{host_port(port)}")
        console.print(
            "\nUseful commands:\n"
            f"  docker logs {name}      View logs\n"
            f"  docker stop {name}      Stop container\n"
            f"  docker start {name}     Start container\n"
            f"  docker rm -f {name}     Remove container"
        )

    def install_compose(self, repo_url: str, name: str):
        """Clone (or update) the repo and bring its compose stack up"""
        self._require_daemon()
        compose = compose_command(self.probe)
        if compose is None:
            raise InstallError(
                "Docker Compose is not installed",
                hint="Install Docker Compose first: getoai install docker-compose",
            )

        install_dir = compose_install_dir(self.probe.detect().home_dir, name)
        if install_dir.exists():
            print_info(f"{install_dir} already exists, updating and restarting")
            try:
                self._run_command(["git", "-C", str(install_dir), "pull"])
            except ExternalProcessFailure as e:
                print_warning(f"Failed to pull updates (exit code {e.returncode})")
        else:
            if not self.probe.has("git"):
                raise InstallError(
                    f"git is required to clone {repo_url}", hint="Install git and try again"
                )
            try:
                install_dir.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise InstallError(f"Cannot create {install_dir.parent}: {e}") from e
            console.print(f"Cloning {repo_url}...")
            try:
                self._run_command(["git", "clone", repo_url, str(install_dir)])
            except ExternalProcessFailure as e:
                raise NetworkFailure(
                    f"Failed to clone {repo_url} (exit code {e.returncode})"
                ) from e

        compose_file = find_compose_file(install_dir)
        if compose_file is None:
            print_warning(
                f"No docker-compose file found in {install_dir}",
                hint="Check the repository documentation for deployment instructions\n"
                f"Repository: {repo_url}",
            )
            return
        compose_dir = compose_file.parent
        self._materialize_env(compose_dir)

        console.print(f"Starting {name} with docker compose...")
        try:
            run([*compose, "-f", str(compose_file), "up", "-d"], cwd=str(compose_dir))
        except ExternalProcessFailure as e:
            raise NetworkFailure(
                f"Failed to start containers (exit code {e.returncode})",
                hint=DOCKER_MIRROR_HINT,
            ) from e

        print_success(f"{name} started", hint=f"Install location: {install_dir}")
        console.print(
            "\nUseful commands:\n"
            f"  cd {compose_dir} && docker compose ps      View containers\n"
            f"  cd {compose_dir} && docker compose logs    View logs\n"
            f"  cd {compose_dir} && docker compose down    Stop services\n"
            f"  cd {compose_dir} && docker compose up -d   Start services"
        )

    def _materialize_env(self, compose_dir: Path):
        example = compose_dir / ".env.example"
        env_file = compose_dir / ".env"
        if example.is_file() and not env_file.exists():
            console.print("Creating .env from .env.example...")
            try:
                shutil.copyfile(example, env_file)
            except OSError as e:
                print_warning(f"Failed to copy .env.example: {e}")

    def uninstall(self, target: str, args: Sequence[str] = ()):
        """Remove an image"""
        self._run_command(["docker", "rmi", target])

    def uninstall_tool(self, tool: ToolRecord, config: InstallConfig):
        if config.compose_repo_url:
            self.uninstall_compose(tool.name)
            return
        name = config.container_name or (tool.name if config.ports else "")
        if name and container_exists(name):
            self.remove_container(name)
        else:
            self.uninstall(config.package)

    def remove_container(self, name: str):
        """Stop and remove a named container"""
        run_captured(["docker", "stop", name])
        self._run_command(["docker", "rm", name])

    def uninstall_compose(self, name: str):
        """Stop the compose stack but keep the cloned directory and its data"""
        install_dir = compose_install_dir(self.probe.detect().home_dir, name)
        if not install_dir.exists():
            raise InstallError(f"{name} is not deployed ({install_dir} does not exist)")
        compose_file = find_compose_file(install_dir)
        compose = compose_command(self.probe)
        if compose_file is not None and compose is not None:
            console.print("Stopping containers...")
            run([*compose, "-f", str(compose_file), "down"], cwd=str(compose_file.parent))
        print_info(
            f"Data directory kept: {install_dir}",
            hint="To remove everything including data, delete that directory manually",
        )


class DownloadInstaller(Installer):
    """Desktop apps: direct download, or the download page in a browser"""

    method = InstallMethod.DOWNLOAD
    color = "magenta"

    def __init__(self, probe: PlatformProbe, settings: Optional[Settings] = None):
        super().__init__(probe, settings)
        appimage_dir = None
        if self.settings.bin_path:
            appimage_dir = self.settings.appimage_dir(probe.detect().home_dir)
        self.desktop = DesktopPackageInstaller(probe, appimage_dir=appimage_dir)

    def is_available(self) -> bool:
        return True

    def install(self, target: str, args: Sequence[str] = ()):
        """Open a download page"""
        open_in_browser(target)

    def install_tool(self, tool: ToolRecord, config: InstallConfig):
        os_name = self.probe.detect().os
        console.print(f"[cyan]{tool.name} is a desktop application.[/]")
        url = config.download_urls.get(os_name, "")
        if not url:
            self.install(config.package or tool.website)
            return
        file_type = infer_file_type(url, os_name, config.file_type)
        self.desktop.download_and_install(url, file_type, tool)

    def uninstall(self, target: str, args: Sequence[str] = ()):
        raise UnsupportedOperation(
            f"Cannot uninstall {target} without a catalog entry",
            hint="Uninstall it manually from your applications folder",
        )

    def uninstall_tool(self, tool: ToolRecord, config: InstallConfig):
        self.desktop.uninstall(tool)


INSTALLERS: dict[InstallMethod, type[Installer]] = {
    InstallMethod.BREW: BrewInstaller,
    InstallMethod.APT: AptInstaller,
    InstallMethod.CHOCO: ChocoInstaller,
    InstallMethod.SCOOP: ScoopInstaller,
    InstallMethod.NPM: NpmInstaller,
    InstallMethod.PIP: PipInstaller,
    InstallMethod.GO: GoInstaller,
    InstallMethod.SCRIPT: ScriptInstaller,
    InstallMethod.DOCKER: DockerInstaller,
    InstallMethod.DOWNLOAD: DownloadInstaller,
}


def build_drivers(
    probe: PlatformProbe, settings: Optional[Settings] = None
) -> dict[InstallMethod, Installer]:
    """Instantiate every registered driver (``binary`` has none)"""
    return {method: cls(probe, settings) for method, cls in INSTALLERS.items()}

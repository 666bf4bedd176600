"""Desktop application packages: download, then install DMG/PKG/DEB/AppImage/EXE/MSI."""

import logging
import os
import shutil
import tempfile
import webbrowser
from pathlib import Path
from typing import Optional

from getoai.errors import ExternalProcessFailure, InstallError, NetworkFailure
from getoai.models import ToolRecord
from getoai.probe import PlatformProbe
from getoai.process import privileged, run, run_captured
from getoai.ui import console, print_info, print_success, print_warning

logger = logging.getLogger("getoai.desktop")

# Smaller downloads are almost always an HTML error page
MIN_DOWNLOAD_SIZE = 1024

FILE_TYPES = ("dmg", "pkg", "deb", "appimage", "exe", "msi")

DEFAULT_FILE_TYPES = {
    "darwin": "dmg",
    "linux": "deb",
    "windows": "exe",
}


def file_name_from_url(url: str) -> str:
    """Last path segment of a URL without query or fragment"""
    base = url.split("#", 1)[0].split("?", 1)[0]
    return base.rstrip().rsplit("/", 1)[-1] or "download"


def detect_file_type(filename: str) -> Optional[str]:
    """Package type from a file extension (case-insensitive), or None"""
    lower = filename.lower()
    for file_type in FILE_TYPES:
        if lower.endswith("." + file_type):
            return file_type
    return None


def infer_file_type(url: str, os_name: str, hint: str = "") -> str:
    """Explicit hint, then the URL's extension, then the OS default"""
    if hint:
        return hint.lower()
    detected = detect_file_type(file_name_from_url(url))
    if detected:
        return detected
    return DEFAULT_FILE_TYPES.get(os_name, "unknown")


def parse_mount_point(output: str) -> str:
    """Mount point from ``hdiutil attach`` output (last match wins).

    Typical line: ``/dev/disk4s2  Apple_HFS  /private/tmp/dmg.XXXXXX``
    """
    mount_point = ""
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        if "Apple_HFS" in line or "Apple_APFS" in line:
            parts = line.split()
            if len(parts) >= 3:
                mount_point = parts[-1]
        if ("/tmp/" in line or "/Volumes/" in line) and "/dev/" not in line:
            for part in line.split():
                if part.startswith("/tmp/") or part.startswith("/Volumes/"):
                    mount_point = part
    return mount_point


def open_in_browser(url: str) -> bool:
    console.print(f"Please download and install from:\n  [underline]{url}[/]\n")
    opened = webbrowser.open(url)
    if opened:
        print_info("Opened download page in browser")
    else:
        print_warning("Could not open a browser, please open the URL manually")
    return opened


def remove_path(path: Path):
    """Delete a file, symlink or directory tree; symlinks are unlinked, not followed"""
    try:
        if path.is_symlink() or not path.is_dir():
            os.remove(path)
        else:
            shutil.rmtree(path)
    except OSError as e:
        raise InstallError(
            f"Cannot remove {path}: {e}",
            hint="Check the permissions of that path or remove it manually",
        ) from e


class DesktopPackageInstaller:
    """Installs downloaded desktop packages for the current OS"""

    def __init__(
        self,
        probe: PlatformProbe,
        appimage_dir: Optional[Path] = None,
        applications_dir: Path = Path("/Applications"),
    ):
        self.probe = probe
        self._appimage_dir = appimage_dir
        self.applications_dir = applications_dir

    @property
    def home(self) -> Path:
        return self.probe.detect().home_dir

    @property
    def appimage_dir(self) -> Path:
        return self._appimage_dir or self.home / ".local" / "bin"

    def appimage_path(self, tool: ToolRecord) -> Path:
        return self.appimage_dir / f"{tool.name}.appimage"

    def download_and_install(self, url: str, file_type: str, tool: ToolRecord):
        if file_type not in FILE_TYPES:
            raise InstallError(
                f"Unsupported file type: {file_type}",
                hint=f"Download manually from {url}",
            )
        try:
            workdir = Path(tempfile.mkdtemp(prefix="getoai-"))
        except OSError as e:
            raise InstallError(f"Cannot create a download directory: {e}") from e
        try:
            path = workdir / file_name_from_url(url)
            self.download(url, path)
            self.install_file(path, file_type, tool)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

    def download(self, url: str, dest: Path):
        """Fetch ``url`` to ``dest`` with a progress bar"""
        if self.probe.has("curl"):
            cmd = ["curl", "-L", "--progress-bar", "-o", str(dest), url]
        elif self.probe.has("wget"):
            cmd = ["wget", "-O", str(dest), url]
        else:
            raise NetworkFailure(
                "No downloader available", hint="Install curl or wget and try again"
            )
        console.print(f"Downloading {dest.name}...")
        try:
            run(cmd)
        except ExternalProcessFailure as e:
            raise NetworkFailure(
                f"Download failed: {url}", hint=f"Exit code {e.returncode}"
            ) from e

        if not dest.exists():
            raise NetworkFailure(f"Downloaded file not found: {dest}")
        size = dest.stat().st_size
        if size < MIN_DOWNLOAD_SIZE:
            body = dest.read_text(errors="replace").strip()
            raise NetworkFailure(
                f"Downloaded file too small ({size} bytes), possible error page",
                hint=body[:500],
            )
        print_info(f"Downloaded {dest.name} ({size / 1024 / 1024:.2f} MB)")

    def install_file(self, path: Path, file_type: str, tool: ToolRecord):
        installers = {
            "dmg": self.install_dmg,
            "pkg": self.install_pkg,
            "deb": self.install_deb,
            "appimage": self.install_appimage,
            "exe": self.install_exe,
            "msi": self.install_msi,
        }
        try:
            installer = installers[file_type]
        except KeyError:
            raise InstallError(f"Unsupported file type: {file_type}")
        installer(path, tool)

    def install_dmg(self, path: Path, tool: ToolRecord):
        console.print("Mounting disk image...")
        attach = run_captured(
            ["hdiutil", "attach", str(path), "-nobrowse", "-mountrandom", "/tmp"]
        )
        if not attach.success:
            raise InstallError("Failed to mount DMG", hint=attach.output.strip())
        mount_point = parse_mount_point(attach.output)
        if not mount_point:
            raise InstallError(
                "Failed to find mount point in hdiutil output",
                hint=attach.output.strip(),
            )
        logger.debug("Mounted %s at %s", path, mount_point)

        try:
            try:
                bundles = sorted(p for p in Path(mount_point).iterdir() if p.name.endswith(".app"))
            except OSError as e:
                raise InstallError(f"Cannot read mounted image {mount_point}: {e}") from e
            if not bundles:
                raise InstallError(f"No .app bundle found in {path.name}")
            bundle = bundles[0]
            dest = self.applications_dir / bundle.name
            if dest.exists() or dest.is_symlink():
                print_info(f"Removing existing {dest}")
                remove_path(dest)
            run(["cp", "-R", str(bundle), f"{self.applications_dir}/"])
        finally:
            console.print("Unmounting disk image...")
            detach = run_captured(["hdiutil", "detach", mount_point, "-force"])
            if not detach.success:
                logger.warning("Failed to unmount %s: %s", mount_point, detach.output.strip())
        print_success(f"{bundle.name} installed to {self.applications_dir}")

    def install_pkg(self, path: Path, tool: ToolRecord):
        console.print("Installing package (administrator privileges required)...")
        run(privileged(["installer", "-pkg", str(path), "-target", "/"]))

    def install_deb(self, path: Path, tool: ToolRecord):
        console.print("Installing DEB package (administrator privileges required)...")
        try:
            run(privileged(["dpkg", "-i", str(path)]))
        except ExternalProcessFailure as error:
            print_info("Fixing dependencies...")
            try:
                run(privileged(["apt-get", "install", "-f", "-y"]))
            except ExternalProcessFailure as fix_error:
                logger.warning("Dependency fix failed: %s", fix_error.message)
            raise error

    def install_appimage(self, path: Path, tool: ToolRecord):
        dest_dir = self.appimage_dir
        dest = self.appimage_path(tool)
        try:
            path.chmod(0o755)
            dest_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(path), str(dest))
        except OSError as e:
            raise InstallError(f"Cannot install AppImage to {dest}: {e}") from e
        print_success(
            f"AppImage installed to {dest}",
            hint=f"Make sure {dest_dir} is in your PATH",
        )

    def install_exe(self, path: Path, tool: ToolRecord):
        console.print("Launching installer...")
        run([str(path)])

    def install_msi(self, path: Path, tool: ToolRecord):
        console.print("Installing MSI package...")
        run(["msiexec", "/i", str(path)])

    def uninstall(self, tool: ToolRecord):
        """Best-effort removal of a downloaded desktop app"""
        if not tool.app_name:
            print_manual_uninstall(tool.name)
            return
        snapshot = self.probe.detect()
        if snapshot.is_darwin:
            self._uninstall_macos(tool)
        elif snapshot.is_linux:
            self._uninstall_linux(tool)
        elif snapshot.is_windows:
            console.print(
                "Please uninstall via Windows Settings:\n"
                "  Settings -> Apps -> Apps & features\n"
                f"  Find and uninstall: {tool.app_name}"
            )
        else:
            raise InstallError(f"Automatic uninstall is not supported on {snapshot.os}")

    def _uninstall_macos(self, tool: ToolRecord):
        for apps_dir in (self.applications_dir, self.home / "Applications"):
            app_path = apps_dir / tool.app_name
            if app_path.exists() or app_path.is_symlink():
                console.print(f"Removing {app_path}...")
                remove_path(app_path)
                return
        raise InstallError(
            f"{tool.app_name} not found in /Applications or ~/Applications"
        )

    def _uninstall_linux(self, tool: ToolRecord):
        if self.probe.has("dpkg"):
            try:
                run(privileged(["dpkg", "-r", tool.name]))
                return
            except ExternalProcessFailure as e:
                logger.debug("dpkg removal of %s failed: %s", tool.name, e.message)
        appimage = self.appimage_path(tool)
        if appimage.exists():
            console.print(f"Removing {appimage}...")
            remove_path(appimage)
            return
        raise InstallError(f"{tool.name} not found or unable to uninstall")


def print_manual_uninstall(name: str):
    console.print(
        f"Please uninstall {name} manually:\n"
        "  macOS:   Move to Trash from the Applications folder\n"
        "  Linux:   Use your package manager or remove it manually\n"
        "  Windows: Use Add/Remove Programs"
    )

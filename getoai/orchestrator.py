"""Install, uninstall and update flows over batches of tool names.

Each tool in a batch is handled on its own: a failure is printed with its
hint, recorded as an ``InstallationOutcome`` and the batch moves on.
"""

import logging
from typing import Callable, Iterable, Mapping, Optional, Sequence, Union

from rich.markup import escape

from getoai.catalog import Catalog
from getoai.config import Settings
from getoai.detection import InstalledStateChecker
from getoai.errors import (
    GetoaiError,
    InstallError,
    MethodUnavailable,
    NoMethodAvailable,
    SelectionCancelled,
    ToolNotFound,
    VerificationMismatch,
)
from getoai.managers import Installer
from getoai.models import (
    InstallationOutcome,
    InstallMethod,
    OutcomeStatus,
    ToolRecord,
)
from getoai.probe import PlatformProbe
from getoai.resolver import available_methods, config_for, is_method_available
from getoai.ui import (
    Spinner,
    confirm,
    console,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
    prompt_choice,
)

logger = logging.getLogger("getoai.orchestrator")

MAX_SUGGESTIONS = 5

# Methods whose missing binary can be provided by installing another catalog tool
DEPENDENCY_TOOLS = {
    InstallMethod.NPM: ("node", "Node.js"),
    InstallMethod.DOCKER: ("docker", "Docker"),
}

PATH_HINTS = {
    InstallMethod.GO: "Add ~/go/bin to your PATH:\n  export PATH=$PATH:~/go/bin",
    InstallMethod.PIP: (
        "The binary might be in ~/.local/bin\n"
        "Add it to your PATH if needed:\n"
        "  export PATH=$PATH:~/.local/bin"
    ),
    InstallMethod.NPM: "You may need to restart your shell",
}
DEFAULT_PATH_HINT = "You may need to restart your shell or add the binary to your PATH"


def path_hint(method: InstallMethod) -> str:
    return PATH_HINTS.get(method, DEFAULT_PATH_HINT)


def _ok(name: str, status: OutcomeStatus, **kwargs) -> InstallationOutcome:
    return InstallationOutcome(tool=name, status=status, succeeded=True, **kwargs)


class Orchestrator:
    """Runs the per-tool state machines against injected collaborators.

    ``choose`` and ``ask`` default to the interactive prompts in ``ui`` and are
    replaced by tests.
    """

    def __init__(
        self,
        catalog: Catalog,
        probe: PlatformProbe,
        drivers: Mapping[InstallMethod, Installer],
        checker: InstalledStateChecker,
        settings: Optional[Settings] = None,
        choose: Callable[[str, Sequence[str]], int] = prompt_choice,
        ask: Callable[..., bool] = confirm,
    ):
        self.catalog = catalog
        self.probe = probe
        self.drivers = drivers
        self.checker = checker
        self.settings = settings or Settings()
        self.choose = choose
        self.ask = ask

    @property
    def os_name(self) -> str:
        return self.probe.detect().os

    def lookup(self, name: str) -> ToolRecord:
        tool = self.catalog.get(name)
        if tool is None:
            suggestions = [t.name for t in self.catalog.search(name)[:MAX_SUGGESTIONS]]
            raise ToolNotFound(name, suggestions)
        return tool

    def available_methods(self, tool: ToolRecord) -> list[InstallMethod]:
        return available_methods(tool, self.os_name, self.drivers)

    def installed_tools(self) -> list[ToolRecord]:
        with Spinner("Checking installed tools..."):
            return [t for t in self.catalog.list() if self.checker.is_installed(t)]

    # -------------------------------------------------------------------------
    # Install
    # -------------------------------------------------------------------------

    def install(
        self,
        names: Iterable[str],
        method: Union[InstallMethod, str, None] = None,
        skip_deps: bool = False,
    ) -> list[InstallationOutcome]:
        outcomes = []
        for name in names:
            outcomes.append(self.install_one(name, method=method, skip_deps=skip_deps))
            console.print()
        return outcomes

    def install_one(
        self,
        name: str,
        method: Union[InstallMethod, str, None] = None,
        skip_deps: bool = False,
    ) -> InstallationOutcome:
        return self._guard("install", name, self._install, method, skip_deps)

    def _install(self, name: str, requested, skip_deps: bool) -> InstallationOutcome:
        tool = self.lookup(name)

        if self.checker.is_installed(tool):
            version = self.checker.get_version(tool) or "N/A"
            print_info(f"{name} is already installed (version: {escape(version)})")
            return _ok(name, OutcomeStatus.NOOP, verified_installed=True)

        methods = self.available_methods(tool)
        if not methods and not skip_deps:
            methods = self._install_dependencies(tool)
        if not methods:
            raise NoMethodAvailable(
                f"No installation method available for {name} on this system",
                hint=self._manual_install_hint(tool),
            )

        method = self._select_method(tool, methods, requested)
        driver = self.drivers[method]
        config = config_for(tool, method, self.os_name)

        print_header("Installing", f"{name} via {method}", driver.color)
        driver.install_tool(tool, config)
        return self._verify_install(tool, method)

    def _select_method(
        self, tool: ToolRecord, methods: list[InstallMethod], requested
    ) -> InstallMethod:
        if requested:
            try:
                method = InstallMethod(requested)
            except ValueError:
                method = None
            if method not in methods:
                lines = [f"Available methods: {', '.join(str(m) for m in methods)}"]
                driver = self.drivers.get(method)
                if driver is not None and not driver.is_available():
                    lines.append(driver.availability_problem())
                raise MethodUnavailable(
                    f"Method '{requested}' not available for {tool.name}",
                    hint="\n".join(lines),
                )
            return method

        preferred = self.settings.preferred_method_for(tool.name)
        if preferred in methods:
            logger.debug("Using configured method %s for %s", preferred, tool.name)
            return preferred

        if len(methods) == 1:
            return methods[0]

        options = [f"{m} - {m.description}" for m in methods]
        index = self.choose(f"Multiple installation methods available for {tool.name}", options)
        method = methods[index]
        console.print(f"\nSelected installation method: [green]{method}[/]\n")
        return method

    def _verify_install(self, tool: ToolRecord, method: InstallMethod) -> InstallationOutcome:
        with Spinner(f"Verifying {tool.name}..."):
            installed = self.checker.is_installed(tool)
            version = self.checker.get_version(tool) if installed else None

        if installed:
            if version:
                print_success(f"{tool.name} installed successfully! (version: {escape(version)})")
            else:
                # Desktop apps have no version concept
                print_success(f"{tool.name} installed successfully!")
            return _ok(
                tool.name,
                OutcomeStatus.SUCCESS,
                method_used=method,
                verified_installed=True,
                message=version or "",
            )

        if tool.app_name:
            mismatch = VerificationMismatch(
                f"{tool.name} installation completed",
                hint="Desktop app installed, you may need to restart Finder or reboot to see it",
            )
        else:
            mismatch = VerificationMismatch(
                f"{tool.name} installation completed, but command not found in PATH",
                hint=path_hint(method),
            )
        print_info(mismatch.message, mismatch.hint)
        return _ok(tool.name, OutcomeStatus.PARTIAL, method_used=method, message=mismatch.message)

    def _missing_dependencies(self, tool: ToolRecord) -> list[str]:
        """Catalog tools that would unblock one of ``tool``'s methods"""
        deps = []
        for method in tool.declared_methods(self.os_name):
            if method not in DEPENDENCY_TOOLS:
                continue
            driver = self.drivers.get(method)
            if driver is None or self.probe.has(driver.tool):
                continue
            dep_name = DEPENDENCY_TOOLS[method][0]
            dep = self.catalog.get(dep_name)
            if dep is not None and dep_name not in deps and self.available_methods(dep):
                deps.append(dep_name)
        return deps

    def _install_dependencies(self, tool: ToolRecord) -> list[InstallMethod]:
        deps = self._missing_dependencies(tool)
        if not deps:
            return []
        descriptions = {name: desc for name, desc in DEPENDENCY_TOOLS.values()}
        print_warning(f"Missing dependencies: {', '.join(descriptions[d] for d in deps)}")
        if not self.ask("Install required dependencies first?", default=True):
            return []

        for dep in deps:
            console.print()
            self.install_one(dep)
        self.probe.refresh()

        methods = self.available_methods(tool)
        if methods:
            console.print(
                f"\nDependencies installed. Continuing with {tool.name} installation...\n"
            )
        return methods

    def _manual_install_hint(self, tool: ToolRecord) -> str:
        missing = []
        for method in tool.declared_methods(self.os_name):
            driver = self.drivers.get(method)
            if driver is None or driver.is_available():
                continue
            if method == InstallMethod.DOCKER and self.probe.has("docker"):
                missing.append(driver.availability_problem())
            elif driver.requirement not in missing:
                missing.append(driver.requirement)
        lines = []
        if missing:
            lines.append(f"Missing dependencies: {', '.join(missing)}")
        lines.append(f"Visit {tool.website} for manual installation")
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Uninstall
    # -------------------------------------------------------------------------

    def uninstall(self, names: Iterable[str], force: bool = False) -> list[InstallationOutcome]:
        return [self._guard("uninstall", name, self._uninstall, force) for name in names]

    def _uninstall(self, name: str, force: bool) -> InstallationOutcome:
        tool = self.lookup(name)

        if not self.checker.is_installed(tool):
            print_info(f"{name} is not installed")
            return _ok(name, OutcomeStatus.NOOP)

        if not force and not self.ask(
            f"Are you sure you want to uninstall {name}?", default=False
        ):
            print_info("Uninstall cancelled")
            return InstallationOutcome(
                tool=name, status=OutcomeStatus.CANCELLED, succeeded=False
            )

        methods = self._uninstall_methods(tool)
        if not methods:
            raise NoMethodAvailable(
                f"No uninstall method available for {name}",
                hint=f"You may need to manually uninstall from {tool.website}",
            )

        print_header("Uninstalling", name, "red")
        used = None
        last_error = None
        for method in methods:
            try:
                self.drivers[method].uninstall_tool(tool, config_for(tool, method, self.os_name))
            except InstallError as e:
                logger.debug("Uninstall of %s via %s failed: %s", name, method, e.message)
                last_error = e
                continue
            used = method
            break
        if used is None:
            hint = "\n".join(
                line
                for line in (last_error.hint, f"You may need to manually uninstall from {tool.website}")
                if line
            )
            raise InstallError(last_error.message, hint=hint)

        with Spinner(f"Verifying {name} was removed..."):
            still_installed = self.checker.is_installed(tool)
        if still_installed:
            print_info(
                f"{name} uninstall completed, but command still found in PATH",
                hint="You may need to restart your shell",
            )
            return _ok(name, OutcomeStatus.PARTIAL, method_used=used, verified_installed=True)

        if tool.is_compose_install:
            print_success(f"{name} stopped successfully")
        else:
            print_success(f"{name} uninstalled successfully")
        return _ok(name, OutcomeStatus.SUCCESS, method_used=used)

    def _uninstall_methods(self, tool: ToolRecord) -> list[InstallMethod]:
        """Drivers to try, in order; compose stacks and live containers go to docker"""
        if InstallMethod.DOCKER in self.drivers:
            if tool.is_compose_install:
                return [InstallMethod.DOCKER]
            container = self.checker.container_name(tool)
            if container and self.checker.container_present(container):
                return [InstallMethod.DOCKER]
        return [
            m
            for m in tool.declared_methods(self.os_name)
            if is_method_available(m, self.drivers)
        ]

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update(
        self, names: Sequence[str] = (), all_tools: bool = False
    ) -> list[InstallationOutcome]:
        if all_tools or not names:
            installed = self.installed_tools()
            if not installed:
                print_info("No AI tools installed to update")
                return []
            console.print(f"Updating {len(installed)} installed tools...\n")
            names = [t.name for t in installed]
        return [self._guard("update", name, self._update) for name in names]

    def _update(self, name: str) -> InstallationOutcome:
        tool = self.lookup(name)

        if not self.checker.is_installed(tool):
            print_info(f"{name} is not installed")
            return _ok(name, OutcomeStatus.NOOP)

        methods = self.available_methods(tool)
        if not methods:
            raise NoMethodAvailable(
                f"No update method available for {name}",
                hint=self._manual_install_hint(tool),
            )

        # Reinstalling with the package manager pulls the latest release
        method = methods[0]
        driver = self.drivers[method]
        print_header("Updating", f"{name} via {method}", driver.color)
        driver.install_tool(tool, config_for(tool, method, self.os_name))

        version = self.checker.get_version(tool)
        if version:
            print_success(f"{name} updated to {escape(version)}")
        else:
            print_success(f"{name} updated")
        return _ok(
            name,
            OutcomeStatus.SUCCESS,
            method_used=method,
            verified_installed=True,
            message=version or "",
        )

    # -------------------------------------------------------------------------

    def _guard(self, action: str, name: str, func, *args) -> InstallationOutcome:
        """Run one tool's flow, turning errors into a printed failed outcome"""
        try:
            return func(name, *args)
        except ToolNotFound as e:
            print_error(escape(e.message), e.hint)
            return InstallationOutcome(
                tool=name, status=OutcomeStatus.NOT_FOUND, succeeded=False, message=e.message
            )
        except SelectionCancelled as e:
            print_error(f"Method selection failed: {escape(e.message)}")
            return InstallationOutcome(
                tool=name, status=OutcomeStatus.CANCELLED, succeeded=False, message=e.message
            )
        except InstallError as e:
            print_error(f"Failed to {action} {name}: {escape(e.message)}", e.hint)
            return self._failed(name, e)
        except GetoaiError as e:
            print_error(escape(e.message), e.hint)
            return self._failed(name, e)
        except OSError as e:
            print_error(f"Failed to {action} {name}: {escape(str(e))}")
            return self._failed(name, e)

    @staticmethod
    def _failed(name: str, error: Exception) -> InstallationOutcome:
        logger.debug("%s failed: %r", name, error)
        return InstallationOutcome(
            tool=name,
            status=OutcomeStatus.FAILED,
            succeeded=False,
            message=getattr(error, "message", str(error)),
        )

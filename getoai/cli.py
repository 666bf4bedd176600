"""
getoai - One-click installer for AI tools and CLIs

Install, update and remove AI tools across brew, apt, npm, pip, go, docker
and desktop downloads from a single catalog.
"""

import logging
import os
from dataclasses import dataclass
from typing import Annotated, Optional

from cyclopts import App, Parameter
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from getoai.catalog import Catalog, load_catalog
from getoai.config import CONFIG_KEYS, ConfigStore, Settings
from getoai.detection import InstalledStateChecker
from getoai.errors import GetoaiError, ToolNotFound
from getoai.managers import Installer, build_drivers
from getoai.models import (
    CATEGORY_ORDER,
    Category,
    InstallationOutcome,
    InstallMethod,
    OutcomeStatus,
    ToolRecord,
)
from getoai.orchestrator import Orchestrator
from getoai.probe import PlatformProbe
from getoai.ui import Spinner, console, print_error, print_success

__version__ = "0.1.0"

LOG_LEVEL_ENV_VAR = "GETOAI_LOG_LEVEL"

# Colors per install method in tables
METHOD_COLORS = {
    InstallMethod.BREW: "bright_yellow",
    InstallMethod.APT: "red",
    InstallMethod.CHOCO: "bright_blue",
    InstallMethod.SCOOP: "bright_cyan",
    InstallMethod.NPM: "bright_magenta",
    InstallMethod.PIP: "yellow",
    InstallMethod.GO: "cyan",
    InstallMethod.SCRIPT: "green",
    InstallMethod.DOCKER: "blue",
    InstallMethod.DOWNLOAD: "magenta",
}

# Create the main app with better help text
app = App(
    name="getoai",
    help="""
[bold cyan]getoai[/] - One-click installer for AI tools and CLIs

Install LLM runners, coding assistants, chat UIs and AI platforms with
[bright_yellow]brew[/], [red]apt[/], [bright_magenta]npm[/], [yellow]pip[/], [cyan]go[/], [blue]docker[/] or a [magenta]desktop download[/],
whichever works on this machine.

[dim]Examples:[/]
  getoai list                    List all available tools
  getoai install ollama          Install ollama
  getoai install claude-code     Install Claude Code CLI
  getoai info aider              Show info about aider
""",
    version=__version__,
)

config_app = App(
    name="config",
    help="""
Manage getoai configuration.

Configuration includes proxy settings, package manager mirrors
(npm, pip, go) and per-tool installation preferences.
""",
)
app.command(config_app)


@dataclass
class Context:
    """Collaborators shared by the commands of one invocation"""

    catalog: Catalog
    probe: PlatformProbe
    settings: Settings
    drivers: dict[InstallMethod, Installer]
    checker: InstalledStateChecker
    orchestrator: Orchestrator


def _build_context() -> Context:
    settings = ConfigStore().load()
    catalog = load_catalog()
    probe = PlatformProbe()
    drivers = build_drivers(probe, settings)
    appimage_dir = None
    if settings.bin_path:
        appimage_dir = settings.appimage_dir(probe.detect().home_dir)
    checker = InstalledStateChecker(probe, appimage_dir=appimage_dir)
    orchestrator = Orchestrator(catalog, probe, drivers, checker, settings)
    return Context(
        catalog=catalog,
        probe=probe,
        settings=settings,
        drivers=drivers,
        checker=checker,
        orchestrator=orchestrator,
    )


def _load_context() -> Context:
    try:
        return _build_context()
    except GetoaiError as e:
        print_error(escape(e.message), e.hint)
        raise SystemExit(1)


def _exit_for(outcomes: list[InstallationOutcome]):
    """Exit 2 for unknown tool names, 1 for any other failure"""
    if any(o.status == OutcomeStatus.NOT_FOUND for o in outcomes):
        raise SystemExit(2)
    if any(o.status == OutcomeStatus.FAILED for o in outcomes):
        raise SystemExit(1)


def _format_methods(methods: list[InstallMethod]) -> str:
    if not methods:
        return "[yellow]-[/]"
    return ",".join(f"[{METHOD_COLORS.get(m, 'white')}]{m}[/]" for m in methods)


def _status_mark(installed: bool) -> str:
    return "[green]✓[/]" if installed else "[red]✗[/]"


def _tool_table(
    tools: list[ToolRecord],
    ctx: Context,
    installed: dict[str, bool],
    show_category: bool = True,
    title: Optional[str] = None,
) -> Table:
    table = Table(
        title=title,
        show_header=True,
        title_justify="left",
    )
    table.add_column("Name", style="cyan", no_wrap=True)
    if show_category:
        table.add_column("Category", width=9)
    table.add_column("Status", justify="center", width=6)
    table.add_column("Install via", no_wrap=True)
    table.add_column("Description", overflow="ellipsis", no_wrap=True)

    for tool in tools:
        row = [Text(tool.name)]
        if show_category:
            row.append(str(tool.category))
        row.append(_status_mark(installed[tool.name]))
        row.append(_format_methods(ctx.orchestrator.available_methods(tool)))
        row.append(Text(tool.description))
        table.add_row(*row)
    return table


def _installed_map(ctx: Context, tools: list[ToolRecord]) -> dict[str, bool]:
    with Spinner("Checking installed tools..."):
        return {t.name: ctx.checker.is_installed(t) for t in tools}


@app.command(name="list")
def list_tools(
    *,
    category: Annotated[
        Optional[str],
        Parameter(
            name=["--category", "-c"],
            help="Filter by category (llm, coding, ui, utility, platform, infra)",
        ),
    ] = None,
    group: Annotated[
        bool,
        Parameter(
            name=["--group", "-g"],
            help="Group tools by category",
        ),
    ] = False,
):
    """
    List all available AI tools.

    Shows whether each tool is installed and which installation methods
    work on this machine.

    [dim]Examples:[/]
      getoai list
      getoai list --group
      getoai list -c coding
    """
    if category is not None:
        try:
            Category(category)
        except ValueError:
            valid = ", ".join(c.value for c in CATEGORY_ORDER)
            console.print(f"[red]Error:[/] Unknown category '{escape(category)}'")
            console.print(f"[dim]Valid categories: {valid}[/]")
            raise SystemExit(1)

    ctx = _load_context()
    tools = ctx.catalog.by_category(category) if category else ctx.catalog.list()
    if not tools:
        console.print("No tools found.")
        return

    installed_by_name = _installed_map(ctx, tools)
    console.print()
    if group and not category:
        for cat in CATEGORY_ORDER:
            cat_tools = [t for t in tools if t.category == cat]
            if not cat_tools:
                continue
            title = f"[bold cyan]{cat.display_name}[/] ({len(cat_tools)})"
            console.print(_tool_table(cat_tools, ctx, installed_by_name, show_category=False, title=title))
            console.print()
    else:
        console.print(_tool_table(tools, ctx, installed_by_name))

    console.print(f"\n[bold]Total: {ctx.catalog.count()} tools available[/]\n")
    console.print(
        "Commands:\n"
        "  getoai install <tool>   Install a tool\n"
        "  getoai info <tool>      Show tool details\n"
        "  getoai search <keyword> Search for tools\n"
        "  getoai list -g          Group by category",
        highlight=False,
    )


@app.command
def search(
    query: Annotated[str, Parameter(help="Keyword to match against tool names and descriptions")],
):
    """
    Search for AI tools by name or description.

    [dim]Examples:[/]
      getoai search llm
      getoai search coding
      getoai search chat
    """
    ctx = _load_context()
    results = ctx.catalog.search(query)
    if not results:
        console.print(f"No tools found matching '{escape(query)}'")
        console.print("[dim]Use 'getoai list' to see all available tools[/]")
        return

    installed_by_name = _installed_map(ctx, results)
    console.print(f"\nFound {len(results)} tool(s) matching '{escape(query)}':\n")
    console.print(_tool_table(results, ctx, installed_by_name))


@app.command
def info(
    name: Annotated[str, Parameter(help="Tool name")],
):
    """
    Show detailed information about a tool.

    [dim]Examples:[/]
      getoai info ollama
    """
    ctx = _load_context()
    try:
        tool = ctx.orchestrator.lookup(name)
    except ToolNotFound as e:
        print_error(escape(e.message), e.hint)
        raise SystemExit(2)

    with Spinner(f"Checking {tool.name}..."):
        is_installed = ctx.checker.is_installed(tool)
        version = ctx.checker.get_version(tool) if is_installed else None
    methods = ctx.orchestrator.available_methods(tool)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="cyan", width=12)
    table.add_column("Value", style="white")

    table.add_row("Name", tool.name)
    table.add_row("Description", Text(tool.description))
    table.add_row("Category", f"{tool.category} [dim]({tool.category.display_name})[/]")
    table.add_row("Website", f"[link={tool.website}]{tool.website}[/link]")
    if tool.command:
        table.add_row("Command", tool.command)
    if tool.app_name:
        table.add_row("App", Text(tool.app_name))
    if is_installed:
        table.add_row("Status", "[green]Installed[/]")
        table.add_row("Version", Text(version or "N/A"))
    else:
        table.add_row("Status", "[red]Not installed[/]")
    if methods:
        table.add_row("Install via", _format_methods(methods))
    elif tool.manual:
        table.add_row("Install via", "[yellow]manual[/] [dim](see website)[/]")
    else:
        table.add_row("Install via", "[yellow]none available on this system[/]")

    console.print()
    console.print(table)
    console.print()


@app.command
def install(
    names: Annotated[list[str], Parameter(help="Tools to install")],
    *,
    method: Annotated[
        Optional[str],
        Parameter(
            name=["--method", "-m"],
            help="Installation method (brew, apt, npm, pip, go, script, docker, download, ...)",
        ),
    ] = None,
    skip_deps: Annotated[
        bool,
        Parameter(
            name=["--skip-deps"],
            help="Do not offer to install missing dependencies such as Node.js",
        ),
    ] = False,
):
    """
    Install one or more AI tools.

    When multiple installation methods are available, you'll be prompted
    to choose your preferred method. Use --method to skip the prompt.

    [dim]Examples:[/]
      getoai install ollama
      getoai install claude-code aider
      getoai install ollama --method brew
      getoai install open-webui --method docker
    """
    ctx = _load_context()
    ctx.settings.apply_env()
    outcomes = ctx.orchestrator.install(names, method=method, skip_deps=skip_deps)
    _exit_for(outcomes)


@app.command
def uninstall(
    names: Annotated[list[str], Parameter(help="Tools to uninstall")],
    *,
    force: Annotated[
        bool,
        Parameter(
            name=["--force", "-f"],
            help="Skip confirmation prompt",
        ),
    ] = False,
):
    """
    Uninstall one or more AI tools.

    Tools deployed with docker compose are stopped; their cloned
    directory and data are kept.

    [dim]Examples:[/]
      getoai uninstall chatgpt-cli
      getoai uninstall aider llm
      getoai uninstall ollama --force
    """
    ctx = _load_context()
    outcomes = ctx.orchestrator.uninstall(names, force=force)
    _exit_for(outcomes)


@app.command
def update(
    names: Annotated[
        Optional[list[str]],
        Parameter(help="Tools to update (updates all installed tools if not specified)"),
    ] = None,
    *,
    all_tools: Annotated[
        bool,
        Parameter(
            name=["--all", "-a"],
            help="Update all installed tools",
        ),
    ] = False,
):
    """
    Update installed AI tools.

    Reinstalls each tool with its first available method, which pulls
    the latest release.

    [dim]Examples:[/]
      getoai update ollama
      getoai update              # Update all installed tools
      getoai update aider llm
    """
    ctx = _load_context()
    ctx.settings.apply_env()
    outcomes = ctx.orchestrator.update(names or [], all_tools=all_tools)
    _exit_for(outcomes)


@app.command
def installed():
    """
    List installed AI tools.

    [dim]Examples:[/]
      getoai installed
    """
    ctx = _load_context()
    tools = ctx.orchestrator.installed_tools()
    if not tools:
        console.print("No AI tools installed yet.")
        console.print("[dim]Use 'getoai list' to see available tools[/]")
        console.print("[dim]Use 'getoai install <tool>' to install one[/]")
        return

    table = Table(show_header=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Category", width=9)
    table.add_column("Version")
    with Spinner("Reading versions..."):
        rows = [(t, ctx.checker.get_version(t)) for t in tools]
    for tool, version in rows:
        table.add_row(tool.name, str(tool.category), Text(version or "N/A"))

    console.print()
    console.print(table)


# =============================================================================
# Config commands
# =============================================================================


@config_app.command
def show():
    """
    Show current configuration.

    [dim]Examples:[/]
      getoai config show
    """
    store = ConfigStore()
    settings = store.load()

    console.print("\n[bold]Current Configuration[/]")
    console.print(f"[dim]File:[/] {store.path}\n", highlight=False)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    for key in CONFIG_KEYS:
        value = getattr(settings, key, None)
        if isinstance(value, str) and value:
            table.add_row(key, Text(value))
    for tool, method in sorted(settings.preferred_method.items()):
        table.add_row(f"preferred_method.{tool}", Text(method))

    if table.row_count:
        console.print(table)
    else:
        console.print("[dim](No custom configuration set)[/]")
    console.print()


@config_app.command(name="set")
def set_value(
    key: Annotated[str, Parameter(help="Configuration key")],
    value: Annotated[str, Parameter(help="New value (empty string clears it)")],
):
    """
    Set a configuration value.

    Available keys:
      http_proxy               HTTP proxy URL
      https_proxy              HTTPS proxy URL
      npm_registry             npm registry URL (e.g., https://registry.npmmirror.com)
      pypi_mirror              PyPI mirror URL (e.g., https://pypi.tuna.tsinghua.edu.cn/simple)
      go_proxy                 Go module proxy (e.g., https://goproxy.cn,direct)
      bin_path                 Directory for AppImages
      preferred_method.<tool>  Method used for <tool> without prompting

    [dim]Examples:[/]
      getoai config set npm_registry https://registry.npmmirror.com
      getoai config set go_proxy https://goproxy.cn,direct
      getoai config set preferred_method.ollama brew
    """
    store = ConfigStore()
    try:
        store.set_value(key, value)
    except GetoaiError as e:
        print_error(escape(e.message), e.hint)
        raise SystemExit(1)
    print_success(f"Set {escape(key)} = {escape(value)}")


@config_app.command(name="path")
def show_path():
    """
    Show configuration file path.

    [dim]Examples:[/]
      getoai config path
    """
    console.print(str(ConfigStore().path), highlight=False, soft_wrap=True)


def _configure_logging():
    level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def main():
    """Entry point for the CLI"""
    _configure_logging()
    app()


if __name__ == "__main__":
    main()

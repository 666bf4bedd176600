"""Terminal output helpers shared by the CLI, orchestrator and drivers."""

from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

from getoai.errors import SelectionCancelled

# Initialize Rich console for colored output
console = Console()


def print_success(message: str = "Done", hint: str = ""):
    """Print a success message"""
    console.print(f"[green]✓[/] {message}")
    _print_hint(hint)


def print_error(message: str, hint: str = ""):
    """Print an error message"""
    console.print(f"[red]✗[/] {message}")
    _print_hint(hint)


def print_info(message: str, hint: str = ""):
    console.print(f"[blue]ℹ[/] {message}")
    _print_hint(hint)


def print_warning(message: str, hint: str = ""):
    console.print(f"[yellow]![/] {message}")
    _print_hint(hint)


def _print_hint(hint: str):
    for line in hint.splitlines():
        console.print(f"  [dim]{escape(line)}[/]", highlight=False)


def print_header(action: str, name: str, color: str = "cyan"):
    """Print a styled header for an action"""
    console.print(f"\n[bold {color}]▶ {action}[/] [{color}]{name}[/]")


def print_command(cmd: Sequence[str]):
    """Echo an external command before it runs"""
    console.print(f"  [dim]$[/] {escape(' '.join(cmd))}", highlight=False)


class Spinner:
    """Animated status line for silent phases.

    Wraps ``rich`` status, which repaints from a background thread. ``stop()``
    joins that thread before returning, so the final status line printed
    afterwards never interleaves with a repaint.
    """

    def __init__(self, message: str, spinner: str = "dots"):
        self._status = console.status(message, spinner=spinner)
        self._running = False

    def start(self):
        if not self._running:
            self._status.start()
            self._running = True

    def update(self, message: str):
        self._status.update(message)

    def stop(self):
        if self._running:
            self._status.stop()
            self._running = False

    def success(self, message: str):
        self.stop()
        print_success(message)

    def error(self, message: str):
        self.stop()
        print_error(message)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False


def prompt_choice(title: str, options: Sequence[str], default: int = 1) -> int:
    """Show a numbered menu and return the zero-based index of the choice.

    Raises ``SelectionCancelled`` on invalid input, EOF or Ctrl-C.
    """
    console.print(f"\n[bold]{title}[/]")
    for i, option in enumerate(options, 1):
        console.print(f"  [cyan]{i}[/]. {option}")
    try:
        answer = Prompt.ask(
            f"Select [1-{len(options)}]", console=console, default=str(default)
        )
    except (EOFError, KeyboardInterrupt):
        console.print()
        raise SelectionCancelled("Selection cancelled")
    answer = answer.strip()
    if not answer.isdigit() or not 1 <= int(answer) <= len(options):
        raise SelectionCancelled(f"Invalid selection: {answer or '(empty)'}")
    return int(answer) - 1


def confirm(question: str, default: bool = False) -> bool:
    """Yes/no question; EOF or Ctrl-C counts as the default answer."""
    try:
        return Confirm.ask(question, console=console, default=default)
    except (EOFError, KeyboardInterrupt):
        console.print()
        return default


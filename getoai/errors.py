"""Error taxonomy for catalog lookups, method resolution and installer drivers.

Every error carries an optional remediation ``hint`` that the CLI prints on
a dim line under the error message.
"""

from typing import Optional, Sequence


class GetoaiError(Exception):
    """Base class for all user-facing failures"""

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.message = message
        self.hint = hint


class ToolNotFound(GetoaiError):
    """Requested tool name is not in the catalog (usage error)"""

    def __init__(self, name: str, suggestions: Sequence[str] = ()):
        lines = []
        if suggestions:
            lines.append(f"Did you mean: {', '.join(suggestions)}?")
        lines.append("Use 'getoai list' to see all available tools")
        lines.append("Use 'getoai search <keyword>' to search for tools")
        super().__init__(f"Unknown tool: {name}", hint="\n".join(lines))
        self.name = name
        self.suggestions = list(suggestions)


class NoMethodAvailable(GetoaiError):
    """No declared install method can run on this platform"""


class MethodUnavailable(GetoaiError):
    """A specific method was requested but cannot run here"""


class SelectionCancelled(GetoaiError):
    """Interactive method selection was cancelled or invalid"""


class CatalogError(GetoaiError):
    """Catalog data could not be parsed"""


class InstallError(GetoaiError):
    """A driver could not complete the requested action"""


class ExternalProcessFailure(InstallError):
    """An external command exited with a non-zero status"""

    def __init__(
        self,
        cmd: Sequence[str],
        returncode: int,
        output: str = "",
        hint: str = "",
        message: Optional[str] = None,
    ):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        if message is None:
            message = f"Command failed with exit code {returncode}: {' '.join(self.cmd)}"
        if output.strip():
            message = f"{message}\n{output.strip()}"
        super().__init__(message, hint=hint)


class UnsupportedOperation(InstallError):
    """The driver does not support this action (e.g., uninstall via script)"""


class NetworkFailure(InstallError):
    """A download, clone or image pull failed"""


class VerificationMismatch(GetoaiError):
    """Driver reported success but the tool is not detected afterwards"""

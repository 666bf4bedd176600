from getoai.catalog import Catalog, load_catalog
from getoai.cli import __version__
from getoai.managers import INSTALLERS, build_drivers
from getoai.models import (
    CommandResult,
    InstallationOutcome,
    InstallConfig,
    InstallMethod,
    PlatformSnapshot,
    ToolRecord,
)
from getoai.orchestrator import Orchestrator
from getoai.probe import PlatformProbe

__all__ = [
    "__version__",
    "Catalog",
    "CommandResult",
    "INSTALLERS",
    "InstallConfig",
    "InstallMethod",
    "InstallationOutcome",
    "Orchestrator",
    "PlatformProbe",
    "PlatformSnapshot",
    "ToolRecord",
    "build_drivers",
    "load_catalog",
]

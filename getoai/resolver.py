"""Method resolution: which install methods can run here, best first."""

import logging
from typing import Mapping, Optional

from getoai.managers import Installer
from getoai.models import InstallConfig, InstallMethod, ToolRecord

logger = logging.getLogger("getoai.resolver")

# Lower sorts first; methods missing here sort last
PRIORITY = {
    InstallMethod.BREW: 1,
    InstallMethod.APT: 1,
    InstallMethod.CHOCO: 1,
    InstallMethod.SCOOP: 2,
    InstallMethod.NPM: 3,
    InstallMethod.PIP: 3,
    InstallMethod.GO: 4,
    InstallMethod.SCRIPT: 5,
    InstallMethod.DOCKER: 6,
    InstallMethod.BINARY: 7,
    InstallMethod.DOWNLOAD: 8,
}

_UNRANKED = 99


def preferred_method(tool: ToolRecord, os_name: str) -> Optional[InstallMethod]:
    """First method declared in the tool's override block for ``os_name``"""
    overrides = tool.platform_overrides.get(os_name) or {}
    return next(iter(overrides), None)


def is_method_available(
    method: InstallMethod, drivers: Mapping[InstallMethod, Installer]
) -> bool:
    driver = drivers.get(method)
    return driver is not None and driver.is_available()


def available_methods(
    tool: ToolRecord,
    os_name: str,
    drivers: Mapping[InstallMethod, Installer],
) -> list[InstallMethod]:
    """Declared methods whose driver can run here, preferred method first.

    The rest follow ``PRIORITY``; ties keep declaration order.
    """
    methods = [
        m for m in tool.declared_methods(os_name) if is_method_available(m, drivers)
    ]
    preferred = preferred_method(tool, os_name)
    methods.sort(key=lambda m: (m != preferred, PRIORITY.get(m, _UNRANKED)))
    logger.debug("Available methods for %s on %s: %s", tool.name, os_name, methods)
    return methods


def config_for(tool: ToolRecord, method: InstallMethod, os_name: str) -> InstallConfig:
    """Override config for ``os_name`` when present, else the base config"""
    override = tool.platform_overrides.get(os_name) or {}
    if method in override:
        return override[method]
    return tool.install_methods.get(method) or InstallConfig()

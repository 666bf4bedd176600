"""Tool catalog: the bundled ``catalog.yaml`` parsed into ``ToolRecord`` objects."""

import logging
from importlib import resources
from pathlib import Path
from typing import Iterable, Optional, Union

import yaml

from getoai.errors import CatalogError
from getoai.models import (
    CATEGORY_ORDER,
    OS_NAMES,
    Category,
    InstallConfig,
    InstallMethod,
    ToolRecord,
)

logger = logging.getLogger("getoai.catalog")

_CONFIG_KEYS = {
    "package",
    "args",
    "ports",
    "env",
    "volumes",
    "container_name",
    "compose_repo_url",
    "download_urls",
    "file_type",
}


class Catalog:
    """In-memory registry of tools keyed by name"""

    def __init__(self, tools: Iterable[ToolRecord]):
        self._tools: dict[str, ToolRecord] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise CatalogError(f"Duplicate tool in catalog: {tool.name}")
            self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[ToolRecord]:
        return self._tools.get(name)

    def by_category(self, category: Union[Category, str]) -> list[ToolRecord]:
        category = Category(category)
        return [t for t in self.list() if t.category == category]

    def search(self, query: str) -> list[ToolRecord]:
        """Case-insensitive substring match over name and description"""
        query = query.lower()
        return [
            t
            for t in self.list()
            if query in t.name.lower() or query in t.description.lower()
        ]

    def categories(self) -> list[Category]:
        return list(CATEGORY_ORDER)

    def count(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    # Keep last: shadows the builtin `list` for the rest of the class body
    def list(self) -> list[ToolRecord]:
        """All tools sorted by name"""
        return sorted(self._tools.values(), key=lambda t: t.name)


def _parse_method(value: str, tool: str) -> InstallMethod:
    try:
        return InstallMethod(value)
    except ValueError:
        raise CatalogError(f"Tool '{tool}' declares unknown install method '{value}'")


def _parse_config(data: Optional[dict], tool: str) -> InstallConfig:
    if data is None:
        return InstallConfig()
    if not isinstance(data, dict):
        raise CatalogError(f"Tool '{tool}' has an invalid method config: {data!r}")
    unknown = set(data) - _CONFIG_KEYS
    if unknown:
        raise CatalogError(
            f"Tool '{tool}' has unknown config keys: {', '.join(sorted(unknown))}"
        )
    download_urls = data.get("download_urls") or {}
    for os_name in download_urls:
        if os_name not in OS_NAMES:
            raise CatalogError(f"Tool '{tool}' has a download URL for unknown OS '{os_name}'")
    return InstallConfig(
        package=str(data.get("package", "")),
        args=[str(a) for a in data.get("args") or []],
        ports=[str(p) for p in data.get("ports") or []],
        env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        volumes=[str(v) for v in data.get("volumes") or []],
        container_name=str(data.get("container_name", "")),
        compose_repo_url=str(data.get("compose_repo_url", "")),
        download_urls={str(k): str(v) for k, v in download_urls.items()},
        file_type=str(data.get("file_type", "")).lower(),
    )


def _parse_methods(data: Optional[dict], tool: str) -> dict[InstallMethod, InstallConfig]:
    methods = {}
    for key, value in (data or {}).items():
        methods[_parse_method(key, tool)] = _parse_config(value, tool)
    return methods


def _parse_tool(name: str, data: dict) -> ToolRecord:
    if not isinstance(data, dict):
        raise CatalogError(f"Catalog entry '{name}' must be a mapping")
    for key in ("description", "category", "website"):
        if not data.get(key):
            raise CatalogError(f"Tool '{name}' is missing '{key}'")
    try:
        category = Category(data["category"])
    except ValueError:
        raise CatalogError(f"Tool '{name}' has unknown category '{data['category']}'")

    overrides = {}
    for os_name, methods in (data.get("overrides") or {}).items():
        if os_name not in OS_NAMES:
            raise CatalogError(f"Tool '{name}' has overrides for unknown OS '{os_name}'")
        overrides[os_name] = _parse_methods(methods, name)

    record = ToolRecord(
        name=name,
        description=str(data["description"]),
        category=category,
        website=str(data["website"]),
        command=str(data.get("command") or ""),
        app_name=str(data.get("app_name") or ""),
        install_methods=_parse_methods(data.get("install"), name),
        platform_overrides=overrides,
        manual=bool(data.get("manual", False)),
    )
    has_methods = record.install_methods or any(overrides.values())
    if not has_methods and not record.manual:
        raise CatalogError(
            f"Tool '{name}' has no install methods",
            hint="Declare at least one method or mark it 'manual: true'",
        )
    return record


def parse_catalog(data: dict) -> Catalog:
    """Build a catalog from already-parsed YAML data"""
    if not isinstance(data, dict) or not isinstance(data.get("tools"), dict):
        raise CatalogError("Catalog must contain a 'tools' mapping")
    return Catalog(_parse_tool(str(name), entry) for name, entry in data["tools"].items())


def load_catalog(path: Optional[Path] = None) -> Catalog:
    """Load the bundled catalog.yaml, or an explicit catalog file"""
    try:
        if path is None:
            catalog_file = resources.files("getoai").joinpath("catalog.yaml")
            with resources.as_file(catalog_file) as bundled:
                with open(bundled) as f:
                    data = yaml.safe_load(f)
        else:
            with open(path) as f:
                data = yaml.safe_load(f)
    except OSError as e:
        raise CatalogError(f"Cannot read catalog: {e}")
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid catalog YAML: {e}")
    catalog = parse_catalog(data)
    logger.debug("Loaded %d tools from catalog", catalog.count())
    return catalog

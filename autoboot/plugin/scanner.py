"""
Package Scanner.

This module walks the package manager's namespace map and finds the packages
that contribute plugins.

Key features:
- Namespace map loading (``<vendor>/packages/namespaces.json``)
- Allow-list of standard roots, widened by extra search roots
- Plugin module + manifest detection at depth 0 of each package
"""

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

from autoboot.plugin.manifest import MANIFEST_FILENAME, Manifest, parse_manifest

logger = structlog.get_logger(__name__)

MANAGER_DIRNAME = "packages"
NAMESPACE_MAP_FILENAME = "namespaces.json"
PLUGIN_SUFFIX = "_plugin.py"


class ScannerError(Exception):
    """Base exception for scanner-related errors."""

    pass


class ProjectNotManagedError(ScannerError):
    """Raised when the project has no package-manager root or namespace map."""

    pass


@dataclass(frozen=True)
class DiscoveredPackage:
    """A package directory carrying a manifest."""

    path: Path
    manifest: Manifest


def load_namespace_map(vendor_dir: Path) -> dict[str, list[Path]]:
    """
    Read the package manager's namespace map.

    Args:
        vendor_dir: Vendor directory holding ``packages/namespaces.json``

    Returns:
        Mapping of dotted namespace -> import roots

    Raises:
        ProjectNotManagedError: If the manager folder or the map is missing or invalid
    """
    manager_dir = Path(vendor_dir) / MANAGER_DIRNAME
    if not manager_dir.is_dir():
        raise ProjectNotManagedError(
            f'"{MANAGER_DIRNAME}" folder has not been found in {vendor_dir}. '
            f"Be sure to use autoboot on a project managed by a package manager"
        )

    map_path = manager_dir / NAMESPACE_MAP_FILENAME
    try:
        with open(map_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ProjectNotManagedError(f"Namespace map not found: {map_path}") from e
    except (json.JSONDecodeError, OSError) as e:
        raise ProjectNotManagedError(f"Failed to read namespace map {map_path}: {e}") from e

    if not isinstance(data, dict):
        raise ProjectNotManagedError(f"Namespace map {map_path} must be a JSON object")

    namespaces: dict[str, list[Path]] = {}
    for namespace, roots in data.items():
        if isinstance(roots, str):
            roots = [roots]
        if not isinstance(roots, list):
            logger.warning("namespace_entry_ignored", namespace=namespace)
            continue
        namespaces[namespace] = [Path(r) for r in roots if isinstance(r, str)]
    return namespaces


def find_plugin_module(path: Path) -> Path | None:
    """Return the first ``*_plugin.py`` file at depth 0 of ``path``, if any."""
    if not path.is_dir():
        return None
    candidates = sorted(p for p in path.glob(f"*{PLUGIN_SUFFIX}") if p.is_file())
    return candidates[0] if candidates else None


def package_id_for(plugin_module: Path) -> str:
    """``carousel_plugin.py`` -> ``carousel``."""
    return plugin_module.name[: -len(PLUGIN_SUFFIX)].lower()


def has_manifest(path: Path) -> bool:
    return (path / MANIFEST_FILENAME).is_file()


def _is_under(path: Path, roots: list[Path]) -> bool:
    return any(path == root or path.is_relative_to(root) for root in roots)


class PackageScanner:
    """
    Discovers packages that ship an autoload.json manifest.

    Candidate directories come from the namespace map (kept only when they lie
    under an allowed root) and from the immediate sub-directories of every
    search root.
    """

    def __init__(
        self,
        namespace_map: Mapping[str, list[Path]],
        standard_roots: list[Path],
        search_roots: list[Path] | None = None,
    ):
        """
        Initialize PackageScanner.

        Args:
            namespace_map: Dotted namespace -> import roots
            standard_roots: Locations where mapped packages are accepted
            search_roots: Extra locations scanned directly, also accepted for mapped packages
        """
        self.namespace_map = namespace_map
        self.standard_roots = [Path(r).resolve() for r in standard_roots]
        self.search_roots = [Path(r).resolve() for r in search_roots or []]

    @property
    def allowed_roots(self) -> list[Path]:
        return self.standard_roots + self.search_roots

    def candidates(self) -> list[Path]:
        """
        List candidate package directories, de-duplicated, in scan order.

        Returns:
            Resolved directory paths
        """
        allowed = self.allowed_roots
        found: dict[Path, None] = {}

        for namespace, roots in self.namespace_map.items():
            for root in roots:
                candidate = (Path(root) / Path(*namespace.split("."))).resolve()
                if not candidate.is_dir():
                    continue
                if not _is_under(candidate, allowed):
                    logger.debug("package_outside_allowed_roots", path=str(candidate))
                    continue
                found.setdefault(candidate, None)

        for search_root in self.search_roots:
            if not search_root.is_dir():
                continue
            for child in sorted(search_root.iterdir()):
                if child.is_dir():
                    found.setdefault(child, None)

        return list(found)

    def scan(self) -> Iterator[DiscoveredPackage]:
        """
        Yield every candidate package that has both a plugin module and a manifest.

        Raises:
            MalformedManifestError: If a discovered manifest cannot be parsed
        """
        for path in self.candidates():
            plugin_module = find_plugin_module(path)
            if plugin_module is None:
                logger.debug("package_without_plugin_module", path=str(path))
                continue
            if not has_manifest(path):
                logger.debug("package_without_manifest", path=str(path))
                continue

            manifest = parse_manifest(package_id_for(plugin_module), path / MANIFEST_FILENAME)
            logger.debug("package_discovered", package=manifest.package_id, path=str(path))
            yield DiscoveredPackage(path=path, manifest=manifest)

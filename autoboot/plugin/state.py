"""
Installed State Store.

This module persists what was active on the previous run so that the next
run can tell new packages from removed ones.

Layout under the base directory:
    autoloaders/<package_id>.json       manifest copies
    config/<environment>/<package_id>.yml
    routing/<package_id>.yml
    cache/<package_id>/<module.name>.py lifecycle action sources
"""

import shutil
from collections.abc import Iterable
from pathlib import Path

import structlog

from autoboot.plugin.loader import LoaderError, TypeRegistry
from autoboot.plugin.manifest import Manifest, parse_manifest
from autoboot.plugin.sniffer import sniff_source

logger = structlog.get_logger(__name__)

RESOURCES_DIR = Path("resources") / "config"


class InstalledStateStore:
    """Reads and writes the persisted plugin state."""

    def __init__(self, base_path: Path):
        """
        Initialize InstalledStateStore and create its folders.

        Args:
            base_path: Base directory of the persisted layout
        """
        self.base_path = Path(base_path)
        self.autoloaders_path = self.base_path / "autoloaders"
        self.config_path = self.base_path / "config"
        self.routing_path = self.base_path / "routing"
        self.cache_path = self.base_path / "cache"

        for folder in (
            self.base_path,
            self.autoloaders_path,
            self.config_path,
            self.routing_path,
            self.cache_path,
        ):
            folder.mkdir(parents=True, exist_ok=True)

    def manifest_path(self, package_id: str) -> Path:
        return self.autoloaders_path / f"{package_id}.json"

    def load_installed(self) -> dict[str, Manifest]:
        """
        Load the manifests persisted by the previous run.

        Returns:
            Mapping of package_id -> Manifest (empty when nothing is installed)

        Raises:
            MalformedManifestError: If a persisted manifest is corrupt
        """
        installed: dict[str, Manifest] = {}
        if not self.autoloaders_path.is_dir():
            return installed

        for path in sorted(self.autoloaders_path.glob("*.json")):
            if not path.is_file():
                continue
            package_id = path.stem.lower()
            installed[package_id] = parse_manifest(package_id, path)

        logger.debug("installed_state_loaded", count=len(installed))
        return installed

    def persist(self, manifest: Manifest, package_dir: Path, environment: str) -> bool:
        """
        Copy a package's manifest and resources into the persisted layout.

        Files are always copied, since an updated package may have changed them.

        Args:
            manifest: Manifest discovered in the package
            package_dir: Package directory
            environment: Current environment (target of the plain config.yml)

        Returns:
            True if the manifest copy did not exist before
        """
        package_id = manifest.package_id
        created = _copy(manifest.path, self.manifest_path(package_id))

        resources = Path(package_dir) / RESOURCES_DIR
        filename = f"{package_id}.yml"
        _copy(resources / "config.yml", self.config_path / environment / filename)
        if resources.is_dir():
            # Environment-specific files are copied last so they win over config.yml
            for source in sorted(resources.glob("config_*.yml")):
                target_env = source.stem.removeprefix("config_")
                if target_env:
                    _copy(source, self.config_path / target_env / filename)
        _copy(resources / "routing.yml", self.routing_path / filename)

        return created

    def remove(self, package_id: str) -> None:
        """
        Delete the persisted manifest and resources of a package.

        Already missing files are ignored.
        """
        filename = f"{package_id}.yml"
        self.manifest_path(package_id).unlink(missing_ok=True)
        if self.config_path.is_dir():
            for env_dir in self.config_path.iterdir():
                if env_dir.is_dir():
                    (env_dir / filename).unlink(missing_ok=True)
        (self.routing_path / filename).unlink(missing_ok=True)
        logger.debug("package_files_removed", package=package_id)

    def cache_lifecycle_artifact(self, package_id: str, source_path: Path, module_name: str) -> Path:
        """
        Keep a copy of a lifecycle action source so that it outlives its package.

        Args:
            package_id: Package identifier
            source_path: File defining the action class
            module_name: Dotted module name of that file

        Returns:
            Path of the cached copy
        """
        target = self.cache_path / package_id / f"{module_name}.py"
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_path, target)
        logger.debug("lifecycle_source_cached", package=package_id, path=str(target))
        return target

    def cached_artifacts(self, package_id: str) -> list[Path]:
        folder = self.cache_path / package_id
        if not folder.is_dir():
            return []
        return sorted(p for p in folder.glob("*.py") if p.is_file())

    def load_cached_artifacts(
        self, registry: TypeRegistry, package_ids: Iterable[str]
    ) -> list[str]:
        """
        Re-introduce the cached lifecycle action classes of the given packages.

        Only packages being uninstalled should be passed: a cached copy must
        never shadow the live module of an installed package. Malformed cached
        files are logged and skipped.

        Args:
            registry: Registry used to check and load the classes
            package_ids: Packages whose cached sources are needed

        Returns:
            Dotted names of the classes introduced
        """
        introduced: list[str] = []
        for package_id in package_ids:
            for path in self.cached_artifacts(package_id):
                sniffed = sniff_source(path)
                if sniffed is None:
                    continue
                if registry.is_loaded(sniffed.qualified_name):
                    continue
                try:
                    registry.load_source(sniffed.namespace, path)
                except LoaderError as e:
                    logger.warning("cached_source_not_loaded", path=str(path), error=str(e))
                    continue
                introduced.append(sniffed.qualified_name)
                logger.debug("cached_class_loaded", name=sniffed.qualified_name)

        return introduced


def _copy(source: Path, target: Path) -> bool:
    """Copy source over target when source exists; True if target was created."""
    if not source.is_file():
        return False
    existed = target.is_file()
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
    return not existed

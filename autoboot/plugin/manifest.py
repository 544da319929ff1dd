"""
Plugin Manifest System.

This module parses the ``autoload.json`` manifest a package ships to declare
the plugin classes it contributes.

Key features:
- Per-plugin target environments and override lists
- Empty ("") plugin entries for declared-but-inactive plugins
- Optional lifecycle action class (``actionManager``)
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from autoboot.plugin.loader import TypeRegistry

MANIFEST_FILENAME = "autoload.json"

# Pseudo-environment activated everywhere unless a named environment claims the plugin
ALL_ENVIRONMENTS = "all"


class ManifestError(Exception):
    """Base exception for manifest-related errors."""

    pass


class MalformedManifestError(ManifestError):
    """Raised when a manifest body cannot be parsed into declarations."""

    pass


@dataclass(frozen=True)
class PluginDeclaration:
    """
    One plugin entry of a manifest.

    Attributes:
        class_name: Dotted path of the plugin class
        environments: Environments the plugin is activated for
        overrides: Identifiers of the plugins this one supersedes
    """

    class_name: str
    environments: tuple[str, ...] = ()
    overrides: tuple[str, ...] = ()

    @property
    def identifier(self) -> str:
        """Short plugin identifier (the class name without its module)."""
        return self.class_name.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class LifecycleAction:
    """A resolvable lifecycle action class and the file defining it."""

    class_name: str
    source_path: Path | None = None


@dataclass(frozen=True)
class Manifest:
    """
    Represents a package manifest.

    Attributes:
        package_id: Lower-cased package identifier
        path: Path of the manifest file
        declarations: Ordered mapping of class name -> PluginDeclaration
        action_manager: Dotted path of the lifecycle action class, if declared
    """

    package_id: str
    path: Path
    declarations: dict[str, PluginDeclaration] = field(default_factory=dict)
    action_manager: str | None = None

    @classmethod
    def from_data(cls, package_id: str, path: Path, data: Any) -> "Manifest":
        """
        Build a manifest from an already parsed body.

        Args:
            package_id: Package identifier
            path: Manifest file path (kept for persistence)
            data: Parsed manifest body

        Returns:
            Manifest object

        Raises:
            MalformedManifestError: If the body does not have the expected shape
        """
        if not isinstance(data, dict):
            raise MalformedManifestError(
                f"Manifest {path} must be a JSON object, got {type(data).__name__}"
            )
        if "bundles" not in data:
            raise MalformedManifestError(f"Manifest {path} is missing the 'bundles' section")

        bundles = data["bundles"]
        # An empty set of bundles may be serialised as a JSON array
        if bundles == []:
            bundles = {}
        if not isinstance(bundles, dict):
            raise MalformedManifestError(f"Manifest {path}: 'bundles' must be an object")

        declarations = {}
        for class_name, entry in bundles.items():
            if not isinstance(class_name, str) or not class_name.strip():
                raise MalformedManifestError(
                    f"Manifest {path}: invalid plugin class name {class_name!r}"
                )
            declarations[class_name] = _parse_declaration(path, class_name, entry)

        action_manager = data.get("actionManager")
        if action_manager is not None and not isinstance(action_manager, str):
            raise MalformedManifestError(f"Manifest {path}: 'actionManager' must be a string")
        if action_manager is not None:
            action_manager = action_manager.strip() or None

        return cls(
            package_id=package_id.lower(),
            path=Path(path),
            declarations=declarations,
            action_manager=action_manager,
        )

    def by_environment(self) -> dict[str, list[PluginDeclaration]]:
        """Group the declarations by environment, keeping declaration order."""
        grouped: dict[str, list[PluginDeclaration]] = {}
        for declaration in self.declarations.values():
            for environment in declaration.environments:
                grouped.setdefault(environment, []).append(declaration)
        return grouped

    def lifecycle_action(self, registry: "TypeRegistry") -> LifecycleAction | None:
        """
        Return the lifecycle action when it is declared and its class resolves.

        A declared but unresolvable action yields None: the package is then
        installed without a lifecycle hook.
        """
        if self.action_manager is None:
            return None
        if registry.resolve(self.action_manager) is None:
            return None
        return LifecycleAction(
            class_name=self.action_manager,
            source_path=registry.source_file(self.action_manager),
        )

    def lifecycle_action_class(self, registry: "TypeRegistry") -> str | None:
        action = self.lifecycle_action(registry)
        return action.class_name if action else None


def _to_names(path: Path, class_name: str, key: str, value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value] if value else []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedManifestError(
            f"Manifest {path}: '{key}' of {class_name} must be a list of strings"
        )
    # dict.fromkeys drops duplicates and keeps the first-seen order
    return tuple(dict.fromkeys(v for v in value if v))


def _parse_declaration(path: Path, class_name: str, entry: Any) -> PluginDeclaration:
    if entry is None or entry == "":
        return PluginDeclaration(class_name=class_name)
    if not isinstance(entry, dict):
        raise MalformedManifestError(
            f"Manifest {path}: entry for {class_name} must be an object or an empty string"
        )
    return PluginDeclaration(
        class_name=class_name,
        environments=_to_names(path, class_name, "environments", entry.get("environments")),
        overrides=_to_names(path, class_name, "overrides", entry.get("overrides")),
    )


def parse_manifest(package_id: str, manifest_path: Path) -> Manifest:
    """
    Parse an autoload.json file.

    Args:
        package_id: Identifier of the package owning the manifest
        manifest_path: Path to autoload.json

    Returns:
        Manifest object

    Raises:
        MalformedManifestError: If the file cannot be read, parsed or validated
    """
    try:
        with open(manifest_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise MalformedManifestError(f"Manifest file not found: {manifest_path}") from e
    except json.JSONDecodeError as e:
        raise MalformedManifestError(f"Failed to parse manifest JSON {manifest_path}: {e}") from e
    except OSError as e:
        raise MalformedManifestError(f"Failed to read manifest file {manifest_path}: {e}") from e

    return Manifest.from_data(package_id, Path(manifest_path), data)

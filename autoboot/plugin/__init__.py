"""
autoboot Plugin System - discovery, persisted state and reconciliation.

This package handles:
- Manifest parsing
- Package discovery from the package manager's namespace map
- Persisted installed state and lifecycle source cache
- Lifecycle action execution
- Environment activation and override ordering
"""

from autoboot.plugin.engine import (
    ActivePluginSet,
    ReconciliationEngine,
    ReconciliationError,
    UnresolvableClassError,
)
from autoboot.plugin.lifecycle import ActionManagerExecutor, LifecycleError, LifecycleExecutor
from autoboot.plugin.loader import ImportTypeRegistry, LoaderError, TypeRegistry
from autoboot.plugin.manifest import MalformedManifestError, Manifest, ManifestError
from autoboot.plugin.scanner import PackageScanner, ProjectNotManagedError
from autoboot.plugin.state import InstalledStateStore

__all__ = [
    "ActionManagerExecutor",
    "ActivePluginSet",
    "ImportTypeRegistry",
    "InstalledStateStore",
    "LifecycleError",
    "LifecycleExecutor",
    "LoaderError",
    "MalformedManifestError",
    "Manifest",
    "ManifestError",
    "PackageScanner",
    "ProjectNotManagedError",
    "ReconciliationEngine",
    "ReconciliationError",
    "TypeRegistry",
    "UnresolvableClassError",
]

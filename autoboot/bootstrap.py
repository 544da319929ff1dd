"""
Bootstrapper - public entry point.

Wires the scanner, the state store, the registry and the lifecycle executor
together and computes the active plugin set once per process.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from autoboot.config import BootstrapSettings, load_settings
from autoboot.plugin.engine import ActivePluginSet, ReconciliationEngine
from autoboot.plugin.lifecycle import ActionManagerExecutor, LifecycleExecutor
from autoboot.plugin.loader import ImportTypeRegistry, TypeRegistry
from autoboot.plugin.scanner import PackageScanner, load_namespace_map
from autoboot.plugin.state import InstalledStateStore

logger = structlog.get_logger(__name__)


class Bootstrapper:
    """
    Computes and memoises the active plugin set.

    The first successful call to get_active_plugins() runs the reconciliation
    pass; every later call returns the same ActivePluginSet, even if the
    filesystem changed in between.
    """

    def __init__(
        self,
        settings: BootstrapSettings,
        plugins: Iterable[Any] = (),
        registry: TypeRegistry | None = None,
        executor: LifecycleExecutor | None = None,
        standard_roots: list[Path] | None = None,
    ):
        """
        Initialize Bootstrapper.

        Args:
            settings: Resolved settings
            plugins: Plugins the caller already instantiated
            registry: Class resolution capability (default: importlib based)
            executor: Lifecycle executor (default: ActionManagerExecutor)
            standard_roots: Replaces the standard package roots of the settings
        """
        self.settings = settings
        self.plugins = list(plugins)
        self.standard_roots = list(
            settings.standard_roots if standard_roots is None else standard_roots
        )
        self.store = InstalledStateStore(settings.state_dir)
        self._registry = registry
        self._executor = executor
        self._active: ActivePluginSet | None = None
        # Survives failed passes: a retry never instantiates a class twice
        self._instances: dict[str, Any] = {}

    @classmethod
    def from_config(
        cls,
        path: Path | None = None,
        environment: str | None = None,
        **kwargs: Any,
    ) -> "Bootstrapper":
        return cls(load_settings(path, environment=environment), **kwargs)

    @property
    def environment(self) -> str:
        return self.settings.environment

    @property
    def bootstrapped(self) -> bool:
        return self._active is not None

    def get_active_plugins(self) -> ActivePluginSet:
        """
        Return the active plugins, running the reconciliation pass on first use.

        Raises:
            ProjectNotManagedError: If the package manager root is missing
            MalformedManifestError: If a manifest cannot be parsed
            UnresolvableClassError: If a plugin class cannot be resolved
        """
        if self._active is None:
            self._active = self._build_engine().run()
            logger.info("bootstrap_completed", environment=self.environment, count=len(self._active))
        return self._active

    def _build_engine(self) -> ReconciliationEngine:
        namespace_map = load_namespace_map(self.settings.vendor_dir)

        registry = self._registry
        if registry is None:
            import_roots = dict.fromkeys(root for roots in namespace_map.values() for root in roots)
            registry = ImportTypeRegistry(list(import_roots) + list(self.settings.search_roots))
        executor = self._executor or ActionManagerExecutor(registry)

        scanner = PackageScanner(
            namespace_map,
            standard_roots=self.standard_roots,
            search_roots=self.settings.search_roots,
        )
        return ReconciliationEngine(
            scanner=scanner,
            store=self.store,
            registry=registry,
            executor=executor,
            environment=self.environment,
            plugins=self.plugins,
            instances=self._instances,
        )

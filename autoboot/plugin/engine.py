"""
Reconciliation Engine.

This module computes the active plugin set for an environment and reconciles
it with the state persisted by the previous run.

A pass runs four phases, always in this order:
1. install    - scan packages, persist them, batch install actions
2. uninstall  - drop packages that disappeared, batch uninstall actions
3. arrange    - activate "all" then the current environment, at most once per class
4. order      - reorder the active set from the override declarations
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

import structlog

from autoboot.plugin.lifecycle import LifecycleExecutor
from autoboot.plugin.loader import TypeRegistry, qualified_name, split_name
from autoboot.plugin.manifest import ALL_ENVIRONMENTS, Manifest, PluginDeclaration
from autoboot.plugin.scanner import PackageScanner
from autoboot.plugin.state import InstalledStateStore

logger = structlog.get_logger(__name__)


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class UnresolvableClassError(ReconciliationError):
    """Raised when a declared plugin class cannot be resolved."""

    pass


class ActivePluginSet(Mapping):
    """
    Ordered, read-only mapping of plugin identifier -> plugin instance.

    Iteration follows activation order.
    """

    def __init__(self, items: Iterable[tuple[str, Any]] = ()):
        self._items = dict(items)

    def __getitem__(self, identifier: str) -> Any:
        return self._items[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def identifiers(self) -> list[str]:
        return list(self._items)

    def __repr__(self) -> str:
        return f"ActivePluginSet({self.identifiers()})"


def override_scores(overrides: Mapping[str, Iterable[str]]) -> dict[str, int]:
    """
    Score plugins from their override declarations.

    An overrider enters the ranking with 0; every plugin it overrides gains one
    point per mention.

    Args:
        overrides: overrider identifier -> overridden identifiers

    Returns:
        identifier -> score, in first-seen order
    """
    scores: dict[str, int] = {}
    for overrider, targets in overrides.items():
        scores.setdefault(overrider, 0)
        for target in targets:
            scores[target] = scores.get(target, 0) + 1
    return scores


def order_by_overrides(identifiers: list[str], overrides: Mapping[str, Iterable[str]]) -> list[str]:
    """
    Compute the activation order.

    Scored plugins are moved to the end of the sequence by ascending score, so
    an overrider always precedes the plugins it overrides. Ties keep their
    first-seen order; cycles are not detected.

    Args:
        identifiers: Current activation order
        overrides: overrider identifier -> overridden identifiers

    Returns:
        Reordered identifiers
    """
    scores = override_scores(overrides)
    present = set(identifiers)
    # sorted() is stable: equal scores keep insertion order
    ranked = [name for name in sorted(scores, key=scores.__getitem__) if name in present]
    moved = set(ranked)
    return [name for name in identifiers if name not in moved] + ranked


class ReconciliationEngine:
    """
    Drives one reconciliation pass.

    All collections built here live for a single pass, except ``instances``
    which the caller may share between attempts.
    """

    def __init__(
        self,
        scanner: PackageScanner,
        store: InstalledStateStore,
        registry: TypeRegistry,
        executor: LifecycleExecutor,
        environment: str,
        plugins: Iterable[Any] = (),
        instances: dict[str, Any] | None = None,
    ):
        """
        Initialize ReconciliationEngine.

        Args:
            scanner: Package scanner
            store: Persisted state store
            registry: Class resolution capability
            executor: Lifecycle action executor
            environment: Current environment name
            plugins: Already instantiated plugins, never instantiated again
            instances: Class name -> instance created by earlier attempts;
                filled in by this engine, so that a retried pass reuses them
        """
        self.scanner = scanner
        self.store = store
        self.registry = registry
        self.executor = executor
        self.environment = environment
        self.plugins = list(plugins)
        self.instances = instances if instances is not None else {}

        self._manifests: list[Manifest] = []
        self._active: dict[str, Any] = {}
        self._instantiated: set[str] = set()
        self._overrides: dict[str, tuple[str, ...]] = {}

    def run(self) -> ActivePluginSet:
        """
        Run the whole pass.

        Returns:
            The active plugin set, only once every phase has completed

        Raises:
            ProjectNotManagedError: If the package manager root is missing
            MalformedManifestError: If a manifest cannot be parsed
            UnresolvableClassError: If a plugin class cannot be resolved
        """
        installed = self.store.load_installed()
        self.install(installed)
        self.uninstall(installed)
        return self.arrange()

    def install(self, installed: dict[str, Manifest]) -> dict[str, str]:
        """
        Phase 1: persist discovered packages and run the install actions.

        Every discovered package is removed from ``installed``, which is left
        holding the stale packages only.

        Args:
            installed: State of the previous run (mutated)

        Returns:
            The install batch, package_id -> action class name
        """
        self._manifests = []
        actions: dict[str, str] = {}

        for package in self.scanner.scan():
            manifest = package.manifest
            package_id = manifest.package_id
            self._manifests.append(manifest)

            if self.store.persist(manifest, package.path, self.environment):
                logger.info("package_installed", package=package_id)

            if package_id not in installed:
                action = manifest.lifecycle_action(self.registry)
                if action is not None:
                    actions[package_id] = action.class_name
                    if action.source_path is not None:
                        module_name, _ = split_name(action.class_name)
                        self.store.cache_lifecycle_artifact(
                            package_id, action.source_path, module_name
                        )

            installed.pop(package_id, None)

        self.executor.execute_install_actions(actions)
        return actions

    def uninstall(self, stale: dict[str, Manifest]) -> dict[str, str]:
        """
        Phase 2: remove packages that are no longer discovered.

        Args:
            stale: Packages of the previous run left over by install()

        Returns:
            The uninstall batch, package_id -> action class name
        """
        for package_id in stale:
            self.store.remove(package_id)
            logger.info("package_uninstalled", package=package_id)

        # The package code may be gone: serve the action classes from the cache
        self.store.load_cached_artifacts(self.registry, stale)

        actions: dict[str, str] = {}
        for package_id, manifest in stale.items():
            if manifest.action_manager is None:
                continue
            if self.registry.resolve(manifest.action_manager) is None:
                logger.warning(
                    "uninstall_action_unresolvable",
                    package=package_id,
                    cls=manifest.action_manager,
                )
                continue
            actions[package_id] = manifest.action_manager

        self.executor.execute_uninstall_actions(actions)
        return actions

    def arrange(self) -> ActivePluginSet:
        """
        Phases 3 and 4: activate plugins for the environment, then order them.

        Returns:
            Ordered active plugin set

        Raises:
            UnresolvableClassError: If a declared class does not resolve
        """
        self._active = {}
        self._instantiated = set()
        self._overrides = {}

        for plugin in self.plugins:
            self._active[type(plugin).__name__] = plugin
            self._instantiated.add(qualified_name(plugin))
            self.instances.setdefault(qualified_name(plugin), plugin)

        environments: dict[str, list[PluginDeclaration]] = {}
        for manifest in self._manifests:
            for environment, declarations in manifest.by_environment().items():
                environments.setdefault(environment, []).extend(declarations)

        # A plugin claimed by a named environment must not be activated by "all"
        everywhere = environments.pop(ALL_ENVIRONMENTS, [])
        claimed = {d.class_name for group in environments.values() for d in group}
        self._register([d for d in everywhere if d.class_name not in claimed])
        self._register(environments.get(self.environment, []))

        order = order_by_overrides(list(self._active), self._overrides)
        active = ActivePluginSet((name, self._active[name]) for name in order)
        logger.info(
            "plugins_arranged",
            environment=self.environment,
            count=len(active),
            order=active.identifiers(),
        )
        return active

    def _register(self, declarations: list[PluginDeclaration]) -> None:
        for declaration in declarations:
            class_name = declaration.class_name
            if class_name in self._instantiated:
                continue

            instance = self._instance_for(class_name)
            self._instantiated.add(class_name)
            # Pre-supplied plugins and re-exports are tracked by their real module path
            real_name = qualified_name(instance)
            if real_name in self._instantiated:
                continue
            self._instantiated.add(real_name)

            identifier = declaration.identifier
            if identifier in self._active:
                logger.warning("plugin_identifier_reused", identifier=identifier, cls=class_name)
            self._active[identifier] = instance
            if declaration.overrides:
                self._overrides[identifier] = declaration.overrides

    def _instance_for(self, class_name: str) -> Any:
        """Return the instance of a class, creating it only if no attempt did yet."""
        if class_name in self.instances:
            return self.instances[class_name]

        cls = self.registry.resolve(class_name)
        if cls is None:
            raise UnresolvableClassError(
                f"The plugin class {class_name} does not exist. "
                f"Check the package's autoload.json to fix the problem"
            )

        real_name = qualified_name(cls)
        instance = self.instances.get(real_name)
        if instance is None:
            instance = cls()
        self.instances[class_name] = self.instances[real_name] = instance
        return instance

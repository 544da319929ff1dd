"""
Plugin Lifecycle Actions.

This module runs the install/uninstall actions packages attach to their
manifest through ``actionManager``.

Key features:
- LifecycleExecutor protocol, injected into the engine
- Batch execution: one call per hook type per reconciliation pass
- Default executor calling ``install()`` / ``uninstall()`` on action classes
"""

from enum import Enum
from typing import Protocol

import structlog

from autoboot.plugin.loader import LoaderError, TypeRegistry

logger = structlog.get_logger(__name__)


class LifecycleError(Exception):
    """Raised when a lifecycle action fails."""

    pass


class HookType(Enum):
    """Hook type enumeration."""

    INSTALL = "install"
    UNINSTALL = "uninstall"


class LifecycleExecutor(Protocol):
    """Receives the batched actions of a pass, as package_id -> action class name."""

    def execute_install_actions(self, actions: dict[str, str]) -> None: ...

    def execute_uninstall_actions(self, actions: dict[str, str]) -> None: ...


class ActionManagerExecutor:
    """
    Default executor.

    Each action class is instantiated through the registry and the method named
    after the hook type is called. A class without that method is a no-op.
    """

    def __init__(self, registry: TypeRegistry):
        self.registry = registry

    def execute_install_actions(self, actions: dict[str, str]) -> None:
        self._execute(HookType.INSTALL, actions)

    def execute_uninstall_actions(self, actions: dict[str, str]) -> None:
        self._execute(HookType.UNINSTALL, actions)

    def _execute(self, hook_type: HookType, actions: dict[str, str]) -> None:
        """
        Run one hook for every package of the batch.

        Args:
            hook_type: Type of hook to execute
            actions: package_id -> action class name

        Raises:
            LifecycleError: If an action cannot be instantiated or fails
        """
        for package_id, class_name in actions.items():
            try:
                action = self.registry.instantiate(class_name)
            except LoaderError as e:
                raise LifecycleError(
                    f"Cannot run {hook_type.value} action for {package_id}: {e}"
                ) from e

            hook = getattr(action, hook_type.value, None)
            if not callable(hook):
                logger.debug("action_without_hook", package=package_id, hook=hook_type.value)
                continue

            try:
                hook()
            except Exception as e:
                raise LifecycleError(
                    f"Hook {hook_type.value} of {class_name} failed for {package_id}: {e}"
                ) from e

            logger.info("lifecycle_action_executed", package=package_id, hook=hook_type.value)

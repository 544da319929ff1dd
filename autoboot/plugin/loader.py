"""
Type Registry.

This module turns dotted class names into classes and instances.

Key features:
- TypeRegistry protocol, injected into the engine
- importlib-backed default implementation
- Loading of detached source files (cached lifecycle actions)
"""

import importlib
import importlib.util
import inspect
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)


class LoaderError(Exception):
    """Base exception for loader-related errors."""

    pass


class TypeRegistry(Protocol):
    """Capability to resolve and instantiate classes by dotted name."""

    def resolve(self, name: str) -> type | None: ...

    def instantiate(self, name: str) -> Any: ...

    def source_file(self, name: str) -> Path | None: ...

    def is_loaded(self, name: str) -> bool: ...

    def load_source(self, module_name: str, path: Path) -> ModuleType: ...


def qualified_name(obj: Any) -> str:
    """Return ``module.QualName`` for a class or an instance."""
    cls = obj if isinstance(obj, type) else type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"


def split_name(name: str) -> tuple[str, str]:
    """Split ``pkg.module.Class`` into ``("pkg.module", "Class")``."""
    module_name, _, class_name = name.strip().rpartition(".")
    return module_name, class_name


class ImportTypeRegistry:
    """
    Default TypeRegistry built on importlib.

    Search paths (the package manager's import roots) are added to sys.path
    once, so that plugin modules can be imported by their dotted name.
    """

    def __init__(self, search_paths: list[Path] | tuple[Path, ...] = ()):
        # Module cache for sources loaded from detached files: module_name -> module
        self._loaded: dict[str, ModuleType] = {}
        for path in search_paths:
            entry = str(path)
            if entry not in sys.path:
                sys.path.insert(0, entry)
                logger.debug("added_to_path", path=entry)

    def resolve(self, name: str) -> type | None:
        """
        Resolve a dotted class name.

        Args:
            name: Dotted path such as ``acme.carousel.CarouselPlugin``

        Returns:
            The class, or None when the module or attribute does not exist
        """
        module_name, class_name = split_name(name)
        if not module_name or not class_name:
            return None

        try:
            module = importlib.import_module(module_name)
        except ImportError:
            logger.debug("module_not_importable", module=module_name)
            return None

        cls = getattr(module, class_name, None)
        return cls if isinstance(cls, type) else None

    def instantiate(self, name: str) -> Any:
        cls = self.resolve(name)
        if cls is None:
            raise LoaderError(f"Class not found: {name}")
        return cls()

    def source_file(self, name: str) -> Path | None:
        cls = self.resolve(name)
        if cls is None:
            return None
        try:
            source = inspect.getsourcefile(cls)
        except TypeError:
            return None
        return Path(source) if source else None

    def is_loaded(self, name: str) -> bool:
        """Check whether a class is already available without importing anything."""
        module_name, class_name = split_name(name)
        module = sys.modules.get(module_name)
        return module is not None and isinstance(getattr(module, class_name, None), type)

    def load_source(self, module_name: str, path: Path) -> ModuleType:
        """
        Execute a source file and register it under ``module_name``.

        Args:
            module_name: Dotted module name to register
            path: Python source file

        Returns:
            Loaded module

        Raises:
            LoaderError: If the file cannot be executed
        """
        if module_name in self._loaded:
            return self._loaded[module_name]

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise LoaderError(f"Failed to create module spec for {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            # Clean up sys.modules on failure
            sys.modules.pop(module_name, None)
            raise LoaderError(f"Failed to load {path} as {module_name}: {e}") from e

        self._loaded[module_name] = module
        return module

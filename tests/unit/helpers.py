"""Test helpers: a fake package-managed project, a fake registry, a recording executor."""

import json
from pathlib import Path

from autoboot.config import BootstrapSettings
from autoboot.plugin.loader import LoaderError, split_name
from autoboot.plugin.sniffer import sniff_source


class CountedPlugin:
    """Base of generated plugin classes; counts instantiations per class."""

    created = 0

    def __init__(self):
        type(self).created += 1


def make_class(dotted_name: str, base: type = CountedPlugin) -> type:
    module_name, class_name = split_name(dotted_name)
    return type(class_name, (base,), {"__module__": module_name, "created": 0})


class FakeRegistry:
    """In-memory TypeRegistry."""

    def __init__(self, *names: str):
        self.classes: dict[str, type] = {}
        self.sources: dict[str, Path] = {}
        self.loaded_sources: list[tuple[str, Path]] = []
        for name in names:
            self.add(name)

    def add(self, name: str, source: Path | None = None, base: type = CountedPlugin) -> type:
        cls = make_class(name, base)
        self.classes[name] = cls
        if source is not None:
            self.sources[name] = source
        return cls

    def resolve(self, name):
        return self.classes.get(name)

    def instantiate(self, name):
        cls = self.resolve(name)
        if cls is None:
            raise LoaderError(f"Class not found: {name}")
        return cls()

    def source_file(self, name):
        return self.sources.get(name)

    def is_loaded(self, name):
        return name in self.classes

    def load_source(self, module_name, path):
        self.loaded_sources.append((module_name, path))
        sniffed = sniff_source(path)
        if sniffed is not None:
            self.add(sniffed.qualified_name)
        return None


class RecordingExecutor:
    """LifecycleExecutor recording every batch it receives."""

    def __init__(self):
        self.installs: list[dict[str, str]] = []
        self.uninstalls: list[dict[str, str]] = []

    def execute_install_actions(self, actions):
        self.installs.append(dict(actions))

    def execute_uninstall_actions(self, actions):
        self.uninstalls.append(dict(actions))


class FakeProject:
    """
    A project managed by a package manager, laid out on disk.

    Packages live in ``vendor/<vendor>/<name>/src/<namespace as path>``; the
    namespace map is rewritten every time a package is added.
    """

    def __init__(self, root: Path):
        self.root = root
        self.vendor_dir = root / "vendor"
        self.kernel_dir = root / "app"
        self.state_dir = self.kernel_dir / "config" / "plugins"
        self.namespaces: dict[str, str] = {}
        self.kernel_dir.mkdir(parents=True, exist_ok=True)
        self.write_namespace_map()

    def write_namespace_map(self) -> None:
        manager_dir = self.vendor_dir / "packages"
        manager_dir.mkdir(parents=True, exist_ok=True)
        (manager_dir / "namespaces.json").write_text(json.dumps(self.namespaces))

    def add_package(
        self,
        namespace: str,
        plugin_file: str | None = None,
        manifest: dict | None = None,
        resources: dict[str, str] | None = None,
        import_root: Path | None = None,
    ) -> Path:
        """
        Create a package directory and register it in the namespace map.

        Args:
            namespace: Dotted namespace (``acme.carousel``)
            plugin_file: ``*_plugin.py`` file name, None for no plugin module
            manifest: autoload.json body, None for no manifest
            resources: file name -> content under resources/config
            import_root: Root the namespace is mapped to (default under vendor)
        """
        if import_root is None:
            import_root = self.vendor_dir / namespace.replace(".", "-") / "src"
        package_dir = import_root / Path(*namespace.split("."))
        package_dir.mkdir(parents=True, exist_ok=True)

        if plugin_file is not None:
            (package_dir / plugin_file).write_text("# plugin module\n")
        if manifest is not None:
            (package_dir / "autoload.json").write_text(json.dumps(manifest))
        for filename, content in (resources or {}).items():
            resource = package_dir / "resources" / "config" / filename
            resource.parent.mkdir(parents=True, exist_ok=True)
            resource.write_text(content)

        self.namespaces[namespace] = str(import_root)
        self.write_namespace_map()
        return package_dir

    def settings(self, environment: str = "dev", **kwargs) -> BootstrapSettings:
        return BootstrapSettings(project_dir=self.root, environment=environment, **kwargs)


def bundle(*environments: str, overrides: list[str] | None = None) -> dict:
    entry: dict = {"environments": list(environments)}
    if overrides:
        entry["overrides"] = overrides
    return entry

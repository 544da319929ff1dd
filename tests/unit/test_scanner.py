"""
Tests for the package scanner.

This test suite covers:
1. Namespace map loading and unmanaged projects
2. Candidate selection (standard roots, search roots)
3. Plugin module and manifest detection
"""

import json

import pytest

from autoboot.plugin.manifest import MalformedManifestError
from autoboot.plugin.scanner import (
    PackageScanner,
    ProjectNotManagedError,
    find_plugin_module,
    load_namespace_map,
    package_id_for,
)
from helpers import bundle


def scanner_for(project, search_roots=None, standard_roots=None):
    return PackageScanner(
        load_namespace_map(project.vendor_dir),
        standard_roots=standard_roots or [project.vendor_dir],
        search_roots=search_roots,
    )


class TestNamespaceMap:
    """Test loading of the package manager's namespace map."""

    def test_missing_manager_folder(self, tmp_path):
        """A project without the package manager folder is not managed."""
        with pytest.raises(ProjectNotManagedError, match="packages"):
            load_namespace_map(tmp_path / "vendor")

    def test_missing_map_file(self, tmp_path):
        (tmp_path / "vendor" / "packages").mkdir(parents=True)

        with pytest.raises(ProjectNotManagedError, match="not found"):
            load_namespace_map(tmp_path / "vendor")

    def test_invalid_map_file(self, tmp_path):
        manager_dir = tmp_path / "vendor" / "packages"
        manager_dir.mkdir(parents=True)
        (manager_dir / "namespaces.json").write_text("[1, 2")

        with pytest.raises(ProjectNotManagedError):
            load_namespace_map(tmp_path / "vendor")

    def test_string_and_list_roots(self, tmp_path):
        """A namespace may map to one root or to several."""
        manager_dir = tmp_path / "vendor" / "packages"
        manager_dir.mkdir(parents=True)
        (manager_dir / "namespaces.json").write_text(
            json.dumps({"acme.one": "/src/one", "acme.two": ["/src/a", "/src/b"], "bad": 3})
        )

        namespaces = load_namespace_map(tmp_path / "vendor")

        assert [str(p) for p in namespaces["acme.one"]] == ["/src/one"]
        assert [str(p) for p in namespaces["acme.two"]] == ["/src/a", "/src/b"]
        assert "bad" not in namespaces


class TestPluginModule:
    """Test plugin module detection."""

    def test_package_id_from_file_name(self, tmp_path):
        assert package_id_for(tmp_path / "Carousel_plugin.py") == "carousel"

    def test_only_depth_zero_counts(self, tmp_path):
        nested = tmp_path / "sub"
        nested.mkdir()
        (nested / "deep_plugin.py").write_text("")

        assert find_plugin_module(tmp_path) is None

    def test_first_plugin_module_wins(self, tmp_path):
        (tmp_path / "beta_plugin.py").write_text("")
        (tmp_path / "alpha_plugin.py").write_text("")

        assert find_plugin_module(tmp_path).name == "alpha_plugin.py"


class TestPackageScanner:
    """Test package discovery."""

    def test_discovers_package_with_plugin_module_and_manifest(self, project):
        path = project.add_package(
            "acme.carousel",
            plugin_file="carousel_plugin.py",
            manifest={"bundles": {"acme.carousel.CarouselPlugin": bundle("all")}},
        )

        packages = list(scanner_for(project).scan())

        assert len(packages) == 1
        assert packages[0].path == path.resolve()
        assert packages[0].manifest.package_id == "carousel"
        assert list(packages[0].manifest.declarations) == ["acme.carousel.CarouselPlugin"]

    def test_package_without_plugin_module_is_skipped(self, project):
        project.add_package("acme.library", manifest={"bundles": {}})

        assert list(scanner_for(project).scan()) == []

    def test_package_without_manifest_is_skipped(self, project):
        project.add_package("acme.carousel", plugin_file="carousel_plugin.py")

        assert list(scanner_for(project).scan()) == []

    def test_malformed_manifest_propagates(self, project):
        path = project.add_package("acme.broken", plugin_file="broken_plugin.py")
        (path / "autoload.json").write_text("{ nope")

        with pytest.raises(MalformedManifestError):
            list(scanner_for(project).scan())

    def test_package_outside_standard_roots_is_ignored(self, project, tmp_path):
        """Mapped packages living outside every allowed root are not scanned."""
        project.add_package(
            "acme.local",
            plugin_file="local_plugin.py",
            manifest={"bundles": {}},
            import_root=tmp_path / "elsewhere",
        )

        assert list(scanner_for(project).scan()) == []

    def test_search_root_widens_the_allow_list(self, project, tmp_path):
        elsewhere = tmp_path / "elsewhere"
        project.add_package(
            "acme.local",
            plugin_file="local_plugin.py",
            manifest={"bundles": {}},
            import_root=elsewhere,
        )

        packages = list(scanner_for(project, search_roots=[elsewhere]).scan())

        assert [p.manifest.package_id for p in packages] == ["local"]

    def test_search_root_children_are_candidates(self, project, tmp_path):
        """Immediate sub-directories of a search root are scanned even when unmapped."""
        search_root = tmp_path / "plugins"
        package = search_root / "gallery"
        package.mkdir(parents=True)
        (package / "gallery_plugin.py").write_text("")
        (package / "autoload.json").write_text(json.dumps({"bundles": {}}))

        packages = list(scanner_for(project, search_roots=[search_root]).scan())

        assert [p.manifest.package_id for p in packages] == ["gallery"]

    def test_candidates_are_deduplicated(self, project):
        path = project.add_package(
            "acme.carousel", plugin_file="carousel_plugin.py", manifest={"bundles": {}}
        )
        import_root = project.namespaces["acme.carousel"]
        namespace_map = {"acme.carousel": [import_root, import_root]}

        scanner = PackageScanner(namespace_map, standard_roots=[project.vendor_dir])

        assert scanner.candidates() == [path.resolve()]

"""
autoboot Configuration - TOML-based settings.

Settings live in the ``[autoboot]`` table of a TOML file (``autoboot.toml``
by default). Priority: explicit argument > AUTOBOOT_ENV > file > defaults.

Example usage:
    from autoboot.config import load_settings

    settings = load_settings(Path("autoboot.toml"))
    print(settings.environment)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from autoboot.config.schema import ConfigField, ValidationError, validate_config
from autoboot.config.toml_handler import generate_toml_from_schema, read_toml, write_toml

SECTION = "autoboot"
DEFAULT_SETTINGS_FILE = Path("autoboot.toml")
ENVIRONMENT_VARIABLE = "AUTOBOOT_ENV"

SETTINGS_SCHEMA: dict[str, ConfigField] = {
    "environment": ConfigField(str, "dev", "Current deployment environment", non_empty=True),
    "kernel_dir": ConfigField(str, "app", "Application directory, relative to the project"),
    "vendor_dir": ConfigField(str, "vendor", "Package manager install directory"),
    "state_dir": ConfigField(
        str, "config/plugins", "Persisted plugin state, relative to kernel_dir"
    ),
    "standard_roots": ConfigField(
        list, [], "Roots where mapped packages are accepted (empty: vendor_dir)", item_type=str
    ),
    "search_roots": ConfigField(
        list, [], "Extra package locations outside the standard roots", item_type=str
    ),
}


@dataclass
class BootstrapSettings:
    """Resolved settings, all paths absolute."""

    project_dir: Path
    environment: str = "dev"
    kernel_dir: Path | None = None
    vendor_dir: Path | None = None
    state_dir: Path | None = None
    standard_roots: list[Path] = field(default_factory=list)
    search_roots: list[Path] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.project_dir = Path(self.project_dir).resolve()
        if self.kernel_dir is None:
            self.kernel_dir = self.project_dir / "app"
        if self.vendor_dir is None:
            self.vendor_dir = self.project_dir / "vendor"
        if self.state_dir is None:
            self.state_dir = Path(self.kernel_dir) / "config" / "plugins"
        if not self.standard_roots:
            self.standard_roots = [Path(self.vendor_dir)]

    @classmethod
    def from_table(cls, table: dict, project_dir: Path) -> "BootstrapSettings":
        """
        Build settings from a validated ``[autoboot]`` table.

        Args:
            table: Complete settings table (see validate_config)
            project_dir: Directory relative paths are resolved against

        Returns:
            BootstrapSettings instance
        """
        project_dir = Path(project_dir).resolve()

        def resolve(value: str, base: Path = project_dir) -> Path:
            return (base / value).resolve()

        kernel_dir = resolve(table["kernel_dir"])
        return cls(
            project_dir=project_dir,
            environment=table["environment"],
            kernel_dir=kernel_dir,
            vendor_dir=resolve(table["vendor_dir"]),
            state_dir=resolve(table["state_dir"], kernel_dir),
            standard_roots=[resolve(p) for p in table["standard_roots"]],
            search_roots=[resolve(p) for p in table["search_roots"]],
        )


def load_settings(
    path: Path | None = None,
    project_dir: Path | None = None,
    environment: str | None = None,
) -> BootstrapSettings:
    """
    Load settings.

    Args:
        path: Settings file; a missing file means defaults
        project_dir: Project directory (default: the settings file's folder, else cwd)
        environment: Explicit environment, overrides everything else

    Returns:
        BootstrapSettings instance

    Raises:
        TOMLError: If the file cannot be parsed
        ValidationError: If the ``[autoboot]`` table is invalid
    """
    data: dict = {}
    if path is not None and Path(path).exists():
        data = read_toml(Path(path))

    table = data.get(SECTION, {})
    if not isinstance(table, dict):
        raise ValidationError(f"'{SECTION}' must be a table")
    table = validate_config(table, SETTINGS_SCHEMA)

    if env_value := os.getenv(ENVIRONMENT_VARIABLE):
        table["environment"] = env_value
    if environment:
        table["environment"] = environment

    if project_dir is None:
        project_dir = Path(path).resolve().parent if path is not None else Path.cwd()

    return BootstrapSettings.from_table(table, project_dir)


def write_default_settings(path: Path = DEFAULT_SETTINGS_FILE) -> Path:
    """Write a commented settings file holding the defaults."""
    content = generate_toml_from_schema(SECTION, SETTINGS_SCHEMA, {})
    write_toml(Path(path), content)
    return Path(path)


__all__ = [
    "BootstrapSettings",
    "DEFAULT_SETTINGS_FILE",
    "SETTINGS_SCHEMA",
    "ValidationError",
    "load_settings",
    "write_default_settings",
]

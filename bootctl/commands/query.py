"""
bootctl query command (-Q).

Lists the packages recorded in the persisted state, without running a pass.
"""

from pathlib import Path
from typing import Any

from autoboot.config import load_settings
from autoboot.plugin.state import InstalledStateStore


def query_command(args: Any) -> int:
    """
    Execute query command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    settings = load_settings(Path(args.config), environment=args.env)
    store = InstalledStateStore(settings.state_dir)
    installed = store.load_installed()

    if not installed:
        print("No installed packages")
        return 0

    for package_id, manifest in installed.items():
        action = f" [action: {manifest.action_manager}]" if manifest.action_manager else ""
        print(f"{package_id}{action}")
        if args.list:
            for declaration in manifest.declarations.values():
                environments = ", ".join(declaration.environments) or "-"
                line = f"    {declaration.class_name} ({environments})"
                if declaration.overrides:
                    line += f" overrides {', '.join(declaration.overrides)}"
                print(line)

    return 0

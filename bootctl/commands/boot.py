"""
bootctl boot command (-B).

Runs the reconciliation pass and prints the active plugins in activation order.
"""

from pathlib import Path
from typing import Any

from autoboot.bootstrap import Bootstrapper
from autoboot.plugin.loader import qualified_name


def boot_command(args: Any) -> int:
    """
    Execute boot command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    bootstrapper = Bootstrapper.from_config(Path(args.config), environment=args.env)
    active = bootstrapper.get_active_plugins()

    if args.verbose:
        print(f"Environment: {bootstrapper.environment}")

    for position, (identifier, plugin) in enumerate(active.items(), start=1):
        print(f"{position:>3}. {identifier} ({qualified_name(plugin)})")

    if args.verbose:
        print(f"\nActive: {len(active)}")

    return 0

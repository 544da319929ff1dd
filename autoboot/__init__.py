"""
autoboot - Plugin discovery, ordering and install/uninstall reconciliation.

Packages installed by the package manager declare their plugins in an
``autoload.json`` manifest. autoboot finds them, keeps the persisted
"installed" state in sync, runs lifecycle actions and returns the plugins
active for the current environment, in override order.
"""

__version__ = "0.1.0"

from autoboot.bootstrap import Bootstrapper
from autoboot.config import BootstrapSettings, load_settings
from autoboot.plugin.engine import ActivePluginSet

__all__ = [
    "__version__",
    "ActivePluginSet",
    "BootstrapSettings",
    "Bootstrapper",
    "load_settings",
]

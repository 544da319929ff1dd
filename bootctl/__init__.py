"""
bootctl - autoboot command line tool.

Runs the reconciliation pass and inspects the persisted plugin state.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

"""
bootctl init command (--init).

Writes a commented settings file holding the defaults.
"""

import sys
from pathlib import Path
from typing import Any

from autoboot.config import write_default_settings


def init_command(args: Any) -> int:
    path = Path(args.config)
    if path.exists():
        print(f"Error: {path} already exists", file=sys.stderr)
        return 1
    write_default_settings(path)
    print(f"Wrote {path}")
    return 0

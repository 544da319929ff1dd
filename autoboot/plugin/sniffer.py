"""
Source sniffing for cached lifecycle actions.

Best-effort only: the module name comes from the cached file name and the
class from the first top-level ``class`` statement. Anything that does not
fit that pattern is reported as None rather than raising.
"""

import ast
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SniffedSource:
    """Module and class recovered from a cached source file."""

    namespace: str
    class_name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.class_name}"


def _is_dotted_identifier(name: str) -> bool:
    return bool(name) and all(part.isidentifier() for part in name.split("."))


def sniff_source(path: Path) -> SniffedSource | None:
    """
    Recover the module name and class name declared by a cached source file.

    Args:
        path: Cached file, named ``<dotted.module.name>.py``

    Returns:
        SniffedSource, or None if the file does not match the expected shape
    """
    namespace = path.name.removesuffix(".py")
    if not _is_dotted_identifier(namespace):
        logger.warning("cached_source_bad_name", path=str(path))
        return None

    try:
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
        logger.warning("cached_source_unparsable", path=str(path), error=str(e))
        return None

    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            return SniffedSource(namespace=namespace, class_name=node.name)

    logger.warning("cached_source_without_class", path=str(path))
    return None

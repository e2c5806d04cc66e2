"""Lock file parsers."""

from .base import BaseParser, Package, ParsedLock
from .composer import ComposerLockParser, packages_from_mapping

__all__ = [
    "BaseParser",
    "Package",
    "ParsedLock",
    "ComposerLockParser",
    "packages_from_mapping",
]

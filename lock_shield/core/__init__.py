"""Core version handling and advisory matching logic for LockShield."""

from .matcher import Advisory, AdvisoryBranch, AdvisoryMatcher, parse_package_time
from .parsers import Package, ParsedLock, ComposerLockParser
from .versions import normalize_version, is_development_version

__all__ = [
    "Advisory",
    "AdvisoryBranch",
    "AdvisoryMatcher",
    "parse_package_time",
    "Package",
    "ParsedLock",
    "ComposerLockParser",
    "normalize_version",
    "is_development_version",
]

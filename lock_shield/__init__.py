"""LockShield - checks Composer lock files against known security advisories."""

__version__ = "0.1.0"
__author__ = "LockShield Team"

from .advisories import AdvisoryDatabase, AdvisoryFetcher, AdvisoryIndex, StaticAdvisorySource
from .checker import SecurityChecker
from .config import CheckerOptions
from .core.matcher import Advisory, AdvisoryBranch, AdvisoryMatcher
from .core.parsers import ComposerLockParser, Package
from .errors import LockShieldError
from .output.formatters import ConsoleFormatter, JSONFormatter

__all__ = [
    "SecurityChecker",
    "CheckerOptions",
    "Advisory",
    "AdvisoryBranch",
    "AdvisoryMatcher",
    "AdvisoryIndex",
    "AdvisoryDatabase",
    "AdvisoryFetcher",
    "StaticAdvisorySource",
    "ComposerLockParser",
    "Package",
    "LockShieldError",
    "ConsoleFormatter",
    "JSONFormatter",
]

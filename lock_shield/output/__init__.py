"""Output formatters for LockShield."""

from .formatters import ConsoleFormatter, JSONFormatter

__all__ = [
    "ConsoleFormatter",
    "JSONFormatter",
]

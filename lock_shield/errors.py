"""Exception types raised by LockShield."""


class LockShieldError(Exception):
    """Base class for all LockShield errors."""


class LockFormatError(LockShieldError, ValueError):
    """Lock data is not a structured mapping, or a lock file does not decode to one."""


class LockFileNotFoundError(LockShieldError, FileNotFoundError):
    """A lock file path does not resolve to a file."""


class AdvisoriesDirectoryError(LockShieldError, ValueError):
    """The advisories directory cannot be created or written to."""


class AdvisoryDatabaseError(LockShieldError):
    """The extracted advisory database cannot be read."""


class AdvisoryFetchError(LockShieldError, RuntimeError):
    """The advisory archive could not be downloaded or extracted."""

    def __init__(self, message: str, status: int = 0) -> None:
        super().__init__(message)
        self.status = status


class ConstraintError(LockShieldError, ValueError):
    """A version constraint expression could not be parsed."""

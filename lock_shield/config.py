"""Configuration for the security checker."""

import os
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import AdvisoriesDirectoryError

ADVISORIES_URL = "https://codeload.github.com/FriendsOfPHP/security-advisories/zip/master"
DEFAULT_STALE_AFTER = 86400  # 24 hours
DEFAULT_HTTP_TIMEOUT = 30.0

ENV_ADVISORIES_DIR = "LOCKSHIELD_ADVISORIES_DIR"
ENV_STALE_AFTER = "LOCKSHIELD_STALE_AFTER"


def default_advisories_dir() -> Path:
    return Path(tempfile.gettempdir()) / "lock-shield" / "advisories"


@dataclass
class CheckerOptions:
    """Options for SecurityChecker and the advisory fetcher."""

    advisories_dir: Path = field(default_factory=default_advisories_dir)
    stale_after: int = DEFAULT_STALE_AFTER
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    advisories_url: str = ADVISORIES_URL

    def __post_init__(self) -> None:
        """Normalise option types."""
        self.advisories_dir = Path(self.advisories_dir)
        self.stale_after = int(self.stale_after)
        if self.stale_after < 0:
            raise ValueError("stale_after cannot be negative")
        self.http_timeout = float(self.http_timeout)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "CheckerOptions":
        """Build options from a mapping.

        Keys may use dashes or underscores (``advisories-dir`` or ``advisories_dir``).
        ``advisories-stale-after`` is accepted for ``stale_after``.
        """
        names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = key.replace("-", "_")
            if name == "advisories_stale_after":
                name = "stale_after"
            if name not in names:
                raise ValueError(f"Unknown option: {key}")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "CheckerOptions":
        """Build options from LOCKSHIELD_* environment variables plus explicit overrides."""
        environ = os.environ if environ is None else environ
        kwargs: Dict[str, Any] = {}
        if environ.get(ENV_ADVISORIES_DIR):
            kwargs["advisories_dir"] = Path(environ[ENV_ADVISORIES_DIR])
        if environ.get(ENV_STALE_AFTER):
            kwargs["stale_after"] = int(environ[ENV_STALE_AFTER])
        kwargs.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**kwargs)

    @property
    def timestamp_file(self) -> Path:
        return self.advisories_dir / "timestamp.txt"

    @property
    def database_path(self) -> Path:
        return self.advisories_dir / "security-advisories-master"

    def validate(self) -> None:
        """Create the advisories directory if needed and confirm it is writable.

        Raises:
            AdvisoriesDirectoryError: If the directory cannot be used
        """
        try:
            self.advisories_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AdvisoriesDirectoryError(
                f"Directory '{self.advisories_dir}' must be writable: {e}"
            ) from e

        if not self.advisories_dir.is_dir() or not os.access(self.advisories_dir, os.W_OK | os.X_OK):
            raise AdvisoriesDirectoryError(f"Directory '{self.advisories_dir}' must be writable.")

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

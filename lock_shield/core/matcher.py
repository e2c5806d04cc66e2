"""Core advisory matching logic for LockShield."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..utils.logging import get_logger
from .constraints import satisfies_any
from .parsers.base import Package
from .versions import normalize_version, strip_branch_suffix

REFERENCE_PREFIX = "composer://"

# Unparseable or missing install times collapse to this value.
EPOCH_SENTINEL = 0


@dataclass(frozen=True)
class AdvisoryBranch:
    """A named branch of an advisory with its affected version ranges."""

    name: str
    versions: Tuple[str, ...] = ()
    timestamp: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "versions", tuple(self.versions))
        object.__setattr__(self, "timestamp", int(self.timestamp or 0))


@dataclass(frozen=True)
class Advisory:
    """Represents a security advisory for one package."""

    title: str
    link: str
    cve: Optional[str] = None
    reference: str = ""
    branches: Tuple[AdvisoryBranch, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate advisory data."""
        if not self.reference:
            raise ValueError("Advisory reference cannot be empty")
        object.__setattr__(self, "branches", tuple(self.branches))

    @property
    def package_name(self) -> str:
        """Package identifier, i.e. the reference without its ``composer://`` prefix."""
        if self.reference.startswith(REFERENCE_PREFIX):
            return self.reference[len(REFERENCE_PREFIX):]
        return self.reference

    def to_result(self) -> Dict[str, Any]:
        """Descriptive fields only; branches and reference are never exposed."""
        return {
            "title": self.title,
            "link": self.link,
            "cve": self.cve,
        }


def parse_package_time(value: Optional[str]) -> int:
    """Parse a lock file ``time`` value as UTC unix time.

    Args:
        value: Timestamp such as ``2021-03-01T10:00:00+00:00`` or ``2021-03-01 10:00:00``

    Returns:
        Unix time, or EPOCH_SENTINEL if missing or unparseable
    """
    if not isinstance(value, str) or not value.strip():
        return EPOCH_SENTINEL

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    elif text.upper().endswith(" UTC"):
        text = text[:-4]

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return EPOCH_SENTINEL

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


class AdvisoryMatcher:
    """Decides which advisories apply to an installed package."""

    def __init__(self) -> None:
        self.logger = get_logger("AdvisoryMatcher")

    def match_advisories(
        self,
        package: Package,
        advisories: Iterable[Advisory]
    ) -> List[Advisory]:
        """Match one installed package against its candidate advisories.

        Each advisory contributes at most once: its branches are tried in
        order and the first applicable branch ends the search for that
        advisory. Advisory order is preserved.

        Args:
            package: Installed package
            advisories: Advisories recorded for the package name

        Returns:
            Advisories with at least one applicable branch
        """
        matches = []
        is_dev = package.is_dev
        normalized = normalize_version(package.version) if is_dev else None
        package_time = parse_package_time(package.time) if is_dev else EPOCH_SENTINEL

        for advisory in advisories:
            branch = self._find_matching_branch(package, advisory, normalized, package_time)
            if branch is None:
                self._debug(f"NO MATCH: {package.name} {package.version} is not affected by {advisory.title!r}")
                continue
            self._debug(
                f"MATCH: {package.name} {package.version} affected by {advisory.title!r} via branch {branch.name}"
            )
            matches.append(advisory)

        return matches

    def _find_matching_branch(
        self,
        package: Package,
        advisory: Advisory,
        normalized: Optional[str],
        package_time: int
    ) -> Optional[AdvisoryBranch]:
        for branch in advisory.branches:
            if normalized is not None:
                applies = self._dev_branch_applies(branch, normalized, package_time)
            else:
                applies = satisfies_any(package.version, branch.versions)
            if applies:
                return branch
        return None

    def _dev_branch_applies(self, branch: AdvisoryBranch, normalized: str, package_time: int) -> bool:
        """Check a development install against one advisory branch.

        The branch must be the one installed, and the installed snapshot must
        not be newer than the branch timestamp.
        """
        if strip_branch_suffix(branch.name) != normalized:
            return False
        if package_time == EPOCH_SENTINEL or package_time > branch.timestamp:
            return False
        return True

    def _debug(self, message: str) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(message)

"""Version string helpers for installed Composer packages.

Installed versions come in two flavours. Stable versions (``1.0.70``,
``v2.3.4``, ``4.6.0-rc1``) are compared against advisory constraints.
Development versions (``dev-master``, ``1.x-dev``, ``4.0.x-dev``) track a
branch and are compared against advisory branch names instead.
"""

import re
from typing import List, Optional, Union

from packaging import version as packaging_version
from packaging.version import Version

Needles = Union[str, List[str]]

DEV_PREFIX = "dev-"
DEV_SUFFIXES = [".x-dev", "-dev"]

# A trailing `"#<ref>` pins a stable version to a commit.
_COMMIT_PIN = re.compile(r'"#.+$')

_VERSION_PATTERN = re.compile(
    r'^v?(?P<release>\d+(?:\.\d+){0,3})'
    r'(?:[._-]?(?P<stability>stable|beta|b|rc|alpha|a|patch|pl|p)(?:[.-]?(?P<number>\d+))?)?'
    r'(?P<dev>[._-]?dev)?$',
    re.IGNORECASE,
)

_PRE_RELEASE_TAGS = {
    "alpha": "a",
    "a": "a",
    "beta": "b",
    "b": "b",
    "rc": "rc",
}
_POST_RELEASE_TAGS = {"patch", "pl", "p"}


def _as_list(needles: Needles) -> List[str]:
    if isinstance(needles, str):
        return [needles]
    return list(needles)


def starts_with(haystack: str, needles: Needles) -> bool:
    """Return True if haystack starts with any of the needles.

    An empty needle always matches.
    """
    return any(not needle or haystack.startswith(needle) for needle in _as_list(needles))


def ends_with(haystack: str, needles: Needles) -> bool:
    """Return True if haystack ends with any of the needles.

    An empty needle always matches.
    """
    return any(not needle or haystack.endswith(needle) for needle in _as_list(needles))


def remove_from_start(haystack: str, needles: Needles) -> str:
    """Remove each matching needle from the start of haystack, in order."""
    for needle in _as_list(needles):
        if needle and haystack.startswith(needle):
            haystack = haystack[len(needle):]
    return haystack


def remove_from_end(haystack: str, needles: Needles) -> str:
    """Remove each matching needle from the end of haystack, in order."""
    for needle in _as_list(needles):
        if needle and haystack.endswith(needle):
            haystack = haystack[:-len(needle)]
    return haystack


def normalize_version(version: str) -> str:
    """Normalise a development version for comparison with advisory branch names.

    Strips a leading ``dev-`` and then the first of ``.x-dev`` / ``-dev``
    found at the end, so ``dev-1.2.x-dev`` and ``1.2-dev`` both become ``1.2``.

    Args:
        version: Installed version string

    Returns:
        Normalised branch name
    """
    version = remove_from_start(version, DEV_PREFIX)
    for suffix in DEV_SUFFIXES:
        if version.endswith(suffix):
            return version[:-len(suffix)]
    return version


def strip_branch_suffix(branch_name: str) -> str:
    """Turn an advisory branch name like ``1.x`` into ``1``."""
    return remove_from_end(branch_name, ".x")


def is_development_version(version: str) -> bool:
    """Check if an installed version tracks a development branch.

    Args:
        version: Installed version string, possibly with a commit pin suffix

    Returns:
        True for ``dev-*`` and ``*-dev`` versions
    """
    version = _COMMIT_PIN.sub('', version)
    return version.startswith(DEV_PREFIX) or version.endswith("-dev")


def to_pep440(version: str) -> Optional[str]:
    """Translate a Composer version string into PEP 440 form.

    Returns None if the string is not a recognisable version.
    """
    match = _VERSION_PATTERN.match(version.strip())
    if not match:
        return None

    result = match.group("release")
    stability = (match.group("stability") or "").lower()
    number = match.group("number") or "0"

    if stability in _PRE_RELEASE_TAGS:
        result += f"{_PRE_RELEASE_TAGS[stability]}{int(number)}"
    elif stability in _POST_RELEASE_TAGS:
        result += f".post{int(number)}"

    if match.group("dev"):
        result += ".dev0"

    return result


def parse_version(version: str) -> Optional[Version]:
    """Parse a Composer version into a comparable Version.

    Malformed versions return None rather than raising.
    """
    if not isinstance(version, str):
        return None

    normalized = to_pep440(version)
    if normalized is None:
        return None

    try:
        return Version(normalized)
    except packaging_version.InvalidVersion:
        return None

"""Composer version constraint evaluation.

Constraints are parsed into alternatives (``||``) of conjunctions (``,`` or
whitespace) of simple bounds, then evaluated against ``packaging`` Version
objects. Supported syntax: comparison operators, exact versions, wildcards
(``1.0.*``, ``1.x``, ``*``), hyphen ranges (``1.0 - 2.0``), tilde (``~1.2``)
and caret (``^1.2.3``) ranges. Stability flags such as ``@dev`` are ignored.
"""

import functools
import operator
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from packaging.version import Version

from ..errors import ConstraintError
from .versions import parse_version

_OPERATORS: Dict[str, Callable[[Version, Version], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}
_OPERATOR_ALIASES = {"=": "==", "<>": "!="}

_OR_SPLIT = re.compile(r'\s*\|\|?\s*')
_OPERATOR_SPACE = re.compile(r'(<>|!=|>=|<=|==|=|<|>|~|\^)\s+')
_TERM = re.compile(r'(?P<lower>[^\s,]+)\s+-\s+(?P<upper>[^\s,]+)|(?P<single>[^\s,]+)')
_STABILITY_FLAG = re.compile(r'@(?:stable|rc|beta|alpha|dev)$', re.IGNORECASE)
_COMPARISON = re.compile(r'^(?P<op><>|!=|>=|<=|==|=|<|>)?(?P<version>.+)$')
_WILDCARD = re.compile(r'^v?(?P<prefix>\d+(?:\.\d+)*)\.[*xX]$')
_RELEASE = re.compile(r'^v?(?P<release>\d+(?:\.\d+)*)')


@dataclass(frozen=True)
class Bound:
    """A single comparison such as ``>=1.0.0``."""

    operator: str
    version: Version

    def allows(self, candidate: Version) -> bool:
        return _OPERATORS[self.operator](candidate, self.version)

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


@dataclass(frozen=True)
class Constraint:
    """A parsed constraint: any alternative whose bounds all hold."""

    expression: str
    alternatives: Tuple[Tuple[Bound, ...], ...]

    def allows(self, candidate: Version) -> bool:
        return any(
            all(bound.allows(candidate) for bound in alternative)
            for alternative in self.alternatives
        )


def _dev_floor(version: Version) -> Version:
    """The earliest development pre-release of a plain release version."""
    if version.pre is not None or version.post is not None or version.dev is not None:
        return version
    return Version(f"{version.base_version}.dev0")


def _segments(text: str) -> List[int]:
    match = _RELEASE.match(text)
    if not match:
        raise ConstraintError(f"Invalid version in constraint: {text!r}")
    return [int(part) for part in match.group("release").split(".")]


def _bump(segments: List[int], position: int) -> Version:
    """Increment the segment at position and drop everything after it."""
    bumped = segments[:position] + [segments[position] + 1]
    return Version(".".join(str(part) for part in bumped) + ".dev0")


def _require_version(text: str) -> Version:
    version = parse_version(text)
    if version is None:
        raise ConstraintError(f"Invalid version in constraint: {text!r}")
    return version


def _parse_hyphen(lower: str, upper: str) -> List[Bound]:
    bounds = [Bound(">=", _dev_floor(_require_version(lower)))]
    upper_version = _require_version(upper)
    upper_segments = _segments(upper)
    if len(upper_segments) < 3:
        bounds.append(Bound("<", _bump(upper_segments, len(upper_segments) - 1)))
    else:
        bounds.append(Bound("<=", upper_version))
    return bounds


def _parse_tilde(text: str) -> List[Bound]:
    lower = _require_version(text)
    segments = _segments(text)
    position = max(len(segments) - 2, 0)
    return [Bound(">=", _dev_floor(lower)), Bound("<", _bump(segments, position))]


def _parse_caret(text: str) -> List[Bound]:
    lower = _require_version(text)
    segments = _segments(text)
    position = len(segments) - 1
    for index, part in enumerate(segments):
        if part != 0:
            position = index
            break
    return [Bound(">=", _dev_floor(lower)), Bound("<", _bump(segments, position))]


def _parse_term(term: str) -> List[Bound]:
    """Parse one conjunctive term into its bounds.

    An empty list means the term allows every version.
    """
    term = _STABILITY_FLAG.sub('', term)
    if term in ("*", "x", "X", ""):
        return []

    if term.startswith("~"):
        return _parse_tilde(term[1:])
    if term.startswith("^"):
        return _parse_caret(term[1:])

    wildcard = _WILDCARD.match(term)
    if wildcard:
        segments = _segments(wildcard.group("prefix"))
        floor = Version(".".join(str(part) for part in segments) + ".dev0")
        return [Bound(">=", floor), Bound("<", _bump(segments, len(segments) - 1))]

    comparison = _COMPARISON.match(term)
    if not comparison:
        raise ConstraintError(f"Invalid constraint term: {term!r}")

    op = comparison.group("op") or "=="
    op = _OPERATOR_ALIASES.get(op, op)
    version = _require_version(comparison.group("version"))

    # Composer treats "<1.2" and ">=1.2" as bounded by the 1.2 dev release
    if op in ("<", ">="):
        version = _dev_floor(version)

    return [Bound(op, version)]


def _parse_alternative(alternative: str) -> Tuple[Bound, ...]:
    alternative = _OPERATOR_SPACE.sub(r'\1', alternative.strip())
    if not alternative:
        raise ConstraintError("Empty constraint alternative")

    bounds: List[Bound] = []
    for match in _TERM.finditer(alternative):
        if match.group("single") is not None:
            bounds.extend(_parse_term(match.group("single")))
        else:
            bounds.extend(_parse_hyphen(match.group("lower"), match.group("upper")))
    return tuple(bounds)


def parse_constraint(expression: str) -> Constraint:
    """Parse a Composer constraint expression.

    Args:
        expression: Constraint such as ``>=1.0.0,<1.0.71`` or ``^2.0 || ^3.0``

    Returns:
        Parsed constraint

    Raises:
        ConstraintError: If the expression is malformed
    """
    if not isinstance(expression, str):
        raise ConstraintError(f"Constraint must be a string, got {type(expression).__name__}")

    return _parse_cached(expression.strip())


@functools.lru_cache(maxsize=4096)
def _parse_cached(expression: str) -> Constraint:
    if not expression:
        raise ConstraintError("Empty constraint")

    alternatives = tuple(
        _parse_alternative(alternative) for alternative in _OR_SPLIT.split(expression)
    )
    return Constraint(expression=expression, alternatives=alternatives)


def satisfies(version: str, constraint: str) -> bool:
    """Check whether an installed version satisfies a constraint.

    Malformed versions or constraints never match.
    """
    parsed = parse_version(version)
    if parsed is None:
        return False
    try:
        return parse_constraint(constraint).allows(parsed)
    except ConstraintError:
        return False


def satisfies_any(version: str, constraints: Iterable[str]) -> bool:
    """Check whether a version satisfies at least one of several constraints."""
    parsed: Optional[Version] = parse_version(version)
    if parsed is None:
        return False

    for constraint in constraints:
        try:
            if parse_constraint(constraint).allows(parsed):
                return True
        except ConstraintError:
            continue
    return False

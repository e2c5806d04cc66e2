"""In-memory advisory index and the sources that build it."""

import threading
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Tuple

from ..core.matcher import Advisory


class AdvisoryIndex:
    """Immutable mapping of package name to its advisories.

    Advisories keep the order in which the source supplied them.
    """

    def __init__(self, advisories: Optional[Mapping[str, Iterable[Advisory]]] = None) -> None:
        frozen: Dict[str, Tuple[Advisory, ...]] = {
            name: tuple(items) for name, items in (advisories or {}).items()
        }
        self._advisories = MappingProxyType(frozen)

    @classmethod
    def from_advisories(cls, advisories: Iterable[Advisory]) -> "AdvisoryIndex":
        """Group advisories by the package they reference.

        Args:
            advisories: Advisories in source order

        Returns:
            New index
        """
        grouped: Dict[str, List[Advisory]] = {}
        for advisory in advisories:
            grouped.setdefault(advisory.package_name, []).append(advisory)
        return cls(grouped)

    def get(self, package_name: str) -> Tuple[Advisory, ...]:
        return self._advisories.get(package_name, ())

    def __contains__(self, package_name: object) -> bool:
        return package_name in self._advisories

    def __iter__(self) -> Iterator[str]:
        return iter(self._advisories)

    def __len__(self) -> int:
        return len(self._advisories)

    def __repr__(self) -> str:
        return f"AdvisoryIndex(packages={self.package_count}, advisories={self.advisory_count})"

    @property
    def package_count(self) -> int:
        return len(self._advisories)

    @property
    def advisory_count(self) -> int:
        return sum(len(items) for items in self._advisories.values())


class AdvisorySource(Protocol):
    """Anything that can produce a finished AdvisoryIndex snapshot."""

    def load(self) -> AdvisoryIndex:
        ...


class StaticAdvisorySource:
    """Advisory source backed by advisories held in memory."""

    def __init__(self, advisories: Iterable[Advisory]) -> None:
        self._advisories = list(advisories)

    def load(self) -> AdvisoryIndex:
        return AdvisoryIndex.from_advisories(self._advisories)


class IndexHolder:
    """Owns the current index snapshot.

    Readers get whichever snapshot is current; a rebuild swaps in a complete
    new index under the lock, so a partially built index is never visible.
    """

    def __init__(self, index: Optional[AdvisoryIndex] = None) -> None:
        self._lock = threading.Lock()
        self._index = index if index is not None else AdvisoryIndex()
        self._populated = index is not None

    def current(self) -> AdvisoryIndex:
        with self._lock:
            return self._index

    def swap(self, index: AdvisoryIndex) -> AdvisoryIndex:
        """Replace the current snapshot and return the previous one."""
        with self._lock:
            previous = self._index
            self._index = index
            self._populated = True
            return previous

    @property
    def populated(self) -> bool:
        with self._lock:
            return self._populated

"""Security checker: matches lock file packages against known advisories."""

import asyncio
import functools
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .advisories.database import AdvisoryDatabase
from .advisories.fetcher import AdvisoryFetcher
from .advisories.index import AdvisoryIndex, AdvisorySource, IndexHolder
from .config import CheckerOptions
from .core.matcher import AdvisoryMatcher
from .core.parsers.base import Package
from .core.parsers.composer import ComposerLockParser, packages_from_mapping
from .errors import LockFormatError
from .utils.logging import get_logger
from .utils.performance import PerformanceMonitor

VulnerabilityResult = Dict[str, Dict[str, Any]]
LockInput = Union[str, "os.PathLike[str]", Mapping[str, Any]]


class SecurityChecker:
    """Checks Composer lock data for packages with known security advisories.

    The advisory index is built once, when the checker is created, and reused
    by every check until refresh() swaps in a new one.
    """

    def __init__(
        self,
        options: Optional[Union[CheckerOptions, Mapping[str, Any]]] = None,
        source: Optional[AdvisorySource] = None,
        fetcher: Optional[AdvisoryFetcher] = None,
        auto_refresh: bool = True
    ) -> None:
        """Initialize the checker.

        Args:
            options: Checker options, or a mapping of option names to values
            source: Advisory source; defaults to the downloaded advisories archive
            fetcher: Archive fetcher used when no source is given
            auto_refresh: Build the advisory index immediately

        Raises:
            AdvisoriesDirectoryError: If the advisories directory isn't writable
            AdvisoryFetchError: If the advisories archive can't be downloaded
        """
        if isinstance(options, Mapping):
            options = CheckerOptions.from_mapping(options)
        self.options = options or CheckerOptions()

        self.logger = get_logger("SecurityChecker")
        self.performance_monitor = PerformanceMonitor()
        self.matcher = AdvisoryMatcher()
        self.parser = ComposerLockParser()

        self._source = source
        self._fetcher = fetcher
        self._holder = IndexHolder()
        self._refresh_lock = threading.Lock()

        if self._source is None:
            self.options.validate()
            if self._fetcher is None:
                self._fetcher = AdvisoryFetcher(self.options)

        if auto_refresh:
            self.refresh()

    @property
    def index(self) -> AdvisoryIndex:
        """The advisory index snapshot currently in use."""
        return self._holder.current()

    def refresh(self, force: bool = False, fetch: bool = True) -> AdvisoryIndex:
        """Fetch advisories if stale (or forced) and rebuild the index.

        Concurrent checks keep using the previous index until the new one is
        complete.

        Args:
            force: Re-download even if the cached archive is fresh
            fetch: If False, only rebuild from what is already on disk

        Returns:
            The index now in use
        """
        with self._refresh_lock:
            downloaded = False
            if fetch and self._fetcher is not None and self._source is None:
                downloaded = self._fetcher.fetch_sync(force=force)
            return self._rebuild(downloaded or force or not fetch)

    async def refresh_async(self, force: bool = False, fetch: bool = True) -> AdvisoryIndex:
        """Async variant of refresh() for callers already inside an event loop.

        The refresh runs in a worker thread under the same lock as refresh(),
        so downloads, extraction and index rebuilds never overlap.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.refresh, force=force, fetch=fetch))

    def _rebuild(self, changed: bool) -> AdvisoryIndex:
        if self._holder.populated and not changed:
            return self._holder.current()

        with self.performance_monitor.measure("build_index"):
            index = self._current_source().load()

        self._holder.swap(index)
        self.logger.info(f"Advisory index ready: {index.package_count} packages, {index.advisory_count} advisories")
        return index

    def _current_source(self) -> AdvisorySource:
        if self._source is not None:
            return self._source
        return AdvisoryDatabase(self.options.database_path)

    def check(self, lock: LockInput, include_dev: bool = True) -> VulnerabilityResult:
        """Check a composer.lock file, or its decoded contents, for vulnerable packages.

        Args:
            lock: Path to the lock file, or the decoded lock mapping
            include_dev: If False, ``packages-dev`` entries are not checked

        Returns:
            Mapping of package name to installed version and matching advisories

        Raises:
            LockFileNotFoundError: If a lock file path does not exist
            LockFormatError: If the lock data is not a mapping
        """
        if isinstance(lock, (str, os.PathLike)):
            lock_data = self.parser.load(Path(lock))
        elif isinstance(lock, Mapping):
            lock_data = lock
        else:
            raise LockFormatError(
                "lock must be the path to a composer.lock file, "
                "or the decoded mapping of the composer.lock contents."
            )
        return self.check_packages(self.get_packages(lock_data, include_dev))

    def check_file(self, path: Union[str, "os.PathLike[str]"], include_dev: bool = True) -> VulnerabilityResult:
        return self.check(Path(path), include_dev)

    def check_packages(self, packages: Iterable[Package]) -> VulnerabilityResult:
        """Match already-extracted packages against the current index.

        Packages without matching advisories are left out of the result.
        """
        index = self._holder.current()
        vulnerabilities: VulnerabilityResult = {}

        with self.performance_monitor.measure("check"):
            for package in packages:
                candidates = index.get(package.name)
                if not candidates:
                    continue

                advisories = self.matcher.match_advisories(package, candidates)
                if advisories:
                    vulnerabilities[package.name] = {
                        "version": package.version,
                        "advisories": [advisory.to_result() for advisory in advisories],
                    }

        return vulnerabilities

    def get_packages(self, lock: Mapping[str, Any], include_dev: bool = True) -> List[Package]:
        """Get the packages included in decoded lock data.

        Args:
            lock: Decoded composer.lock contents
            include_dev: Include ``packages-dev`` entries

        Returns:
            Packages in lock order
        """
        return packages_from_mapping(lock, include_dev)

    def get_options(self) -> Dict[str, Any]:
        return self.options.as_dict()

    def get_option(self, name: str) -> Any:
        """Get an option value by name, or None if there is no such option."""
        return self.get_options().get(name.replace("-", "_"))

    def get_statistics(self) -> Dict[str, Any]:
        index = self.index
        stats: Dict[str, Any] = {
            "packages_indexed": index.package_count,
            "advisories_indexed": index.advisory_count,
        }
        if self._fetcher is not None and self._source is None:
            stats["last_fetched"] = self._fetcher.last_fetched()
        summary = self.performance_monitor.get_summary()
        if summary:
            stats["total_time"] = summary["total_time"]
        return stats

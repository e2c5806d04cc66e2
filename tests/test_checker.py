"""Tests for the security checker."""

import asyncio
import json
import threading
import time
from unittest.mock import MagicMock

import pytest

from lock_shield.advisories.index import AdvisoryIndex, StaticAdvisorySource
from lock_shield.checker import SecurityChecker
from lock_shield.config import CheckerOptions
from lock_shield.errors import LockFileNotFoundError, LockFormatError
from lock_shield.utils.performance import MAX_RECENT_METRICS

from conftest import FIX_TIME, make_advisory


@pytest.fixture
def checker(flysystem_advisory, twig_advisory):
    return SecurityChecker(source=StaticAdvisorySource([flysystem_advisory, twig_advisory]))


@pytest.fixture
def lock_file(tmp_path, lock_data):
    path = tmp_path / "composer.lock"
    path.write_text(json.dumps(lock_data))
    return path


class TestCheck:
    """Test checking decoded lock data."""

    def test_vulnerable_packages_reported(self, checker, lock_data, flysystem_advisory, twig_advisory):
        result = checker.check(lock_data)

        assert result == {
            "league/flysystem": {
                "version": "1.0.70",
                "advisories": [flysystem_advisory.to_result()],
            },
            "twig/twig": {
                "version": "v1.37.0",
                "advisories": [twig_advisory.to_result()],
            },
        }

    def test_result_keys_only_for_indexed_packages(self, checker, lock_data):
        assert "symfony/console" not in checker.check(lock_data)

    def test_without_dev_packages(self, checker, lock_data):
        result = checker.check(lock_data, include_dev=False)
        assert list(result) == ["league/flysystem"]

    def test_patched_version_not_reported(self, checker):
        lock = {"packages": [{"name": "league/flysystem", "version": "1.0.71"}]}
        assert checker.check(lock) == {}

    def test_newer_dev_snapshot_not_reported(self, checker):
        lock = {"packages": [
            {"name": "twig/twig", "version": "1.x-dev", "time": "2021-06-01T00:00:00+00:00"},
        ]}
        assert checker.check(lock) == {}

    def test_older_dev_snapshot_reported(self, checker):
        lock = {"packages": [
            {"name": "twig/twig", "version": "1.x-dev", "time": "2020-06-01T00:00:00+00:00"},
        ]}
        assert list(checker.check(lock)) == ["twig/twig"]

    def test_empty_lock(self, checker):
        assert checker.check({}) == {}

    def test_idempotent(self, checker, lock_data):
        assert checker.check(lock_data) == checker.check(lock_data)

    def test_results_are_independent(self, checker, lock_data):
        """Test that mutating one result does not affect the next."""
        first = checker.check(lock_data)
        first["league/flysystem"]["advisories"].clear()

        assert checker.check(lock_data)["league/flysystem"]["advisories"]

    @pytest.mark.parametrize("lock", [42, ["packages"], None, b"{}"])
    def test_invalid_lock_type(self, checker, lock):
        with pytest.raises(LockFormatError):
            checker.check(lock)


class TestCheckFile:
    """Test checking lock files on disk."""

    def test_check_path(self, checker, lock_file):
        assert set(checker.check(lock_file)) == {"league/flysystem", "twig/twig"}
        assert set(checker.check(str(lock_file))) == {"league/flysystem", "twig/twig"}

    def test_check_file(self, checker, lock_file):
        assert list(checker.check_file(lock_file, include_dev=False)) == ["league/flysystem"]

    def test_missing_file(self, checker, tmp_path):
        with pytest.raises(LockFileNotFoundError):
            checker.check(tmp_path / "missing.lock")

    def test_invalid_content(self, checker, tmp_path):
        path = tmp_path / "composer.lock"
        path.write_text('"just a string"')

        with pytest.raises(LockFormatError):
            checker.check(path)


class TestRefresh:
    """Test index construction and refresh."""

    def test_index_built_once(self):
        source = MagicMock()
        source.load.return_value = AdvisoryIndex.from_advisories([make_advisory("acme/lib")])

        checker = SecurityChecker(source=source)
        checker.check({"packages": [{"name": "acme/lib", "version": "1.0.0"}]})
        checker.check({"packages": [{"name": "acme/lib", "version": "1.0.0"}]})

        source.load.assert_called_once()
        assert checker.index.advisory_count == 1

    def test_lazy_load(self):
        source = MagicMock()
        checker = SecurityChecker(source=source, auto_refresh=False)

        source.load.assert_not_called()
        assert checker.check({"packages": [{"name": "acme/lib", "version": "1.0.0"}]}) == {}

    def test_forced_refresh_swaps_index(self):
        source = MagicMock()
        source.load.side_effect = [
            AdvisoryIndex(),
            AdvisoryIndex.from_advisories([
                make_advisory("acme/lib", branches={"1.x": (["<2.0"], FIX_TIME)}),
            ]),
        ]
        lock = {"packages": [{"name": "acme/lib", "version": "1.0.0"}]}

        checker = SecurityChecker(source=source)
        assert checker.check(lock) == {}

        checker.refresh(force=True)
        assert list(checker.check(lock)) == ["acme/lib"]

    def test_fetches_then_loads_database(self, tmp_path):
        options = CheckerOptions(advisories_dir=tmp_path / "advisories")
        package_dir = options.database_path / "acme" / "lib"
        package_dir.mkdir(parents=True)
        (package_dir / "advisory.yaml").write_text(
            "title: Example\n"
            "link: https://example.com\n"
            "branches:\n"
            "    1.x:\n"
            "        time: 2021-01-01 00:00:00\n"
            "        versions: ['>=1.0.0', '<1.0.5']\n"
            "reference: composer://acme/lib\n"
        )
        fetcher = MagicMock()
        fetcher.fetch_sync.return_value = False
        fetcher.last_fetched.return_value = FIX_TIME

        checker = SecurityChecker(options, fetcher=fetcher)

        fetcher.fetch_sync.assert_called_once_with(force=False)
        assert list(checker.check({"packages": [{"name": "acme/lib", "version": "1.0.4"}]})) == ["acme/lib"]

        checker.refresh(force=True)
        fetcher.fetch_sync.assert_called_with(force=True)
        assert checker.get_statistics()["last_fetched"] == FIX_TIME

    def test_refresh_async(self):
        source = MagicMock()
        source.load.return_value = AdvisoryIndex.from_advisories([make_advisory("acme/lib")])
        checker = SecurityChecker(source=source, auto_refresh=False)

        index = asyncio.run(checker.refresh_async())
        assert index.advisory_count == 1
        assert checker.index is index

    def test_refresh_without_fetch_reloads_from_disk(self):
        source = MagicMock()
        source.load.side_effect = [
            AdvisoryIndex(),
            AdvisoryIndex.from_advisories([make_advisory("acme/lib")]),
        ]
        checker = SecurityChecker(source=source)

        index = checker.refresh(fetch=False)

        assert source.load.call_count == 2
        assert index.advisory_count == 1
        assert checker.index is index

    def test_refresh_async_holds_refresh_lock(self, tmp_path):
        options = CheckerOptions(advisories_dir=tmp_path / "advisories")
        options.database_path.mkdir(parents=True)
        fetcher = MagicMock()
        fetcher.fetch_sync.return_value = False
        checker = SecurityChecker(options, fetcher=fetcher)

        lock_states = []
        fetcher.fetch_sync.side_effect = lambda force: lock_states.append(checker._refresh_lock.locked()) or True
        asyncio.run(checker.refresh_async(force=True))

        assert lock_states == [True]

    def test_concurrent_refreshes_do_not_overlap(self, tmp_path):
        options = CheckerOptions(advisories_dir=tmp_path / "advisories")
        options.database_path.mkdir(parents=True)
        fetcher = MagicMock()
        fetcher.fetch_sync.return_value = False
        checker = SecurityChecker(options, fetcher=fetcher)

        active = []
        peak = []
        counter_lock = threading.Lock()

        def slow_fetch(force):
            with counter_lock:
                active.append(force)
                peak.append(len(active))
            time.sleep(0.05)
            with counter_lock:
                active.pop()
            return True

        fetcher.fetch_sync.side_effect = slow_fetch

        async def refresh_twice():
            await asyncio.gather(
                checker.refresh_async(force=True),
                asyncio.get_running_loop().run_in_executor(None, lambda: checker.refresh(force=True)),
            )

        asyncio.run(refresh_twice())

        assert fetcher.fetch_sync.call_count == 3
        assert max(peak) == 1


class TestOptions:
    """Test option accessors and statistics."""

    def test_options_from_mapping(self, tmp_path):
        checker = SecurityChecker(
            {"advisories-dir": str(tmp_path), "stale-after": 60},
            source=StaticAdvisorySource([]),
        )
        assert checker.get_option("stale-after") == 60
        assert checker.get_option("advisories_dir") == tmp_path
        assert checker.get_option("missing") is None
        assert checker.get_options()["stale_after"] == 60

    def test_statistics(self, checker, lock_data):
        checker.check(lock_data)
        stats = checker.get_statistics()

        assert stats["packages_indexed"] == 2
        assert stats["advisories_indexed"] == 2
        assert stats["total_time"] >= 0
        assert "last_fetched" not in stats

    def test_get_packages(self, checker, lock_data):
        packages = checker.get_packages(lock_data, include_dev=False)
        assert [p.name for p in packages] == ["league/flysystem", "symfony/console"]

    def test_timing_history_is_bounded(self, checker):
        for _ in range(1000):
            checker.check({"packages": []})

        summary = checker.performance_monitor.get_summary()
        assert len(checker.performance_monitor.metrics) <= MAX_RECENT_METRICS
        assert summary["total_executions"] == 1001

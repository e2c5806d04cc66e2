"""Tests for the composer.lock parser."""

import json

import pytest

from lock_shield.core.parsers import ComposerLockParser, packages_from_mapping
from lock_shield.core.parsers.base import Package, ParsedLock
from lock_shield.errors import LockFileNotFoundError, LockFormatError


@pytest.fixture
def temp_composer_lock(tmp_path):
    """Create a temporary composer.lock file."""
    lock_file = tmp_path / "composer.lock"
    lock_file.write_text(json.dumps({
        "content-hash": "abc123",
        "packages": [
            {"name": "league/flysystem", "version": "1.0.70", "time": "2020-07-26T07:20:36+00:00"},
            {"name": "twig/twig", "version": "1.x-dev", "time": "2021-01-01T00:00:00+00:00"},
        ],
        "packages-dev": [
            {"name": "phpunit/phpunit", "version": "9.5.0"},
        ],
    }))
    return lock_file


class TestComposerLockParser:
    """Test composer.lock parser."""

    def test_can_parse_composer_lock(self, temp_composer_lock):
        """Test that parser can identify composer.lock files."""
        parser = ComposerLockParser()
        assert parser.can_parse(temp_composer_lock)

    def test_cannot_parse_other_files(self, tmp_path):
        """Test that parser rejects unrelated files."""
        parser = ComposerLockParser()
        assert not parser.can_parse(tmp_path / "composer.json")

    def test_parse_composer_lock(self, temp_composer_lock):
        """Test parsing a composer.lock file."""
        parser = ComposerLockParser()
        result = parser.parse(temp_composer_lock)

        assert isinstance(result, ParsedLock)
        assert result.content_hash == "abc123"
        assert [p.name for p in result.packages] == [
            "league/flysystem", "twig/twig", "phpunit/phpunit",
        ]
        assert result.find_package("phpunit/phpunit").dev_requirement is True
        assert [p.name for p in result.production_packages()] == ["league/flysystem", "twig/twig"]

    def test_parse_without_dev(self, temp_composer_lock):
        """Test that packages-dev is skipped when requested."""
        parser = ComposerLockParser()
        result = parser.parse(temp_composer_lock, include_dev=False)

        assert result.get_package_names() == {"league/flysystem", "twig/twig"}

    def test_missing_file(self, tmp_path):
        """Test that a missing lock file raises a FileNotFoundError."""
        parser = ComposerLockParser()
        with pytest.raises(LockFileNotFoundError):
            parser.load(tmp_path / "composer.lock")

        with pytest.raises(FileNotFoundError):
            parser.load(tmp_path / "composer.lock")

    def test_invalid_json(self, tmp_path):
        """Test that undecodable content raises LockFormatError."""
        lock_file = tmp_path / "composer.lock"
        lock_file.write_text("{not json")

        with pytest.raises(LockFormatError):
            ComposerLockParser().load(lock_file)

    def test_non_mapping_json(self, tmp_path):
        """Test that a JSON list is rejected."""
        lock_file = tmp_path / "composer.lock"
        lock_file.write_text("[1, 2, 3]")

        with pytest.raises(ValueError, match="correct format"):
            ComposerLockParser().load(lock_file)


class TestPackagesFromMapping:
    """Test package extraction from decoded lock data."""

    def test_missing_lists_are_empty(self):
        """Test that lock data without package lists yields nothing."""
        assert packages_from_mapping({}) == []
        assert packages_from_mapping({"packages": None}) == []

    def test_entries_without_name_or_version_are_skipped(self):
        """Test that malformed entries are skipped."""
        lock = {
            "packages": [
                {"name": "acme/lib"},
                {"version": "1.0.0"},
                {"name": "acme/ok", "version": "1.0.0"},
                {"name": 5, "version": "1.0.0"},
                "not-an-entry",
            ]
        }
        packages = packages_from_mapping(lock)
        assert [p.name for p in packages] == ["acme/ok"]

    def test_non_list_packages(self):
        """Test that a non-list packages value is rejected."""
        with pytest.raises(LockFormatError):
            packages_from_mapping({"packages": {"name": "acme/lib"}})

    def test_non_mapping_lock(self):
        """Test that non-mapping lock data is rejected."""
        with pytest.raises(LockFormatError):
            packages_from_mapping(["packages"])

    def test_time_is_kept_only_when_string(self):
        """Test the optional install time."""
        packages = packages_from_mapping({
            "packages": [
                {"name": "a/a", "version": "dev-master", "time": "2021-01-01 00:00:00"},
                {"name": "b/b", "version": "dev-master", "time": 12345},
            ]
        })
        assert packages[0].time == "2021-01-01 00:00:00"
        assert packages[1].time is None


class TestPackage:
    """Test the Package model."""

    def test_empty_name_rejected(self):
        """Test that a package must have a name."""
        with pytest.raises(ValueError):
            Package(name="", version="1.0.0")

    @pytest.mark.parametrize("version,expected", [
        ("dev-master", True),
        ("1.x-dev", True),
        ("4.0-dev", True),
        ("1.0.70", False),
        ("v2.3.4", False),
        ('1.2.3"#abc-dev', False),
    ])
    def test_is_dev(self, version, expected):
        """Test development version detection."""
        assert Package(name="acme/lib", version=version).is_dev is expected

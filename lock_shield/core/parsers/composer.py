"""Composer lock file parser."""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

from ...errors import LockFormatError
from ...utils.logging import get_logger
from .base import BaseParser, Package, ParsedLock

PACKAGE_KEYS = ("packages", "packages-dev")

logger = get_logger("ComposerLockParser")


def packages_from_mapping(lock: Mapping[str, Any], include_dev: bool = True) -> List[Package]:
    """Collect installed packages from decoded lock data.

    ``packages`` always contributes, ``packages-dev`` only when include_dev is
    set. Missing lists count as empty. Entries without a string name and
    version are skipped.

    Args:
        lock: Decoded lock file contents
        include_dev: Include ``packages-dev`` entries

    Returns:
        Packages in lock order
    """
    if not isinstance(lock, Mapping):
        raise LockFormatError("Lock data must be a mapping")

    keys = PACKAGE_KEYS if include_dev else PACKAGE_KEYS[:1]
    packages: List[Package] = []
    for key in keys:
        entries = lock.get(key) or []
        if not isinstance(entries, list):
            raise LockFormatError(f"'{key}' must be a list")
        for entry in entries:
            package = Package.from_entry(entry, dev_requirement=(key == "packages-dev"))
            if package is None:
                logger.debug(f"Skipping {key} entry without a name and version: {entry!r}")
                continue
            packages.append(package)
    return packages


class ComposerLockParser(BaseParser):
    """Parser for composer.lock files."""

    def __init__(self) -> None:
        super().__init__()
        self.parser_type = "composer"
        self.supported_filenames = ["composer.lock"]

    def can_parse(self, file_path: Path) -> bool:
        return file_path.name in self.supported_filenames or file_path.suffix == ".lock"

    def load(self, file_path: Path) -> Dict[str, Any]:
        """Read and decode a lock file.

        Args:
            file_path: Path to the lock file

        Returns:
            Decoded lock data

        Raises:
            LockFileNotFoundError: If the file does not exist
            LockFormatError: If the content is not a JSON object
        """
        file_path = Path(file_path)
        self.validate_file(file_path)

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LockFormatError(f"Lock file does not contain valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise LockFormatError("Lock file does not contain correct format")
        return data

    def parse(self, file_path: Path, include_dev: bool = True) -> ParsedLock:
        """Parse a composer.lock file.

        Args:
            file_path: Path to the lock file
            include_dev: Include ``packages-dev`` entries

        Returns:
            Parsed lock
        """
        data = self.load(file_path)
        result = ParsedLock(
            source_file=Path(file_path),
            content_hash=data.get("content-hash"),
        )
        for package in packages_from_mapping(data, include_dev):
            result.add_package(package)
        return result

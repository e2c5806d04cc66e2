"""Base parser class and data models for lock file parsing."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from ...errors import LockFileNotFoundError
from ..versions import is_development_version


@dataclass
class Package:
    """An installed package as recorded in a lock file."""

    name: str
    version: str
    time: Optional[str] = None
    dev_requirement: bool = False

    def __post_init__(self) -> None:
        """Validate the package."""
        if not self.name:
            raise ValueError("Package name cannot be empty")

    @property
    def is_dev(self) -> bool:
        """Whether the installed version tracks a development branch."""
        return is_development_version(self.version)

    @classmethod
    def from_entry(cls, entry: Dict[str, Any], dev_requirement: bool = False) -> Optional["Package"]:
        """Build a package from one lock file entry.

        Args:
            entry: Entry from the ``packages`` or ``packages-dev`` list
            dev_requirement: Whether the entry came from ``packages-dev``

        Returns:
            Package, or None if the entry has no usable name or version
        """
        if not isinstance(entry, dict):
            return None

        name = entry.get("name")
        version = entry.get("version")
        if not isinstance(name, str) or not name or not isinstance(version, str):
            return None

        time = entry.get("time")
        return cls(
            name=name,
            version=version,
            time=time if isinstance(time, str) else None,
            dev_requirement=dev_requirement,
        )


@dataclass
class ParsedLock:
    """Container for the packages read from a lock file."""

    packages: List[Package] = field(default_factory=list)
    source_file: Optional[Path] = None
    content_hash: Optional[str] = None

    def add_package(self, package: Package) -> None:
        self.packages.append(package)

    def get_package_names(self) -> Set[str]:
        return {package.name for package in self.packages}

    def find_package(self, name: str) -> Optional[Package]:
        """Find a package by name.

        Args:
            name: Package name to find

        Returns:
            Package if found, None otherwise
        """
        for package in self.packages:
            if package.name == name:
                return package
        return None

    def production_packages(self) -> List[Package]:
        return [package for package in self.packages if not package.dev_requirement]


class BaseParser(ABC):
    """Abstract base class for lock file parsers."""

    def __init__(self) -> None:
        self.supported_filenames: List[str] = []
        self.parser_type: str = ""

    @abstractmethod
    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the given file."""

    @abstractmethod
    def parse(self, file_path: Path, include_dev: bool = True) -> ParsedLock:
        """Parse a lock file.

        Args:
            file_path: Path to the file to parse
            include_dev: Include development requirements

        Returns:
            Packages read from the file
        """

    def validate_file(self, file_path: Path) -> None:
        """Validate that the file exists and is readable.

        Args:
            file_path: Path to validate

        Raises:
            LockFileNotFoundError: If the path is not an existing file
            PermissionError: If the file is not readable
        """
        if not file_path.is_file():
            raise LockFileNotFoundError(f"Lock file does not exist: {file_path}")

        if not os.access(file_path, os.R_OK):
            raise PermissionError(f"Lock file is not readable: {file_path}")

"""Reader for an extracted FriendsOfPHP security-advisories tree."""

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import yaml
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn

from ..core.matcher import Advisory, AdvisoryBranch, parse_package_time
from ..errors import AdvisoryDatabaseError
from ..utils.logging import get_logger
from ..utils.performance import PerformanceMonitor, benchmark
from .index import AdvisoryIndex

ADVISORY_SUFFIXES = (".yaml", ".yml")


def branch_timestamp(value: Any) -> int:
    """Convert a branch ``time`` value to unix time.

    YAML timestamps arrive as datetimes (naive ones are UTC), but hand-written
    records may hold dates, integers or strings. Anything unusable becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp())
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        return parse_package_time(text)
    return 0


def _branch_constraints(versions: Any) -> List[str]:
    # In this record format the list holds single bounds that must all hold.
    if isinstance(versions, str):
        versions = [versions]
    if not isinstance(versions, list):
        return []
    bounds = [str(bound).strip() for bound in versions if str(bound).strip()]
    return [",".join(bounds)] if bounds else []


def advisory_from_record(record: Dict[str, Any]) -> Advisory:
    """Build an Advisory from one decoded advisory record.

    Args:
        record: Decoded YAML advisory

    Returns:
        Advisory

    Raises:
        ValueError: If the record has no reference
    """
    if not isinstance(record, dict):
        raise ValueError("Advisory record must be a mapping")

    branches = []
    raw_branches = record.get("branches") or {}
    if isinstance(raw_branches, dict):
        for name, branch in raw_branches.items():
            branch = branch if isinstance(branch, dict) else {}
            branches.append(AdvisoryBranch(
                name=str(name),
                versions=_branch_constraints(branch.get("versions")),
                timestamp=branch_timestamp(branch.get("time")),
            ))

    cve = record.get("cve")
    return Advisory(
        title=str(record.get("title") or ""),
        link=str(record.get("link") or ""),
        cve=str(cve) if cve else None,
        reference=str(record.get("reference") or ""),
        branches=branches,
    )


class AdvisoryDatabase:
    """Advisory source reading YAML records from a local directory."""

    def __init__(self, database_path: Path) -> None:
        """Initialize the database reader.

        Args:
            database_path: Root of the extracted advisories repository
        """
        self.database_path = Path(database_path)
        self.logger = get_logger("AdvisoryDatabase")
        self.performance_monitor = PerformanceMonitor()
        self.skipped_files: List[Path] = []

    def advisory_files(self) -> List[Path]:
        """List advisory files in a stable order, ignoring hidden paths."""
        if not self.database_path.is_dir():
            raise AdvisoryDatabaseError(f"Advisory database does not exist: {self.database_path}")

        files = []
        for path in self.database_path.rglob("*"):
            if path.suffix.lower() not in ADVISORY_SUFFIXES or not path.is_file():
                continue
            relative = path.relative_to(self.database_path)
            if any(part.startswith(".") for part in relative.parts):
                continue
            files.append(path)
        return sorted(files)

    @benchmark
    def load(self, show_progress: bool = False) -> AdvisoryIndex:
        """Read every advisory record into a new index.

        Args:
            show_progress: Show a progress bar

        Returns:
            Index of all readable advisories
        """
        with self.performance_monitor.measure("load_advisories"):
            self.skipped_files = []
            advisories = []

            if show_progress:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    transient=True
                ) as progress:
                    task = progress.add_task("Loading advisories...", total=None)
                    for advisory in self._load_advisories_generator():
                        advisories.append(advisory)
                        progress.update(task, advance=1)
            else:
                advisories = list(self._load_advisories_generator())

            index = AdvisoryIndex.from_advisories(advisories)
            self.logger.info(
                f"Loaded {index.advisory_count} advisories for {index.package_count} packages"
            )
            return index

    def _load_advisories_generator(self) -> Iterator[Advisory]:
        for advisory_file in self.advisory_files():
            advisory = self._load_file(advisory_file)
            if advisory is not None:
                yield advisory

    def _load_file(self, advisory_file: Path) -> Optional[Advisory]:
        try:
            with open(advisory_file, 'r', encoding='utf-8') as f:
                record = yaml.safe_load(f)
            return advisory_from_record(record)
        except (yaml.YAMLError, OSError, UnicodeDecodeError, ValueError) as e:
            self.logger.warning(f"Skipping advisory {advisory_file}: {e}")
            self.skipped_files.append(advisory_file)
            return None

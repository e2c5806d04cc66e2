"""Output formatters for LockShield results."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..utils.logging import get_logger

VulnerabilityResult = Dict[str, Dict[str, Any]]


def count_advisories(results: VulnerabilityResult) -> int:
    return sum(len(entry.get("advisories", [])) for entry in results.values())


class ConsoleFormatter:
    """Rich console formatter for LockShield output."""

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the console formatter.

        Args:
            console: Rich console instance
        """
        self.console = console or Console()
        self.logger = get_logger("ConsoleFormatter")

    def format_check_results(
        self,
        results: VulnerabilityResult,
        total_packages: int,
        check_time: float
    ) -> None:
        """Display check results.

        Args:
            results: Vulnerable packages keyed by name
            total_packages: Number of packages checked
            check_time: Time taken for the check in seconds
        """
        self.console.print(self._create_summary_panel(results, total_packages, check_time))

        if not results:
            self.console.print(Panel("No packages have known vulnerabilities.", style="green"))
            return

        self.console.print(self._create_advisories_table(results))

    def _create_summary_panel(
        self,
        results: VulnerabilityResult,
        total_packages: int,
        check_time: float
    ) -> Panel:
        advisories = count_advisories(results)

        if results:
            style = "red"
            title = f"{len(results)} packages have known vulnerabilities"
        else:
            style = "green"
            title = "No known vulnerabilities"

        content = (
            f"Packages checked: {total_packages}\n"
            f"Vulnerable packages: {len(results)}\n"
            f"Advisories: {advisories}\n"
            f"Check time: {check_time:.2f}s"
        )
        return Panel(content, title=title, style=style)

    def _create_advisories_table(self, results: VulnerabilityResult) -> Table:
        table = Table(title="Security Advisories")

        table.add_column("Package", style="cyan", no_wrap=True)
        table.add_column("Version", style="blue")
        table.add_column("CVE", style="red")
        table.add_column("Title", style="white")
        table.add_column("Link", style="dim")

        for name, entry in results.items():
            for advisory in entry["advisories"]:
                table.add_row(
                    escape(name),
                    escape(str(entry["version"])),
                    escape(advisory.get("cve") or "-"),
                    escape(advisory.get("title") or ""),
                    escape(advisory.get("link") or ""),
                )

        return table

    def format_statistics(self, stats: Dict[str, Any]) -> None:
        """Display checker statistics.

        Args:
            stats: Statistics from SecurityChecker.get_statistics()
        """
        table = Table(title="Advisory Database")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        for key, value in stats.items():
            if key == "last_fetched" and value:
                value = datetime.fromtimestamp(value).isoformat(timespec="seconds")
            if isinstance(value, float):
                table.add_row(key, f"{value:.4f}")
            else:
                table.add_row(key, escape(str(value if value is not None else "never")))

        self.console.print(table)

    def format_error(self, error: str, details: Optional[str] = None) -> None:
        """Display an error message.

        Args:
            error: Error message
            details: Optional error details
        """
        content = f"[bold red]Error:[/bold red] {escape(error)}"
        if details:
            content += f"\n\n[dim]{escape(details)}[/dim]"

        self.console.print(Panel(content, style="red"))


class JSONFormatter:
    """JSON formatter for LockShield output."""

    def __init__(self, output_file: Optional[Path] = None) -> None:
        """Initialize the JSON formatter.

        Args:
            output_file: Optional output file path
        """
        self.output_file = output_file
        self.logger = get_logger("JSONFormatter")

    def format_check_results(
        self,
        results: VulnerabilityResult,
        total_packages: int,
        check_time: float,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format check results as JSON-serialisable data.

        Args:
            results: Vulnerable packages keyed by name
            total_packages: Number of packages checked
            check_time: Check time in seconds
            metadata: Optional additional metadata

        Returns:
            Report with a summary and the vulnerability mapping unchanged
        """
        report: Dict[str, Any] = {
            "summary": {
                "total_packages": total_packages,
                "vulnerable_packages": len(results),
                "total_advisories": count_advisories(results),
                "check_time_seconds": check_time,
                "timestamp": datetime.now().isoformat(),
            },
            "vulnerabilities": results,
        }

        if metadata:
            report["metadata"] = metadata

        return report

    def dumps(self, report: Dict[str, Any]) -> str:
        return json.dumps(report, indent=2, ensure_ascii=False, default=str)

    def save_results(
        self,
        results: Dict[str, Any],
        output_file: Optional[Path] = None
    ) -> None:
        """Save a report to a JSON file.

        Args:
            results: Report dictionary
            output_file: Output file path (uses instance default if None)
        """
        file_path = output_file or self.output_file
        if not file_path:
            raise ValueError("No output file specified")

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                f.write(self.dumps(results))

            self.logger.info(f"Results saved to {file_path}")
        except OSError as e:
            self.logger.error(f"Failed to save results to {file_path}: {e}")
            raise


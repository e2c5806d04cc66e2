"""Main CLI interface for LockShield."""

import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..checker import SecurityChecker
from ..config import CheckerOptions
from ..errors import LockShieldError
from ..output.formatters import ConsoleFormatter, JSONFormatter
from ..utils.logging import setup_logging, get_logger

app = typer.Typer(
    name="lockshield",
    help="Check composer.lock files against the FriendsOfPHP security advisories",
    add_completion=False
)

console = Console()
logger = get_logger("CLI")

EXIT_VULNERABLE = 1
EXIT_INPUT_ERROR = 2


def _build_options(advisories_dir: Optional[Path], stale_after: Optional[int]) -> CheckerOptions:
    try:
        return CheckerOptions.from_env(advisories_dir=advisories_dir, stale_after=stale_after)
    except ValueError as e:
        ConsoleFormatter(console).format_error(str(e))
        raise typer.Exit(EXIT_INPUT_ERROR)


@app.command()
def check(
    lock_file: Path = typer.Argument(
        Path("composer.lock"),
        help="Path to the composer.lock file to check"
    ),
    no_dev: bool = typer.Option(
        False,
        "--no-dev",
        help="Skip packages-dev entries"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file for JSON results"
    ),
    advisories_dir: Optional[Path] = typer.Option(
        None,
        "--advisories-dir",
        help="Directory holding the downloaded advisories"
    ),
    stale_after: Optional[int] = typer.Option(
        None,
        "--stale-after",
        help="Re-download advisories older than this many seconds"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    )
) -> None:
    """Check a composer.lock file for packages with known vulnerabilities."""
    setup_logging(verbose=verbose)
    options = _build_options(advisories_dir, stale_after)

    try:
        checker = SecurityChecker(options)
        packages = checker.get_packages(checker.parser.load(lock_file), include_dev=not no_dev)

        start_time = time.perf_counter()
        results = checker.check_packages(packages)
        check_time = time.perf_counter() - start_time
    except (LockShieldError, PermissionError) as e:
        logger.error(f"Check failed: {e}")
        ConsoleFormatter(console).format_error(str(e))
        raise typer.Exit(EXIT_INPUT_ERROR)

    ConsoleFormatter(console).format_check_results(
        results=results,
        total_packages=len(packages),
        check_time=check_time
    )

    if output:
        json_formatter = JSONFormatter(output)
        report = json_formatter.format_check_results(
            results=results,
            total_packages=len(packages),
            check_time=check_time,
            metadata={"lock_file": str(lock_file), "include_dev": not no_dev}
        )
        json_formatter.save_results(report)
        console.print(f"Results saved to {output}")

    if results:
        raise typer.Exit(EXIT_VULNERABLE)


@app.command()
def update(
    advisories_dir: Optional[Path] = typer.Option(
        None,
        "--advisories-dir",
        help="Directory holding the downloaded advisories"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    )
) -> None:
    """Download the latest advisories, even if the local copy is fresh."""
    setup_logging(verbose=verbose)
    options = _build_options(advisories_dir, None)

    try:
        checker = SecurityChecker(options, auto_refresh=False)
        checker.refresh(force=True)
    except LockShieldError as e:
        logger.error(f"Update failed: {e}")
        ConsoleFormatter(console).format_error(str(e), details=f"Advisories URL: {options.advisories_url}")
        raise typer.Exit(EXIT_INPUT_ERROR)

    ConsoleFormatter(console).format_statistics(checker.get_statistics())


@app.command()
def info(
    advisories_dir: Optional[Path] = typer.Option(
        None,
        "--advisories-dir",
        help="Directory holding the downloaded advisories"
    )
) -> None:
    """Show LockShield options and advisory database statistics."""
    options = _build_options(advisories_dir, None)

    console.print(Panel.fit(
        f"[bold blue]LockShield[/bold blue] {__version__}\n"
        "Checks composer.lock files against the FriendsOfPHP security advisories",
        title="Information"
    ))

    table = Table(title="Options")
    table.add_column("Option", style="cyan")
    table.add_column("Value", style="green")
    for name, value in options.as_dict().items():
        table.add_row(name, escape(str(value)))
    console.print(table)

    try:
        checker = SecurityChecker(options, auto_refresh=False)
        if options.database_path.is_dir():
            checker.refresh(fetch=False)
    except LockShieldError as e:
        ConsoleFormatter(console).format_error(str(e))
        raise typer.Exit(EXIT_INPUT_ERROR)

    ConsoleFormatter(console).format_statistics(checker.get_statistics())


def main() -> None:
    """Main entry point for LockShield CLI."""
    app()


if __name__ == "__main__":
    main()

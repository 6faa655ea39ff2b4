"""CLI runner for a single collection cycle.

Run via: python -m astewatch.runner
Or schedule with cron/Task Scheduler.
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .collectors import SiteConfigError, build_collector, load_sites
from .config import Settings
from .models.listing import CycleResult, StatusOutcome

console = Console()

OUTCOME_STYLES = {
    StatusOutcome.OK: "green",
    StatusOutcome.EMPTY: "yellow",
    StatusOutcome.ERROR: "red",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def print_result(result: CycleResult) -> None:
    """Print per-site statuses and the admitted listings."""
    table = Table(title="Site status")
    table.add_column("Site")
    table.add_column("Method")
    table.add_column("Listings", justify="right")
    table.add_column("Outcome")
    for status in result.site_statuses:
        style = OUTCOME_STYLES[status.outcome]
        outcome = status.outcome.value
        if status.message:
            outcome += f" ({status.message})"
        table.add_row(
            status.source,
            status.method.value if status.method else "-",
            str(status.record_count),
            f"[{style}]{outcome}[/{style}]",
        )
    console.print(table)

    for listing in result.results:
        console.print(
            f"  [bold]{listing.locality}[/bold] - {listing.address} - "
            f"€{listing.price:,} - {listing.property_type} - {listing.auction_date}"
        )
        if listing.price_history:
            prices = " → ".join(f"€{entry.price:,}" for entry in listing.price_history)
            console.print(f"    [dim]history: {prices}[/dim]")

    console.print()
    console.print(f"[bold]Cycle complete. Total listings: {result.total_results}[/bold]")


async def run_once(
    localities: list[str],
    site_names: list[str],
    settings: Settings,
) -> CycleResult:
    """Build a collector, run one cycle and close the fetchers."""
    sources = load_sites(settings.sites_file)
    if site_names:
        wanted = {name.lower() for name in site_names}
        sources = [s for s in sources if s.name.lower() in wanted]

    async with build_collector(settings, sources=sources) as collector:
        return await collector.run_cycle(localities=localities)


def main() -> None:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="astewatch collection runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m astewatch.runner
  python -m astewatch.runner -l Bergamo -l Brescia
  python -m astewatch.runner --site "Aste Online" --memory -v

Schedule with cron (every night at 03:00):
  0 3 * * * cd /path/to/project && python -m astewatch.runner
        """,
    )

    parser.add_argument(
        "-l", "--locality",
        action="append",
        default=[],
        help="Only keep listings in this locality (repeatable)",
    )
    parser.add_argument(
        "--site",
        action="append",
        default=[],
        help="Only collect from this site name (repeatable)",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Do not persist listings to SQLite",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    settings = Settings()
    if args.memory:
        settings = settings.model_copy(update={"persistence": "memory"})

    try:
        result = asyncio.run(run_once(args.locality, args.site, settings))
    except SiteConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)

    print_result(result)
    all_failed = all(s.outcome == StatusOutcome.ERROR for s in result.site_statuses)
    sys.exit(1 if result.site_statuses and all_failed else 0)


if __name__ == "__main__":
    main()

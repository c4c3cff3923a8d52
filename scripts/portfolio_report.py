#!/usr/bin/env python3
"""Print the loan and rental portfolio report.

Without ``--postgres-url`` a sample portfolio is generated in memory
with Faker. With it, the report reads the PostgreSQL database instead.

Output:
- Dashboard: monthly revenue, expenses, realized and projected interest,
  followed by due-date alerts.
- Loans: one row per loan (``--active-only`` keeps unpaid loans).
- Rentals: one row per property and month.
"""

import argparse
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loanbook.accrual import as_calendar_date
from loanbook.config import LoanbookConfig
from loanbook.exceptions import LoanbookError
from loanbook.generators import SamplePortfolio
from loanbook.logging import get_logger, setup_logging
from loanbook.reports import build_dashboard, loan_rows, rental_rows
from loanbook.sinks import ConsoleSink
from loanbook.store import PortfolioRepository, PortfolioStore

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Print the loan and rental portfolio report"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the sample portfolio (default: SEED env var)",
    )
    parser.add_argument(
        "--loans",
        type=int,
        default=8,
        help="Number of sample loans to generate (default: 8)",
    )
    parser.add_argument(
        "--properties",
        type=int,
        default=3,
        help="Number of sample properties to generate (default: 3)",
    )
    parser.add_argument(
        "--today",
        type=as_calendar_date,
        default=None,
        help="Reference date as YYYY-MM-DD (default: today in the configured timezone)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="Read the portfolio from PostgreSQL instead of generating one",
    )
    parser.add_argument(
        "--active-only",
        action="store_true",
        help="List only loans that are not paid yet",
    )
    parser.add_argument(
        "--max-records",
        type=int,
        default=None,
        help="Maximum rows to print per section (default: all)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL env var or INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["standard", "json"],
        help="Log format (default: LOG_FORMAT env var or standard)",
    )
    return parser.parse_args(argv)


def open_repository(
    args: argparse.Namespace, config: LoanbookConfig, today: date
) -> PortfolioRepository:
    """Connect to PostgreSQL or build an in-memory sample portfolio."""
    if args.postgres_url:
        # Imported here so the in-memory report runs without a database driver
        from loanbook.store.postgres import PostgresPortfolioStore

        store = PostgresPortfolioStore(args.postgres_url, clock=lambda: today)
        store.create_tables()
        logger.info("Reading portfolio from PostgreSQL")
        return store

    store = PortfolioStore(clock=lambda: today)
    seed = args.seed if args.seed is not None else config.seed
    SamplePortfolio(
        num_loans=args.loans,
        num_properties=args.properties,
        seed=seed,
    ).populate(store, today)
    return store


def run(args: argparse.Namespace) -> int:
    """Build and print the report. Returns the process exit code."""
    repo = None
    try:
        config = LoanbookConfig.from_env()
        setup_logging(
            level=args.log_level or config.log_level,
            format_type=args.log_format or config.log_format,
        )
        today = args.today or config.report.today()
        repo = open_repository(args, config, today)

        summary = build_dashboard(repo, today, config.report.alert_window_days)
        sink = ConsoleSink(max_records=args.max_records)
        sink.write_dashboard(summary)
        sink.write_batch("loans", loan_rows(repo, today, active_only=args.active_only))
        sink.write_batch("rentals", rental_rows(repo))
        sink.close()
    except LoanbookError as e:
        logger.error("Report failed: %s", e)
        return 1
    finally:
        close = getattr(repo, "close", None)
        if close is not None:
            close()
    return 0


def main() -> None:
    """Main entry point."""
    sys.exit(run(parse_args()))


if __name__ == "__main__":
    main()

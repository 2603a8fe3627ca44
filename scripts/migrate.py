"""Harvest -> Yield migration script.

Imports clients, invoices and line items into PocketBase from either a
Harvest invoice report CSV (the "All invoices" export) or the Harvest API.
Safe to re-run: anything already imported is skipped.

Usage:
    APP_PB_URL=http://localhost:8090 \\
    APP_PB_ADMIN_EMAIL=admin@example.com \\
    APP_PB_ADMIN_PASSWORD=secret \\
    python -m scripts.migrate [path/to/invoices.csv]

    # or pull straight from Harvest
    APP_HARVEST_ACCOUNT_ID=... APP_HARVEST_ACCESS_TOKEN=... python -m scripts.migrate --api

Without a path, the first *.csv in the current directory whose name
contains "harvest" is used, then ./invoices.csv.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from services.importer.report import ImportReport
from services.importer.runner import run_import
from services.shared.config import Settings, get_settings
from services.sources.base import SourceAdapter, SourceFormatError
from services.sources.harvest_api import HarvestApiSource
from services.sources.harvest_csv import HarvestCsvSource
from services.store.base import StoreError
from services.store.pocketbase import PocketBaseStore

logger = logging.getLogger(__name__)


def find_csv(explicit: str | None, settings: Settings, cwd: Path | None = None) -> Path:
    """Resolve the CSV path: explicit argument, marked file in cwd, default name.

    Args:
        explicit: Path given on the command line, if any
        settings: Settings with import_file_marker / import_default_file
        cwd: Directory to search (defaults to the current directory)

    Returns:
        Absolute path to the CSV file (which may not exist)
    """
    cwd = cwd or Path.cwd()
    if explicit:
        return (cwd / explicit).resolve()

    marker = settings.import_file_marker.lower()
    for candidate in sorted(cwd.iterdir()):
        if (
            candidate.is_file()
            and marker in candidate.name.lower()
            and candidate.name.endswith(".csv")
        ):
            return candidate.resolve()
    return (cwd / settings.import_default_file).resolve()


async def migrate(source: SourceAdapter, settings: Settings) -> ImportReport:
    """Authenticate as superuser and run the import.

    Raises:
        StoreError: If PocketBase is unreachable or rejects the credentials
        SourceFormatError: If the source data has the wrong shape
    """
    async with PocketBaseStore(settings) as store:
        logger.info(f"Connecting to PocketBase at {settings.pb_url}...")
        await store.authenticate(settings.pb_admin_email, settings.pb_admin_password)
        logger.info("Authenticated")
        return await run_import(source, store, settings)


def main(argv: list[str] | None = None) -> int:
    """Run the migration.

    Returns:
        Process exit code: 0 when the run completed, 1 on fatal errors
    """
    parser = argparse.ArgumentParser(description="Import Harvest data into Yield")
    parser.add_argument(
        "csv_path",
        nargs="?",
        default=None,
        help="Harvest invoice report CSV (default: *harvest*.csv in cwd, then invoices.csv)",
    )
    parser.add_argument(
        "--api",
        action="store_true",
        help="Import from the Harvest API instead of a CSV export",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(message)s", stream=sys.stdout)

    if not settings.pb_admin_email or not settings.pb_admin_password:
        print(
            "Error: APP_PB_ADMIN_EMAIL and APP_PB_ADMIN_PASSWORD are required.",
            file=sys.stderr,
        )
        return 1

    try:
        source: SourceAdapter
        if args.api:
            source = HarvestApiSource(settings)
        else:
            csv_path = find_csv(args.csv_path, settings)
            logger.info(f"Parsing {csv_path}...")
            source = HarvestCsvSource.from_path(csv_path)

        report = asyncio.run(migrate(source, settings))
    except (SourceFormatError, StoreError, ValueError) as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        return 1

    print()
    print(report.summary())
    if report.errors:
        print(f"\nFirst {len(report.errors)} errors:")
        for error in report.errors:
            print(f"  - {error}")
    print("\nMigration complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Batch orchestration for one import run.

Order matters: the source is loaded and validated, the store is checked,
every client is reconciled, and only then are invoices created. Fatal
errors (bad source document, unreachable store) raise before any write;
everything after that is reported through the ImportReport.
"""

import logging
from datetime import datetime

from services.importer.invoices import InvoiceImporter
from services.importer.reconciler import ClientReconciler
from services.importer.report import ImportReport
from services.shared.config import Settings, get_settings
from services.sources.base import SourceAdapter
from services.store.base import RecordStore, StoreUnavailableError

logger = logging.getLogger(__name__)


async def run_import(
    source: SourceAdapter,
    store: RecordStore,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> ImportReport:
    """Import clients, invoices and line items from a source into the store.

    Args:
        source: Source adapter producing normalized rows
        store: Target record store
        settings: Application settings (defaults to environment)
        now: Reference time for status derivation (defaults to current time)

    Returns:
        ImportReport with counters and the first errors encountered

    Raises:
        SourceFormatError: If the source document has the wrong shape
        StoreUnavailableError: If the store does not answer its health check
    """
    settings = settings or get_settings()

    batch = await source.load()
    logger.info(f"Loaded {len(batch.rows)} invoice rows from {batch.source}")

    if not await store.health_check():
        raise StoreUnavailableError("Record store is not reachable")

    report = ImportReport(source=batch.source)

    reconciler = ClientReconciler(store)
    client_ids = await reconciler.reconcile(batch.rows, report, extra_clients=batch.clients)

    importer = InvoiceImporter(store, due_days=settings.import_due_days)
    await importer.import_rows(batch.rows, client_ids, report, now=now)

    return report

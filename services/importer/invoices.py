"""Invoice import.

Creates one invoice plus its line items for each source row. Rows are
processed sequentially in source order; a row that cannot be imported is
skipped or reported as failed without stopping the batch.

An invoice whose line item creation fails is left in the store without
its items. No compensating delete is issued.
"""

import logging
from datetime import datetime

from services.importer.normalize import add_days, parse_iso_date, tax_percent
from services.importer.report import ImportReport, RowOutcome, RowResult
from services.importer.schema import ExternalInvoiceRow
from services.importer.status import derive_status
from services.store.base import RecordStore, StoreError
from services.store.schema import INVOICE_ITEMS, INVOICES, InvoiceFields, InvoiceItemFields

logger = logging.getLogger(__name__)

DEFAULT_ITEM_DESCRIPTION = "Services"


class InvoiceImporter:
    """Writes invoices and line items for resolved source rows."""

    def __init__(self, store: RecordStore, due_days: int = 30) -> None:
        """Initialize importer.

        Args:
            store: Target record store
            due_days: Days after the issue date an imported invoice falls due
        """
        self.store = store
        self.due_days = due_days

    def build_invoice(
        self,
        row: ExternalInvoiceRow,
        client_id: str,
        now: datetime | None = None,
    ) -> InvoiceFields:
        """Compute the invoice record for a row.

        Status comes from the source when it is authoritative, otherwise it
        is derived from balance and issue date.
        """
        issue_date = parse_iso_date(row.issue_date)
        status = row.state or derive_status(row.balance, row.issue_date, now)
        return InvoiceFields(
            client=client_id,
            number=row.number.strip(),
            issue_date=issue_date,
            due_date=add_days(issue_date, self.due_days),
            status=status,
            tax_percent=tax_percent(row.tax_amount, row.subtotal),
            paid_amount=row.paid_amount,
            notes=row.reference.strip(),
        )

    def build_items(self, row: ExternalInvoiceRow, invoice_id: str) -> list[InvoiceItemFields]:
        """Compute line item records; none when the subtotal is not positive."""
        if row.subtotal <= 0:
            return []
        subject = row.subject.strip()
        return [
            InvoiceItemFields(
                invoice=invoice_id,
                description=item.description.strip() or subject or DEFAULT_ITEM_DESCRIPTION,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in row.line_items
        ]

    async def import_row(
        self,
        row: ExternalInvoiceRow,
        client_ids: dict[str, str],
        now: datetime | None = None,
    ) -> RowResult:
        """Import a single row.

        Args:
            row: Source row
            client_ids: Client name to record id, from the reconciler
            now: Reference time for status derivation

        Returns:
            RowResult describing what happened; never raises
        """
        number = row.number.strip()
        client_name = row.client.name.strip()

        if not number or not client_name:
            logger.info(f"  [invoice -] #{number or '?'}: missing invoice number or client")
            return RowResult(
                outcome=RowOutcome.SKIPPED_MISSING_FIELD, number=number, client_name=client_name
            )

        client_id = client_ids.get(client_name)
        if client_id is None:
            logger.warning(f'  [invoice -] #{number}: no client record for "{client_name}"')
            return RowResult(
                outcome=RowOutcome.SKIPPED_UNRESOLVED_CLIENT,
                number=number,
                client_name=client_name,
            )

        try:
            existing = await self.store.find(INVOICES, {"number": number})
        except StoreError as e:
            logger.error(f"  [invoice x] #{number}: duplicate check failed: {e}")
            return RowResult(
                outcome=RowOutcome.FAILED, number=number, client_name=client_name, error=str(e)
            )
        if existing is not None:
            logger.info(f"  [invoice -] #{number}: already imported")
            return RowResult(
                outcome=RowOutcome.SKIPPED_DUPLICATE, number=number, client_name=client_name
            )

        invoice_id: str | None = None
        try:
            fields = self.build_invoice(row, client_id, now)
            invoice = await self.store.create(INVOICES, fields.model_dump())
            invoice_id = invoice["id"]

            for item in self.build_items(row, invoice["id"]):
                await self.store.create(INVOICE_ITEMS, item.model_dump())

        except StoreError as e:
            logger.error(f"  [invoice x] #{number}: {e}")
            return RowResult(
                outcome=RowOutcome.FAILED,
                number=number,
                client_name=client_name,
                invoice_id=invoice_id,
                error=str(e),
            )
        except Exception as e:
            logger.exception(f"  [invoice x] #{number}: unexpected error: {e}")
            return RowResult(
                outcome=RowOutcome.FAILED,
                number=number,
                client_name=client_name,
                invoice_id=invoice_id,
                error=str(e),
            )

        logger.info(f"  [invoice +] #{number} {client_name} - {fields.status}")
        return RowResult(
            outcome=RowOutcome.CREATED,
            number=number,
            client_name=client_name,
            invoice_id=invoice_id,
        )

    async def import_rows(
        self,
        rows: list[ExternalInvoiceRow],
        client_ids: dict[str, str],
        report: ImportReport,
        now: datetime | None = None,
    ) -> ImportReport:
        """Import all rows in order, folding each outcome into the report."""
        for row in rows:
            result = await self.import_row(row, client_ids, now)
            report.record(result)

        logger.info(
            f"Invoices: {report.invoices_created} created, "
            f"{report.invoices_skipped} skipped, {report.invoices_failed} failed"
        )
        return report

"""Harvest invoice report (CSV) source.

Reads the "All invoices" report export. Expected columns:
    Issue Date, Last Payment Date, ID, PO Number, Client, Subject,
    Invoice Amount, Paid Amount, Balance, Subtotal, Discount,
    Tax, Tax2, Currency, Currency Symbol, Document Type, Client Address

Only Client, ID and Issue Date are mandatory; any other missing column
reads as empty.
"""

import csv
import io
import logging
from pathlib import Path

from services.importer.normalize import parse_amount
from services.importer.schema import (
    ExternalClient,
    ExternalInvoiceRow,
    ExternalLineItem,
    SourceBatch,
)
from services.sources.base import SourceAdapter, SourceFormatError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("Client", "ID", "Issue Date")


def parse_report(text: str) -> list[dict[str, str]]:
    """Parse CSV text into header-keyed rows, skipping blank lines.

    Args:
        text: Full CSV document

    Returns:
        List of rows keyed by column header

    Raises:
        SourceFormatError: If the document is empty or lacks required columns
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    fieldnames = [name.strip() for name in reader.fieldnames or []]
    reader.fieldnames = fieldnames

    rows: list[dict[str, str]] = []
    for row in reader:
        values = {key: (value or "") for key, value in row.items() if key is not None}
        if any(value.strip() for value in values.values()):
            rows.append(values)

    if not rows:
        raise SourceFormatError("The CSV file is empty or could not be parsed.")

    missing = [column for column in REQUIRED_COLUMNS if column not in fieldnames]
    if missing:
        raise SourceFormatError(
            "This doesn't look like a Harvest invoice report. "
            f"Missing columns: {', '.join(missing)}. "
            "Expected columns: Client, ID, Issue Date, Subtotal, etc."
        )
    return rows


def row_to_invoice(row: dict[str, str]) -> ExternalInvoiceRow:
    """Convert one report row into an ExternalInvoiceRow.

    The report has no line-level detail, so the subtotal becomes a single
    line item with quantity 1.
    """
    subject = row.get("Subject", "").strip()
    return ExternalInvoiceRow(
        number=row.get("ID", "").strip(),
        client=ExternalClient(
            name=row.get("Client", "").strip(),
            address=row.get("Client Address", "").strip(),
            currency=row.get("Currency", ""),
        ),
        subject=subject,
        issue_date=row.get("Issue Date", ""),
        line_items=[
            ExternalLineItem(
                description=subject,
                quantity=1,
                unit_price=parse_amount(row.get("Subtotal")),
            )
        ],
        tax_amount=parse_amount(row.get("Tax")),
        balance=row.get("Balance"),
        paid_amount=parse_amount(row.get("Paid Amount")),
        reference=row.get("PO Number", "").strip(),
    )


class HarvestCsvSource(SourceAdapter):
    """Source adapter for a Harvest invoice report export."""

    def __init__(self, text: str, name: str = "upload.csv") -> None:
        """Initialize from CSV text.

        Args:
            text: CSV document contents
            name: File name, for logging
        """
        self.text = text
        self.name = name

    @classmethod
    def from_path(cls, path: Path) -> "HarvestCsvSource":
        """Read a report from disk.

        Raises:
            SourceFormatError: If the file does not exist or cannot be decoded
        """
        if not path.exists():
            raise SourceFormatError(f"File not found: {path}")
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFormatError(f"Could not read {path}: {e}") from e
        return cls(text, name=path.name)

    @property
    def source_name(self) -> str:
        return "harvest-csv"

    async def load(self) -> SourceBatch:
        rows = parse_report(self.text)
        logger.info(f"Parsed {len(rows)} invoice rows from {self.name}")
        return SourceBatch(
            source=self.source_name,
            rows=[row_to_invoice(row) for row in rows],
        )

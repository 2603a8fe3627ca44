"""Import report and per-row outcomes.

Each processing step returns an explicit outcome; the report aggregates
them. Skips are expected on re-runs and are not errors.
"""

from enum import Enum

from pydantic import BaseModel, Field, computed_field

MAX_ERRORS = 50
MAX_UNRESOLVED_CLIENT_ERRORS = 5


class RowOutcome(str, Enum):
    """Result classification for one invoice row."""

    CREATED = "created"
    SKIPPED_MISSING_FIELD = "skipped_missing_field"
    SKIPPED_UNRESOLVED_CLIENT = "skipped_unresolved_client"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    FAILED = "failed"


class RowResult(BaseModel):
    """Outcome of importing one invoice row.

    Attributes:
        outcome: What happened to the row
        number: External invoice number (may be empty for missing-field skips)
        client_name: External client reference
        invoice_id: Created invoice record id, if the invoice was written
        error: Error text for failed or unresolved rows
    """

    outcome: RowOutcome
    number: str = ""
    client_name: str = ""
    invoice_id: str | None = None
    error: str | None = None


class SkipCounts(BaseModel):
    """Invoice skips broken down by reason."""

    missing_field: int = 0
    unresolved_client: int = 0
    duplicate: int = 0

    @property
    def total(self) -> int:
        return self.missing_field + self.unresolved_client + self.duplicate


class ImportReport(BaseModel):
    """Aggregated counters for one import run.

    Attributes:
        source: Source adapter name
        clients_created: Clients written by this run
        clients_skipped: Clients that already existed in the store
        invoices_created: Invoices (with their line items) written by this run
        invoices_failed: Invoices whose store writes failed
        skipped: Invoice skips by reason
        errors: First MAX_ERRORS error messages, oldest first
    """

    source: str = ""
    clients_created: int = 0
    clients_skipped: int = 0
    invoices_created: int = 0
    invoices_failed: int = 0
    skipped: SkipCounts = Field(default_factory=SkipCounts)
    errors: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def invoices_skipped(self) -> int:
        return self.skipped.total

    def add_error(self, message: str) -> None:
        """Append an error message, dropping it once the list is full."""
        if len(self.errors) < MAX_ERRORS:
            self.errors.append(message)

    def record(self, result: RowResult) -> None:
        """Fold one invoice row outcome into the counters."""
        if result.outcome is RowOutcome.CREATED:
            self.invoices_created += 1
        elif result.outcome is RowOutcome.SKIPPED_MISSING_FIELD:
            self.skipped.missing_field += 1
        elif result.outcome is RowOutcome.SKIPPED_UNRESOLVED_CLIENT:
            if self.skipped.unresolved_client < MAX_UNRESOLVED_CLIENT_ERRORS:
                self.add_error(
                    f'Invoice #{result.number}: no client found for "{result.client_name}"'
                )
            self.skipped.unresolved_client += 1
        elif result.outcome is RowOutcome.SKIPPED_DUPLICATE:
            self.skipped.duplicate += 1
        elif result.outcome is RowOutcome.FAILED:
            self.invoices_failed += 1
            self.add_error(f"Invoice #{result.number}: {result.error}")

    def summary(self) -> str:
        """Two-line human readable summary."""
        return (
            f"Clients: {self.clients_created} created, "
            f"{self.clients_skipped} already existed\n"
            f"Invoices: {self.invoices_created} created, {self.invoices_skipped} skipped "
            f"({self.skipped.missing_field} missing fields, "
            f"{self.skipped.unresolved_client} without client, "
            f"{self.skipped.duplicate} duplicates), {self.invoices_failed} failed"
        )

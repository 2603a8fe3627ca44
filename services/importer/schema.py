"""Typed value objects for rows coming out of a source adapter.

Source adapters convert CSV rows or API payloads into these models; the
reconciler and importer never see raw string-keyed dicts.
"""

from pydantic import BaseModel, Field

from services.store.schema import InvoiceStatus


class ExternalClient(BaseModel):
    """Client as described by the source system.

    Attributes:
        name: Display name, also the reconciliation key
        external_id: Identifier in the source system, if it has one
        address: Postal address
        currency: Raw currency value ("CAD" or "Canadian Dollar - CAD")
        email: Contact email discovered in the source
    """

    name: str
    external_id: str = ""
    address: str = ""
    currency: str = ""
    email: str = ""


class ExternalLineItem(BaseModel):
    """Billable line as described by the source system."""

    description: str = ""
    quantity: float = 1.0
    unit_price: float = 0.0

    @property
    def amount(self) -> float:
        return self.quantity * self.unit_price


class ExternalInvoiceRow(BaseModel):
    """One invoice from the source system, normalized to a common shape.

    Attributes:
        number: External invoice number/id (idempotency key)
        client: Client the invoice is billed to
        subject: Invoice subject, used as line item description fallback
        issue_date: Raw issue date
        line_items: Billable lines (CSV rows carry a single synthetic line)
        tax_amount: Absolute tax amount
        balance: Raw remaining balance, fed to the status deriver
        paid_amount: Amount already paid
        reference: PO / reference number, stored as invoice notes
        state: Authoritative status from the source, if it has one
    """

    number: str = ""
    client: ExternalClient
    subject: str = ""
    issue_date: str = ""
    line_items: list[ExternalLineItem] = Field(default_factory=list)
    tax_amount: float = 0.0
    balance: str | float | None = None
    paid_amount: float = 0.0
    reference: str = ""
    state: InvoiceStatus | None = None

    @property
    def subtotal(self) -> float:
        return sum(item.amount for item in self.line_items)


class SourceBatch(BaseModel):
    """Everything a source adapter produced for one import run.

    Attributes:
        source: Adapter name, e.g. 'harvest-csv'
        rows: Invoice rows in source order
        clients: Additional clients known to the source (reconciled after
            the clients referenced by rows, even when they have no invoices)
    """

    source: str
    rows: list[ExternalInvoiceRow] = Field(default_factory=list)
    clients: list[ExternalClient] = Field(default_factory=list)

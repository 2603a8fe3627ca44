"""Record payloads written by the importer.

Field names match the PocketBase collections (`clients`, `invoices`,
`invoice_items`).
"""

from typing import Literal

from pydantic import BaseModel, Field

InvoiceStatus = Literal["draft", "sent", "paid", "overdue", "written_off"]

CLIENTS = "clients"
INVOICES = "invoices"
INVOICE_ITEMS = "invoice_items"


class ClientFields(BaseModel):
    """Fields of a new client record."""

    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field("", description="Billing contact email")
    address: str = Field("", description="Postal address")
    currency: str = Field("USD", description="Currency code (ISO 4217)")
    harvest_id: str = Field("", description="Identifier in the source billing system")
    archived: bool = False


class InvoiceFields(BaseModel):
    """Fields of a new invoice record."""

    client: str = Field(..., description="Owning client record id")
    number: str = Field(..., min_length=1, description="Globally unique invoice number")
    issue_date: str = Field("", description="Issue date (YYYY-MM-DD) or empty")
    due_date: str = Field("", description="Due date (YYYY-MM-DD) or empty")
    status: InvoiceStatus
    tax_percent: float = 0.0
    paid_amount: float = 0.0
    notes: str = ""


class InvoiceItemFields(BaseModel):
    """Fields of a new invoice line item record."""

    invoice: str = Field(..., description="Owning invoice record id")
    description: str
    quantity: float
    unit_price: float

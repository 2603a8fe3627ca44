"""In-memory record store and row builders shared by the unit tests."""

import itertools
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from services.importer.schema import ExternalClient, ExternalInvoiceRow, ExternalLineItem
from services.store.base import Record, RecordPage, RecordStore, StoreError


class InMemoryStore(RecordStore):
    """Record store held in memory, with hooks to simulate failures."""

    def __init__(self) -> None:
        self.collections: dict[str, list[Record]] = defaultdict(list)
        self.healthy = True
        self.create_failures: dict[str, Callable[[dict[str, Any]], bool]] = {}
        self.find_failures: set[str] = set()
        self.updates: list[tuple[str, str, dict[str, Any]]] = []
        self._ids = itertools.count(1)

    def fail_create(
        self,
        collection: str,
        when: Callable[[dict[str, Any]], bool] = lambda fields: True,
    ) -> None:
        self.create_failures[collection] = when

    async def health_check(self) -> bool:
        return self.healthy

    async def find(self, collection: str, filters: dict[str, Any]) -> Record | None:
        if collection in self.find_failures:
            raise StoreError(f"lookup in {collection} failed", status_code=500)
        for record in self.collections[collection]:
            if all(record.get(field) == value for field, value in filters.items()):
                return record
        return None

    async def create(self, collection: str, fields: dict[str, Any]) -> Record:
        when = self.create_failures.get(collection)
        if when is not None and when(fields):
            raise StoreError("Failed to create record.", status_code=400)
        record = {"id": f"rec{next(self._ids)}", **fields}
        self.collections[collection].append(record)
        return record

    async def update(self, collection: str, record_id: str, fields: dict[str, Any]) -> Record:
        for record in self.collections[collection]:
            if record["id"] == record_id:
                record.update(fields)
                self.updates.append((collection, record_id, fields))
                return record
        raise StoreError("The requested resource wasn't found.", status_code=404)

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 30,
        filters: dict[str, Any] | None = None,
        sort: str | None = None,
    ) -> RecordPage:
        items = [
            record
            for record in self.collections[collection]
            if all(record.get(field) == value for field, value in (filters or {}).items())
        ]
        start = (page - 1) * per_page
        return RecordPage(
            items=items[start : start + per_page],
            page=page,
            per_page=per_page,
            total_items=len(items),
            total_pages=(len(items) + per_page - 1) // per_page,
        )


def make_row(
    number: str = "INV-1",
    client: str | ExternalClient = "Acme",
    subtotal: float = 1000.0,
    tax: float = 0.0,
    balance: str | float | None = "0",
    issue_date: str = "2024-01-01",
    subject: str = "Consulting",
    **overrides: Any,
) -> ExternalInvoiceRow:
    """Build a single-line invoice row the way the CSV source does."""
    fields: dict[str, Any] = {
        "number": number,
        "client": client if isinstance(client, ExternalClient) else ExternalClient(name=client),
        "subject": subject,
        "issue_date": issue_date,
        "line_items": [ExternalLineItem(description=subject, quantity=1, unit_price=subtotal)],
        "tax_amount": tax,
        "balance": balance,
    }
    fields.update(overrides)
    return ExternalInvoiceRow(**fields)

"""Client reconciliation.

Maps every distinct client referenced by an import batch to a client
record in the store, creating records on first encounter. Re-running
against the same store finds the records created last time instead of
creating them again.
"""

import logging
from collections.abc import Iterable

from services.importer.normalize import parse_currency_code
from services.importer.report import ImportReport
from services.importer.schema import ExternalClient, ExternalInvoiceRow
from services.store.base import Record, RecordStore, StoreError
from services.store.schema import CLIENTS, ClientFields

logger = logging.getLogger(__name__)


def unique_clients(
    rows: Iterable[ExternalInvoiceRow],
    extra_clients: Iterable[ExternalClient] = (),
) -> dict[str, ExternalClient]:
    """Collect distinct clients by trimmed name, first occurrence wins.

    Clients with an empty name are left out entirely.

    Args:
        rows: Invoice rows in source order
        extra_clients: Clients known to the source beyond those on rows

    Returns:
        Ordered mapping of client name to the client description used for
        creating it
    """
    seen: dict[str, ExternalClient] = {}
    candidates = [row.client for row in rows]
    candidates.extend(extra_clients)
    for client in candidates:
        name = client.name.strip()
        if name and name not in seen:
            seen[name] = client
    return seen


class ClientReconciler:
    """Resolves external clients to client record ids."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    async def _lookup(self, name: str, client: ExternalClient) -> Record | None:
        if client.external_id:
            existing = await self.store.find(CLIENTS, {"harvest_id": client.external_id})
            if existing is not None:
                return existing
        return await self.store.find(CLIENTS, {"name": name})

    async def _backfill_email(self, name: str, existing: Record, client: ExternalClient) -> None:
        if not client.email or existing.get("email"):
            return
        try:
            await self.store.update(CLIENTS, existing["id"], {"email": client.email})
            logger.info(f"  [client ~] {name}: email set to {client.email}")
        except StoreError as e:
            logger.warning(f'  [client ~] "{name}": could not backfill email: {e}')

    async def reconcile(
        self,
        rows: list[ExternalInvoiceRow],
        report: ImportReport,
        extra_clients: Iterable[ExternalClient] = (),
    ) -> dict[str, str]:
        """Find or create a client record for every distinct client name.

        Clients are processed one at a time in first-seen order. A client
        whose lookup or creation fails is reported and left out of the
        mapping; invoices that reference it are skipped downstream.

        Args:
            rows: Invoice rows in source order
            report: Report to update with client counters and errors
            extra_clients: Clients without invoice rows to reconcile as well

        Returns:
            Mapping of client name to client record id
        """
        clients = unique_clients(rows, extra_clients)
        logger.info(f"Found {len(clients)} unique clients")

        client_ids: dict[str, str] = {}
        for name, client in clients.items():
            try:
                existing = await self._lookup(name, client)
            except StoreError as e:
                logger.error(f'  [client x] "{name}": lookup failed: {e}')
                report.add_error(f'Client "{name}": {e}')
                continue

            if existing is not None:
                client_ids[name] = existing["id"]
                report.clients_skipped += 1
                logger.info(f"  [client =] {name}")
                await self._backfill_email(name, existing, client)
                continue

            fields = ClientFields(
                name=name,
                email=client.email.strip(),
                address=client.address.strip(),
                currency=parse_currency_code(client.currency),
                harvest_id=client.external_id,
            )
            try:
                record = await self.store.create(CLIENTS, fields.model_dump())
            except StoreError as e:
                logger.error(f'  [client x] "{name}": {e}')
                report.add_error(f'Client "{name}": {e}')
                continue

            client_ids[name] = record["id"]
            report.clients_created += 1
            logger.info(f"  [client +] {name}")

        logger.info(
            f"Clients: {report.clients_created} created, "
            f"{report.clients_skipped} already existed"
        )
        return client_ids

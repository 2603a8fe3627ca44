"""Harvest REST API v2 source.

Pages through clients, contacts and invoices (with nested line items).
Unlike the CSV report, the API reports each invoice's state, so status is
mapped rather than derived.

See: https://help.getharvest.com/api-v2/
"""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from services.importer.normalize import parse_amount
from services.importer.schema import (
    ExternalClient,
    ExternalInvoiceRow,
    ExternalLineItem,
    SourceBatch,
)
from services.importer.status import map_harvest_state
from services.shared.config import Settings
from services.sources.base import SourceAdapter, SourceFormatError

logger = logging.getLogger(__name__)


class HarvestApiSource(SourceAdapter):
    """Source adapter for the Harvest REST API."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Harvest API source.

        Args:
            settings: Application settings with harvest_* configuration
            transport: Optional httpx transport (tests inject a mock transport)

        Raises:
            ValueError: If the Harvest credentials are not configured
        """
        if not settings.harvest_account_id:
            raise ValueError(
                "Harvest account id not configured. "
                "Set APP_HARVEST_ACCOUNT_ID environment variable."
            )
        if not settings.harvest_access_token:
            raise ValueError(
                "Harvest access token not configured. "
                "Set APP_HARVEST_ACCESS_TOKEN environment variable."
            )

        self.settings = settings
        self._page_size = settings.harvest_page_size
        self._transport = transport

    @property
    def source_name(self) -> str:
        return "harvest-api"

    def _open_client(self) -> httpx.AsyncClient:
        """Create an HTTP client for one load; callers close it with async with."""
        return httpx.AsyncClient(
            base_url=self.settings.harvest_base_url.rstrip("/"),
            headers={
                "Harvest-Account-Id": self.settings.harvest_account_id,
                "Authorization": f"Bearer {self.settings.harvest_access_token}",
                "User-Agent": self.settings.harvest_user_agent,
                "Accept": "application/json",
            },
            timeout=30.0,
            transport=self._transport,
        )

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential(multiplier=1, max=30) + wait_random(0, 1),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _get_page(
        self, client: httpx.AsyncClient, endpoint: str, page: int
    ) -> dict[str, Any]:
        response = await client.get(
            f"/{endpoint}", params={"page": page, "per_page": self._page_size}
        )
        response.raise_for_status()
        body: dict[str, Any] = response.json()
        return body

    async def fetch_all(
        self, endpoint: str, client: httpx.AsyncClient | None = None
    ) -> list[dict[str, Any]]:
        """Fetch every record of an endpoint, one page at a time.

        Args:
            endpoint: 'clients', 'contacts' or 'invoices'
            client: Open client to reuse; a short-lived one is opened otherwise

        Returns:
            All records in API order

        Raises:
            SourceFormatError: If Harvest rejects the request or the response
                lacks the expected collection key
        """
        if client is None:
            async with self._open_client() as owned:
                return await self.fetch_all(endpoint, owned)

        records: list[dict[str, Any]] = []
        page: int | None = 1
        while page is not None:
            try:
                body = await self._get_page(client, endpoint, page)
            except httpx.HTTPStatusError as e:
                raise SourceFormatError(
                    f"Harvest API returned {e.response.status_code} for /{endpoint}"
                ) from e
            except httpx.TransportError as e:
                raise SourceFormatError(f"Cannot reach Harvest API: {e}") from e

            if endpoint not in body:
                raise SourceFormatError(f"Unexpected Harvest response for /{endpoint}")
            records.extend(body[endpoint])
            page = body.get("next_page")

        logger.info(f"Fetched {len(records)} {endpoint} from Harvest")
        return records

    async def load(self) -> SourceBatch:
        async with self._open_client() as client:
            clients = await self.fetch_all("clients", client)
            contacts = await self.fetch_all("contacts", client)
            invoices = await self.fetch_all("invoices", client)

        directory = build_client_directory(clients, contacts)
        rows = [invoice_to_row(invoice, directory) for invoice in invoices]
        return SourceBatch(
            source=self.source_name,
            rows=rows,
            clients=list(directory.values()),
        )


def build_client_directory(
    clients: list[dict[str, Any]],
    contacts: list[dict[str, Any]],
) -> dict[str, ExternalClient]:
    """Index Harvest clients by id, with email from their first contact.

    Returns:
        Mapping of Harvest client id (as string) to ExternalClient
    """
    emails: dict[str, str] = {}
    for contact in contacts:
        client_id = str((contact.get("client") or {}).get("id", ""))
        email = (contact.get("email") or "").strip()
        if client_id and email and client_id not in emails:
            emails[client_id] = email

    directory: dict[str, ExternalClient] = {}
    for client in clients:
        client_id = str(client.get("id", ""))
        directory[client_id] = ExternalClient(
            name=(client.get("name") or "").strip(),
            external_id=client_id,
            address=(client.get("address") or "").strip(),
            currency=client.get("currency") or "",
            email=emails.get(client_id, ""),
        )
    return directory


def invoice_to_row(
    invoice: dict[str, Any],
    directory: dict[str, ExternalClient],
) -> ExternalInvoiceRow:
    """Convert a Harvest invoice payload into an ExternalInvoiceRow.

    The invoice's nested client reference is resolved against the client
    directory; clients missing from it fall back to the nested name.
    """
    ref = invoice.get("client") or {}
    client_id = str(ref.get("id", "")) if ref.get("id") is not None else ""
    client = directory.get(client_id) or ExternalClient(
        name=(ref.get("name") or "").strip(),
        external_id=client_id,
        currency=invoice.get("currency") or "",
    )

    number = str(invoice.get("number") or invoice.get("id") or "").strip()
    amount = parse_amount(invoice.get("amount"))
    due_amount = invoice.get("due_amount")

    return ExternalInvoiceRow(
        number=number,
        client=client,
        subject=(invoice.get("subject") or "").strip(),
        issue_date=invoice.get("issue_date") or "",
        line_items=[
            ExternalLineItem(
                description=(item.get("description") or "").strip(),
                quantity=parse_amount(item.get("quantity")),
                unit_price=parse_amount(item.get("unit_price")),
            )
            for item in invoice.get("line_items") or []
        ],
        tax_amount=parse_amount(invoice.get("tax_amount")),
        balance=due_amount,
        paid_amount=max(amount - parse_amount(due_amount), 0.0),
        reference=(invoice.get("purchase_order") or "").strip(),
        state=map_harvest_state(invoice.get("state")),
    )

"""PocketBase record store client.

Talks to PocketBase's REST API with an async httpx client. Transport-level
failures are retried; HTTP error responses are surfaced as StoreError
with the message PocketBase returns.

Based on PocketBase Web API reference:
https://pocketbase.io/docs/api-records/
"""

import json
import logging
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    retry,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from services.shared.config import Settings
from services.store.base import (
    Record,
    RecordPage,
    RecordStore,
    StoreError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

# Methods safe to resend after the request may already have reached the server
IDEMPOTENT_METHODS = frozenset({"GET", "PATCH"})

# Failures raised before the request was sent
_UNSENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


def _should_retry(retry_state: RetryCallState) -> bool:
    """Retry transport failures, but resend POSTs only when they never left.

    A read timeout on a create may mean the record was written; sending it
    again would duplicate it.
    """
    outcome = retry_state.outcome
    if outcome is None or not outcome.failed:
        return False
    error = outcome.exception()
    method = str(retry_state.args[1]).upper()
    if method in IDEMPOTENT_METHODS:
        return isinstance(error, httpx.TransportError)
    return isinstance(error, _UNSENT_ERRORS)


def build_filter(filters: dict[str, Any]) -> str:
    """Render equality predicates as a PocketBase filter expression.

    Args:
        filters: Field name to required value

    Returns:
        Filter string such as 'name = "Acme" && archived = false'
    """
    clauses = []
    for field, value in filters.items():
        if isinstance(value, bool):
            literal = "true" if value else "false"
        elif isinstance(value, int | float):
            literal = repr(value)
        else:
            escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
            literal = f'"{escaped}"'
        clauses.append(f"{field} = {literal}")
    return " && ".join(clauses)


class PocketBaseStore(RecordStore):
    """Record store backed by a PocketBase server."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize PocketBase client.

        Args:
            settings: Application settings with pb_* configuration
            transport: Optional httpx transport (tests inject a mock transport)
        """
        self.settings = settings
        self._base_url = settings.pb_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=settings.pb_timeout_seconds,
            transport=transport,
        )
        self._token: str | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "PocketBaseStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @retry(
        retry=_should_retry,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=5) + wait_random(0, 0.5),
        reraise=True,
    )
    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if self._token:
            headers["Authorization"] = self._token
        return await self._client.request(method, path, headers=headers, **kwargs)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            StoreUnavailableError: If the server cannot be reached
            StoreError: If the server answers with an error status
        """
        try:
            response = await self._send(method, path, **kwargs)
        except httpx.TransportError as e:
            raise StoreUnavailableError(f"Cannot reach PocketBase at {self._base_url}: {e}") from e

        if response.is_error:
            raise StoreError(self._error_message(response), status_code=response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise StoreError(
                f"Unexpected non-JSON response from PocketBase at {self._base_url}",
                status_code=response.status_code,
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the most specific error message from a PocketBase error body."""
        try:
            body = response.json()
        except json.JSONDecodeError:
            return f"HTTP {response.status_code}: {response.text[:200]}"

        message = body.get("message") or f"HTTP {response.status_code}"
        field_errors = body.get("data") or {}
        if isinstance(field_errors, dict) and field_errors:
            details = ", ".join(
                f"{field}: {err.get('message', err) if isinstance(err, dict) else err}"
                for field, err in field_errors.items()
            )
            message = f"{message} ({details})"
        return str(message)

    async def authenticate(self, identity: str, password: str) -> None:
        """Authenticate as a superuser and keep the token for later requests.

        Args:
            identity: Superuser email
            password: Superuser password

        Raises:
            StoreError: If the credentials are rejected
        """
        body = await self._request(
            "POST",
            "/api/collections/_superusers/auth-with-password",
            json={"identity": identity, "password": password},
        )
        token = body.get("token")
        if not token:
            raise StoreError("Authentication response did not include a token")
        self._token = token
        logger.info(f"Authenticated with PocketBase at {self._base_url}")

    async def health_check(self) -> bool:
        try:
            await self._request("GET", "/api/health")
            return True
        except StoreError as e:
            logger.warning(f"PocketBase health check failed: {e}")
            return False

    async def find(self, collection: str, filters: dict[str, Any]) -> Record | None:
        page = await self.list_records(collection, page=1, per_page=1, filters=filters)
        return page.items[0] if page.items else None

    async def create(self, collection: str, fields: dict[str, Any]) -> Record:
        record: Record = await self._request(
            "POST", f"/api/collections/{collection}/records", json=fields
        )
        return record

    async def update(self, collection: str, record_id: str, fields: dict[str, Any]) -> Record:
        record: Record = await self._request(
            "PATCH", f"/api/collections/{collection}/records/{record_id}", json=fields
        )
        return record

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 30,
        filters: dict[str, Any] | None = None,
        sort: str | None = None,
    ) -> RecordPage:
        params: dict[str, Any] = {"page": page, "perPage": per_page}
        if filters:
            params["filter"] = build_filter(filters)
        if sort:
            params["sort"] = sort

        body = await self._request("GET", f"/api/collections/{collection}/records", params=params)
        return RecordPage(
            items=body.get("items", []),
            page=body.get("page", page),
            per_page=body.get("perPage", per_page),
            total_items=body.get("totalItems", 0),
            total_pages=body.get("totalPages", 0),
        )

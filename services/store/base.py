"""Abstract interface for the generic record store.

The invoicing data lives in a record-and-collection database reached over
HTTP. Business logic only depends on this interface so that the backing
service (PocketBase in production, an in-memory store in tests) can be
swapped without touching the importer.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

Record = dict[str, Any]


class StoreError(Exception):
    """Raised when the record store rejects a request.

    Attributes:
        message: Human-readable error returned by the store
        status_code: HTTP status code, if the request reached the store
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StoreUnavailableError(StoreError):
    """Raised when the record store cannot be reached at all."""


class RecordPage(BaseModel):
    """One page of a collection listing.

    Attributes:
        items: Records on this page
        page: 1-based page number
        per_page: Requested page size
        total_items: Total matching records
        total_pages: Total number of pages
    """

    items: list[Record]
    page: int
    per_page: int
    total_items: int
    total_pages: int


class RecordStore(ABC):
    """Abstract base class for record store implementations.

    Filters are equality predicates keyed by field name. All calls are
    asynchronous; callers await them one at a time.
    """

    @abstractmethod
    async def health_check(self) -> bool:
        """Check whether the store is reachable.

        Returns:
            True if the store responds
        """
        pass

    @abstractmethod
    async def find(self, collection: str, filters: dict[str, Any]) -> Record | None:
        """Return the first record matching all filters.

        Args:
            collection: Collection name
            filters: Field name to required value

        Returns:
            Matching record, or None when nothing matches

        Raises:
            StoreError: If the lookup itself fails
        """
        pass

    @abstractmethod
    async def create(self, collection: str, fields: dict[str, Any]) -> Record:
        """Create a record.

        Args:
            collection: Collection name
            fields: Field values for the new record

        Returns:
            The created record including its id

        Raises:
            StoreError: If the store rejects the record
        """
        pass

    @abstractmethod
    async def update(self, collection: str, record_id: str, fields: dict[str, Any]) -> Record:
        """Update fields of an existing record.

        Raises:
            StoreError: If the store rejects the update
        """
        pass

    @abstractmethod
    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 30,
        filters: dict[str, Any] | None = None,
        sort: str | None = None,
    ) -> RecordPage:
        """List one page of a collection."""
        pass

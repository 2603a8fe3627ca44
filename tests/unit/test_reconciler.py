"""Unit tests for client reconciliation."""

import pytest

from services.importer.reconciler import ClientReconciler, unique_clients
from services.importer.report import ImportReport
from services.importer.schema import ExternalClient
from services.store.schema import CLIENTS
from tests.unit.fakes import InMemoryStore, make_row


class TestUniqueClients:
    """Test distinct client collection."""

    def test_first_seen_wins(self) -> None:
        """Attributes come from the first row mentioning a client."""
        rows = [
            make_row("1", client=ExternalClient(name="Acme", address="1 First St")),
            make_row("2", client=ExternalClient(name="Acme", address="2 Second St")),
        ]
        clients = unique_clients(rows)
        assert list(clients) == ["Acme"]
        assert clients["Acme"].address == "1 First St"

    def test_empty_names_excluded(self) -> None:
        """Rows without a client name do not contribute a client."""
        rows = [make_row("1", client=""), make_row("2", client="  "), make_row("3", client="B")]
        assert list(unique_clients(rows)) == ["B"]

    def test_names_trimmed(self) -> None:
        """Surrounding whitespace does not create distinct clients."""
        rows = [make_row("1", client="Acme "), make_row("2", client=" Acme")]
        assert list(unique_clients(rows)) == ["Acme"]

    def test_extra_clients_after_rows(self) -> None:
        """Clients without invoices are appended after row clients."""
        rows = [make_row("1", client="B")]
        extra = [ExternalClient(name="A"), ExternalClient(name="B", address="ignored")]
        clients = unique_clients(rows, extra)
        assert list(clients) == ["B", "A"]
        assert clients["B"].address == ""


class TestClientReconciler:
    """Test find-or-create behaviour against the store."""

    @pytest.mark.asyncio
    async def test_creates_one_client_per_name(self, store: InMemoryStore) -> None:
        """Two rows for the same client produce a single record."""
        rows = [make_row("1", client="Acme"), make_row("2", client="Acme")]
        report = ImportReport()

        client_ids = await ClientReconciler(store).reconcile(rows, report)

        assert len(store.collections[CLIENTS]) == 1
        assert client_ids == {"Acme": store.collections[CLIENTS][0]["id"]}
        assert report.clients_created == 1
        assert report.clients_skipped == 0

    @pytest.mark.asyncio
    async def test_created_client_fields(self, store: InMemoryStore) -> None:
        """New clients get address, parsed currency and archived=false."""
        client = ExternalClient(
            name="Maple Co", address=" 1 Bay St ", currency="Canadian Dollar - CAD"
        )
        row = make_row("1", client=client)

        await ClientReconciler(store).reconcile([row], ImportReport())

        record = store.collections[CLIENTS][0]
        assert record["name"] == "Maple Co"
        assert record["address"] == "1 Bay St"
        assert record["currency"] == "CAD"
        assert record["archived"] is False
        assert record["harvest_id"] == ""

    @pytest.mark.asyncio
    async def test_default_currency(self, store: InMemoryStore) -> None:
        """Missing currency defaults to USD."""
        await ClientReconciler(store).reconcile([make_row("1")], ImportReport())
        assert store.collections[CLIENTS][0]["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_existing_client_reused(self, store: InMemoryStore) -> None:
        """A client that already exists by name is reused, not recreated."""
        existing = await store.create(CLIENTS, {"name": "Acme", "email": ""})
        report = ImportReport()

        client_ids = await ClientReconciler(store).reconcile([make_row("1")], report)

        assert client_ids == {"Acme": existing["id"]}
        assert len(store.collections[CLIENTS]) == 1
        assert report.clients_skipped == 1
        assert report.clients_created == 0

    @pytest.mark.asyncio
    async def test_lookup_by_external_id(self, store: InMemoryStore) -> None:
        """Identity-bearing sources match on the stored external id first."""
        existing = await store.create(CLIENTS, {"name": "Old Name", "harvest_id": "42"})
        row = make_row("1", client=ExternalClient(name="New Name", external_id="42"))

        client_ids = await ClientReconciler(store).reconcile([row], ImportReport())

        assert client_ids == {"New Name": existing["id"]}
        assert len(store.collections[CLIENTS]) == 1

    @pytest.mark.asyncio
    async def test_email_backfilled_when_empty(self, store: InMemoryStore) -> None:
        """A missing email on an existing client is filled in from the source."""
        existing = await store.create(CLIENTS, {"name": "Acme", "email": ""})
        row = make_row("1", client=ExternalClient(name="Acme", email="billing@acme.test"))

        await ClientReconciler(store).reconcile([row], ImportReport())

        assert existing["email"] == "billing@acme.test"

    @pytest.mark.asyncio
    async def test_email_not_overwritten(self, store: InMemoryStore) -> None:
        """An existing non-empty email is left alone."""
        existing = await store.create(CLIENTS, {"name": "Acme", "email": "ap@acme.test"})
        row = make_row("1", client=ExternalClient(name="Acme", email="billing@acme.test"))

        await ClientReconciler(store).reconcile([row], ImportReport())

        assert existing["email"] == "ap@acme.test"
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_create_failure_reported_and_unmapped(self, store: InMemoryStore) -> None:
        """A client that cannot be created is reported and left out of the mapping."""
        store.fail_create(CLIENTS, when=lambda fields: fields["name"] == "Broken")
        rows = [make_row("1", client="Broken"), make_row("2", client="Fine")]
        report = ImportReport()

        client_ids = await ClientReconciler(store).reconcile(rows, report)

        assert "Broken" not in client_ids
        assert "Fine" in client_ids
        assert report.clients_created == 1
        assert report.errors == ['Client "Broken": Failed to create record.']

    @pytest.mark.asyncio
    async def test_lookup_failure_reported(self, store: InMemoryStore) -> None:
        """A failing lookup is reported without creating the client."""
        store.find_failures.add(CLIENTS)
        report = ImportReport()

        client_ids = await ClientReconciler(store).reconcile([make_row("1")], report)

        assert client_ids == {}
        assert store.collections[CLIENTS] == []
        assert len(report.errors) == 1

    @pytest.mark.asyncio
    async def test_idempotent_rerun(self, store: InMemoryStore) -> None:
        """Reconciling the same rows twice creates nothing the second time."""
        rows = [make_row("1", client="A"), make_row("2", client="B")]
        first = ImportReport()
        second = ImportReport()

        ids_first = await ClientReconciler(store).reconcile(rows, first)
        ids_second = await ClientReconciler(store).reconcile(rows, second)

        assert ids_first == ids_second
        assert first.clients_created == 2
        assert second.clients_created == 0
        assert second.clients_skipped == 2

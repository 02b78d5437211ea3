"""Tests for the reconciliation service."""

import asyncio

import pytest

from itemgen.application.reconciliation_service import ReconciliationService
from itemgen.application.regeneration_service import RegenerationOrchestrator
from itemgen.domain.exceptions import RegenerationPendingError, ValidationError
from itemgen.domain.value_objects import ItemSpec
from itemgen.infrastructure.memory_store import InMemoryCatalog


@pytest.fixture
def service(memory_catalog: InMemoryCatalog) -> ReconciliationService:
    """Create reconciliation service over the in-memory catalog."""
    return ReconciliationService(memory_catalog.ports())


class TestReconcileStockRows:
    """Tests for reconcile_stock_rows."""

    @pytest.mark.asyncio
    async def test_provisions_rows_left_by_partial_failure(
        self,
        service: ReconciliationService,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """Items reported as partial provisioning errors get their row."""
        product = classic_tee["product"]
        values = [v.id for v in classic_tee["values"].values()]
        memory_catalog.faults.fail_stock_row_skus.add("CLASSIC-TEE-BLUE-L")
        result = await RegenerationOrchestrator(memory_catalog.ports()).regenerate(
            product.id, classic_tee["store_id"], values
        )
        assert len(result.errors) == 1
        memory_catalog.faults.fail_stock_row_skus.clear()

        reconciled = await service.reconcile_stock_rows(product.id, classic_tee["store_id"])

        assert reconciled.provisioned == 1
        assert reconciled.skipped == 5
        assert reconciled.failed == []
        assert reconciled.location_id == result.location_id
        assert len(memory_catalog.stock_rows) == 6

    @pytest.mark.asyncio
    async def test_seeds_rows_from_item_counters(
        self,
        service: ReconciliationService,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """A new row starts from the quantities recorded on the item."""
        product = classic_tee["product"]
        items = memory_catalog.ports().items
        spec = ItemSpec(sku="LEGACY", onhand=12, committed=2, unavailable=1)
        await items.create("legacy-item", spec, product.id, classic_tee["store_id"])

        result = await service.reconcile_stock_rows(product.id, classic_tee["store_id"])

        assert result.provisioned == 1
        row = next(iter(memory_catalog.stock_rows.values()))
        assert (row.on_hand, row.committed, row.unavailable) == (12, 2, 1)
        assert row.available == 9

    @pytest.mark.asyncio
    async def test_failures_collected(
        self,
        service: ReconciliationService,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """A failing row is reported by SKU."""
        product = classic_tee["product"]
        items = memory_catalog.ports().items
        await items.create("i-1", ItemSpec(sku="BROKEN"), product.id, classic_tee["store_id"])
        memory_catalog.faults.fail_stock_row_skus.add("BROKEN")

        result = await service.reconcile_stock_rows(product.id, classic_tee["store_id"])

        assert result.provisioned == 0
        assert result.failed == ["BROKEN"]


class TestLinks:
    """Tests for relink_items and verify_links."""

    @pytest.mark.asyncio
    async def test_relink_unlinked_items(
        self,
        service: ReconciliationService,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """Items whose link step never ran are linked."""
        product = classic_tee["product"]
        items = memory_catalog.ports().items
        await items.create("i-1", ItemSpec(sku="A"), product.id, classic_tee["store_id"])
        await items.create("i-2", ItemSpec(sku="B"), product.id, classic_tee["store_id"])
        await items.link("i-1", product.id)

        before = await service.verify_links(product.id)
        relinked = await service.relink_items(product.id)
        after = await service.verify_links(product.id)

        assert (before.total, before.linked, before.unlinked) == (2, 1, 1)
        assert relinked == 1
        assert (after.linked, after.unlinked) == (2, 0)

    @pytest.mark.asyncio
    async def test_no_items(self, service: ReconciliationService) -> None:
        """A product without items reports zeros."""
        report = await service.verify_links("nothing")
        assert (report.total, report.linked, report.unlinked) == (0, 0, 0)
        assert await service.relink_items("nothing") == 0


class TestReconcile:
    """Tests for the locked reconcile entry point."""

    @pytest.mark.asyncio
    async def test_reports_links_and_rows(
        self,
        service: ReconciliationService,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """One call relinks, provisions and counts links."""
        product = classic_tee["product"]
        items = memory_catalog.ports().items
        await items.create("i-1", ItemSpec(sku="A"), product.id, classic_tee["store_id"])

        result = await service.reconcile(product.id, classic_tee["store_id"])

        assert result.relinked == 1
        assert result.provisioned == 1
        assert (result.linked, result.unlinked) == (1, 0)

    @pytest.mark.asyncio
    async def test_other_store_rejected(
        self,
        service: ReconciliationService,
        memory_catalog: InMemoryCatalog,
        classic_tee: dict,
    ) -> None:
        """A store that does not own the product gets no location or rows."""
        product = classic_tee["product"]
        items = memory_catalog.ports().items
        await items.create("i-1", ItemSpec(sku="A"), product.id, classic_tee["store_id"])

        with pytest.raises(ValidationError) as exc_info:
            await service.reconcile_stock_rows(product.id, "store-2")

        assert exc_info.value.details["store_id"] == "store-2"
        assert memory_catalog.locations == {}
        assert memory_catalog.stock_rows == {}

    @pytest.mark.asyncio
    async def test_unknown_product_rejected(self, service: ReconciliationService) -> None:
        """A product that cannot be read is rejected."""
        with pytest.raises(ValidationError):
            await service.reconcile("missing", "store-1")

    @pytest.mark.asyncio
    async def test_serialized_with_regeneration(
        self, memory_catalog: InMemoryCatalog, classic_tee: dict
    ) -> None:
        """Reconcile never writes rows for items a regeneration is replacing."""
        product = classic_tee["product"]
        values = [v.id for v in classic_tee["values"].values()]
        orchestrator = RegenerationOrchestrator(memory_catalog.ports())
        service = ReconciliationService(memory_catalog.ports(), locks=orchestrator.locks)

        memory_catalog.faults.fail_stock_row_skus.update(
            f"CLASSIC-TEE-{color}-{size}" for color in ("RED", "BLUE") for size in "SML"
        )
        await orchestrator.regenerate(product.id, classic_tee["store_id"], values)
        memory_catalog.faults.fail_stock_row_skus.clear()
        memory_catalog.faults.delay_seconds = 0.01

        await asyncio.gather(
            service.reconcile_stock_rows(product.id, classic_tee["store_id"]),
            orchestrator.regenerate(product.id, classic_tee["store_id"], values[:2]),
        )

        orphans = [
            row for row in memory_catalog.stock_rows.values()
            if row.item_id not in memory_catalog.items
        ]
        assert orphans == []
        assert len(memory_catalog.stock_rows) == 2

    @pytest.mark.asyncio
    async def test_fails_fast_while_regenerating(
        self, memory_catalog: InMemoryCatalog, classic_tee: dict
    ) -> None:
        """A non-waiting reconcile is refused while the product is locked."""
        orchestrator = RegenerationOrchestrator(memory_catalog.ports())
        service = ReconciliationService(memory_catalog.ports(), locks=orchestrator.locks)
        product = classic_tee["product"]

        async with orchestrator.locks.hold(product.id):
            with pytest.raises(RegenerationPendingError):
                await service.reconcile(product.id, classic_tee["store_id"], wait=False)

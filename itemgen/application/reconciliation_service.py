"""Reconciliation of items with their links and stock rows.

Repairs what a regeneration can leave behind: items without a stock row
at the default location (after a PartialProvisioningError) and items
whose link step never completed. Runs under the same per-product lock
as regeneration, so it never works on items a regeneration is replacing.
"""

from dataclasses import dataclass, field

import structlog

from itemgen.application.ports import CatalogPorts
from itemgen.application.regeneration_service import (
    ProductLockRegistry,
    get_regeneration_orchestrator,
)
from itemgen.domain.exceptions import RegenerationPendingError, ValidationError

logger = structlog.get_logger()


@dataclass
class ReconcileResult:
    """Result of a stock row reconciliation.

    Attributes:
        product_id: Reconciled product.
        location_id: Default location the rows were checked against.
        provisioned: Number of stock rows created.
        skipped: Number of items that already had a row.
        failed: SKUs whose row could not be created.
        relinked: Number of items linked during the run.
        linked: Linked items after the run.
        unlinked: Unlinked items after the run.
    """

    product_id: str
    location_id: str
    provisioned: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)
    relinked: int = 0
    linked: int = 0
    unlinked: int = 0


@dataclass
class LinkReport:
    """Link status of a product's items."""

    total: int
    linked: int
    unlinked: int


class ReconciliationService:
    """Retry tooling for stock rows and item links.

    Example usage:
        service = ReconciliationService(ports, locks=orchestrator.locks)
        result = await service.reconcile(product_id, store_id)
    """

    def __init__(self, ports: CatalogPorts, locks: ProductLockRegistry | None = None) -> None:
        """Initialize service.

        Args:
            ports: Storage ports.
            locks: Per-product lock registry shared with the orchestrator.
        """
        self.ports = ports
        self.locks = locks or ProductLockRegistry()

    async def reconcile(
        self,
        product_id: str,
        store_id: str,
        wait: bool = True,
    ) -> ReconcileResult:
        """Relink items, create missing stock rows and report link status.

        Args:
            product_id: Product ID.
            store_id: Store owning the product.
            wait: Whether to queue behind a running regeneration instead
                of failing fast.

        Returns:
            ReconcileResult including link counts.

        Raises:
            ValidationError: If the product is unknown or owned by another store.
            RegenerationPendingError: If ``wait`` is False and the product is locked.
        """
        if not wait and self.locks.is_locked(product_id):
            raise RegenerationPendingError(product_id)

        async with self.locks.hold(product_id):
            await self._check_product(product_id, store_id)
            relinked = await self._relink_items(product_id)
            result = await self._reconcile_stock_rows(product_id, store_id)
            links = await self.verify_links(product_id)

        result.relinked = relinked
        result.linked = links.linked
        result.unlinked = links.unlinked
        return result

    async def reconcile_stock_rows(self, product_id: str, store_id: str) -> ReconcileResult:
        """Create missing stock rows at the store's default location.

        New rows are seeded from the item's own counters so quantities
        recorded before the row existed are not lost.

        Args:
            product_id: Product ID.
            store_id: Store owning the product.

        Returns:
            ReconcileResult with provisioned and skipped counts.

        Raises:
            ValidationError: If the product is unknown or owned by another store.
        """
        async with self.locks.hold(product_id):
            await self._check_product(product_id, store_id)
            return await self._reconcile_stock_rows(product_id, store_id)

    async def relink_items(self, product_id: str) -> int:
        """Link the product's items whose link step did not complete.

        Args:
            product_id: Product ID.

        Returns:
            Number of items linked.
        """
        async with self.locks.hold(product_id):
            return await self._relink_items(product_id)

    async def verify_links(self, product_id: str) -> LinkReport:
        """Count linked and unlinked items of a product."""
        items = await self.ports.items.list(product_id)
        linked = sum(1 for item in items if item.linked)
        return LinkReport(total=len(items), linked=linked, unlinked=len(items) - linked)

    async def _check_product(self, product_id: str, store_id: str) -> None:
        product = await self.ports.products.read(product_id)
        if product is None:
            raise ValidationError(
                f"Product {product_id} not found",
                details={"product_id": product_id},
            )
        if product.store_id != store_id:
            raise ValidationError(
                f"Product {product_id} does not belong to store {store_id}",
                details={"product_id": product_id, "store_id": store_id},
            )

    async def _reconcile_stock_rows(self, product_id: str, store_id: str) -> ReconcileResult:
        location_id = await self.ports.locations.ensure_default(store_id)
        items = await self.ports.items.list(product_id)
        result = ReconcileResult(product_id=product_id, location_id=location_id)

        for item in items:
            if await self.ports.stock_rows.exists(item.id, location_id):
                result.skipped += 1
                continue
            try:
                await self.ports.stock_rows.create(
                    item.id,
                    location_id,
                    store_id,
                    on_hand=item.onhand,
                    committed=item.committed,
                    unavailable=item.unavailable,
                )
            except Exception as e:
                logger.warning(
                    "Stock row reconciliation failed",
                    item_id=item.id,
                    sku=item.sku,
                    error=str(e),
                )
                result.failed.append(item.sku)
                continue
            result.provisioned += 1

        logger.info(
            "Reconciled stock rows",
            product_id=product_id,
            location_id=location_id,
            provisioned=result.provisioned,
            skipped=result.skipped,
            failed=len(result.failed),
        )
        return result

    async def _relink_items(self, product_id: str) -> int:
        items = await self.ports.items.list(product_id)
        relinked = 0
        for item in items:
            if item.linked:
                continue
            await self.ports.items.link(item.id, product_id)
            relinked += 1

        if relinked:
            logger.info("Relinked items", product_id=product_id, count=relinked)
        return relinked


# ============================================================================
# Service Factory
# ============================================================================


def get_reconciliation_service() -> ReconciliationService:
    """Get reconciliation service sharing the orchestrator's ports and locks."""
    orchestrator = get_regeneration_orchestrator()
    return ReconciliationService(orchestrator.ports, locks=orchestrator.locks)

"""In-memory implementations of the storage ports.

Used for local development (``STORAGE_BACKEND=memory``) and as test
doubles. All adapters share one ``InMemoryCatalog`` state. Faults can be
injected per operation to exercise the orchestrator's error handling.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from uuid import uuid4

import structlog

from itemgen.application.ports import CatalogPorts
from itemgen.domain.value_objects import (
    ItemRecord,
    ItemSpec,
    Location,
    OptionSet,
    OptionValue,
    ProductSnapshot,
    StockRow,
)
from itemgen.infrastructure.config import settings

logger = structlog.get_logger()


@dataclass
class FaultConfig:
    """Operations that should fail or stall.

    Attributes:
        fail_delete_ids: Item IDs whose delete raises.
        fail_create_skus: SKUs whose create raises.
        fail_stock_row_skus: SKUs whose stock row create raises.
        fail_ensure_default: Whether ensure_default raises.
        delay_seconds: Sleep applied to every write.
    """

    fail_delete_ids: set[str] = field(default_factory=set)
    fail_create_skus: set[str] = field(default_factory=set)
    fail_stock_row_skus: set[str] = field(default_factory=set)
    fail_ensure_default: bool = False
    delay_seconds: float = 0.0


class InMemoryCatalog:
    """Shared in-memory state for all adapters."""

    def __init__(self) -> None:
        self.option_sets: dict[str, OptionSet] = {}
        self.option_values: dict[str, OptionValue] = {}
        self.products: dict[str, ProductSnapshot] = {}
        self.items: dict[str, ItemRecord] = {}
        self.locations: dict[str, Location] = {}
        self.stock_rows: dict[str, StockRow] = {}
        self.faults = FaultConfig()
        self.ensure_default_calls = 0
        self.locations_created = 0

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_option_set(self, store_id: str, name: str) -> OptionSet:
        """Add an option set."""
        option_set = OptionSet(id=str(uuid4()), store_id=store_id, name=name)
        self.option_sets[option_set.id] = option_set
        return option_set

    def add_option_value(
        self,
        option_set: OptionSet,
        name: str,
        group: str | None = None,
        order: int | None = None,
    ) -> OptionValue:
        """Add an option value to a set."""
        value = OptionValue(
            id=str(uuid4()),
            set_id=option_set.id,
            store_id=option_set.store_id,
            name=name,
            group=group,
            order=order,
        )
        self.option_values[value.id] = value
        return value

    def add_product(
        self,
        store_id: str,
        title: str,
        sku: str | None = None,
        price: int | None = None,
        saleprice: int | None = None,
        cost: int | None = None,
    ) -> ProductSnapshot:
        """Add a product."""
        product = ProductSnapshot(
            id=str(uuid4()),
            store_id=store_id,
            title=title,
            sku=sku,
            price=price,
            saleprice=saleprice,
            cost=cost,
        )
        self.products[product.id] = product
        return product

    def default_locations(self, store_id: str) -> list[Location]:
        """Get default locations of a store (at most one when deduplicated)."""
        return [
            loc for loc in self.locations.values()
            if loc.store_id == store_id and loc.is_default
        ]

    async def _delay(self) -> None:
        if self.faults.delay_seconds:
            await asyncio.sleep(self.faults.delay_seconds)

    def ports(self) -> CatalogPorts:
        """Build the port adapters over this state."""
        return CatalogPorts(
            option_catalog=MemoryOptionCatalog(self),
            products=MemoryProductReader(self),
            items=MemoryItemStore(self),
            locations=MemoryLocationProvisioner(self),
            stock_rows=MemoryItemLocationStore(self),
        )


class _MemoryAdapter:
    def __init__(self, catalog: InMemoryCatalog) -> None:
        self.catalog = catalog


class MemoryOptionCatalog(_MemoryAdapter):
    """OptionCatalog over in-memory state."""

    async def query(self, store_id: str) -> tuple[list[OptionSet], list[OptionValue]]:
        sets = [s for s in self.catalog.option_sets.values() if s.store_id == store_id]
        values = [v for v in self.catalog.option_values.values() if v.store_id == store_id]
        return sorted(sets, key=lambda s: s.name), values


class MemoryProductReader(_MemoryAdapter):
    """ProductReader over in-memory state."""

    async def read(self, product_id: str) -> ProductSnapshot | None:
        return self.catalog.products.get(product_id)


class MemoryItemStore(_MemoryAdapter):
    """ItemStore over in-memory state."""

    async def delete(self, item_id: str) -> None:
        await self.catalog._delay()
        if item_id in self.catalog.faults.fail_delete_ids:
            raise RuntimeError(f"Injected delete failure for item {item_id}")
        self.catalog.items.pop(item_id, None)
        for row_id, row in list(self.catalog.stock_rows.items()):
            if row.item_id == item_id:
                del self.catalog.stock_rows[row_id]

    async def create(
        self,
        item_id: str,
        spec: ItemSpec,
        product_id: str,
        store_id: str,
    ) -> ItemRecord:
        await self.catalog._delay()
        if spec.sku in self.catalog.faults.fail_create_skus:
            raise RuntimeError(f"Injected create failure for sku {spec.sku}")
        if item_id in self.catalog.items:
            raise ValueError(f"Item already exists: {item_id}")
        item = ItemRecord(
            id=item_id,
            product_id=product_id,
            store_id=store_id,
            sku=spec.sku,
            option1=spec.option1,
            option2=spec.option2,
            option3=spec.option3,
            price=spec.price,
            saleprice=spec.saleprice,
            cost=spec.cost,
            onhand=spec.onhand,
            committed=spec.committed,
            unavailable=spec.unavailable,
            available=spec.available,
            reorderlevel=spec.reorderlevel,
        )
        self.catalog.items[item_id] = item
        return item

    async def link(self, item_id: str, product_id: str) -> None:
        item = self.catalog.items.get(item_id)
        if item is None:
            raise LookupError(f"Item not found: {item_id}")
        self.catalog.items[item_id] = replace(item, product_id=product_id, linked=True)

    async def update_sku(self, item_id: str, sku: str) -> ItemRecord:
        item = self.catalog.items.get(item_id)
        if item is None:
            raise LookupError(f"Item not found: {item_id}")
        updated = replace(item, sku=sku)
        self.catalog.items[item_id] = updated
        return updated

    async def list(self, product_id: str) -> list[ItemRecord]:
        items = [i for i in self.catalog.items.values() if i.product_id == product_id]
        return sorted(items, key=lambda i: i.sku)


class MemoryLocationProvisioner(_MemoryAdapter):
    """LocationProvisioner over in-memory state.

    Deliberately check-then-act: it yields between the lookup and the
    insert, so unmemoized concurrent callers can create duplicates.
    """

    async def ensure_default(self, store_id: str) -> str:
        self.catalog.ensure_default_calls += 1
        if self.catalog.faults.fail_ensure_default:
            raise RuntimeError(f"Injected location failure for store {store_id}")

        existing = [
            loc for loc in self.catalog.locations.values() if loc.store_id == store_id
        ]
        if existing:
            return next((loc for loc in existing if loc.is_default), existing[0]).id

        await asyncio.sleep(0)

        location = Location(
            id=str(uuid4()),
            store_id=store_id,
            name=settings.default_location_name,
            is_default=True,
        )
        self.catalog.locations[location.id] = location
        self.catalog.locations_created += 1
        logger.info("Created default location", store_id=store_id, location_id=location.id)
        return location.id


class MemoryItemLocationStore(_MemoryAdapter):
    """ItemLocationStore over in-memory state."""

    async def create(
        self,
        item_id: str,
        location_id: str,
        store_id: str,
        on_hand: int = 0,
        committed: int = 0,
        unavailable: int = 0,
    ) -> StockRow:
        await self.catalog._delay()
        item = self.catalog.items.get(item_id)
        if item is not None and item.sku in self.catalog.faults.fail_stock_row_skus:
            raise RuntimeError(f"Injected stock row failure for sku {item.sku}")
        if await self.exists(item_id, location_id):
            raise ValueError(f"Stock row already exists: {item_id}@{location_id}")
        row = StockRow(
            id=str(uuid4()),
            item_id=item_id,
            location_id=location_id,
            store_id=store_id,
            on_hand=on_hand,
            committed=committed,
            unavailable=unavailable,
            updated_at=datetime.now(timezone.utc),
        )
        self.catalog.stock_rows[row.id] = row
        return row

    async def exists(self, item_id: str, location_id: str) -> bool:
        return any(
            row.item_id == item_id and row.location_id == location_id
            for row in self.catalog.stock_rows.values()
        )

    async def list_for_items(self, item_ids: Sequence[str]) -> list[StockRow]:
        wanted = set(item_ids)
        rows = [row for row in self.catalog.stock_rows.values() if row.item_id in wanted]
        return sorted(rows, key=lambda r: (r.item_id, r.location_id))


# Global catalog instance
_memory_catalog: InMemoryCatalog | None = None


def get_memory_catalog() -> InMemoryCatalog:
    """Get in-memory catalog singleton."""
    global _memory_catalog
    if _memory_catalog is None:
        _memory_catalog = InMemoryCatalog()
    return _memory_catalog


def reset_memory_catalog() -> InMemoryCatalog:
    """Reset in-memory catalog (for testing)."""
    global _memory_catalog
    _memory_catalog = InMemoryCatalog()
    return _memory_catalog

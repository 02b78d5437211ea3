"""Storage ports used by the application services.

The orchestrator depends only on these protocols; SQL adapters live in
``itemgen.catalog.repository`` and in-memory ones in
``itemgen.infrastructure.memory_store``.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from itemgen.domain.value_objects import (
    ItemRecord,
    ItemSpec,
    OptionSet,
    OptionValue,
    ProductSnapshot,
    StockRow,
)


class OptionCatalog(Protocol):
    """Read access to a store's option sets and values."""

    async def query(self, store_id: str) -> tuple[list[OptionSet], list[OptionValue]]:
        """Get all option sets and option values of a store."""
        ...


class ProductReader(Protocol):
    """Read access to product form values."""

    async def read(self, product_id: str) -> ProductSnapshot | None:
        """Get a product, or None if it has not been persisted."""
        ...


class ItemStore(Protocol):
    """Durable storage for items."""

    async def list(self, product_id: str) -> list[ItemRecord]:
        """Get all items of a product."""
        ...

    async def delete(self, item_id: str) -> None:
        """Delete an item together with its stock rows."""
        ...

    async def create(
        self,
        item_id: str,
        spec: ItemSpec,
        product_id: str,
        store_id: str,
    ) -> ItemRecord:
        """Create an item from a spec under a minted ID."""
        ...

    async def link(self, item_id: str, product_id: str) -> None:
        """Link an item to its product."""
        ...

    async def update_sku(self, item_id: str, sku: str) -> ItemRecord:
        """Replace the SKU of an existing item."""
        ...


class LocationProvisioner(Protocol):
    """Idempotent access to a store's default location."""

    async def ensure_default(self, store_id: str) -> str:
        """Get the default location ID, creating the location if absent."""
        ...


class ItemLocationStore(Protocol):
    """Durable storage for per-location stock rows."""

    async def create(
        self,
        item_id: str,
        location_id: str,
        store_id: str,
        on_hand: int = 0,
        committed: int = 0,
        unavailable: int = 0,
    ) -> StockRow:
        """Create the stock row of an item at a location."""
        ...

    async def exists(self, item_id: str, location_id: str) -> bool:
        """Check whether an item has a stock row at a location."""
        ...

    async def list_for_items(self, item_ids: Sequence[str]) -> list[StockRow]:
        """Get stock rows of the given items."""
        ...


@dataclass
class CatalogPorts:
    """The set of ports a regeneration needs, wired to one backend."""

    option_catalog: OptionCatalog
    products: ProductReader
    items: ItemStore
    locations: LocationProvisioner
    stock_rows: ItemLocationStore

"""Catalog service for read operations.

Combines the item and stock row ports into the read model shown after
a regeneration, and groups a store's option values by dimension.
"""

from collections import defaultdict
from dataclasses import dataclass, field

from itemgen.application.ports import CatalogPorts
from itemgen.domain.value_objects import (
    ItemRecord,
    OptionSet,
    OptionValue,
    StockRow,
    calculate_available,
)


@dataclass
class ItemStockView:
    """An item with its per-location stock rows.

    Attributes:
        item: The item.
        stock_rows: Stock rows across locations.
    """

    item: ItemRecord
    stock_rows: list[StockRow] = field(default_factory=list)

    @property
    def total_on_hand(self) -> int:
        """Total on-hand quantity across locations."""
        return sum(row.on_hand for row in self.stock_rows)

    @property
    def total_committed(self) -> int:
        """Total committed quantity across locations."""
        return sum(row.committed for row in self.stock_rows)

    @property
    def total_available(self) -> int:
        """Total available quantity across locations."""
        return sum(calculate_available(row) for row in self.stock_rows)


@dataclass
class OptionGroup:
    """Option values of one dimension, in display order."""

    name: str
    values: list[OptionValue]


@dataclass
class StoreOptions:
    """Option sets of a store with values grouped by dimension."""

    store_id: str
    option_sets: list[OptionSet]
    groups: list[OptionGroup]


class CatalogService:
    """Read access to items, stock and options.

    Example usage:
        service = CatalogService(ports)
        views = await service.list_items(product_id)
    """

    def __init__(self, ports: CatalogPorts) -> None:
        """Initialize service.

        Args:
            ports: Storage ports.
        """
        self.ports = ports

    async def list_items(self, product_id: str) -> list[ItemStockView]:
        """Get the current items of a product with their stock rows.

        Args:
            product_id: Product ID.

        Returns:
            Item views ordered by SKU.
        """
        items = sorted(await self.ports.items.list(product_id), key=lambda i: i.sku)
        rows = await self.ports.stock_rows.list_for_items([item.id for item in items])

        by_item: dict[str, list[StockRow]] = defaultdict(list)
        for row in rows:
            by_item[row.item_id].append(row)

        return [ItemStockView(item=item, stock_rows=by_item[item.id]) for item in items]

    async def list_options(self, store_id: str) -> StoreOptions:
        """Get a store's option values grouped by dimension.

        Groups keep the order in which they first appear; values are
        sorted by their ``order``, then name.

        Args:
            store_id: Store ID.

        Returns:
            StoreOptions for the store.
        """
        option_sets, values = await self.ports.option_catalog.query(store_id)

        grouped: dict[str, list[OptionValue]] = {}
        for value in values:
            grouped.setdefault(value.dimension, []).append(value)

        groups = [
            OptionGroup(
                name=name,
                values=sorted(members, key=lambda v: (v.sort_order, v.name)),
            )
            for name, members in grouped.items()
        ]
        return StoreOptions(store_id=store_id, option_sets=option_sets, groups=groups)

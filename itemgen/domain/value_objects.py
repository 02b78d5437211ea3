"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. Storage adapters translate their rows into these
objects so the generator and orchestrator never touch ORM instances.

Monetary fields (price, saleprice, cost) are integers in cents.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Self
from uuid import uuid4

from itemgen.domain.base import ValueObject

DEFAULT_GROUP = "default"


# ============================================================================
# Option Catalog
# ============================================================================


@dataclass(frozen=True)
class OptionSet(ValueObject):
    """A named collection of option values belonging to a store."""

    id: str
    store_id: str
    name: str


@dataclass(frozen=True)
class OptionValue(ValueObject):
    """One selectable value tagged with its dimension label.

    Attributes:
        id: Option value identifier.
        set_id: Option set the value belongs to.
        store_id: Owning store.
        name: Display value (e.g., "Red").
        group: Dimension label (e.g., "Color"); values sharing a group
            form one dimension regardless of their set.
        order: Sort order within the dimension.
        identifier_type: Optional identifier kind (e.g., "barcode").
        identifier_value: Optional identifier value.
    """

    id: str
    set_id: str
    store_id: str
    name: str
    group: str | None = None
    order: int | None = None
    identifier_type: str | None = None
    identifier_value: str | None = None

    @property
    def dimension(self) -> str:
        """Get the dimension label, falling back to the default group."""
        return self.group or DEFAULT_GROUP

    @property
    def sort_order(self) -> int:
        """Get the sort order, treating a missing order as 0."""
        return self.order or 0


# ============================================================================
# Products and Items
# ============================================================================


@dataclass(frozen=True)
class ProductSnapshot(ValueObject):
    """Current form values of a product, as read at regeneration time."""

    id: str
    store_id: str
    title: str
    sku: str | None = None
    price: int | None = None
    saleprice: int | None = None
    cost: int | None = None

    @property
    def sku_prefix(self) -> str:
        """Get the raw SKU prefix for generated items.

        Returns:
            Product SKU when set, otherwise the product title.
        """
        if self.sku and self.sku.strip():
            return self.sku
        return self.title


@dataclass(frozen=True)
class ItemSpec(ValueObject):
    """Specification of one item to create, without an identifier."""

    sku: str
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    price: int = 0
    saleprice: int = 0
    cost: int = 0
    onhand: int = 0
    committed: int = 0
    unavailable: int = 0
    available: int = 0
    reorderlevel: int = 0

    @property
    def options(self) -> tuple[str, ...]:
        """Get the populated option values in dimension order."""
        return tuple(o for o in (self.option1, self.option2, self.option3) if o is not None)

    @property
    def has_options(self) -> bool:
        """Check whether this spec describes a variant item."""
        return bool(self.options)


@dataclass(frozen=True)
class ItemRecord(ValueObject):
    """A persisted item as returned by an item store."""

    id: str
    product_id: str
    store_id: str
    sku: str
    option1: str | None = None
    option2: str | None = None
    option3: str | None = None
    price: int = 0
    saleprice: int = 0
    cost: int = 0
    onhand: int = 0
    committed: int = 0
    unavailable: int = 0
    available: int = 0
    reorderlevel: int = 0
    linked: bool = False

    @property
    def options(self) -> tuple[str, ...]:
        """Get the populated option values in dimension order."""
        return tuple(o for o in (self.option1, self.option2, self.option3) if o is not None)

    @property
    def has_options(self) -> bool:
        """Check whether this is a variant item rather than the fallback item."""
        return bool(self.options)


# ============================================================================
# Locations and Stock
# ============================================================================


@dataclass(frozen=True)
class Location(ValueObject):
    """A stock location of a store."""

    id: str
    store_id: str
    name: str
    is_default: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class StockRow(ValueObject):
    """Per-location stock record for one item."""

    id: str
    item_id: str
    location_id: str
    store_id: str
    on_hand: int = 0
    committed: int = 0
    unavailable: int = 0
    reorder_level: int | None = None
    updated_at: datetime | None = None

    @property
    def available(self) -> int:
        """Get sellable quantity at this location."""
        return calculate_available(self)


def calculate_available(row: StockRow) -> int:
    """Calculate available stock for a stock row.

    Args:
        row: Stock row.

    Returns:
        On-hand quantity minus committed and unavailable quantities.
    """
    return (row.on_hand or 0) - (row.committed or 0) - (row.unavailable or 0)


# ============================================================================
# Commands
# ============================================================================


@dataclass(frozen=True)
class RegenerateItemsCommand(ValueObject):
    """Request to replace the item set of a product.

    Attributes:
        product_id: Product whose items are regenerated.
        store_id: Store owning the product and option values.
        selections: Selected option value IDs; empty requests the
            single option-less fallback item.
        command_id: Correlation ID for logs.
    """

    product_id: str
    store_id: str
    selections: tuple[str, ...] = ()
    command_id: str = field(default_factory=lambda: str(uuid4()), compare=False)

    @classmethod
    def create(
        cls,
        product_id: str,
        store_id: str,
        selections: list[str] | tuple[str, ...] | None = None,
    ) -> Self:
        """Create a command, normalizing the selection to a tuple.

        Args:
            product_id: Product ID.
            store_id: Store ID.
            selections: Selected option value IDs.

        Returns:
            RegenerateItemsCommand instance.
        """
        return cls(
            product_id=product_id,
            store_id=store_id,
            selections=tuple(selections or ()),
        )

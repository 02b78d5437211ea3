"""SQLAlchemy models for the product catalog.

Defines option sets and values, products, items (variants), locations
and per-location stock rows.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from itemgen.domain.value_objects import (
    ItemRecord,
    ItemSpec,
    Location,
    OptionSet,
    OptionValue,
    ProductSnapshot,
    StockRow,
)
from itemgen.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid4())


# ============================================================================
# Option Catalog
# ============================================================================


class OptionSetModel(Base):
    """Named collection of option values owned by a store."""

    __tablename__ = "option_sets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    store_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    values: Mapped[list["OptionValueModel"]] = relationship(
        "OptionValueModel",
        back_populates="option_set",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<OptionSetModel(id={self.id}, name={self.name})>"

    def to_domain(self) -> OptionSet:
        """Convert to domain value object."""
        return OptionSet(id=self.id, store_id=self.store_id, name=self.name)


class OptionValueModel(Base):
    """One selectable option value.

    Attributes:
        group: Dimension label (e.g., "Color").
        order: Sort order within the dimension.
    """

    __tablename__ = "option_values"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    set_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("option_sets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    store_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    group: Mapped[str | None] = mapped_column(String(100), nullable=True)
    order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    identifier_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    identifier_value: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    option_set: Mapped["OptionSetModel"] = relationship(
        "OptionSetModel", back_populates="values"
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<OptionValueModel(id={self.id}, group={self.group}, name={self.name})>"

    def to_domain(self) -> OptionValue:
        """Convert to domain value object."""
        return OptionValue(
            id=self.id,
            set_id=self.set_id,
            store_id=self.store_id,
            name=self.name,
            group=self.group,
            order=self.order,
            identifier_type=self.identifier_type,
            identifier_value=self.identifier_value,
        )


# ============================================================================
# Products and Items
# ============================================================================


class ProductModel(Base):
    """Product whose items are generated.

    Prices are in cents.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    store_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    saleprice: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cost: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductModel(id={self.id}, title={self.title[:30]})>"

    def to_domain(self) -> ProductSnapshot:
        """Convert to domain value object."""
        return ProductSnapshot(
            id=self.id,
            store_id=self.store_id,
            title=self.title,
            sku=self.sku,
            price=self.price,
            saleprice=self.saleprice,
            cost=self.cost,
        )


class ItemModel(Base):
    """Sellable item (variant) of a product.

    ``product_id`` is written on create; ``linked`` is set once the
    item has been linked to its product.
    """

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    product_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    store_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    sku: Mapped[str] = mapped_column(String(200), nullable=False)
    option1: Mapped[str | None] = mapped_column(String(200), nullable=True)
    option2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    option3: Mapped[str | None] = mapped_column(String(200), nullable=True)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    saleprice: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    onhand: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    committed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unavailable: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorderlevel: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    linked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    stock_rows: Mapped[list["ItemLocationModel"]] = relationship(
        "ItemLocationModel",
        back_populates="item",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ItemModel(id={self.id}, sku={self.sku})>"

    @classmethod
    def from_spec(
        cls,
        item_id: str,
        spec: ItemSpec,
        product_id: str,
        store_id: str,
    ) -> "ItemModel":
        """Build a new row from an item spec.

        Args:
            item_id: Minted item ID.
            spec: Generated item spec.
            product_id: Owning product.
            store_id: Owning store.

        Returns:
            Unsaved ItemModel.
        """
        return cls(
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
            linked=False,
        )

    def to_domain(self) -> ItemRecord:
        """Convert to domain value object."""
        return ItemRecord(
            id=self.id,
            product_id=self.product_id,
            store_id=self.store_id,
            sku=self.sku,
            option1=self.option1,
            option2=self.option2,
            option3=self.option3,
            price=self.price,
            saleprice=self.saleprice,
            cost=self.cost,
            onhand=self.onhand,
            committed=self.committed,
            unavailable=self.unavailable,
            available=self.available,
            reorderlevel=self.reorderlevel,
            linked=self.linked,
        )


# ============================================================================
# Locations and Stock
# ============================================================================


class LocationModel(Base):
    """Stock location of a store.

    A partial unique index allows at most one default location per store.
    """

    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    store_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="warehouse")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    fulfills_online_orders: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index(
            "uq_locations_store_default",
            "store_id",
            unique=True,
            sqlite_where=text("is_default"),
            postgresql_where=text("is_default"),
        ),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<LocationModel(id={self.id}, name={self.name}, default={self.is_default})>"

    def to_domain(self) -> Location:
        """Convert to domain value object."""
        return Location(
            id=self.id,
            store_id=self.store_id,
            name=self.name,
            is_default=self.is_default,
            is_active=self.is_active,
        )


class ItemLocationModel(Base):
    """Stock row: quantities of one item at one location."""

    __tablename__ = "item_locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    store_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    on_hand: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    committed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unavailable: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    item: Mapped["ItemModel"] = relationship("ItemModel", back_populates="stock_rows")

    __table_args__ = (
        UniqueConstraint("item_id", "location_id", name="uq_item_locations_item_location"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ItemLocationModel(item_id={self.item_id}, location_id={self.location_id})>"

    def to_domain(self) -> StockRow:
        """Convert to domain value object."""
        return StockRow(
            id=self.id,
            item_id=self.item_id,
            location_id=self.location_id,
            store_id=self.store_id,
            on_hand=self.on_hand,
            committed=self.committed,
            unavailable=self.unavailable,
            reorder_level=self.reorder_level,
            updated_at=self.updated_at,
        )

"""SQL repositories for catalog data.

Implements the storage ports with async SQLAlchemy. Each call opens its
own session from the factory and commits before returning, so the
orchestrator may fan calls out concurrently without sharing a session.
"""

from collections.abc import Sequence

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from itemgen.application.ports import CatalogPorts
from itemgen.catalog.models import (
    ItemLocationModel,
    ItemModel,
    LocationModel,
    OptionSetModel,
    OptionValueModel,
    ProductModel,
)
from itemgen.domain.value_objects import (
    ItemRecord,
    ItemSpec,
    OptionSet,
    OptionValue,
    ProductSnapshot,
    StockRow,
)
from itemgen.infrastructure.config import settings

logger = structlog.get_logger()


class _SqlRepository:
    """Base class holding the session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory producing async sessions.
        """
        self.session_factory = session_factory


# ============================================================================
# Option Catalog
# ============================================================================


class SqlOptionCatalog(_SqlRepository):
    """Option sets and values of a store."""

    async def query(self, store_id: str) -> tuple[list[OptionSet], list[OptionValue]]:
        """Get all option sets and option values of a store.

        Args:
            store_id: Store ID.

        Returns:
            Tuple of (option sets ordered by name, values ordered by group and order).
        """
        async with self.session_factory() as session:
            sets = await session.execute(
                select(OptionSetModel)
                .where(OptionSetModel.store_id == store_id)
                .order_by(OptionSetModel.name)
            )
            values = await session.execute(
                select(OptionValueModel)
                .where(OptionValueModel.store_id == store_id)
                .order_by(OptionValueModel.group, OptionValueModel.order, OptionValueModel.name)
            )
            return (
                [row.to_domain() for row in sets.scalars().all()],
                [row.to_domain() for row in values.scalars().all()],
            )


# ============================================================================
# Products
# ============================================================================


class SqlProductReader(_SqlRepository):
    """Read access to products."""

    async def read(self, product_id: str) -> ProductSnapshot | None:
        """Get product by ID.

        Args:
            product_id: Product ID.

        Returns:
            ProductSnapshot if found, None otherwise.
        """
        async with self.session_factory() as session:
            product = await session.get(ProductModel, product_id)
            return product.to_domain() if product else None


# ============================================================================
# Items
# ============================================================================


class SqlItemStore(_SqlRepository):
    """Item persistence."""

    async def delete(self, item_id: str) -> None:
        """Delete an item and its stock rows in one transaction.

        Args:
            item_id: Item ID.
        """
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(ItemLocationModel).where(ItemLocationModel.item_id == item_id)
                )
                await session.execute(delete(ItemModel).where(ItemModel.id == item_id))

    async def create(
        self,
        item_id: str,
        spec: ItemSpec,
        product_id: str,
        store_id: str,
    ) -> ItemRecord:
        """Create an item from a spec.

        Args:
            item_id: Minted item ID.
            spec: Item spec.
            product_id: Owning product.
            store_id: Owning store.

        Returns:
            Created item.
        """
        item = ItemModel.from_spec(item_id, spec, product_id, store_id)
        async with self.session_factory() as session:
            async with session.begin():
                session.add(item)
            return item.to_domain()

    async def link(self, item_id: str, product_id: str) -> None:
        """Link an item to its product.

        Args:
            item_id: Item ID.
            product_id: Product ID.

        Raises:
            LookupError: If the item does not exist.
        """
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(ItemModel)
                    .where(ItemModel.id == item_id)
                    .values(product_id=product_id, linked=True)
                )
            if result.rowcount == 0:
                raise LookupError(f"Item not found: {item_id}")

    async def update_sku(self, item_id: str, sku: str) -> ItemRecord:
        """Replace the SKU of an item.

        Args:
            item_id: Item ID.
            sku: New SKU.

        Returns:
            Updated item.

        Raises:
            LookupError: If the item does not exist.
        """
        async with self.session_factory() as session:
            async with session.begin():
                item = await session.get(ItemModel, item_id)
                if item is None:
                    raise LookupError(f"Item not found: {item_id}")
                item.sku = sku
            return item.to_domain()

    async def list(self, product_id: str) -> list[ItemRecord]:
        """Get all items of a product ordered by SKU.

        Args:
            product_id: Product ID.

        Returns:
            Items of the product.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(ItemModel)
                .where(ItemModel.product_id == product_id)
                .order_by(ItemModel.sku)
            )
            return [row.to_domain() for row in result.scalars().all()]


# ============================================================================
# Locations
# ============================================================================


class SqlLocationProvisioner(_SqlRepository):
    """Create-if-absent access to a store's default location.

    The partial unique index on ``locations(store_id) WHERE is_default``
    makes the insert the arbiter: a caller that loses the race re-reads
    the winning row.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        location_name: str | None = None,
    ) -> None:
        """Initialize provisioner.

        Args:
            session_factory: Factory producing async sessions.
            location_name: Name for newly created default locations.
        """
        super().__init__(session_factory)
        self.location_name = location_name or settings.default_location_name

    async def _find(self, session: AsyncSession, store_id: str) -> str | None:
        result = await session.execute(
            select(LocationModel)
            .where(LocationModel.store_id == store_id)
            .order_by(LocationModel.is_default.desc(), LocationModel.created_at)
        )
        locations = result.scalars().all()
        active = [loc for loc in locations if loc.is_active] or list(locations)
        return active[0].id if active else None

    async def ensure_default(self, store_id: str) -> str:
        """Get the store's default location, creating it if absent.

        Returns the default location, else the oldest active location,
        else a newly created default location.

        Args:
            store_id: Store ID.

        Returns:
            Location ID.
        """
        async with self.session_factory() as session:
            existing = await self._find(session, store_id)
            if existing:
                return existing

        location = LocationModel(
            store_id=store_id,
            name=self.location_name,
            type="warehouse",
            is_default=True,
            is_active=True,
            fulfills_online_orders=True,
        )
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(location)
        except IntegrityError:
            logger.info("Default location created concurrently", store_id=store_id)
            async with self.session_factory() as session:
                existing = await self._find(session, store_id)
            if existing is None:
                raise
            return existing

        logger.info(
            "Created default location",
            store_id=store_id,
            location_id=location.id,
        )
        return location.id


# ============================================================================
# Stock Rows
# ============================================================================


class SqlItemLocationStore(_SqlRepository):
    """Stock row persistence."""

    async def create(
        self,
        item_id: str,
        location_id: str,
        store_id: str,
        on_hand: int = 0,
        committed: int = 0,
        unavailable: int = 0,
    ) -> StockRow:
        """Create a stock row.

        Args:
            item_id: Item ID.
            location_id: Location ID.
            store_id: Store ID.
            on_hand: Initial on-hand quantity.
            committed: Initial committed quantity.
            unavailable: Initial unavailable quantity.

        Returns:
            Created stock row.
        """
        row = ItemLocationModel(
            item_id=item_id,
            location_id=location_id,
            store_id=store_id,
            on_hand=on_hand,
            committed=committed,
            unavailable=unavailable,
        )
        async with self.session_factory() as session:
            async with session.begin():
                session.add(row)
            return row.to_domain()

    async def exists(self, item_id: str, location_id: str) -> bool:
        """Check whether an item has a stock row at a location.

        Args:
            item_id: Item ID.
            location_id: Location ID.

        Returns:
            True if the row exists.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(ItemLocationModel.id).where(
                    ItemLocationModel.item_id == item_id,
                    ItemLocationModel.location_id == location_id,
                )
            )
            return result.first() is not None

    async def list_for_items(self, item_ids: Sequence[str]) -> list[StockRow]:
        """Get stock rows of the given items.

        Args:
            item_ids: Item IDs.

        Returns:
            Stock rows ordered by item and location.
        """
        if not item_ids:
            return []
        async with self.session_factory() as session:
            result = await session.execute(
                select(ItemLocationModel)
                .where(ItemLocationModel.item_id.in_(list(item_ids)))
                .order_by(ItemLocationModel.item_id, ItemLocationModel.location_id)
            )
            return [row.to_domain() for row in result.scalars().all()]


def build_sql_ports(session_factory: async_sessionmaker[AsyncSession]) -> CatalogPorts:
    """Wire all SQL repositories to one session factory.

    Args:
        session_factory: Factory producing async sessions.

    Returns:
        CatalogPorts backed by the database.
    """
    return CatalogPorts(
        option_catalog=SqlOptionCatalog(session_factory),
        products=SqlProductReader(session_factory),
        items=SqlItemStore(session_factory),
        locations=SqlLocationProvisioner(session_factory),
        stock_rows=SqlItemLocationStore(session_factory),
    )

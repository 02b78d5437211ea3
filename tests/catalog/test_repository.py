"""Tests for the SQL repositories against sqlite."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from itemgen.application.ports import CatalogPorts
from itemgen.application.regeneration_service import RegenerationOrchestrator
from itemgen.catalog.models import (
    ItemLocationModel,
    LocationModel,
    OptionSetModel,
    OptionValueModel,
    ProductModel,
)
from itemgen.catalog.repository import SqlLocationProvisioner, build_sql_ports
from itemgen.domain.value_objects import ItemSpec
from itemgen.infrastructure.database import create_tables, make_session_factory

STORE_ID = "store-1"


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create a file-backed sqlite database with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'itemgen.db'}")
    await create_tables(engine)
    yield make_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def ports(session_factory: async_sessionmaker[AsyncSession]) -> CatalogPorts:
    """Create SQL ports."""
    return build_sql_ports(session_factory)


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> dict:
    """Seed Color and Size values and a Classic Tee product."""
    values = []
    async with session_factory() as session:
        async with session.begin():
            for group, names in {"Color": ["Red", "Blue"], "Size": ["S", "M", "L"]}.items():
                option_set = OptionSetModel(store_id=STORE_ID, name=group)
                session.add(option_set)
                for order, name in enumerate(names):
                    value = OptionValueModel(
                        store_id=STORE_ID, name=name, group=group, order=order
                    )
                    option_set.values.append(value)
                    values.append(value)
            product = ProductModel(store_id=STORE_ID, title="Classic Tee", price=2500)
            session.add(product)
    return {"product_id": product.id, "value_ids": [v.id for v in values]}


class TestSqlReaders:
    """Tests for option catalog and product reads."""

    @pytest.mark.asyncio
    async def test_query_options(self, ports: CatalogPorts, seeded: dict) -> None:
        """Option sets and values of the store are returned."""
        sets, values = await ports.option_catalog.query(STORE_ID)

        assert [s.name for s in sets] == ["Color", "Size"]
        assert len(values) == 5
        assert {v.group for v in values} == {"Color", "Size"}

    @pytest.mark.asyncio
    async def test_read_product(self, ports: CatalogPorts, seeded: dict) -> None:
        """Products are read as snapshots; unknown IDs give None."""
        product = await ports.products.read(seeded["product_id"])

        assert product is not None
        assert product.title == "Classic Tee"
        assert product.price == 2500
        assert await ports.products.read("missing") is None


class TestSqlItemStore:
    """Tests for SqlItemStore."""

    @pytest.mark.asyncio
    async def test_create_link_and_list(self, ports: CatalogPorts, seeded: dict) -> None:
        """Created items are listed by SKU and can be linked."""
        product_id = seeded["product_id"]
        await ports.items.create("i-2", ItemSpec(sku="B", option1="Blue"), product_id, STORE_ID)
        await ports.items.create("i-1", ItemSpec(sku="A", option1="Red"), product_id, STORE_ID)
        await ports.items.link("i-1", product_id)

        items = await ports.items.list(product_id)

        assert [i.sku for i in items] == ["A", "B"]
        assert items[0].linked
        assert not items[1].linked

    @pytest.mark.asyncio
    async def test_link_missing_item(self, ports: CatalogPorts) -> None:
        """Linking an unknown item raises."""
        with pytest.raises(LookupError):
            await ports.items.link("missing", "p")

    @pytest.mark.asyncio
    async def test_update_sku(self, ports: CatalogPorts, seeded: dict) -> None:
        """SKU is replaced in place."""
        await ports.items.create("i-1", ItemSpec(sku="OLD"), seeded["product_id"], STORE_ID)

        item = await ports.items.update_sku("i-1", "NEW")

        assert item.id == "i-1"
        assert item.sku == "NEW"
        with pytest.raises(LookupError):
            await ports.items.update_sku("missing", "X")

    @pytest.mark.asyncio
    async def test_delete_removes_stock_rows(
        self,
        ports: CatalogPorts,
        session_factory: async_sessionmaker[AsyncSession],
        seeded: dict,
    ) -> None:
        """Deleting an item deletes its stock rows."""
        await ports.items.create("i-1", ItemSpec(sku="A"), seeded["product_id"], STORE_ID)
        location_id = await ports.locations.ensure_default(STORE_ID)
        await ports.stock_rows.create("i-1", location_id, STORE_ID)

        await ports.items.delete("i-1")

        assert await ports.items.list(seeded["product_id"]) == []
        async with session_factory() as session:
            rows = await session.execute(select(ItemLocationModel))
            assert rows.scalars().all() == []


class TestSqlLocationProvisioner:
    """Tests for SqlLocationProvisioner."""

    @pytest.mark.asyncio
    async def test_creates_default_once(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        """Repeated calls return the same default location."""
        provisioner = SqlLocationProvisioner(session_factory, location_name="Main Location")

        first = await provisioner.ensure_default(STORE_ID)
        second = await provisioner.ensure_default(STORE_ID)

        assert first == second
        async with session_factory() as session:
            result = await session.execute(select(LocationModel))
            [location] = result.scalars().all()
        assert location.is_default
        assert location.name == "Main Location"
        assert location.type == "warehouse"

    @pytest.mark.asyncio
    async def test_concurrent_calls_create_one_default(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        """Racing unmemoized callers still end up with one default location."""
        provisioner = SqlLocationProvisioner(session_factory)

        ids = await asyncio.gather(*(provisioner.ensure_default(STORE_ID) for _ in range(5)))

        assert len(set(ids)) == 1
        async with session_factory() as session:
            result = await session.execute(
                select(LocationModel).where(LocationModel.is_default.is_(True))
            )
            assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_existing_location_reused(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        """A store's existing non-default location is used as is."""
        async with session_factory() as session:
            async with session.begin():
                location = LocationModel(store_id=STORE_ID, name="Back Room")
                session.add(location)

        provisioner = SqlLocationProvisioner(session_factory)
        assert await provisioner.ensure_default(STORE_ID) == location.id


class TestSqlItemLocationStore:
    """Tests for SqlItemLocationStore."""

    @pytest.mark.asyncio
    async def test_create_exists_and_list(self, ports: CatalogPorts, seeded: dict) -> None:
        """Stock rows are created, found and listed."""
        await ports.items.create("i-1", ItemSpec(sku="A"), seeded["product_id"], STORE_ID)
        location_id = await ports.locations.ensure_default(STORE_ID)

        row = await ports.stock_rows.create("i-1", location_id, STORE_ID, on_hand=4)

        assert row.available == 4
        assert await ports.stock_rows.exists("i-1", location_id)
        assert not await ports.stock_rows.exists("i-1", "other")
        assert [r.id for r in await ports.stock_rows.list_for_items(["i-1"])] == [row.id]
        assert await ports.stock_rows.list_for_items([]) == []


class TestSqlRegeneration:
    """End-to-end regeneration over the SQL adapters."""

    @pytest.mark.asyncio
    async def test_classic_tee(self, ports: CatalogPorts, seeded: dict) -> None:
        """Six items with one stock row each and one default location."""
        orchestrator = RegenerationOrchestrator(ports, concurrency=4)

        result = await orchestrator.regenerate(
            seeded["product_id"], STORE_ID, seeded["value_ids"]
        )
        again = await orchestrator.regenerate(
            seeded["product_id"], STORE_ID, seeded["value_ids"]
        )

        assert result.skus[0] == "CLASSIC-TEE-RED-S"
        assert result.errors == []
        assert again.deleted == 6
        items = await ports.items.list(seeded["product_id"])
        assert len(items) == 6
        assert all(item.linked for item in items)
        rows = await ports.stock_rows.list_for_items([i.id for i in items])
        assert len(rows) == 6
        assert {r.location_id for r in rows} == {again.location_id}

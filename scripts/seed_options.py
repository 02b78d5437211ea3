#!/usr/bin/env python3
"""Seed option values script.

Creates the tables and seeds a demo store with Color and Size option
sets, a "Classic Tee" product and the store's default location.
Optionally regenerates the product's items from all seeded values.

Usage:
    python scripts/seed_options.py
    python scripts/seed_options.py --store demo-store --regenerate
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from itemgen.application.regeneration_service import RegenerationOrchestrator
from itemgen.catalog.models import OptionSetModel, OptionValueModel, ProductModel
from itemgen.catalog.repository import build_sql_ports
from itemgen.infrastructure.database import async_session_factory, create_tables
from itemgen.infrastructure.logging import configure_logging

DEMO_OPTIONS = {
    "Color": ["Red", "Blue"],
    "Size": ["S", "M", "L"],
}


async def seed_store(store_id: str) -> tuple[str, list[str]]:
    """Seed option sets and a product for a store.

    Args:
        store_id: Store ID.

    Returns:
        Tuple of (product ID, option value IDs in seed order).
    """
    values = []
    async with async_session_factory() as session:
        async with session.begin():
            for group, names in DEMO_OPTIONS.items():
                option_set = OptionSetModel(store_id=store_id, name=group)
                session.add(option_set)
                for order, name in enumerate(names):
                    value = OptionValueModel(
                        store_id=store_id,
                        name=name,
                        group=group,
                        order=order,
                    )
                    option_set.values.append(value)
                    values.append(value)
            product = ProductModel(
                store_id=store_id,
                title="Classic Tee",
                price=2500,
                cost=900,
            )
            session.add(product)
            await session.flush()
        return product.id, [value.id for value in values]


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed demo option values and a product",
    )
    parser.add_argument(
        "--store",
        default="demo-store",
        help="Store ID to seed (default: demo-store)",
    )
    parser.add_argument(
        "--regenerate",
        action="store_true",
        help="Generate the product's items from all seeded option values",
    )

    args = parser.parse_args()
    configure_logging()

    print("Creating database tables...")
    await create_tables()

    print(f"Seeding store {args.store}...")
    product_id, value_ids = await seed_store(args.store)
    ports = build_sql_ports(async_session_factory)
    location_id = await ports.locations.ensure_default(args.store)

    print(f"  Product: {product_id}")
    print(f"  Option values: {len(value_ids)}")
    print(f"  Default location: {location_id}")

    if args.regenerate:
        orchestrator = RegenerationOrchestrator(ports)
        result = await orchestrator.regenerate(product_id, args.store, value_ids)
        print(f"  {result.message}")
        for sku in result.skus:
            print(f"    {sku}")


if __name__ == "__main__":
    asyncio.run(main())

"""Shared fixtures.

Tests run against the in-memory storage backend; SQL adapter tests
build their own sqlite engine.
"""

import os

os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest

from itemgen.application.regeneration_service import reset_regeneration_orchestrator
from itemgen.infrastructure.memory_store import InMemoryCatalog, reset_memory_catalog

STORE_ID = "store-1"


@pytest.fixture(autouse=True)
def memory_catalog() -> InMemoryCatalog:
    """Fresh in-memory catalog wired into the service singletons."""
    catalog = reset_memory_catalog()
    reset_regeneration_orchestrator(catalog.ports())
    return catalog


@pytest.fixture
def classic_tee(memory_catalog: InMemoryCatalog) -> dict:
    """Seed a store with Color (Red, Blue), Size (S, M, L) and a Classic Tee."""
    color = memory_catalog.add_option_set(STORE_ID, "Color")
    size = memory_catalog.add_option_set(STORE_ID, "Size")
    values = {
        "Red": memory_catalog.add_option_value(color, "Red", "Color", 1),
        "Blue": memory_catalog.add_option_value(color, "Blue", "Color", 2),
        "S": memory_catalog.add_option_value(size, "S", "Size", 1),
        "M": memory_catalog.add_option_value(size, "M", "Size", 2),
        "L": memory_catalog.add_option_value(size, "L", "Size", 3),
    }
    product = memory_catalog.add_product(STORE_ID, "Classic Tee", price=2500, cost=900)
    return {"product": product, "values": values, "store_id": STORE_ID}


"""Product Catalog.

Variant generation, catalog persistence and read models for products,
their items and the option values they are generated from.
"""

from itemgen.catalog.generator import (
    Dimension,
    DimensionPlan,
    VariantGenerator,
    build_sku,
    group_dimensions,
    normalize_sku_segment,
)
from itemgen.catalog.models import (
    ItemLocationModel,
    ItemModel,
    LocationModel,
    OptionSetModel,
    OptionValueModel,
    ProductModel,
)
from itemgen.catalog.repository import build_sql_ports
from itemgen.catalog.service import CatalogService, ItemStockView, OptionGroup, StoreOptions

__all__ = [
    # Generator
    "Dimension",
    "DimensionPlan",
    "VariantGenerator",
    "build_sku",
    "group_dimensions",
    "normalize_sku_segment",
    # Models
    "ItemLocationModel",
    "ItemModel",
    "LocationModel",
    "OptionSetModel",
    "OptionValueModel",
    "ProductModel",
    # Repository
    "build_sql_ports",
    # Service
    "CatalogService",
    "ItemStockView",
    "OptionGroup",
    "StoreOptions",
]

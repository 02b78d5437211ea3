"""Item generator for product variants.

Turns selected option values into item specifications: values are
grouped into dimensions, ordered, combined as a cartesian product and
given deterministic SKUs. Pure code with no storage access.
"""

import itertools
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import structlog

from itemgen.domain.value_objects import ItemSpec, OptionValue, ProductSnapshot

logger = structlog.get_logger()


# ============================================================================
# Constants
# ============================================================================

# Item records carry option1..option3
MAX_DIMENSIONS = 3

# Prefix used when a product has neither SKU nor title
FALLBACK_PREFIX = "ITEM"

_WHITESPACE = re.compile(r"\s+")


# ============================================================================
# SKU Helpers
# ============================================================================


def normalize_sku_segment(value: str) -> str:
    """Normalize one SKU segment.

    Upper-cases the value and replaces whitespace runs with one hyphen.

    Args:
        value: Raw segment (product prefix or option value name).

    Returns:
        Normalized segment, e.g. "Classic Tee" -> "CLASSIC-TEE".
    """
    return _WHITESPACE.sub("-", value.strip()).upper()


def build_sku(prefix: str, values: Iterable[str]) -> str:
    """Build an item SKU from a product prefix and option value names.

    Args:
        prefix: Product SKU or title.
        values: Option value names in dimension order.

    Returns:
        Hyphen-joined normalized SKU; missing dimensions add no segment.
    """
    head = normalize_sku_segment(prefix) or FALLBACK_PREFIX
    segments = [normalize_sku_segment(v) for v in values]
    return "-".join([head, *(s for s in segments if s)])


# ============================================================================
# Dimensions
# ============================================================================


@dataclass(frozen=True)
class Dimension:
    """One axis of variation with its values in sort order.

    Attributes:
        name: Group label (e.g., "Color").
        values: Option values sorted ascending by order.
    """

    name: str
    values: tuple[OptionValue, ...]

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class DimensionPlan:
    """Grouped dimensions plus the groups that did not fit.

    Attributes:
        dimensions: Dimensions used for generation (at most the limit).
        dropped: Names of groups ignored because of the limit.
    """

    dimensions: tuple[Dimension, ...]
    dropped: tuple[str, ...] = ()

    @property
    def truncated(self) -> bool:
        """Check whether any selected group was dropped."""
        return bool(self.dropped)


def group_dimensions(
    values: Iterable[OptionValue],
    max_dimensions: int = MAX_DIMENSIONS,
) -> DimensionPlan:
    """Group option values into ordered dimensions.

    Groups keep the order in which they first appear in ``values``.
    Within a group values are sorted by ``order`` (stable for ties).
    Repeated option value IDs are collapsed, and so are values of one
    group whose names normalize to the same SKU segment (the first one
    seen wins). Groups beyond ``max_dimensions`` are dropped and logged.

    Args:
        values: Selected option values.
        max_dimensions: Maximum number of dimensions to keep.

    Returns:
        DimensionPlan with the kept dimensions and dropped group names.
    """
    groups: dict[str, list[OptionValue]] = {}
    seen_ids: set[str] = set()
    seen_names: set[tuple[str, str]] = set()

    for value in values:
        key = (value.dimension, normalize_sku_segment(value.name))
        if value.id in seen_ids or key in seen_names:
            if value.id not in seen_ids:
                logger.debug(
                    "Duplicate option value collapsed",
                    dimension=value.dimension,
                    name=value.name,
                    option_value_id=value.id,
                )
            continue
        seen_ids.add(value.id)
        seen_names.add(key)
        groups.setdefault(value.dimension, []).append(value)

    names = list(groups)
    kept, dropped = names[:max_dimensions], names[max_dimensions:]

    if dropped:
        logger.warning(
            "Option dimensions truncated",
            kept=kept,
            dropped=dropped,
            max_dimensions=max_dimensions,
        )

    dimensions = tuple(
        Dimension(
            name=name,
            values=tuple(sorted(groups[name], key=lambda v: v.sort_order)),
        )
        for name in kept
    )
    return DimensionPlan(dimensions=dimensions, dropped=tuple(dropped))


# ============================================================================
# Variant Generator
# ============================================================================


class VariantGenerator:
    """Generates item specifications for a product.

    Combinations follow the cartesian product of the dimensions: the
    first dimension varies slowest. Output is deterministic for
    identically ordered input. No identifiers are assigned here.

    Example usage:
        generator = VariantGenerator()
        plan = generator.plan(selected_values)
        specs = generator.generate(product, plan.dimensions)
    """

    def __init__(self, max_dimensions: int = MAX_DIMENSIONS) -> None:
        """Initialize generator.

        Args:
            max_dimensions: Maximum number of dimensions, capped at 3.
        """
        self.max_dimensions = min(max_dimensions, MAX_DIMENSIONS)

    def plan(self, values: Iterable[OptionValue]) -> DimensionPlan:
        """Group selected values into dimensions.

        Args:
            values: Selected option values.

        Returns:
            DimensionPlan limited to ``max_dimensions``.
        """
        return group_dimensions(values, self.max_dimensions)

    def generate(
        self,
        product: ProductSnapshot | str,
        dimensions: Sequence[Dimension],
    ) -> list[ItemSpec]:
        """Generate one item spec per combination.

        Args:
            product: Product snapshot, or a bare SKU prefix.
            dimensions: Ordered dimensions; entries beyond the limit are ignored.

        Returns:
            Item specs in combination order. Empty when there are no
            dimensions or any dimension is empty.
        """
        dimensions = list(dimensions)[: self.max_dimensions]
        if not dimensions:
            return []

        if isinstance(product, ProductSnapshot):
            prefix = product.sku_prefix
            price, saleprice, cost = product.price, product.saleprice, product.cost
        else:
            prefix = product
            price = saleprice = cost = None

        specs = []
        for combination in itertools.product(*(d.values for d in dimensions)):
            names = [value.name for value in combination]
            padded = names + [None] * (MAX_DIMENSIONS - len(names))
            specs.append(
                ItemSpec(
                    sku=build_sku(prefix, names),
                    option1=padded[0],
                    option2=padded[1],
                    option3=padded[2],
                    price=price or 0,
                    saleprice=saleprice or 0,
                    cost=cost or 0,
                )
            )
        return specs

    def fallback_spec(self, product: ProductSnapshot) -> ItemSpec:
        """Build the single option-less item spec for a product.

        Args:
            product: Product snapshot.

        Returns:
            ItemSpec whose SKU is the normalized product title.
        """
        return ItemSpec(
            sku=normalize_sku_segment(product.title) or FALLBACK_PREFIX,
            price=product.price or 0,
            saleprice=product.saleprice or 0,
            cost=product.cost or 0,
        )

    @staticmethod
    def expected_count(dimensions: Sequence[Dimension]) -> int:
        """Get number of combinations without generating them.

        Args:
            dimensions: Ordered dimensions.

        Returns:
            Product of dimension sizes, 0 when there are no dimensions.
        """
        if not dimensions:
            return 0
        return math.prod(len(d) for d in dimensions)

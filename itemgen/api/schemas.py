"""API schemas for the item generation service.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Regeneration Schemas
# ============================================================================


class RegenerateItemsRequest(BaseModel):
    """Request to regenerate the items of a product."""

    store_id: str = Field(..., min_length=1, description="Store owning the product")
    selections: list[str] = Field(
        default_factory=list,
        description="Selected option value IDs; empty keeps a single default item",
    )
    wait: bool = Field(
        default=False,
        description="Queue behind a running regeneration instead of returning 409",
    )


class ProvisioningErrorSchema(BaseModel):
    """An item created without a stock row."""

    item_id: str = Field(..., description="Item identifier")
    sku: str = Field(..., description="Item SKU")
    reason: str = Field(..., description="Why the stock row could not be created")


class RegenerationResponse(BaseModel):
    """Result of a regeneration."""

    product_id: str = Field(..., description="Product identifier")
    phase: str = Field(..., description="Final regeneration phase")
    created: int = Field(..., description="Number of items created")
    deleted: int = Field(..., description="Number of prior items deleted")
    updated: int = Field(default=0, description="Number of items updated in place")
    skus: list[str] = Field(default_factory=list, description="SKUs of the items")
    errors: list[ProvisioningErrorSchema] = Field(
        default_factory=list, description="Items left without a stock row"
    )
    dropped_groups: list[str] = Field(
        default_factory=list, description="Option groups ignored beyond the limit"
    )
    message: str = Field(..., description="Human-readable summary")
    warning: str | None = Field(default=None, description="Caveat for partial success")


# ============================================================================
# Item Schemas
# ============================================================================


class StockRowSchema(BaseModel):
    """Quantities of an item at one location."""

    location_id: str = Field(..., description="Location identifier")
    on_hand: int = Field(..., description="On-hand quantity")
    committed: int = Field(..., description="Committed quantity")
    unavailable: int = Field(..., description="Unavailable quantity")
    available: int = Field(..., description="on_hand - committed - unavailable")
    updated_at: datetime | None = Field(default=None, description="Last update")


class ItemSchema(BaseModel):
    """An item (variant) with its stock."""

    id: str = Field(..., description="Item identifier")
    product_id: str = Field(..., description="Product identifier")
    sku: str = Field(..., description="Item SKU")
    option1: str | None = Field(default=None, description="First option value")
    option2: str | None = Field(default=None, description="Second option value")
    option3: str | None = Field(default=None, description="Third option value")
    price: int = Field(..., description="Price in cents")
    saleprice: int = Field(..., description="Sale price in cents")
    cost: int = Field(..., description="Cost in cents")
    linked: bool = Field(..., description="Whether the item is linked to its product")
    stock: list[StockRowSchema] = Field(default_factory=list, description="Stock rows")
    total_on_hand: int = Field(..., description="On-hand quantity across locations")
    total_committed: int = Field(..., description="Committed quantity across locations")
    total_available: int = Field(..., description="Available quantity across locations")


class ItemsListResponse(BaseModel):
    """Items of a product."""

    product_id: str = Field(..., description="Product identifier")
    total: int = Field(..., description="Number of items")
    pending: bool = Field(..., description="Whether a regeneration is running")
    items: list[ItemSchema] = Field(..., description="Items ordered by SKU")


class ReconcileResponse(BaseModel):
    """Result of a stock row and link reconciliation."""

    product_id: str = Field(..., description="Product identifier")
    location_id: str = Field(..., description="Default location checked")
    provisioned: int = Field(..., description="Stock rows created")
    skipped: int = Field(..., description="Items that already had a stock row")
    failed: list[str] = Field(default_factory=list, description="SKUs still missing a row")
    relinked: int = Field(..., description="Items linked to the product")
    linked: int = Field(..., description="Linked items after reconciliation")
    unlinked: int = Field(..., description="Unlinked items after reconciliation")


# ============================================================================
# Option Schemas
# ============================================================================


class OptionValueSchema(BaseModel):
    """A selectable option value."""

    id: str = Field(..., description="Option value identifier")
    set_id: str = Field(..., description="Owning option set")
    name: str = Field(..., description="Display name")
    order: int | None = Field(default=None, description="Sort order within the group")


class OptionGroupSchema(BaseModel):
    """Option values of one dimension."""

    name: str = Field(..., description="Group name (e.g., 'Color')")
    values: list[OptionValueSchema] = Field(..., description="Values in display order")


class OptionSetSchema(BaseModel):
    """A named option set."""

    id: str = Field(..., description="Option set identifier")
    name: str = Field(..., description="Option set name")


class StoreOptionsResponse(BaseModel):
    """Option sets and grouped values of a store."""

    store_id: str = Field(..., description="Store identifier")
    option_sets: list[OptionSetSchema] = Field(..., description="Option sets")
    groups: list[OptionGroupSchema] = Field(..., description="Values grouped by dimension")

"""Item API endpoints.

Provides endpoints for a product's items:
- POST /products/{product_id}/items/regenerate - replace items from option selections
- GET /products/{product_id}/items - list items with stock
- POST /products/{product_id}/items/reconcile - create missing stock rows and links
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from itemgen.api.errors import domain_error_to_http
from itemgen.api.schemas import (
    ErrorResponse,
    ItemSchema,
    ItemsListResponse,
    ProvisioningErrorSchema,
    ReconcileResponse,
    RegenerateItemsRequest,
    RegenerationResponse,
    StockRowSchema,
)
from itemgen.application.reconciliation_service import (
    ReconciliationService,
    get_reconciliation_service,
)
from itemgen.application.regeneration_service import (
    RegenerationOrchestrator,
    RegenerationResult,
    get_catalog_ports,
    get_regeneration_orchestrator,
)
from itemgen.catalog.service import CatalogService, ItemStockView
from itemgen.domain.exceptions import (
    BatchOperationError,
    RegenerationPendingError,
    ValidationError,
)
from itemgen.domain.value_objects import RegenerateItemsCommand, calculate_available

router = APIRouter(prefix="/products/{product_id}/items", tags=["Items"])


# ============================================================================
# Dependencies
# ============================================================================


def get_catalog_service() -> CatalogService:
    """Get catalog read service over the shared ports."""
    return CatalogService(get_catalog_ports())


# ============================================================================
# Converters
# ============================================================================


def result_to_response(result: RegenerationResult) -> RegenerationResponse:
    """Convert RegenerationResult to response schema."""
    warning = None
    if result.errors:
        warning = (
            f"{len(result.errors)} items were created without stock rows; "
            "run reconcile to retry"
        )
    elif result.dropped_groups:
        warning = f"Option groups ignored: {', '.join(result.dropped_groups)}"

    return RegenerationResponse(
        product_id=result.product_id,
        phase=result.phase.value,
        created=result.created,
        deleted=result.deleted,
        updated=result.updated,
        skus=result.skus,
        errors=[
            ProvisioningErrorSchema(item_id=e.item_id, sku=e.sku, reason=e.reason)
            for e in result.errors
        ],
        dropped_groups=list(result.dropped_groups),
        message=result.message,
        warning=warning,
    )


def view_to_schema(view: ItemStockView) -> ItemSchema:
    """Convert ItemStockView to response schema."""
    item = view.item
    return ItemSchema(
        id=item.id,
        product_id=item.product_id,
        sku=item.sku,
        option1=item.option1,
        option2=item.option2,
        option3=item.option3,
        price=item.price,
        saleprice=item.saleprice,
        cost=item.cost,
        linked=item.linked,
        stock=[
            StockRowSchema(
                location_id=row.location_id,
                on_hand=row.on_hand,
                committed=row.committed,
                unavailable=row.unavailable,
                available=calculate_available(row),
                updated_at=row.updated_at,
            )
            for row in view.stock_rows
        ],
        total_on_hand=view.total_on_hand,
        total_committed=view.total_committed,
        total_available=view.total_available,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/regenerate",
    response_model=RegenerationResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Regenerate items",
    description=(
        "Replace all items of a product with one item per combination of the "
        "selected option values. Destructive: existing items and their stock "
        "rows are deleted first."
    ),
)
async def regenerate_items(
    product_id: str,
    request: RegenerateItemsRequest,
    orchestrator: Annotated[RegenerationOrchestrator, Depends(get_regeneration_orchestrator)],
) -> RegenerationResponse:
    """Regenerate the items of a product.

    Args:
        product_id: Product identifier.
        request: Store and selected option values.
        orchestrator: Regeneration orchestrator.

    Returns:
        Regeneration result.

    Raises:
        HTTPException: On validation errors, a running regeneration,
            or a failed delete/create phase.
    """
    command = RegenerateItemsCommand.create(product_id, request.store_id, request.selections)
    try:
        result = await orchestrator.regenerate(command, wait=request.wait)
    except (ValidationError, RegenerationPendingError, BatchOperationError) as e:
        raise domain_error_to_http(e) from e

    return result_to_response(result)


@router.get(
    "",
    response_model=ItemsListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List items",
    description="List the items of a product with their stock rows, ordered by SKU.",
)
async def list_items(
    product_id: str,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    orchestrator: Annotated[RegenerationOrchestrator, Depends(get_regeneration_orchestrator)],
) -> ItemsListResponse:
    """List items of a product."""
    views = await service.list_items(product_id)
    return ItemsListResponse(
        product_id=product_id,
        total=len(views),
        pending=orchestrator.is_pending(product_id),
        items=[view_to_schema(view) for view in views],
    )


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Reconcile items",
    description=(
        "Create missing stock rows at the store's default location and link "
        "items whose link step did not complete."
    ),
)
async def reconcile_items(
    product_id: str,
    store_id: Annotated[str, Query(min_length=1, description="Store owning the product")],
    service: Annotated[ReconciliationService, Depends(get_reconciliation_service)],
) -> ReconcileResponse:
    """Reconcile stock rows and links of a product's items.

    Args:
        product_id: Product identifier.
        store_id: Store identifier.
        service: Reconciliation service.

    Returns:
        Reconciliation counts.

    Raises:
        HTTPException: If the product does not belong to the store or a
            regeneration of the product is running.
    """
    try:
        result = await service.reconcile(product_id, store_id, wait=False)
    except (ValidationError, RegenerationPendingError) as e:
        raise domain_error_to_http(e) from e

    return ReconcileResponse(
        product_id=product_id,
        location_id=result.location_id,
        provisioned=result.provisioned,
        skipped=result.skipped,
        failed=result.failed,
        relinked=result.relinked,
        linked=result.linked,
        unlinked=result.unlinked,
    )

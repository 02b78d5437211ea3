"""Option API endpoints.

Provides endpoints for browsing a store's option values:
- GET /stores/{store_id}/options - option sets and values grouped by dimension
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from itemgen.api.items import get_catalog_service
from itemgen.api.schemas import (
    ErrorResponse,
    OptionGroupSchema,
    OptionSetSchema,
    OptionValueSchema,
    StoreOptionsResponse,
)
from itemgen.catalog.service import CatalogService

router = APIRouter(prefix="/stores/{store_id}/options", tags=["Options"])


@router.get(
    "",
    response_model=StoreOptionsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="List option values",
    description="List a store's option sets and their values grouped by dimension.",
)
async def list_options(
    store_id: str,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> StoreOptionsResponse:
    """List option values of a store.

    Args:
        store_id: Store identifier.
        service: Catalog service.

    Returns:
        Option sets and grouped values.
    """
    options = await service.list_options(store_id)
    return StoreOptionsResponse(
        store_id=store_id,
        option_sets=[OptionSetSchema(id=s.id, name=s.name) for s in options.option_sets],
        groups=[
            OptionGroupSchema(
                name=group.name,
                values=[
                    OptionValueSchema(id=v.id, set_id=v.set_id, name=v.name, order=v.order)
                    for v in group.values
                ],
            )
            for group in options.groups
        ],
    )

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status

from CHARGEBACK.server.common.constants import (
    INVENTORY_DG_DETAILS_ENDPOINT,
    INVENTORY_FILTERS_ENDPOINT,
    INVENTORY_LIST_ENDPOINT,
    INVENTORY_ROUTER_PREFIX,
)
from CHARGEBACK.server.common.exceptions import ChargebackError
from CHARGEBACK.server.common.utils.logger import logger
from CHARGEBACK.server.routes.common import (
    get_api_client,
    get_inventory_service,
    http_error,
)
from CHARGEBACK.server.services.client import ChargebackApiClient
from CHARGEBACK.server.services.inventory import InventoryService, split_query_items

router = APIRouter(prefix=INVENTORY_ROUTER_PREFIX, tags=["inventory"])

PAGING_PARAMETERS = ("page", "limit", "search")


###############################################################################
@router.get(INVENTORY_FILTERS_ENDPOINT, status_code=status.HTTP_200_OK)
async def get_filter_options(
    entity: str,
    inventory: InventoryService = Depends(get_inventory_service),
) -> Any:
    try:
        return await inventory.filter_options(entity)
    except ChargebackError as exc:
        logger.warning("Filter options for %s unavailable: %s", entity, exc.message)
        raise http_error(exc) from exc


###############################################################################
@router.get(INVENTORY_LIST_ENDPOINT, status_code=status.HTTP_200_OK)
async def list_entities(
    entity: str,
    request: Request,
    page: int = 1,
    limit: int | None = None,
    search: str | None = None,
    inventory: InventoryService = Depends(get_inventory_service),
) -> Any:
    items = [
        (name, value)
        for name, value in request.query_params.multi_items()
        if name not in PAGING_PARAMETERS
    ]
    try:
        scalars, filters = split_query_items(entity, items)
        return await inventory.list_entities(
            entity,
            page=page,
            limit=limit,
            search=search,
            scalars=scalars,
            filters=filters,
        )
    except ChargebackError as exc:
        logger.warning("Listing %s failed: %s", entity, exc.message)
        raise http_error(exc) from exc


###############################################################################
@router.get(INVENTORY_DG_DETAILS_ENDPOINT, status_code=status.HTTP_200_OK)
async def get_dg_details(
    dg_id: int,
    client: ChargebackApiClient = Depends(get_api_client),
) -> Any:
    try:
        return await client.get_dg_details(dg_id)
    except ChargebackError as exc:
        logger.warning("Details for DG %s unavailable: %s", dg_id, exc.message)
        raise http_error(exc) from exc

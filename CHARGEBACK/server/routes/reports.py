from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from CHARGEBACK.server.common.constants import (
    REPORT_DETAIL_ENDPOINT,
    REPORT_DOWNLOAD_ENDPOINT,
    REPORTS_LIST_ENDPOINT,
    REPORTS_ROUTER_PREFIX,
)
from CHARGEBACK.server.common.exceptions import ChargebackError
from CHARGEBACK.server.routes.common import get_api_client, http_error
from CHARGEBACK.server.services.client import ChargebackApiClient

router = APIRouter(prefix=REPORTS_ROUTER_PREFIX, tags=["reports"])


###############################################################################
@router.get(REPORTS_LIST_ENDPOINT, status_code=status.HTTP_200_OK)
async def list_reports(
    skip: int = 0,
    limit: int = 100,
    client: ChargebackApiClient = Depends(get_api_client),
) -> Any:
    try:
        payload = await client.list_reports(max(0, skip), max(1, limit))
    except ChargebackError as exc:
        raise http_error(exc) from exc
    return payload if isinstance(payload, list) else []


###############################################################################
@router.get(REPORT_DETAIL_ENDPOINT, status_code=status.HTTP_200_OK)
async def get_report(
    report_id: int,
    client: ChargebackApiClient = Depends(get_api_client),
) -> Any:
    try:
        return await client.get_report(report_id)
    except ChargebackError as exc:
        raise http_error(exc) from exc


###############################################################################
@router.delete(REPORT_DETAIL_ENDPOINT, status_code=status.HTTP_200_OK)
async def delete_report(
    report_id: int,
    client: ChargebackApiClient = Depends(get_api_client),
) -> dict:
    try:
        await client.delete_report(report_id)
    except ChargebackError as exc:
        raise http_error(exc) from exc
    return {"status": "deleted", "report_id": report_id}


###############################################################################
@router.get(REPORT_DOWNLOAD_ENDPOINT, status_code=status.HTTP_200_OK)
async def download_report(
    report_id: int,
    export_format: str,
    client: ChargebackApiClient = Depends(get_api_client),
) -> Response:
    try:
        content, media_type = await client.download_report(report_id, export_format)
    except ChargebackError as exc:
        raise http_error(exc) from exc
    return Response(
        content=content,
        media_type=media_type,
        headers={
            "Content-Disposition": (
                f'attachment; filename="report_{report_id}.{export_format}"'
            )
        },
    )

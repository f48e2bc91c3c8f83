from __future__ import annotations

from fastapi import HTTPException, Request, status

from CHARGEBACK.server.common.exceptions import (
    BackendError,
    ChargebackError,
    SessionConflictError,
    StatusReadError,
    SubmissionError,
    ValidationError,
    ViewNotFoundError,
)
from CHARGEBACK.server.services.client import ChargebackApiClient
from CHARGEBACK.server.services.inventory import InventoryService
from CHARGEBACK.server.services.views import ViewRegistry

ERROR_STATUS_CODES: dict[type[ChargebackError], int] = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ViewNotFoundError: status.HTTP_404_NOT_FOUND,
    SessionConflictError: status.HTTP_409_CONFLICT,
    SubmissionError: status.HTTP_502_BAD_GATEWAY,
    StatusReadError: status.HTTP_502_BAD_GATEWAY,
    BackendError: status.HTTP_502_BAD_GATEWAY,
}


# -----------------------------------------------------------------------------
def http_error(exc: ChargebackError) -> HTTPException:
    if isinstance(exc, BackendError) and exc.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message
    )


# -----------------------------------------------------------------------------
def get_view_registry(request: Request) -> ViewRegistry:
    return request.app.state.views


# -----------------------------------------------------------------------------
def get_inventory_service(request: Request) -> InventoryService:
    return request.app.state.inventory


# -----------------------------------------------------------------------------
def get_api_client(request: Request) -> ChargebackApiClient:
    return request.app.state.api_client

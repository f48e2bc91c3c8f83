from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from CHARGEBACK.server.common.constants import (
    VIEW_ENDPOINT,
    VIEW_NOTIFICATIONS_ENDPOINT,
    VIEW_REFRESH_ENDPOINT,
    VIEW_REPORTS_ENDPOINT,
    VIEWS_ROUTER_PREFIX,
)
from CHARGEBACK.server.common.exceptions import ChargebackError
from CHARGEBACK.server.routes.common import get_view_registry, http_error
from CHARGEBACK.server.schemas.jobs import (
    NotificationListResponse,
    NotificationResponse,
    PollSessionResponse,
    RefreshRequest,
    ReportGenerationRequest,
    ViewResponse,
)
from CHARGEBACK.server.services.jobs import JobPoller
from CHARGEBACK.server.services.views import DashboardView, ViewRegistry

router = APIRouter(prefix=VIEWS_ROUTER_PREFIX, tags=["views"])


# -----------------------------------------------------------------------------
def session_response(poller: JobPoller) -> PollSessionResponse | None:
    if poller.session is None:
        return None
    return PollSessionResponse(**poller.session.snapshot_payload())


# -----------------------------------------------------------------------------
def view_response(view: DashboardView) -> ViewResponse:
    return ViewResponse(
        view_id=view.view_id,
        refresh=session_response(view.refresh),
        report=session_response(view.report),
    )


###############################################################################
class ViewsEndpoint:
    def __init__(self, router: APIRouter) -> None:
        self.router = router

    # -------------------------------------------------------------------------
    @staticmethod
    def resolve_view(views: ViewRegistry, view_id: str) -> DashboardView:
        try:
            return views.get(view_id)
        except ChargebackError as exc:
            raise http_error(exc) from exc

    # -------------------------------------------------------------------------
    async def mount_view(
        self, views: ViewRegistry = Depends(get_view_registry)
    ) -> ViewResponse:
        return view_response(views.register())

    # -------------------------------------------------------------------------
    async def get_view(
        self, view_id: str, views: ViewRegistry = Depends(get_view_registry)
    ) -> ViewResponse:
        return view_response(self.resolve_view(views, view_id))

    # -------------------------------------------------------------------------
    async def unmount_view(
        self, view_id: str, views: ViewRegistry = Depends(get_view_registry)
    ) -> dict:
        try:
            views.unmount(view_id)
        except ChargebackError as exc:
            raise http_error(exc) from exc
        return {"status": "unmounted", "view_id": view_id}

    # -------------------------------------------------------------------------
    async def drain_notifications(
        self, view_id: str, views: ViewRegistry = Depends(get_view_registry)
    ) -> NotificationListResponse:
        view = self.resolve_view(views, view_id)
        return NotificationListResponse(
            view_id=view_id,
            notifications=[
                NotificationResponse(**notification.to_dict())
                for notification in view.notifications.drain()
            ],
        )

    # -------------------------------------------------------------------------
    async def start_refresh(
        self,
        view_id: str,
        request: RefreshRequest,
        views: ViewRegistry = Depends(get_view_registry),
    ) -> PollSessionResponse:
        view = self.resolve_view(views, view_id)
        try:
            session = await view.refresh.run(request.job_keys)
        except ChargebackError as exc:
            raise http_error(exc) from exc
        return PollSessionResponse(**session.snapshot_payload())

    # -------------------------------------------------------------------------
    async def get_refresh(
        self, view_id: str, views: ViewRegistry = Depends(get_view_registry)
    ) -> PollSessionResponse:
        view = self.resolve_view(views, view_id)
        response = session_response(view.refresh)
        if response is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No refresh session for view {view_id}.",
            )
        return response

    # -------------------------------------------------------------------------
    async def start_report(
        self,
        view_id: str,
        request: ReportGenerationRequest,
        views: ViewRegistry = Depends(get_view_registry),
    ) -> PollSessionResponse:
        view = self.resolve_view(views, view_id)
        try:
            session = await view.report.run(
                request.name, request.from_date, request.to_date, request.dg_ids
            )
        except ChargebackError as exc:
            raise http_error(exc) from exc
        return PollSessionResponse(**session.snapshot_payload())

    # -------------------------------------------------------------------------
    async def get_report(
        self, view_id: str, views: ViewRegistry = Depends(get_view_registry)
    ) -> PollSessionResponse:
        view = self.resolve_view(views, view_id)
        response = session_response(view.report)
        if response is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No report session for view {view_id}.",
            )
        return response

    # -------------------------------------------------------------------------
    def add_routes(self) -> None:
        self.router.add_api_route(
            "",
            self.mount_view,
            methods=["POST"],
            response_model=ViewResponse,
            status_code=status.HTTP_201_CREATED,
        )
        self.router.add_api_route(
            VIEW_ENDPOINT,
            self.get_view,
            methods=["GET"],
            response_model=ViewResponse,
            status_code=status.HTTP_200_OK,
        )
        self.router.add_api_route(
            VIEW_ENDPOINT,
            self.unmount_view,
            methods=["DELETE"],
            status_code=status.HTTP_200_OK,
        )
        self.router.add_api_route(
            VIEW_NOTIFICATIONS_ENDPOINT,
            self.drain_notifications,
            methods=["GET"],
            response_model=NotificationListResponse,
            status_code=status.HTTP_200_OK,
        )
        self.router.add_api_route(
            VIEW_REFRESH_ENDPOINT,
            self.start_refresh,
            methods=["POST"],
            response_model=PollSessionResponse,
            status_code=status.HTTP_202_ACCEPTED,
        )
        self.router.add_api_route(
            VIEW_REFRESH_ENDPOINT,
            self.get_refresh,
            methods=["GET"],
            response_model=PollSessionResponse,
            status_code=status.HTTP_200_OK,
        )
        self.router.add_api_route(
            VIEW_REPORTS_ENDPOINT,
            self.start_report,
            methods=["POST"],
            response_model=PollSessionResponse,
            status_code=status.HTTP_202_ACCEPTED,
        )
        self.router.add_api_route(
            VIEW_REPORTS_ENDPOINT,
            self.get_report,
            methods=["GET"],
            response_model=PollSessionResponse,
            status_code=status.HTTP_200_OK,
        )


###############################################################################
views_endpoint = ViewsEndpoint(router=router)
views_endpoint.add_routes()

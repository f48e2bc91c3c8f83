from __future__ import annotations

import time
import uuid
from collections.abc import Callable

from CHARGEBACK.server.common.exceptions import ViewNotFoundError
from CHARGEBACK.server.common.utils.logger import logger
from CHARGEBACK.server.entities.settings import JobSettings
from CHARGEBACK.server.services.client import ChargebackApiClient
from CHARGEBACK.server.services.jobs import ReportPoller, RefreshPoller
from CHARGEBACK.server.services.notifications import NotificationCenter


###############################################################################
class DashboardView:
    """A mounted dashboard page. Every poll session it starts dies with it."""

    def __init__(
        self,
        view_id: str,
        client: ChargebackApiClient,
        settings: JobSettings,
        last_access: float = 0.0,
    ) -> None:
        self.view_id = view_id
        self.notifications = NotificationCenter(view_id)
        self.refresh = RefreshPoller(client, self.notifications, settings)
        self.report = ReportPoller(client, self.notifications, settings)
        self.last_access = last_access
        self.mounted = True

    # -------------------------------------------------------------------------
    def unmount(self) -> None:
        if not self.mounted:
            return
        self.mounted = False
        self.refresh.close()
        self.report.close()
        logger.info("Unmounted view %s", self.view_id)


###############################################################################
class ViewRegistry:
    """Mounted views by id.

    A view not accessed for `view_ttl` seconds is unmounted on the next
    `register` or `get`, which covers pages closed without a teardown call.
    A TTL of 0 keeps views until they are unmounted explicitly.
    """

    def __init__(
        self,
        client: ChargebackApiClient,
        settings: JobSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.settings = settings
        self.clock = clock
        self.views: dict[str, DashboardView] = {}

    # -------------------------------------------------------------------------
    def sweep(self) -> list[str]:
        ttl = self.settings.view_ttl
        if ttl <= 0:
            return []
        now = self.clock()
        expired = [
            view_id
            for view_id, view in self.views.items()
            if now - view.last_access > ttl
        ]
        for view_id in expired:
            self.views.pop(view_id).unmount()
            logger.info("View %s expired after %.0fs without access", view_id, ttl)
        return expired

    # -------------------------------------------------------------------------
    def register(self) -> DashboardView:
        self.sweep()
        view_id = str(uuid.uuid4())[:8]
        view = DashboardView(
            view_id, self.client, self.settings, last_access=self.clock()
        )
        self.views[view_id] = view
        logger.debug("Registered view %s", view_id)
        return view

    # -------------------------------------------------------------------------
    def get(self, view_id: str) -> DashboardView:
        self.sweep()
        view = self.views.get(view_id)
        if view is None:
            raise ViewNotFoundError(f"View {view_id} not found.")
        view.last_access = self.clock()
        return view

    # -------------------------------------------------------------------------
    def unmount(self, view_id: str) -> None:
        view = self.views.pop(view_id, None)
        if view is None:
            raise ViewNotFoundError(f"View {view_id} not found.")
        view.unmount()

    # -------------------------------------------------------------------------
    def unmount_all(self) -> None:
        views, self.views = list(self.views.values()), {}
        for view in views:
            view.unmount()

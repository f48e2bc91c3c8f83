from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from CHARGEBACK.server.common.constants import DOCS_ENDPOINT, ROOT_ENDPOINT
from CHARGEBACK.server.common.utils.logger import logger
from CHARGEBACK.server.common.utils.types import coerce_int, coerce_str
from CHARGEBACK.server.common.utils.variables import env_variables
from CHARGEBACK.server.configurations import ServerSettings, server_settings
from CHARGEBACK.server.routes.inventory import router as inventory_router
from CHARGEBACK.server.routes.reports import router as reports_router
from CHARGEBACK.server.routes.views import router as views_router
from CHARGEBACK.server.services.client import ChargebackApiClient
from CHARGEBACK.server.services.inventory import InventoryService
from CHARGEBACK.server.services.views import ViewRegistry


###############################################################################
def create_app(
    settings: ServerSettings = server_settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        client = ChargebackApiClient.from_settings(settings.backend, transport=transport)
        app.state.api_client = client
        app.state.views = ViewRegistry(client, settings.jobs)
        app.state.inventory = InventoryService(client, settings.inventory)
        logger.info("Dashboard backend bound to %s", settings.backend.base_url)
        try:
            yield
        finally:
            app.state.views.unmount_all()
            await client.aclose()

    app = FastAPI(
        title=settings.fastapi.title,
        version=settings.fastapi.version,
        description=settings.fastapi.description,
        lifespan=lifespan,
    )
    app.include_router(views_router)
    app.include_router(inventory_router)
    app.include_router(reports_router)

    # -------------------------------------------------------------------------
    @app.get(ROOT_ENDPOINT, include_in_schema=False)
    def redirect_to_docs() -> RedirectResponse:
        return RedirectResponse(url=DOCS_ENDPOINT)

    return app


###############################################################################
app = create_app()


# -----------------------------------------------------------------------------
def run() -> None:
    host = coerce_str(env_variables.get("FASTAPI_HOST"), "127.0.0.1")
    port = coerce_int(env_variables.get("FASTAPI_PORT"), 8050, minimum=1, maximum=65535)
    uvicorn.run("CHARGEBACK.server.app:app", host=host, port=port, reload=False)

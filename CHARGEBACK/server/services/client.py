from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

import httpx

from CHARGEBACK.server.common.constants import (
    ALL_DGS_PAGE_LIMIT,
    BACKEND_DG_DETAILS_ENDPOINT,
    BACKEND_DGS_ENDPOINT,
    BACKEND_FILTERS_SUFFIX,
    BACKEND_GENERATE_ENDPOINT,
    BACKEND_GENERATE_STATUS_ENDPOINT,
    BACKEND_REFRESH_STATUS_ENDPOINT,
    BACKEND_REPORT_DOWNLOAD_ENDPOINT,
    BACKEND_REPORT_ENDPOINT,
    BACKEND_REPORTS_ENDPOINT,
    REPORT_EXPORT_MEDIA_TYPES,
)
from CHARGEBACK.server.common.exceptions import (
    BackendError,
    StatusReadError,
    SubmissionError,
    ValidationError,
    summarize_error,
)
from CHARGEBACK.server.common.utils.logger import logger
from CHARGEBACK.server.entities.jobs import JobEndpoint, JobStatusSnapshot, ReportJob
from CHARGEBACK.server.entities.settings import BackendSettings
from CHARGEBACK.server.schemas.jobs import parse_status_payload


###############################################################################
class ChargebackApiClient:
    """Async client for the chargeback REST backend.

    httpx failures are wrapped per call family: `SubmissionError` for job
    triggers, `StatusReadError` for status reads and `BackendError` for
    forwarded reads.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={"accept": "application/json"},
            transport=transport,
        )

    # -------------------------------------------------------------------------
    @classmethod
    def from_settings(
        cls,
        settings: BackendSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ChargebackApiClient:
        return cls(settings.base_url, settings.timeout, transport=transport)

    # -------------------------------------------------------------------------
    async def aclose(self) -> None:
        await self.client.aclose()

    # -------------------------------------------------------------------------
    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Any = None,
        json_body: Any = None,
    ) -> Any:
        response = await self.client.request(method, url, params=params, json=json_body)
        response.raise_for_status()
        if not response.content:
            return None
        return response.json()

    # [JOB TRIGGERS]
    ###########################################################################
    async def trigger_job(self, endpoint: JobEndpoint) -> Any:
        try:
            payload = await self.request_json(endpoint.method, endpoint.path)
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            logger.warning("Trigger %s failed: %s", endpoint.path, exc)
            raise SubmissionError(
                f"Failed to start {endpoint.label}: {summarize_error(exc)}"
            ) from exc
        logger.debug("Triggered %s", endpoint.path)
        return payload

    # -------------------------------------------------------------------------
    async def generate_report(self, job: ReportJob) -> Any:
        try:
            payload = await self.request_json(
                "POST", BACKEND_GENERATE_ENDPOINT, json_body=job.to_payload()
            )
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            logger.warning("Report generation request failed: %s", exc)
            raise SubmissionError(
                f"Failed to generate report: {summarize_error(exc)}"
            ) from exc
        logger.debug("Requested report generation for '%s'", job.name)
        return payload

    # [STATUS READS]
    ###########################################################################
    async def read_status(
        self, url: str, watched_keys: Iterable[str] | None = None
    ) -> JobStatusSnapshot:
        try:
            payload = await self.request_json("GET", url)
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            raise StatusReadError(summarize_error(exc)) from exc
        return parse_status_payload(payload, watched_keys)

    # -------------------------------------------------------------------------
    async def fetch_refresh_status(
        self, watched_keys: Iterable[str] | None = None
    ) -> JobStatusSnapshot:
        return await self.read_status(BACKEND_REFRESH_STATUS_ENDPOINT, watched_keys)

    # -------------------------------------------------------------------------
    async def fetch_generation_status(self) -> JobStatusSnapshot:
        # only the top-level status drives report polling
        return await self.read_status(BACKEND_GENERATE_STATUS_ENDPOINT, ())

    # [FORWARDED READS]
    ###########################################################################
    async def send(
        self,
        method: str,
        url: str,
        params: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.client.request(
                method, url, params=params, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"Backend returned {exc.response.status_code} for {url}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(
                f"Backend request to {url} failed: {summarize_error(exc)}"
            ) from exc
        return response

    # -------------------------------------------------------------------------
    async def forward(
        self, method: str, url: str, params: Any = None
    ) -> Any:
        response = await self.send(method, url, params=params)
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise BackendError(
                f"Backend returned invalid JSON for {url}: {summarize_error(exc)}"
            ) from exc

    # -------------------------------------------------------------------------
    async def list_dg_ids(self) -> list[int]:
        payload = await self.forward(
            "GET",
            BACKEND_DGS_ENDPOINT,
            params={"page": 1, "limit": ALL_DGS_PAGE_LIMIT},
        )
        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise BackendError("Unexpected delivery group listing payload")
        try:
            return [
                int(item["id"])
                for item in items
                if isinstance(item, dict) and item.get("id") is not None
            ]
        except (TypeError, ValueError) as exc:
            raise BackendError(
                f"Delivery group listing has a non-numeric id: {summarize_error(exc)}"
            ) from exc

    # -------------------------------------------------------------------------
    async def get_dg_details(self, dg_id: int) -> Any:
        return await self.forward(
            "GET", BACKEND_DG_DETAILS_ENDPOINT.format(dg_id=dg_id)
        )

    # -------------------------------------------------------------------------
    async def fetch_entities(self, entity: str, query: str) -> Any:
        url = f"/{entity}?{query}" if query else f"/{entity}"
        return await self.forward("GET", url)

    # -------------------------------------------------------------------------
    async def fetch_filter_options(self, entity: str) -> Any:
        return await self.forward("GET", f"/{entity}{BACKEND_FILTERS_SUFFIX}")

    # -------------------------------------------------------------------------
    async def list_reports(self, skip: int, limit: int) -> Any:
        return await self.forward(
            "GET", BACKEND_REPORTS_ENDPOINT, params={"skip": skip, "limit": limit}
        )

    # -------------------------------------------------------------------------
    async def get_report(self, report_id: int) -> Any:
        return await self.forward(
            "GET", BACKEND_REPORT_ENDPOINT.format(report_id=report_id)
        )

    # -------------------------------------------------------------------------
    async def download_report(
        self, report_id: int, export_format: str
    ) -> tuple[bytes, str]:
        """Return the raw export body and its content type."""
        media_type = REPORT_EXPORT_MEDIA_TYPES.get(export_format)
        if media_type is None:
            raise ValidationError(f"Unsupported report export format: {export_format}")
        response = await self.send(
            "GET",
            BACKEND_REPORT_DOWNLOAD_ENDPOINT.format(
                report_id=report_id, export_format=export_format
            ),
            headers={"accept": media_type},
        )
        return response.content, response.headers.get("content-type", media_type)

    # -------------------------------------------------------------------------
    async def delete_report(self, report_id: int) -> Any:
        return await self.forward(
            "DELETE", BACKEND_REPORT_ENDPOINT.format(report_id=report_id)
        )

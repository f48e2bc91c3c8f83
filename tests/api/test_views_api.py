from __future__ import annotations

import time
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from CHARGEBACK.server.app import create_app
from CHARGEBACK.server.configurations import server_settings
from CHARGEBACK.server.entities.settings import BackendSettings, JobSettings


# -----------------------------------------------------------------------------
@pytest.fixture
def client(fake_backend):
    settings = replace(
        server_settings,
        backend=BackendSettings(base_url="http://backend.test", timeout=5.0),
        jobs=JobSettings(
            polling_interval=0.01,
            dispatch_mode="concurrent",
            refresh_stop_policy="per_key",
        ),
    )
    with TestClient(create_app(settings, transport=fake_backend.transport)) as c:
        yield c


# -----------------------------------------------------------------------------
def mount_view(client: TestClient) -> str:
    response = client.post("/views")
    assert response.status_code == 201
    return response.json()["view_id"]


# -----------------------------------------------------------------------------
def wait_for_session(client: TestClient, url: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        payload = client.get(url).json()
        if payload["state"] != "polling" or time.monotonic() > deadline:
            return payload
        time.sleep(0.02)


# -------------------------------------------------------------------------
def test_refresh_runs_to_completion(client, fake_backend):
    fake_backend.refresh_statuses = [
        {"dgs": {"status": "running"}, "hosts": {"status": "running"}},
        {"dgs": {"status": "completed"}, "hosts": {"status": "completed"}},
    ]
    view_id = mount_view(client)

    response = client.post(
        f"/views/{view_id}/refresh", json={"job_keys": ["hosts", "dgs"]}
    )
    assert response.status_code == 202
    assert response.json()["job_keys"] == ["dgs", "hosts"]

    session = wait_for_session(client, f"/views/{view_id}/refresh")
    assert session["state"] == "completed"
    assert session["outcome"] == "success"
    assert session["statuses"] == {"dgs": "completed", "hosts": "completed"}

    notifications = client.get(f"/views/{view_id}/notifications").json()
    assert [n["title"] for n in notifications["notifications"]] == ["Refresh Completed"]
    assert client.get(f"/views/{view_id}/notifications").json()["notifications"] == []


# -------------------------------------------------------------------------
def test_empty_refresh_selection_is_unprocessable(client, fake_backend):
    view_id = mount_view(client)

    response = client.post(f"/views/{view_id}/refresh", json={"job_keys": []})

    assert response.status_code == 422
    assert fake_backend.requests == []
    notifications = client.get(f"/views/{view_id}/notifications").json()
    assert notifications["notifications"][0]["title"] == "No items selected"
    assert client.get(f"/views/{view_id}/refresh").status_code == 404


# -------------------------------------------------------------------------
def test_failed_trigger_returns_bad_gateway(client, fake_backend):
    fake_backend.failing_paths.add("/refresh/synthetics")
    view_id = mount_view(client)

    response = client.post(
        f"/views/{view_id}/refresh", json={"job_keys": ["synthetics"]}
    )

    assert response.status_code == 502
    assert fake_backend.calls("GET", "/refresh/status") == []


# -------------------------------------------------------------------------
def test_concurrent_refresh_conflicts_and_unmount_cancels(client, fake_backend):
    fake_backend.refresh_statuses = [{"hosts": {"status": "running"}}]
    view_id = mount_view(client)

    assert (
        client.post(f"/views/{view_id}/refresh", json={"job_keys": ["hosts"]}).status_code
        == 202
    )
    conflict = client.post(f"/views/{view_id}/refresh", json={"job_keys": ["dgs"]})
    assert conflict.status_code == 409

    time.sleep(0.05)
    response = client.delete(f"/views/{view_id}")
    assert response.status_code == 200
    reads_after_unmount = len(fake_backend.calls("GET", "/refresh/status"))
    time.sleep(0.1)

    assert len(fake_backend.calls("GET", "/refresh/status")) == reads_after_unmount
    assert client.get(f"/views/{view_id}").status_code == 404
    assert client.delete(f"/views/{view_id}").status_code == 404


# -------------------------------------------------------------------------
def test_report_generation_flow(client, fake_backend):
    fake_backend.generation_statuses = [{"status": "processing"}, {"status": "idle"}]
    view_id = mount_view(client)

    response = client.post(
        f"/views/{view_id}/reports",
        json={
            "name": "March",
            "from_date": "2024-03-01T00:00:00Z",
            "to_date": "2024-03-31T00:00:00Z",
            "dg_ids": [3, 5],
        },
    )
    assert response.status_code == 202

    session = wait_for_session(client, f"/views/{view_id}/reports")
    assert session["state"] == "completed"
    assert session["global_status"] == "idle"
    assert fake_backend.last_json("POST", "/generate")["dg_ids"] == [3, 5]
    notifications = client.get(f"/views/{view_id}/notifications").json()
    assert [n["title"] for n in notifications["notifications"]] == ["Report Generated"]


# -------------------------------------------------------------------------
def test_report_without_name_is_unprocessable(client, fake_backend):
    view_id = mount_view(client)

    response = client.post(
        f"/views/{view_id}/reports",
        json={"name": "", "from_date": "2024-03-01T00:00:00Z"},
    )

    assert response.status_code == 422
    assert fake_backend.requests == []


# -------------------------------------------------------------------------
def test_unknown_view_is_not_found(client):
    assert client.get("/views/missing").status_code == 404
    assert client.post("/views/missing/refresh", json={"job_keys": ["dgs"]}).status_code == 404


# -------------------------------------------------------------------------
def test_inventory_listing_and_filters(client, fake_backend):
    fake_backend.route("GET", "/hosts", {"items": [{"id": 1}], "total": 1})
    fake_backend.route("GET", "/hosts/filters", {"states": ["RUNNING"], "dgs": []})

    listing = client.get(
        "/inventory/hosts",
        params=[("dg", "Payments"), ("dg", "N/A"), ("managed", "true"), ("limit", "10")],
    )
    assert listing.status_code == 200
    assert listing.json()["total"] == 1
    request = fake_backend.calls("GET", "/hosts")[-1]
    assert request.url.params["dg"] == "Payments,null"
    assert request.url.params["managed"] == "true"
    assert request.url.params["limit"] == "10"

    options = client.get("/inventory/hosts/filters").json()
    assert options["states"] == ["RUNNING", "N/A"]
    assert options["dgs"] == ["N/A"]

    assert client.get("/inventory/hosts", params={"colour": "red"}).status_code == 422
    assert client.get("/inventory/reports").status_code == 422


# -------------------------------------------------------------------------
def test_report_archive_routes(client, fake_backend):
    fake_backend.route("GET", "/reports", [{"id": 9, "name": "March"}])
    fake_backend.route("DELETE", "/reports/9", None, status_code=204)

    assert client.get("/reports").json() == [{"id": 9, "name": "March"}]
    assert client.get("/reports/12").status_code == 404
    assert client.delete("/reports/9").json() == {"status": "deleted", "report_id": 9}


# -------------------------------------------------------------------------
@pytest.mark.parametrize(
    "export_format, body, content_type",
    [
        ("json", b'{"id": 9, "rows": []}', "application/json"),
        ("csv", b"dg,cost\nPayments,12.5\n", "text/csv"),
    ],
)
def test_report_download_streams_backend_export(
    client, fake_backend, export_format, body, content_type
):
    fake_backend.route(
        "GET",
        f"/reports/9/download/{export_format}",
        content=body,
        content_type=content_type,
    )

    response = client.get(f"/reports/9/download/{export_format}")

    assert response.status_code == 200
    assert response.content == body
    assert response.headers["content-type"].startswith(content_type)
    assert response.headers["content-disposition"] == (
        f'attachment; filename="report_9.{export_format}"'
    )
    request = fake_backend.calls("GET", f"/reports/9/download/{export_format}")[-1]
    assert request.headers["accept"] == content_type


# -------------------------------------------------------------------------
def test_report_download_errors(client, fake_backend):
    assert client.get("/reports/9/download/xlsx").status_code == 422
    assert fake_backend.requests == []

    assert client.get("/reports/9/download/csv").status_code == 404

    fake_backend.failing_paths.add("/reports/9/download/json")
    assert client.get("/reports/9/download/json").status_code == 502


# -------------------------------------------------------------------------
def test_dg_details_are_forwarded(client, fake_backend):
    details = {"id": 4, "name": "Retail", "hosts": 12, "applications": ["pos"]}
    fake_backend.route("GET", "/dgs/4/details", details)

    response = client.get("/inventory/dgs/4/details")

    assert response.status_code == 200
    assert response.json() == details
    assert client.get("/inventory/dgs/5/details").status_code == 404
    assert client.get("/inventory/dgs/retail/details").status_code == 422

from __future__ import annotations

import asyncio

import pytest

from CHARGEBACK.server.common.exceptions import BackendError, ValidationError
from CHARGEBACK.server.services.client import ChargebackApiClient
from CHARGEBACK.server.services.inventory import (
    InventoryService,
    build_inventory_query,
    split_query_items,
    with_null_options,
)

BACKEND_URL = "http://backend.test"


# -------------------------------------------------------------------------
def test_multi_values_are_joined_with_literal_commas():
    query = build_inventory_query(
        "hosts", filters={"dg": ["Payments & Cards", "Retail"]}
    )

    assert query == "page=1&limit=100&dg=Payments%20%26%20Cards,Retail"


# -------------------------------------------------------------------------
def test_uri_component_safe_characters_are_kept():
    query = build_inventory_query("applications", search="it's (web)*!~")

    assert query == "page=1&limit=100&search=it's%20(web)*!~"


# -------------------------------------------------------------------------
def test_not_available_option_becomes_null():
    query = build_inventory_query(
        "hosts", filters={"state": ["N/A", "RUNNING"], "dg": ["N/A"]}
    )

    assert query == "page=1&limit=100&state=null,RUNNING&dg=null"


# -------------------------------------------------------------------------
def test_synthetic_type_keeps_not_available_literal():
    query = build_inventory_query("synthetics", filters={"synthetic_type": ["N/A"]})

    assert query == "page=1&limit=100&synthetic_type=N%2FA"


# -------------------------------------------------------------------------
def test_scalar_filters_and_empty_selections():
    query = build_inventory_query(
        "hosts",
        page=3,
        limit=25,
        scalars={"managed": True, "min_memory": 8, "max_memory": ""},
        filters={"dg": [], "state": ["", "RUNNING", "RUNNING"]},
    )

    assert query == "page=3&limit=25&managed=true&min_memory=8&state=RUNNING"


# -------------------------------------------------------------------------
@pytest.mark.parametrize(
    "kwargs",
    [
        {"entity": "reports"},
        {"entity": "hosts", "page": 0},
        {"entity": "hosts", "limit": 0},
        {"entity": "hosts", "scalars": {"colour": "red"}},
        {"entity": "applications", "filters": {"state": ["RUNNING"]}},
    ],
)
def test_invalid_queries_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        build_inventory_query(**kwargs)


# -------------------------------------------------------------------------
def test_split_query_items_accepts_repeated_and_comma_forms():
    scalars, filters = split_query_items(
        "hosts",
        [("dg", "Payments,Retail"), ("dg", "Travel"), ("managed", "true")],
    )

    assert scalars == {"managed": "true"}
    assert filters == {"dg": ["Payments", "Retail", "Travel"]}


# -------------------------------------------------------------------------
def test_filter_options_gain_not_available_entries():
    options = with_null_options(
        "applications",
        {"app_types": ["WEB"], "dgs": ["Payments", "N/A"], "extra": [1]},
    )

    assert options["app_types"] == ["WEB", "N/A"]
    assert options["dgs"] == ["Payments", "N/A"]
    assert options["information_systems"] == ["N/A"]
    assert options["extra"] == [1]


# -------------------------------------------------------------------------
def test_service_forwards_query_and_clamps_page_size(
    fake_backend, inventory_settings
):
    fake_backend.route("GET", "/hosts", {"items": [], "total": 0})

    async def scenario():
        client = ChargebackApiClient(BACKEND_URL, transport=fake_backend.transport)
        service = InventoryService(client, inventory_settings)
        try:
            return await service.list_entities(
                "hosts", page=2, limit=5000, filters={"dg": ["Payments"]}
            )
        finally:
            await client.aclose()

    payload = asyncio.run(scenario())

    assert payload == {"items": [], "total": 0}
    request = fake_backend.calls("GET", "/hosts")[0]
    assert request.url.params["limit"] == "500"
    assert request.url.params["page"] == "2"
    assert request.url.params["dg"] == "Payments"


# -------------------------------------------------------------------------
def test_service_surfaces_backend_errors(fake_backend, inventory_settings):
    async def scenario():
        client = ChargebackApiClient(BACKEND_URL, transport=fake_backend.transport)
        service = InventoryService(client, inventory_settings)
        try:
            await service.filter_options("synthetics")
        finally:
            await client.aclose()

    with pytest.raises(BackendError) as error:
        asyncio.run(scenario())

    assert error.value.status_code == 404

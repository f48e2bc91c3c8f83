from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote

from CHARGEBACK.server.common.constants import (
    INVENTORY_ENTITIES,
    INVENTORY_MULTI_VALUE_FILTERS,
    INVENTORY_NULLABLE_OPTIONS,
    INVENTORY_SCALAR_FILTERS,
    NULL_FILTER_SENTINEL,
    NULL_FILTER_VALUE,
)
from CHARGEBACK.server.common.exceptions import ValidationError
from CHARGEBACK.server.entities.settings import InventorySettings
from CHARGEBACK.server.services.client import ChargebackApiClient

# characters left untouched by a browser's encodeURIComponent
URI_COMPONENT_SAFE = "-_.!~*'()"


# -----------------------------------------------------------------------------
def encode_component(value: Any) -> str:
    return quote(str(value), safe=URI_COMPONENT_SAFE)


# -----------------------------------------------------------------------------
def encode_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return encode_component(value)


# -----------------------------------------------------------------------------
def encode_multi_value(values: Iterable[str], accepts_null: bool) -> str:
    """Join the selected values with literal commas (OR within one field).

    The `N/A` option selects rows where the field is missing and is sent as
    `null` for fields that accept it.
    """
    encoded: list[str] = []
    for value in values:
        if accepts_null and value == NULL_FILTER_SENTINEL:
            encoded.append(NULL_FILTER_VALUE)
        else:
            encoded.append(encode_component(value))
    return ",".join(encoded)


# -----------------------------------------------------------------------------
def ensure_entity(entity: str) -> str:
    if entity not in INVENTORY_ENTITIES:
        raise ValidationError(f"Unknown inventory entity: {entity}")
    return entity


# -----------------------------------------------------------------------------
def build_inventory_query(
    entity: str,
    page: int = 1,
    limit: int = 100,
    search: str | None = None,
    scalars: Mapping[str, Any] | None = None,
    filters: Mapping[str, Iterable[str]] | None = None,
) -> str:
    ensure_entity(entity)
    if page < 1:
        raise ValidationError("Page numbers start at 1.")
    if limit < 1:
        raise ValidationError("Page size must be positive.")

    parts = [f"page={int(page)}", f"limit={int(limit)}"]
    if search:
        parts.append(f"search={encode_component(search)}")

    allowed_scalars = INVENTORY_SCALAR_FILTERS[entity]
    for name, value in (scalars or {}).items():
        if name not in allowed_scalars:
            raise ValidationError(f"Unsupported filter '{name}' for {entity}")
        if value is None or value == "":
            continue
        parts.append(f"{name}={encode_scalar(value)}")

    allowed_filters = INVENTORY_MULTI_VALUE_FILTERS[entity]
    for name, values in (filters or {}).items():
        if name not in allowed_filters:
            raise ValidationError(f"Unsupported filter '{name}' for {entity}")
        # keep selection order, drop duplicates
        selected = list(dict.fromkeys(value for value in values if value != ""))
        if not selected:
            continue
        parts.append(f"{name}={encode_multi_value(selected, allowed_filters[name])}")

    return "&".join(parts)


# -----------------------------------------------------------------------------
def split_query_items(
    entity: str, items: Iterable[tuple[str, str]]
) -> tuple[dict[str, str], dict[str, list[str]]]:
    """Sort raw query items into scalar and multi-valued filters.

    Multi-valued fields may arrive repeated (`dg=a&dg=b`) or comma separated
    (`dg=a,b`); both forms are accepted.
    """
    ensure_entity(entity)
    scalars: dict[str, str] = {}
    filters: dict[str, list[str]] = {}
    allowed_filters = INVENTORY_MULTI_VALUE_FILTERS[entity]
    for name, value in items:
        if name in allowed_filters:
            filters.setdefault(name, []).extend(
                part.strip() for part in value.split(",") if part.strip()
            )
        else:
            scalars[name] = value
    return scalars, filters


# -----------------------------------------------------------------------------
def with_null_options(entity: str, options: Any) -> Any:
    if not isinstance(options, dict):
        return options
    decorated = dict(options)
    for name in INVENTORY_NULLABLE_OPTIONS[entity]:
        values = decorated.get(name)
        values = list(values) if isinstance(values, list) else []
        if NULL_FILTER_SENTINEL not in values:
            values.append(NULL_FILTER_SENTINEL)
        decorated[name] = values
    return decorated


###############################################################################
class InventoryService:
    def __init__(self, client: ChargebackApiClient, settings: InventorySettings) -> None:
        self.client = client
        self.settings = settings

    # -------------------------------------------------------------------------
    def clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.settings.default_page_size
        return max(1, min(int(limit), self.settings.max_page_size))

    # -------------------------------------------------------------------------
    async def list_entities(
        self,
        entity: str,
        page: int = 1,
        limit: int | None = None,
        search: str | None = None,
        scalars: Mapping[str, Any] | None = None,
        filters: Mapping[str, Iterable[str]] | None = None,
    ) -> Any:
        query = build_inventory_query(
            entity,
            page=page,
            limit=self.clamp_limit(limit),
            search=search,
            scalars=scalars,
            filters=filters,
        )
        return await self.client.fetch_entities(entity, query)

    # -------------------------------------------------------------------------
    async def filter_options(self, entity: str) -> Any:
        ensure_entity(entity)
        options = await self.client.fetch_filter_options(entity)
        return with_null_options(entity, options)

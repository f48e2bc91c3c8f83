from __future__ import annotations

import json
import os
from typing import Any

from CHARGEBACK.server.common.utils.logger import logger


# -----------------------------------------------------------------------------
def ensure_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


# -----------------------------------------------------------------------------
def load_configurations(path: str) -> dict[str, Any]:
    if not os.path.exists(path):
        logger.warning("Configuration file %s not found, using defaults", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Unable to read configuration file %s: %s", path, exc)
        return {}
    return ensure_mapping(payload)

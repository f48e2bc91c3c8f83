"""Logging setup for the dashboard service.

Service events go to the console and to a per-run log file. Poll session
lifecycle events are logged under `CHARGEBACK.sessions` and are also written
to their own file, so one session can be followed from start to stop without
the request traffic around it.
"""

from __future__ import annotations

import logging
import logging.config
from datetime import datetime
from os import makedirs
from os.path import join
from typing import Any

from CHARGEBACK.server.common.constants import LOGS_PATH
from CHARGEBACK.server.common.utils.types import coerce_str
from CHARGEBACK.server.common.utils.variables import env_variables

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
SERVICE_LOGGER = "CHARGEBACK"
SESSION_LOGGER = "CHARGEBACK.sessions"


# -----------------------------------------------------------------------------
def resolve_log_level(value: Any, default: str = "INFO") -> str:
    level = coerce_str(value, default).upper()
    return level if level in LOG_LEVELS else default


# -----------------------------------------------------------------------------
def build_log_config(console_level: str, log_dir: str, timestamp: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%d-%m-%Y %H:%M:%S",
            },
            "console": {"format": "%(levelname)s - %(name)s - %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": console_level,
                "formatter": "console",
            },
            "service_file": {
                "class": "logging.FileHandler",
                "level": "DEBUG",
                "formatter": "detailed",
                "filename": join(log_dir, f"CHARGEBACK_{timestamp}.log"),
                "encoding": "utf-8",
                "delay": True,
            },
            "sessions_file": {
                "class": "logging.FileHandler",
                "level": "DEBUG",
                "formatter": "detailed",
                "filename": join(log_dir, f"sessions_{timestamp}.log"),
                "encoding": "utf-8",
                "delay": True,
            },
        },
        "loggers": {
            SERVICE_LOGGER: {
                "level": "DEBUG",
                "handlers": ["console", "service_file"],
                "propagate": False,
            },
            # also propagates to the service handlers
            SESSION_LOGGER: {"level": "DEBUG", "handlers": ["sessions_file"]},
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }


###############################################################################
makedirs(LOGS_PATH, exist_ok=True)
logging.config.dictConfig(
    build_log_config(
        console_level=resolve_log_level(env_variables.get("CHARGEBACK_LOG_LEVEL")),
        log_dir=LOGS_PATH,
        timestamp=datetime.now().strftime("%Y%m%d_%H%M%S"),
    )
)
logger = logging.getLogger(SERVICE_LOGGER)
session_logger = logging.getLogger(SESSION_LOGGER)

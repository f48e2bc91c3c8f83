from __future__ import annotations

from os.path import abspath, join

# [PATHS]
###############################################################################
ROOT_DIR = abspath(join(__file__, "../../../.."))
PROJECT_DIR = join(ROOT_DIR, "CHARGEBACK")
SETTING_PATH = join(PROJECT_DIR, "settings")
RESOURCES_PATH = join(PROJECT_DIR, "resources")
LOGS_PATH = join(RESOURCES_PATH, "logs")
ENV_FILE_PATH = join(SETTING_PATH, ".env")


###############################################################################
CONFIGURATION_FILE = join(SETTING_PATH, "configurations.json")


###############################################################################
FASTAPI_TITLE = "CHARGEBACK Dashboard Backend"
FASTAPI_DESCRIPTION = "FastAPI service driving the chargeback dashboard"
FASTAPI_VERSION = "0.4.0"


# [JOB STATUS VALUES]
###############################################################################
STATUS_IDLE = "idle"
STATUS_RUNNING = "running"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

ACTIVE_STATUSES = frozenset({STATUS_RUNNING, STATUS_PROCESSING})
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED})


# [JOB FAMILIES]
###############################################################################
JOB_FAMILY_REFRESH = "refresh"
JOB_FAMILY_REPORT = "report"
STOP_POLICY_PER_KEY = "per_key"
STOP_POLICY_GLOBAL = "global"
DISPATCH_MODE_CONCURRENT = "concurrent"
DISPATCH_MODE_SEQUENTIAL = "sequential"
DISPATCH_MODES = (DISPATCH_MODE_CONCURRENT, DISPATCH_MODE_SEQUENTIAL)
REPORT_FORMAT_JSON = "json"
REPORT_EXPORT_MEDIA_TYPES = {"json": "application/json", "csv": "text/csv"}
REPORT_JOB_KEY = "report"


# [BACKEND ENDPOINTS]
###############################################################################
BACKEND_REFRESH_PREFIX = "/refresh"
BACKEND_REFRESH_STATUS_ENDPOINT = "/refresh/status"
BACKEND_GENERATE_ENDPOINT = "/generate"
BACKEND_GENERATE_STATUS_ENDPOINT = "/status"
BACKEND_REPORTS_ENDPOINT = "/reports"
BACKEND_REPORT_ENDPOINT = "/reports/{report_id}"
BACKEND_REPORT_DOWNLOAD_ENDPOINT = "/reports/{report_id}/download/{export_format}"
BACKEND_DGS_ENDPOINT = "/dgs"
BACKEND_DG_DETAILS_ENDPOINT = "/dgs/{dg_id}/details"
BACKEND_FILTERS_SUFFIX = "/filters"
ALL_DGS_PAGE_LIMIT = 100


# [INVENTORY FILTERS]
###############################################################################
NULL_FILTER_SENTINEL = "N/A"
NULL_FILTER_VALUE = "null"
INVENTORY_ENTITIES = ("hosts", "applications", "synthetics", "dgs")

# entity -> {query field: accepts the N/A sentinel}
INVENTORY_MULTI_VALUE_FILTERS: dict[str, dict[str, bool]] = {
    "hosts": {
        "state": True,
        "monitoring_mode": True,
        "dg": True,
        "information_system": True,
    },
    "applications": {
        "type": True,
        "dg": True,
        "information_system": True,
    },
    "synthetics": {
        "dg": True,
        "information_system": True,
        "synthetic_type": False,
        "http_type": True,
    },
    "dgs": {},
}

INVENTORY_SCALAR_FILTERS: dict[str, tuple[str, ...]] = {
    "hosts": ("managed", "min_memory", "max_memory"),
    "applications": (),
    "synthetics": (),
    "dgs": (),
}

# entity -> option lists returned by /{entity}/filters that accept N/A
INVENTORY_NULLABLE_OPTIONS: dict[str, tuple[str, ...]] = {
    "hosts": ("states", "monitoring_modes", "dgs", "information_systems"),
    "applications": ("app_types", "dgs", "information_systems"),
    "synthetics": ("dgs", "information_systems", "http_types"),
    "dgs": (),
}


# [ROUTES]
###############################################################################
VIEWS_ROUTER_PREFIX = "/views"
VIEW_ENDPOINT = "/{view_id}"
VIEW_NOTIFICATIONS_ENDPOINT = "/{view_id}/notifications"
VIEW_REFRESH_ENDPOINT = "/{view_id}/refresh"
VIEW_REPORTS_ENDPOINT = "/{view_id}/reports"
INVENTORY_ROUTER_PREFIX = "/inventory"
INVENTORY_LIST_ENDPOINT = "/{entity}"
INVENTORY_FILTERS_ENDPOINT = "/{entity}/filters"
INVENTORY_DG_DETAILS_ENDPOINT = "/dgs/{dg_id}/details"
REPORTS_ROUTER_PREFIX = "/reports"
REPORTS_LIST_ENDPOINT = ""
REPORT_DETAIL_ENDPOINT = "/{report_id}"
REPORT_DOWNLOAD_ENDPOINT = "/{report_id}/download/{export_format}"
ROOT_ENDPOINT = "/"
DOCS_ENDPOINT = "/docs"

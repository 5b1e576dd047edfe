from .config import MAX_PAGE_SIZE, Settings, load_settings
from .errors import (
    BalancerError,
    ConfigError,
    DownloadStatusError,
    DownloadTimeoutError,
    NoVersionsFound,
    PermissionGrantError,
    PreconditionViolation,
    PublishError,
    RunError,
    TransportError,
    run_error_from_exc,
)
from .logging import ILogger, bind, configure_logging, get_logger
from .provenance import RunProvenance, new_run_id
from .time import format_duration_ms, monotonic_ms, utc_now_iso

__all__ = [
    "MAX_PAGE_SIZE",
    "Settings",
    "load_settings",
    "BalancerError",
    "ConfigError",
    "DownloadStatusError",
    "DownloadTimeoutError",
    "NoVersionsFound",
    "PermissionGrantError",
    "PreconditionViolation",
    "PublishError",
    "RunError",
    "TransportError",
    "run_error_from_exc",
    "ILogger",
    "bind",
    "configure_logging",
    "get_logger",
    "RunProvenance",
    "new_run_id",
    "format_duration_ms",
    "monotonic_ms",
    "utc_now_iso",
]

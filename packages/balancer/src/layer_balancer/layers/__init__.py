from .balance import (
    Balancer,
    BalanceConfig,
    BalanceResult,
    BalanceState,
    build_balancer,
    copy_version,
)
from .discovery import discover_versions
from .enrichment import enrich_versions
from .lambda_store import LambdaLayerStore
from .models import CopyResult, ListPage, ReplicationJob, VersionRecord, VersionReference
from .store import LayerStore
from .transfer import download_package, make_http_client

__all__ = [
    "Balancer",
    "BalanceConfig",
    "BalanceResult",
    "BalanceState",
    "build_balancer",
    "copy_version",
    "discover_versions",
    "enrich_versions",
    "LambdaLayerStore",
    "CopyResult",
    "ListPage",
    "ReplicationJob",
    "VersionRecord",
    "VersionReference",
    "LayerStore",
    "download_package",
    "make_http_client",
]

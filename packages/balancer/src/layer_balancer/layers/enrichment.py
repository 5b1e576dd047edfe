from __future__ import annotations

from typing import Iterable

import structlog

from .models import VersionRecord, VersionReference
from .store import LayerStore

log = structlog.get_logger(__name__)

DEFAULT_METADATA_TIMEOUT_S = 5.0


def enrich_versions(
    store: LayerStore,
    refs: Iterable[VersionReference],
    *,
    timeout: float = DEFAULT_METADATA_TIMEOUT_S,
) -> list[VersionRecord]:
    """
    Resolve each reference to its full metadata, one call at a time,
    and return the records sorted by version ascending.
    """
    records: list[VersionRecord] = []
    for ref in refs:
        records.append(store.get_version_metadata(ref, timeout=timeout))
        log.debug("enrich.version", arn=ref.arn, version=records[-1].version)

    records.sort(key=lambda r: r.version)
    return records

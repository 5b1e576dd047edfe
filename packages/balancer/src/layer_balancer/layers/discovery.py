from __future__ import annotations

import structlog

from layer_balancer.core.config import MAX_PAGE_SIZE
from layer_balancer.core.errors import NoVersionsFound

from .models import VersionReference
from .store import LayerStore

log = structlog.get_logger(__name__)


def discover_versions(
    store: LayerStore, name: str, *, page_size: int = MAX_PAGE_SIZE
) -> list[VersionReference]:
    """
    Drain every listing page for `name`.

    Raises NoVersionsFound when the first page is empty. Store errors
    propagate unchanged and nothing partial is returned.
    """
    page = store.list_versions(name, page_size=page_size)
    if not page.items:
        raise NoVersionsFound(name)

    refs: list[VersionReference] = list(page.items)
    pages = 1
    log.debug(
        "discovery.page",
        layer=name,
        page=pages,
        items=len(page.items),
        has_more=page.next_marker is not None,
    )

    while page.next_marker is not None:
        page = store.list_versions(name, page_size=page_size, marker=page.next_marker)
        refs.extend(page.items)
        pages += 1
        log.debug(
            "discovery.page",
            layer=name,
            page=pages,
            items=len(page.items),
            has_more=page.next_marker is not None,
        )

    return refs

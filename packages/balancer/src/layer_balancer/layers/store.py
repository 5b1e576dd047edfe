from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from .models import ListPage, VersionRecord, VersionReference

PUBLIC_STATEMENT_ID = "PublicLayerAccess"
PUBLIC_ACTION = "lambda:GetLayerVersion"
PUBLIC_PRINCIPAL = "*"


@runtime_checkable
class LayerStore(Protocol):
    """
    The four layer operations the balancer needs from a region/account.
    """

    def list_versions(
        self, name: str, *, page_size: int, marker: str | None = None
    ) -> ListPage: ...

    def get_version_metadata(
        self, ref: VersionReference, *, timeout: float
    ) -> VersionRecord: ...

    def publish_version(
        self,
        name: str,
        *,
        content: bytes,
        description: str,
        license_info: str,
        compatible_runtimes: Sequence[str],
        compatible_architectures: Sequence[str],
    ) -> int: ...

    def grant_public_permission(self, name: str, version_number: int) -> None: ...

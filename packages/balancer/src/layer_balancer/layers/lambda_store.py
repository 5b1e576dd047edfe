from __future__ import annotations

from typing import Any, Callable, Sequence

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from layer_balancer.aws.client_config import ClientConfig
from layer_balancer.aws.retry import retrying
from layer_balancer.core.errors import (
    PermissionGrantError,
    PublishError,
    TransportError,
)

from .models import ListPage, VersionRecord, VersionReference
from .store import PUBLIC_ACTION, PUBLIC_PRINCIPAL, PUBLIC_STATEMENT_ID

log = structlog.get_logger(__name__)

ClientFactory = Callable[[float | None], Any]


class LambdaLayerStore:
    """
    LayerStore backed by the AWS Lambda API in one region/account.

    `client_factory(timeout)` returns a boto3 lambda client; one client is
    kept per distinct timeout so metadata calls get their own read timeout.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        *,
        max_attempts: int = 5,
        max_backoff_s: float = 1.0,
    ) -> None:
        self._client_factory = client_factory
        self._clients: dict[float | None, Any] = {}
        self.max_attempts = max_attempts
        self.max_backoff_s = max_backoff_s

    @classmethod
    def from_client_config(cls, cc: ClientConfig, **kw: Any) -> "LambdaLayerStore":
        return cls(lambda timeout: cc.lambda_client(timeout=timeout), **kw)

    def _client(self, timeout: float | None = None) -> Any:
        if timeout not in self._clients:
            self._clients[timeout] = self._client_factory(timeout)
        return self._clients[timeout]

    def _call(
        self,
        operation: str,
        fn: Callable[..., Any],
        *,
        deadline: float | None = None,
        **params: Any,
    ) -> Any:
        policy = retrying(
            operation=operation,
            max_attempts=self.max_attempts,
            cap=self.max_backoff_s,
            deadline=deadline,
        )
        return policy(fn, **params)

    def list_versions(
        self, name: str, *, page_size: int, marker: str | None = None
    ) -> ListPage:
        params: dict[str, Any] = {"LayerName": name, "MaxItems": page_size}
        if marker:
            params["Marker"] = marker
        try:
            out = self._call(
                "ListLayerVersions", self._client().list_layer_versions, **params
            )
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"ListLayerVersions failed for {name}: {e}") from e

        return ListPage(
            items=tuple(
                VersionReference.from_api(item) for item in out.get("LayerVersions", [])
            ),
            next_marker=out.get("NextMarker") or None,
        )

    def get_version_metadata(
        self, ref: VersionReference, *, timeout: float
    ) -> VersionRecord:
        try:
            out = self._call(
                "GetLayerVersionByArn",
                self._client(timeout).get_layer_version_by_arn,
                deadline=timeout,
                Arn=ref.arn,
            )
        except (BotoCoreError, ClientError) as e:
            raise TransportError(f"GetLayerVersionByArn failed for {ref.arn}: {e}") from e
        return VersionRecord.from_api(out)

    def publish_version(
        self,
        name: str,
        *,
        content: bytes,
        description: str,
        license_info: str,
        compatible_runtimes: Sequence[str],
        compatible_architectures: Sequence[str],
    ) -> int:
        params: dict[str, Any] = {
            "LayerName": name,
            "Content": {"ZipFile": content},
            "CompatibleRuntimes": list(compatible_runtimes),
            "CompatibleArchitectures": list(compatible_architectures),
        }
        if description:
            params["Description"] = description
        if license_info:
            params["LicenseInfo"] = license_info

        try:
            out = self._call(
                "PublishLayerVersion", self._client().publish_layer_version, **params
            )
        except (BotoCoreError, ClientError) as e:
            raise PublishError(
                f"PublishLayerVersion failed for {name}: {e}", layer_name=name
            ) from e

        version = int(out["Version"])
        log.debug("lambda.published", layer=name, version=version, bytes=len(content))
        return version

    def grant_public_permission(self, name: str, version_number: int) -> None:
        try:
            self._call(
                "AddLayerVersionPermission",
                self._client().add_layer_version_permission,
                LayerName=name,
                VersionNumber=version_number,
                StatementId=PUBLIC_STATEMENT_ID,
                Action=PUBLIC_ACTION,
                Principal=PUBLIC_PRINCIPAL,
            )
        except (BotoCoreError, ClientError) as e:
            raise PermissionGrantError(
                f"AddLayerVersionPermission failed for {name}:{version_number}: {e}",
                layer_name=name,
                version=version_number,
            ) from e

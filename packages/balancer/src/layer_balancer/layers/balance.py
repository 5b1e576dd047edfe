from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable

import boto3

from layer_balancer.aws.client_config import (
    SessionFactory,
    new_client_config_with_role,
    new_default_client_config,
)
from layer_balancer.core.config import MAX_PAGE_SIZE, Settings
from layer_balancer.core.errors import ConfigError, NoVersionsFound, PreconditionViolation
from layer_balancer.core.logging import ILogger, get_logger

from .discovery import discover_versions
from .enrichment import DEFAULT_METADATA_TIMEOUT_S, enrich_versions
from .lambda_store import LambdaLayerStore
from .models import CopyResult, ReplicationJob, VersionRecord
from .store import LayerStore
from .transfer import DEFAULT_DOWNLOAD_TIMEOUT_S, download_package, make_http_client

Downloader = Callable[[str | None], bytes]


class BalanceState(str, Enum):
    INIT = "init"
    VALIDATING = "validating"
    DISCOVERING_SOURCE = "discovering_source"
    DISCOVERING_DEST = "discovering_dest"
    ENRICHING = "enriching"
    COPYING = "copying"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class BalanceConfig:
    layer_name: str
    read_region: str = ""
    write_region: str = ""
    write_role: str = ""

    # destructive runs must opt out explicitly
    dry_run: bool = True
    start_at: int = 1

    page_size: int = MAX_PAGE_SIZE
    metadata_timeout_s: float = DEFAULT_METADATA_TIMEOUT_S
    download_timeout_s: float = DEFAULT_DOWNLOAD_TIMEOUT_S
    max_attempts: int = 5
    max_backoff_s: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings, **kw: Any) -> "BalanceConfig":
        return cls(
            page_size=settings.page_size,
            metadata_timeout_s=settings.metadata_timeout_s,
            download_timeout_s=settings.download_timeout_s,
            max_attempts=settings.max_attempts,
            max_backoff_s=settings.max_backoff_s,
            **kw,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "layer_name": self.layer_name,
            "read_region": self.read_region,
            "write_region": self.write_region,
            "write_role": self.write_role,
            "dry_run": self.dry_run,
            "start_at": self.start_at,
        }


@dataclass(frozen=True, slots=True)
class BalanceResult:
    layer_name: str
    dry_run: bool
    source_versions: int
    copies: tuple[CopyResult, ...] = ()
    skipped: tuple[int, ...] = field(default_factory=tuple)


def copy_version(
    store: LayerStore,
    layer_name: str,
    record: VersionRecord,
    *,
    dry_run: bool,
    download: Downloader,
    log: ILogger,
) -> CopyResult:
    """
    Republish one source version into `store`.

    In dry-run nothing is downloaded and `store` is never called.
    """
    log.info("copy.start", source_arn=record.layer_version_arn, version=record.version)

    if dry_run:
        return CopyResult(
            source_version=record.version,
            source_arn=record.layer_version_arn,
            destination_version=None,
            bytes=0,
            dry_run=True,
        )

    content = download(record.content_location)

    new_version = store.publish_version(
        layer_name,
        content=content,
        description=record.description,
        license_info=record.license_info,
        compatible_runtimes=record.compatible_runtimes,
        compatible_architectures=record.compatible_architectures,
    )
    store.grant_public_permission(layer_name, new_version)

    log.info(
        "copy.finish",
        version=record.version,
        destination_version=new_version,
        bytes=len(content),
    )
    return CopyResult(
        source_version=record.version,
        source_arn=record.layer_version_arn,
        destination_version=new_version,
        bytes=len(content),
        dry_run=False,
    )


class Balancer:
    """
    Copies every version of one layer from `source` to an empty `destination`.

    Runs are single-shot: a failure leaves already-copied versions in the
    destination and `state` at ABORTED. `copies` holds what was done so far.
    """

    def __init__(
        self,
        *,
        source: LayerStore,
        destination: LayerStore,
        cfg: BalanceConfig,
        download: Downloader | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self.source = source
        self.destination = destination
        self.cfg = cfg
        self._download = download
        self.log = (logger or get_logger("layer_balancer")).bind(
            layer=cfg.layer_name, dry_run=cfg.dry_run
        )

        self.state = BalanceState.INIT
        self.copies: list[CopyResult] = []
        self.job: ReplicationJob | None = None

    def _enter(self, state: BalanceState) -> None:
        self.log.debug("balance.state", previous=self.state.value, state=state.value)
        self.state = state

    def run(self) -> BalanceResult:
        try:
            return self._run()
        except Exception as e:
            self.log.error(
                "balance.aborted", state=self.state.value, error=str(e), copied=len(self.copies)
            )
            self._enter(BalanceState.ABORTED)
            raise

    def _run(self) -> BalanceResult:
        cfg = self.cfg

        self._enter(BalanceState.VALIDATING)
        _validate(cfg)

        self._enter(BalanceState.DISCOVERING_SOURCE)
        source_refs = discover_versions(
            self.source, cfg.layer_name, page_size=cfg.page_size
        )

        self._enter(BalanceState.DISCOVERING_DEST)
        try:
            dest_refs = discover_versions(
                self.destination, cfg.layer_name, page_size=cfg.page_size
            )
        except NoVersionsFound:
            dest_refs = []

        if dest_refs:
            raise PreconditionViolation(layer_name=cfg.layer_name, count=len(dest_refs))

        self._enter(BalanceState.ENRICHING)
        records = enrich_versions(
            self.source, source_refs, timeout=cfg.metadata_timeout_s
        )
        self.job = ReplicationJob(
            layer_name=cfg.layer_name,
            records=tuple(records),
            dry_run=cfg.dry_run,
            start_at=cfg.start_at,
        )
        self.log.info("balance.discovered", versions=len(records))

        skipped = self.job.skipped()
        if skipped:
            self.log.info(
                "balance.skip",
                start_at=cfg.start_at,
                versions=[r.version for r in skipped],
            )

        self._enter(BalanceState.COPYING)
        http_client = None
        download = self._download
        if download is None:
            http_client = make_http_client(timeout=cfg.download_timeout_s)
            download = partial(
                download_package, timeout=cfg.download_timeout_s, client=http_client
            )

        try:
            for record in self.job.pending():
                self.copies.append(
                    copy_version(
                        self.destination,
                        cfg.layer_name,
                        record,
                        dry_run=cfg.dry_run,
                        download=download,
                        log=self.log,
                    )
                )
        finally:
            if http_client is not None:
                http_client.close()

        self._enter(BalanceState.DONE)
        self.log.info("balance.done", copied=len(self.copies))

        return BalanceResult(
            layer_name=cfg.layer_name,
            dry_run=cfg.dry_run,
            source_versions=len(records),
            copies=tuple(self.copies),
            skipped=tuple(r.version for r in skipped),
        )


def _validate(cfg: BalanceConfig) -> None:
    if not cfg.layer_name.strip():
        raise ConfigError("layer name is required")
    if cfg.start_at < 1:
        raise ConfigError(f"start_at must be >= 1, got {cfg.start_at}")
    if not 1 <= cfg.page_size <= MAX_PAGE_SIZE:
        raise ConfigError(f"page_size must be within 1..{MAX_PAGE_SIZE}, got {cfg.page_size}")


def build_balancer(
    cfg: BalanceConfig,
    *,
    session_factory: SessionFactory = boto3.Session,
    logger: ILogger | None = None,
) -> Balancer:
    """
    Wire a Balancer to the real Lambda API: default credentials for the
    read region, the assumed write role for the write region.
    """
    missing = [
        flag
        for flag, value in (
            ("read_region", cfg.read_region),
            ("write_region", cfg.write_region),
            ("write_role", cfg.write_role),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"missing required settings: {', '.join(missing)}")

    read_cc = new_default_client_config(cfg.read_region, session_factory=session_factory)
    write_cc = new_client_config_with_role(
        cfg.write_region, cfg.write_role, session_factory=session_factory
    )

    retry_kw = {"max_attempts": cfg.max_attempts, "max_backoff_s": cfg.max_backoff_s}
    return Balancer(
        source=LambdaLayerStore.from_client_config(read_cc, **retry_kw),
        destination=LambdaLayerStore.from_client_config(write_cc, **retry_kw),
        cfg=cfg,
        logger=logger,
    )

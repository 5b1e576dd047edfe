from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True, slots=True)
class VersionReference:
    """
    One published layer version as returned by a listing page.

    `version` is informational; records are ordered after enrichment.
    """

    arn: str
    version: int | None = None

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> "VersionReference":
        v = item.get("Version")
        return cls(arn=str(item["LayerVersionArn"]), version=int(v) if v is not None else None)


@dataclass(frozen=True, slots=True)
class ListPage:
    items: tuple[VersionReference, ...]
    next_marker: str | None = None


class VersionRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    version: int = Field(ge=1)
    layer_arn: str
    layer_version_arn: str
    content_location: Optional[str] = None
    code_sha256: Optional[str] = None
    code_size: Optional[int] = Field(default=None, ge=0)
    description: str = ""
    license_info: str = ""
    compatible_runtimes: tuple[str, ...] = ()
    compatible_architectures: tuple[str, ...] = ()
    created_date: Optional[str] = None

    @classmethod
    def from_api(cls, out: Mapping[str, Any]) -> "VersionRecord":
        """Build a record from a GetLayerVersionByArn response."""
        content = out.get("Content") or {}
        return cls(
            version=int(out["Version"]),
            layer_arn=str(out["LayerArn"]),
            layer_version_arn=str(out["LayerVersionArn"]),
            content_location=content.get("Location") or None,
            code_sha256=content.get("CodeSha256"),
            code_size=content.get("CodeSize"),
            description=out.get("Description") or "",
            license_info=out.get("LicenseInfo") or "",
            compatible_runtimes=tuple(out.get("CompatibleRuntimes") or ()),
            compatible_architectures=tuple(out.get("CompatibleArchitectures") or ()),
            created_date=out.get("CreatedDate"),
        )


@dataclass(frozen=True, slots=True)
class ReplicationJob:
    layer_name: str
    records: tuple[VersionRecord, ...]
    dry_run: bool = True
    start_at: int = 1

    def pending(self) -> tuple[VersionRecord, ...]:
        return tuple(r for r in self.records if r.version >= self.start_at)

    def skipped(self) -> tuple[VersionRecord, ...]:
        return tuple(r for r in self.records if r.version < self.start_at)


@dataclass(frozen=True, slots=True)
class CopyResult:
    source_version: int
    source_arn: str
    destination_version: int | None
    bytes: int
    dry_run: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "source_version": self.source_version,
            "source_arn": self.source_arn,
            "destination_version": self.destination_version,
            "bytes": self.bytes,
            "dry_run": self.dry_run,
        }

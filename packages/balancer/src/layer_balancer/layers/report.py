from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from layer_balancer.core.errors import RunError

from .models import CopyResult


@dataclass(slots=True)
class RunReport:
    run_id: str
    started_at_utc: str
    finished_at_utc: str
    status: str  # "success" | "failed"
    state: str
    duration_ms: int

    copies: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[RunError] = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def write_json(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )


def build_run_report(
    *,
    run_id: str,
    started_at_utc: str,
    finished_at_utc: str,
    duration_ms: int,
    state: str,
    copies: Sequence[CopyResult],
    error: RunError | None = None,
    meta: dict[str, Any] | None = None,
) -> RunReport:
    return RunReport(
        run_id=run_id,
        started_at_utc=started_at_utc,
        finished_at_utc=finished_at_utc,
        status="failed" if error is not None else "success",
        state=state,
        duration_ms=duration_ms,
        copies=[c.to_dict() for c in copies],
        error=error,
        meta=meta or {},
    )

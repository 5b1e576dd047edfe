from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from layer_balancer.core import (
    RunError,
    RunProvenance,
    bind,
    configure_logging,
    format_duration_ms,
    get_logger,
    load_settings,
    monotonic_ms,
    new_run_id,
    run_error_from_exc,
    utc_now_iso,
)
from layer_balancer.layers.balance import (
    Balancer,
    BalanceConfig,
    BalanceResult,
    BalanceState,
    build_balancer,
)
from layer_balancer.layers.report import build_run_report

console = Console()


@dataclass(frozen=True, slots=True)
class _Args:
    dry_run: bool
    read_region: str
    write_region: str
    write_role: str
    layer_name: str
    start_at: int


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="layer-balancer",
        description="Copy every version of a Lambda layer into another region/account.",
    )
    p.add_argument(
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Explicitly pass --no-dry-run to perform the copy (default: dry run)",
    )
    p.add_argument(
        "--read-region",
        required=True,
        help="Known good region with a complete layer history",
    )
    p.add_argument(
        "--write-region",
        required=True,
        help="Region the new layer will exist in, this doesn't have to be the same account",
    )
    p.add_argument(
        "--write-role",
        required=True,
        help="Role ARN for write operations, it has to be assumable by your environment role",
    )
    p.add_argument("--layer-name", required=True, help="Layer name to copy")
    p.add_argument(
        "--start-at",
        type=int,
        default=1,
        help="First source layer version to copy; earlier versions are skipped",
    )
    return p


def _args(ns: argparse.Namespace) -> _Args:
    return _Args(
        dry_run=bool(ns.dry_run),
        read_region=str(ns.read_region),
        write_region=str(ns.write_region),
        write_role=str(ns.write_role),
        layer_name=str(ns.layer_name),
        start_at=int(ns.start_at),
    )


def _result_table(result: BalanceResult | None, error: RunError | None, report: Path) -> Table:
    tbl = Table(title="Result", show_header=True, box=None)
    tbl.add_row("status", "[green]ok[/green]" if error is None else "[red]failed[/red]")
    if result is not None:
        tbl.add_row("source versions", str(result.source_versions))
        tbl.add_row(
            "copied",
            ", ".join(
                f"{c.source_version}->{c.destination_version or '-'}"
                for c in result.copies
            )
            or "-",
        )
        if result.skipped:
            tbl.add_row("skipped", ", ".join(str(v) for v in result.skipped))
    if error is not None:
        tbl.add_row("error", f"{error.exc_type}: {error.message}")
    tbl.add_row("report", str(report))
    return tbl


def main(argv: list[str] | None = None) -> int:
    args = _args(_build_parser().parse_args(argv))

    s = load_settings()
    configure_logging(level=s.log_level, fmt=s.log_format)
    log = get_logger("layer_balancer")

    run_id = new_run_id()
    bind(run_id=run_id, command="balance")

    cfg = BalanceConfig.from_settings(
        s,
        layer_name=args.layer_name,
        read_region=args.read_region,
        write_region=args.write_region,
        write_role=args.write_role,
        dry_run=args.dry_run,
        start_at=args.start_at,
    )

    console.print(
        Panel.fit(
            Text(
                f"layer-balancer - {cfg.layer_name}\n"
                f"run_id={run_id}\n"
                f"{cfg.read_region} -> {cfg.write_region}\n"
                f"dry_run={cfg.dry_run}",
                style="bold",
            ),
            title="Run",
        )
    )

    started_at = utc_now_iso()
    t0 = monotonic_ms()

    balancer: Balancer | None = None
    result: BalanceResult | None = None
    error: RunError | None = None
    try:
        balancer = build_balancer(cfg, logger=log)
        with console.status(f"[bold]{cfg.layer_name}[/]", spinner="dots"):
            result = balancer.run()
    except Exception as e:
        error = run_error_from_exc(e)
        log.exception("Run failed", error=str(e))

    duration = monotonic_ms() - t0
    report = build_run_report(
        run_id=run_id,
        started_at_utc=started_at,
        finished_at_utc=utc_now_iso(),
        duration_ms=duration,
        state=(balancer.state if balancer else BalanceState.ABORTED).value,
        copies=balancer.copies if balancer else [],
        error=error,
        meta={
            **cfg.to_dict(),
            "provenance": RunProvenance(run_id=run_id, started_at_utc=started_at).to_dict(),
        },
    )
    report_path = Path(s.run_root) / run_id / "run_report.json"
    report.write_json(report_path)

    log.info(
        "Run complete",
        status=report.status,
        duration=format_duration_ms(duration),
        report=str(report_path),
    )
    console.print(_result_table(result, error, report_path))
    return 0 if error is None else 1


if __name__ == "__main__":
    raise SystemExit(main())

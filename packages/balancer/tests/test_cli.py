from __future__ import annotations

import json
from pathlib import Path

import pytest
from fakes.layer_store import FakeLayerStore, paged
from layer_balancer import cli
from layer_balancer.core.config import load_settings
from layer_balancer.layers.balance import Balancer, BalanceConfig

ARGS = [
    "--read-region",
    "eu-west-1",
    "--write-region",
    "ap-southeast-2",
    "--write-role",
    "arn:aws:iam::012345678912:role/layer-balancer",
    "--layer-name",
    "AWSLambdaPowertoolsPythonV2",
]


@pytest.fixture(autouse=True)
def _settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LAYER_BALANCER_RUN_ROOT", str(tmp_path / "_runs"))
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


def _install(monkeypatch: pytest.MonkeyPatch, destination: FakeLayerStore) -> list[BalanceConfig]:
    seen: list[BalanceConfig] = []

    def fake_build(cfg: BalanceConfig, **kw) -> Balancer:
        seen.append(cfg)
        return Balancer(
            source=FakeLayerStore.with_versions([78, 77, 79, 80]),
            destination=destination,
            cfg=cfg,
            download=lambda location: b"zip",
            logger=kw.get("logger"),
        )

    monkeypatch.setattr(cli, "build_balancer", fake_build)
    return seen


def _report(tmp_path: Path) -> dict:
    reports = list((tmp_path / "_runs").glob("*/run_report.json"))
    assert len(reports) == 1
    return json.loads(reports[0].read_text(encoding="utf-8"))


def test_main_defaults_to_dry_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    destination = FakeLayerStore()
    seen = _install(monkeypatch, destination)

    assert cli.main(ARGS) == 0

    assert seen[0].dry_run is True
    assert seen[0].start_at == 1
    assert destination.publish_calls == []

    report = _report(tmp_path)
    assert report["status"] == "success"
    assert report["state"] == "done"
    assert report["meta"]["dry_run"] is True
    assert [c["source_version"] for c in report["copies"]] == [77, 78, 79, 80]


def test_main_no_dry_run_copies(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    destination = FakeLayerStore()
    seen = _install(monkeypatch, destination)

    assert cli.main([*ARGS, "--no-dry-run", "--start-at", "79"]) == 0

    assert seen[0].dry_run is False
    assert seen[0].start_at == 79
    assert len(destination.publish_calls) == 2

    report = _report(tmp_path)
    assert [(c["source_version"], c["destination_version"]) for c in report["copies"]] == [
        (79, 1),
        (80, 2),
    ]


def test_main_reports_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    destination = FakeLayerStore(pages=paged([1, 2], [2]))
    _install(monkeypatch, destination)

    assert cli.main([*ARGS, "--no-dry-run"]) == 1

    report = _report(tmp_path)
    assert report["status"] == "failed"
    assert report["state"] == "aborted"
    assert report["error"]["exc_type"] == "PreconditionViolation"
    assert "found 2 versions" in report["error"]["message"]
    assert report["copies"] == []


def test_main_requires_layer_name() -> None:
    with pytest.raises(SystemExit) as ei:
        cli.main(ARGS[:-2])
    assert ei.value.code == 2

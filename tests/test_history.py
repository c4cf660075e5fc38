"""Tests for report comparison, scan history and threshold checks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from dsadopt.config import AdoptionConfig, DesignSystemDef, ThresholdConfig
from dsadopt.metrics.aggregator import RepoScanData, aggregate_results
from dsadopt.metrics.calculator import calculate_metrics
from dsadopt.metrics.history import compare_reports, load_report_snapshot, save_history
from dsadopt.metrics.thresholds import check_thresholds
from dsadopt.models.metrics import ScanMetrics, ScanReport
from dsadopt.models.usage import CategorizedUsage, Category, ImportFact, UsageRecord


def _snapshot(
    rate: float,
    *,
    timestamp: str = "2026-01-01T00:00:00+00:00",
    design_systems: dict[str, float] | None = None,
    repos: dict[str, float] | None = None,
    components: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "meta": {"timestamp": timestamp},
        "summary": {
            "adoption_rate": rate,
            "design_systems": [
                {"name": name, "adoption_rate": value}
                for name, value in (design_systems or {}).items()
            ],
        },
        "by_repository": [
            {"name": name, "adoption_rate": value} for name, value in (repos or {}).items()
        ],
        "by_component": {
            "design_systems": [
                {"name": "A", "components": [{"name": name} for name in components or []]}
            ]
        },
    }


class TestCompareReports:
    def test_overall_delta_and_baseline_date(self) -> None:
        comparison = compare_reports(_snapshot(40.0), _snapshot(55.0))
        assert comparison.adoption_delta == pytest.approx(15.0)
        assert comparison.baseline_date == "2026-01-01T00:00:00+00:00"

    def test_design_system_deltas_match_by_name(self) -> None:
        comparison = compare_reports(
            _snapshot(0, design_systems={"A": 30.0, "B": 10.0}),
            _snapshot(0, design_systems={"B": 12.0, "A": 25.0, "C": 5.0}),
        )
        deltas = dict(comparison.by_design_system)
        assert deltas["A"] == pytest.approx(-5.0)
        assert deltas["B"] == pytest.approx(2.0)
        assert deltas["C"] == pytest.approx(5.0)

    @pytest.mark.parametrize(
        ("before", "after", "trend"),
        [(50.0, 51.0, "up"), (50.0, 49.0, "down"), (50.0, 50.4, "stable"), (50.0, 49.5, "stable")],
    )
    def test_repository_trend(self, before: float, after: float, trend: str) -> None:
        comparison = compare_reports(
            _snapshot(0, repos={"web": before}), _snapshot(0, repos={"web": after})
        )
        (delta,) = comparison.by_repository
        assert delta.name == "web"
        assert delta.trend == trend

    def test_new_repository_compared_against_zero(self) -> None:
        comparison = compare_reports(_snapshot(0), _snapshot(0, repos={"admin": 20.0}))
        (delta,) = comparison.by_repository
        assert delta.adoption_delta == pytest.approx(20.0)
        assert delta.trend == "up"

    def test_component_set_difference(self) -> None:
        comparison = compare_reports(
            _snapshot(0, components=["Button", "Modal"]),
            _snapshot(0, components=["Tabs", "Button", "Avatar"]),
        )
        assert comparison.new_components == ("Avatar", "Tabs")
        assert comparison.removed_components == ("Modal",)

    def test_to_dict(self) -> None:
        data = compare_reports(
            _snapshot(10.0, design_systems={"A": 10.0}), _snapshot(20.0, design_systems={"A": 20.0})
        ).to_dict()
        assert data["by_design_system"] == [{"name": "A", "adoption_delta": 10.0}]
        assert json.loads(json.dumps(data)) == data


class TestLoadReportSnapshot:
    def test_reads_json_object(self, tmp_path: Path) -> None:
        path = tmp_path / "report.json"
        path.write_text(json.dumps(_snapshot(12.0)), encoding="utf-8")
        assert load_report_snapshot(path)["summary"]["adoption_rate"] == 12.0

    def test_rejects_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "report.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError, match="not a JSON object"):
            load_report_snapshot(path)


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


def _metrics() -> ScanMetrics:
    config = AdoptionConfig(design_systems=[DesignSystemDef("A", ["@a/ui"])])

    def usage(name: str, category: Category, ds: str | None = None) -> CategorizedUsage:
        return CategorizedUsage(
            usage=UsageRecord(name, name, ImportFact("x"), "src/App.tsx"),
            category=category,
            design_system_name=ds,
        )

    usages = [
        usage("Button", Category.DESIGN_SYSTEM, "A"),
        usage("Custom", Category.LOCAL),
        usage("Other", Category.LOCAL),
        usage("Layout", Category.LOCAL_LIBRARY),
    ]
    return calculate_metrics(usages, config, files_scanned=1)


class TestCheckThresholds:
    def test_no_thresholds_pass(self) -> None:
        assert check_thresholds(_metrics(), ThresholdConfig()) == []

    def test_min_adoption_rate(self) -> None:
        violations = check_thresholds(_metrics(), ThresholdConfig(min_adoption_rate=50.0))
        assert len(violations) == 1
        assert "25.0%" in violations[0]

    def test_max_custom_components_counts_local_and_local_library(self) -> None:
        assert check_thresholds(_metrics(), ThresholdConfig(max_custom_components=3)) == []
        violations = check_thresholds(_metrics(), ThresholdConfig(max_custom_components=2))
        assert violations == ["3 custom components exceed the maximum of 2"]

    def test_per_design_system_minimum(self) -> None:
        violations = check_thresholds(
            _metrics(), ThresholdConfig(per_design_system={"A": 20.0, "Missing": 1.0})
        )
        assert len(violations) == 1
        assert violations[0].startswith("Missing")


# ---------------------------------------------------------------------------
# History persistence
# ---------------------------------------------------------------------------


def _report() -> ScanReport:
    config = AdoptionConfig(design_systems=[DesignSystemDef("A", ["@a/ui"])])
    usages = [
        CategorizedUsage(
            usage=UsageRecord(f"C{i}", f"C{i}", ImportFact("@a/ui"), "src/App.tsx"),
            category=Category.DESIGN_SYSTEM,
            design_system_name="A",
        )
        for i in range(2)
    ]
    return aggregate_results(
        [RepoScanData(name="web", path="/w", usages=usages, files_scanned=1)],
        config,
        timestamp="2026-02-01T00:00:00+00:00",
    )


class TestSaveHistory:
    def test_writes_scan_and_manifest(self, tmp_path: Path) -> None:
        history = tmp_path / "history"

        saved = save_history(_report(), history)

        assert saved.parent == history / "scans"
        assert json.loads(saved.read_text(encoding="utf-8"))["tool"] == "dsadopt"
        manifest = json.loads((history / "manifest.json").read_text(encoding="utf-8"))
        assert manifest["latest_scan"] == f"scans/{saved.name}"
        assert manifest["scans"] == [
            {
                "date": "2026-02-01T00:00:00+00:00",
                "adoption_rate": 100.0,
                "file": f"scans/{saved.name}",
            }
        ]

    def test_saved_scan_is_a_comparable_snapshot(self, tmp_path: Path) -> None:
        saved = save_history(_report(), tmp_path)
        comparison = compare_reports(load_report_snapshot(saved), _report().to_dict())
        assert comparison.adoption_delta == 0.0

    def test_newest_first_and_capped(self, tmp_path: Path) -> None:
        paths = [save_history(_report(), tmp_path, max_entries=3) for _ in range(5)]

        manifest = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))

        assert [entry["file"] for entry in manifest["scans"]] == [
            f"scans/{path.name}" for path in reversed(paths[-3:])
        ]
        assert len(list((tmp_path / "scans").iterdir())) == 5

    def test_unreadable_manifest_is_replaced(self, tmp_path: Path) -> None:
        (tmp_path / "manifest.json").write_text("{not json", encoding="utf-8")

        saved = save_history(_report(), tmp_path)

        manifest = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))
        assert [entry["file"] for entry in manifest["scans"]] == [f"scans/{saved.name}"]

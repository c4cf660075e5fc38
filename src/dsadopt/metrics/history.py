"""Report snapshot comparison and on-disk scan history."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dsadopt.models.metrics import ReportComparison, RepositoryDelta
from dsadopt.reporters.json_reporter import JSONReporter

if TYPE_CHECKING:
    from dsadopt.models.metrics import ScanReport

logger = logging.getLogger(__name__)

# Changes within this many percentage points count as stable.
TREND_DEAD_BAND = 0.5

MANIFEST_FILE_NAME = "manifest.json"
MAX_HISTORY_ENTRIES = 50


def _trend(delta: float) -> str:
    if delta > TREND_DEAD_BAND:
        return "up"
    if delta < -TREND_DEAD_BAND:
        return "down"
    return "stable"


def _rates_by_name(entries: Any) -> dict[str, float]:
    if not isinstance(entries, list):
        return {}
    return {
        str(entry["name"]): float(entry.get("adoption_rate", 0.0))
        for entry in entries
        if isinstance(entry, dict) and "name" in entry
    }


def _component_names(snapshot: dict[str, Any]) -> set[str]:
    by_component = snapshot.get("by_component", {})
    names: set[str] = set()
    for design_system in by_component.get("design_systems", []):
        names.update(str(c["name"]) for c in design_system.get("components", []))
    return names


def compare_reports(baseline: dict[str, Any], current: dict[str, Any]) -> ReportComparison:
    """Diff two snapshots by design-system and repository name.

    Entries missing from the baseline are compared against ``0``.
    """
    current_summary = current.get("summary", {})
    baseline_summary = baseline.get("summary", {})

    baseline_ds = _rates_by_name(baseline_summary.get("design_systems"))
    by_design_system = tuple(
        (name, rate - baseline_ds.get(name, 0.0))
        for name, rate in _rates_by_name(current_summary.get("design_systems")).items()
    )

    baseline_repos = _rates_by_name(baseline.get("by_repository"))
    by_repository = tuple(
        RepositoryDelta(name=name, adoption_delta=delta, trend=_trend(delta))
        for name, delta in (
            (name, rate - baseline_repos.get(name, 0.0))
            for name, rate in _rates_by_name(current.get("by_repository")).items()
        )
    )

    current_components = _component_names(current)
    baseline_components = _component_names(baseline)

    return ReportComparison(
        baseline_date=str(baseline.get("meta", {}).get("timestamp", "")),
        adoption_delta=float(current_summary.get("adoption_rate", 0.0))
        - float(baseline_summary.get("adoption_rate", 0.0)),
        by_design_system=by_design_system,
        by_repository=by_repository,
        new_components=tuple(sorted(current_components - baseline_components)),
        removed_components=tuple(sorted(baseline_components - current_components)),
    )


def load_report_snapshot(path: str | Path) -> dict[str, Any]:
    """Read a JSON report snapshot written by ``JSONReporter``."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Report snapshot {path} is not a JSON object")
    return data


# ── History persistence ──────────────────────────────────────────


def _load_manifest(manifest_path: Path) -> dict[str, Any]:
    empty: dict[str, Any] = {"scans": [], "latest_scan": None}
    if not manifest_path.is_file():
        return empty
    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable history manifest %s: %s", manifest_path, exc)
        return empty
    if not isinstance(manifest, dict) or not isinstance(manifest.get("scans"), list):
        logger.warning("Ignoring malformed history manifest %s", manifest_path)
        return empty
    return manifest


def save_history(
    report: ScanReport,
    history_dir: str | Path,
    *,
    max_entries: int = MAX_HISTORY_ENTRIES,
) -> Path:
    """Store *report* under ``<history_dir>/scans`` and record it in the manifest.

    The manifest lists the newest scan first and keeps at most *max_entries*
    entries.  Scan files dropped from the manifest stay on disk.

    Returns:
        Path of the written scan file.
    """
    history_root = Path(history_dir)
    scans_dir = history_root / "scans"
    scans_dir.mkdir(parents=True, exist_ok=True)

    stamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S-%f")
    relative = f"scans/{stamp}.json"
    counter = 1
    while (history_root / relative).exists():
        relative = f"scans/{stamp}-{counter}.json"
        counter += 1
    scan_path = history_root / relative
    scan_path.write_text(JSONReporter().generate_string(report), encoding="utf-8")

    manifest_path = history_root / MANIFEST_FILE_NAME
    manifest = _load_manifest(manifest_path)
    entry = {
        "date": report.meta.timestamp,
        "adoption_rate": report.summary.adoption_rate,
        "file": relative,
    }
    manifest["scans"] = [entry, *manifest["scans"]][:max_entries]
    manifest["latest_scan"] = relative
    manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")

    logger.info("Saved scan history to %s", scan_path)
    return scan_path

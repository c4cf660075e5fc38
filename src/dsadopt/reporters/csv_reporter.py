"""Spreadsheet-friendly CSV export of a scan report.

The document holds a short ``#`` comment header, one row per repository and
one row per indexed component, with a blank line between the two tables.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from dsadopt.models.metrics import ComponentStat, ScanReport

logger = logging.getLogger(__name__)

COMPONENT_HEADER = ["Component", "Category", "DS Name", "Package", "Instances", "Files Used In"]


def _rate(value: float) -> str:
    return f"{value:.2f}"


def _component_row(stat: ComponentStat, category: str, design_system: str = "") -> list[str]:
    return [
        stat.name,
        category,
        design_system,
        stat.dependency_name or "",
        str(stat.instances),
        str(stat.files_used_in),
    ]


class CSVReporter:
    """Serialize a ``ScanReport`` to CSV."""

    def generate(self, output_path: Path, report: ScanReport) -> Path:
        """Write a CSV report file and return its path."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.generate_string(report), encoding="utf-8")
        logger.info("CSV report written to %s", output_path)
        return output_path

    def generate_string(self, report: ScanReport) -> str:
        buffer = io.StringIO()
        buffer.write("# dsadopt adoption report\n")
        buffer.write(f"# Generated: {report.meta.timestamp}\n")
        buffer.write(f"# Total Adoption: {_rate(report.summary.adoption_rate)}%\n")
        buffer.write("\n")

        writer = csv.writer(buffer, lineterminator="\n")
        design_systems = report.meta.design_systems_configured
        writer.writerow(
            [
                "Repository",
                "Adoption Rate",
                "Effective Adoption Rate",
                "Files Scanned",
                *(f"{name} Adoption" for name in design_systems),
                "Local Library Instances",
                "Local Instances",
                "Third Party Instances",
            ]
        )
        for repo in report.by_repository:
            metrics = repo.metrics
            per_ds = []
            for name in design_systems:
                ds = metrics.get_design_system(name)
                per_ds.append(_rate(ds.adoption_rate) if ds is not None else _rate(0.0))
            writer.writerow(
                [
                    repo.name,
                    _rate(metrics.adoption_rate),
                    _rate(metrics.effective_adoption_rate),
                    str(metrics.files_scanned),
                    *per_ds,
                    str(metrics.local_library.instances),
                    str(metrics.local.instances),
                    str(metrics.third_party.instances),
                ]
            )

        buffer.write("\n")
        writer.writerow(COMPONENT_HEADER)
        index = report.by_component
        for entry in index.design_systems:
            for stat in entry.components:
                writer.writerow(_component_row(stat, "design-system", entry.name))
        for stat in index.local_most_used:
            writer.writerow(_component_row(stat, "local"))
        for stat in index.third_party:
            writer.writerow(_component_row(stat, "third-party"))

        return buffer.getvalue()

"""Machine-readable JSON adoption reports.

Produces the document consumed by export, history and comparison tooling.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

    from dsadopt.models.metrics import ScanReport

logger = logging.getLogger(__name__)


class JSONReporter:
    """Serialize a ``ScanReport`` to JSON."""

    def generate(self, output_path: Path, report: ScanReport) -> Path:
        """Write a JSON report file.

        Args:
            output_path: Path to write the JSON file.
            report: Aggregated scan report.

        Returns:
            The path to the generated JSON file.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.generate_string(report), encoding="utf-8")
        logger.info("JSON report written to %s", output_path)
        return output_path

    def generate_string(self, report: ScanReport) -> str:
        """Return the JSON report as a string."""
        return json.dumps(_build_report(report), indent=2, ensure_ascii=False, default=str)


def _build_report(report: ScanReport) -> dict[str, Any]:
    return {"tool": "dsadopt", **report.to_dict()}

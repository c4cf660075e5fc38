"""Quality-gate checks against configured adoption thresholds."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dsadopt.config import ThresholdConfig
    from dsadopt.models.metrics import ScanMetrics


def check_thresholds(metrics: ScanMetrics, thresholds: ThresholdConfig) -> list[str]:
    """Return one message per violated threshold (empty when all pass)."""
    violations: list[str] = []

    if (
        thresholds.min_adoption_rate is not None
        and metrics.adoption_rate < thresholds.min_adoption_rate
    ):
        violations.append(
            f"Adoption rate {metrics.adoption_rate:.1f}% is below the minimum "
            f"{thresholds.min_adoption_rate:.1f}%"
        )

    custom = metrics.local.unique_components + metrics.local_library.unique_components
    if thresholds.max_custom_components is not None and custom > thresholds.max_custom_components:
        violations.append(
            f"{custom} custom components exceed the maximum of {thresholds.max_custom_components}"
        )

    for name, minimum in thresholds.per_design_system.items():
        design_system = metrics.get_design_system(name)
        rate = design_system.adoption_rate if design_system is not None else 0.0
        if rate < minimum:
            violations.append(
                f"{name} adoption rate {rate:.1f}% is below the minimum {minimum:.1f}%"
            )

    return violations

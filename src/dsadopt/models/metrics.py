"""Adoption metrics and report models.

Every metric here is derived: a pure function of a categorized-usage set plus
configuration.  Instances are built once per reporting scope and never mutated.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class PropCount:
    name: str
    count: int


@dataclass(frozen=True)
class ComponentStat:
    """Usage statistics for one component name within a category."""

    name: str
    design_system_name: str | None
    dependency_name: str | None
    resolved_path: str | None
    """Taken from the first usage seen; points agents at the implementation."""

    instances: int
    files_used_in: int
    top_props: tuple[PropCount, ...] = ()
    """Up to five most frequent prop names."""


@dataclass(frozen=True)
class CategoryMetrics:
    instances: int
    unique_components: int
    top_components: tuple[ComponentStat, ...] = ()


@dataclass(frozen=True)
class DesignSystemMetrics:
    """Adoption figures for a single design system within one scope."""

    name: str
    packages: tuple[str, ...]
    adoption_rate: float
    effective_adoption_rate: float
    """Includes coverage-weighted transitive usages backed by this design system."""

    instances: int
    transitive_instances: int
    transitive_weighted: float
    unique_components: int
    top_components: tuple[ComponentStat, ...]
    file_penetration: float


@dataclass(frozen=True)
class TransitiveBreakdown:
    name: str
    instances: int
    weighted_instances: float


@dataclass(frozen=True)
class TransitiveSummary:
    total_instances: int
    """Annotated local-library and third-party usages."""

    weighted_instances: float
    """Sum of their coverage values."""

    by_design_system: tuple[TransitiveBreakdown, ...] = ()


@dataclass(frozen=True)
class ScanMetrics:
    """Adoption metrics for one scope (a repository or the global set)."""

    adoption_rate: float
    effective_adoption_rate: float
    denominator: int
    """design-system + local-library (+ local unless excluded) instances."""

    effective_denominator: int
    """``denominator`` plus annotated third-party instances."""

    local_library_share: float
    local_share: float
    transitive: TransitiveSummary
    design_systems: tuple[DesignSystemMetrics, ...]
    design_system_total: CategoryMetrics
    local_library: CategoryMetrics
    local: CategoryMetrics
    third_party: CategoryMetrics
    html_native: CategoryMetrics
    file_penetration: float
    total_component_instances: int
    """All instances except html-native ones."""

    files_scanned: int

    def get_design_system(self, name: str) -> DesignSystemMetrics | None:
        for metrics in self.design_systems:
            if metrics.name == name:
                return metrics
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RepositoryReport:
    name: str
    path: str
    metrics: ScanMetrics

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "path": self.path, **self.metrics.to_dict()}


@dataclass(frozen=True)
class DesignSystemComponents:
    name: str
    components: tuple[ComponentStat, ...]


@dataclass(frozen=True)
class ComponentIndex:
    """Cross-repository component rankings."""

    design_systems: tuple[DesignSystemComponents, ...]
    local_most_used: tuple[ComponentStat, ...]
    third_party: tuple[ComponentStat, ...]


@dataclass(frozen=True)
class RepositoryDelta:
    name: str
    adoption_delta: float
    trend: str
    """``up``, ``down`` or ``stable``."""


@dataclass(frozen=True)
class ReportComparison:
    """Differences between a baseline report snapshot and the current one."""

    baseline_date: str
    adoption_delta: float
    by_design_system: tuple[tuple[str, float], ...]
    by_repository: tuple[RepositoryDelta, ...]
    new_components: tuple[str, ...]
    removed_components: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseline_date": self.baseline_date,
            "adoption_delta": self.adoption_delta,
            "by_design_system": [
                {"name": name, "adoption_delta": delta} for name, delta in self.by_design_system
            ],
            "by_repository": [asdict(repo) for repo in self.by_repository],
            "new_components": list(self.new_components),
            "removed_components": list(self.removed_components),
        }


@dataclass(frozen=True)
class ReportMeta:
    version: str
    timestamp: str
    scan_duration_ms: float
    config_path: str
    files_scanned: int
    repositories_scanned: int
    design_systems_configured: tuple[str, ...]


@dataclass(frozen=True)
class ScanReport:
    """Final report: global summary, per-repository breakdown, component index."""

    meta: ReportMeta
    summary: ScanMetrics
    by_repository: tuple[RepositoryReport, ...]
    by_component: ComponentIndex
    comparison: ReportComparison | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "meta": asdict(self.meta),
            "summary": self.summary.to_dict(),
            "by_repository": [repo.to_dict() for repo in self.by_repository],
            "by_component": asdict(self.by_component),
        }
        if self.comparison is not None:
            data["comparison"] = self.comparison.to_dict()
        return data

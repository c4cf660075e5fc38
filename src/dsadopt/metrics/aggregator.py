"""Aggregate repository scans into one report with a cross-repository component index."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from dsadopt import __version__
from dsadopt.metrics.calculator import build_component_stats, calculate_metrics
from dsadopt.models.metrics import (
    ComponentIndex,
    DesignSystemComponents,
    ReportMeta,
    RepositoryReport,
    ScanReport,
)
from dsadopt.models.usage import Category

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dsadopt.config import AdoptionConfig
    from dsadopt.models.usage import CategorizedUsage

logger = logging.getLogger(__name__)

TOP_DESIGN_SYSTEM_COMPONENTS = 50
TOP_LOCAL_COMPONENTS = 30
TOP_THIRD_PARTY_COMPONENTS = 20


@dataclass
class RepoScanData:
    """Final categorized usages of one repository."""

    name: str
    path: str
    usages: list[CategorizedUsage] = field(default_factory=list)
    files_scanned: int = 0


def build_component_index(
    usages: Sequence[CategorizedUsage], config: AdoptionConfig
) -> ComponentIndex:
    """Rank components across all repositories, independent of per-repo figures."""
    ds_usages = [u for u in usages if u.category is Category.DESIGN_SYSTEM]
    local_usages = [
        u for u in usages if u.category in {Category.LOCAL, Category.LOCAL_LIBRARY}
    ]
    third_party_usages = [u for u in usages if u.category is Category.THIRD_PARTY]

    return ComponentIndex(
        design_systems=tuple(
            DesignSystemComponents(
                name=ds.name,
                components=tuple(
                    build_component_stats(
                        [u for u in ds_usages if u.design_system_name == ds.name]
                    )[:TOP_DESIGN_SYSTEM_COMPONENTS]
                ),
            )
            for ds in config.design_systems
        ),
        local_most_used=tuple(build_component_stats(local_usages)[:TOP_LOCAL_COMPONENTS]),
        third_party=tuple(build_component_stats(third_party_usages)[:TOP_THIRD_PARTY_COMPONENTS]),
    )


def aggregate_results(
    repositories: Sequence[RepoScanData],
    config: AdoptionConfig,
    *,
    scan_duration_ms: float = 0.0,
    version: str = __version__,
    timestamp: str | None = None,
) -> ScanReport:
    """Assemble the final report.

    The global summary is recomputed from the pooled usages of every
    repository, not averaged from per-repository rates.
    """
    all_usages = [usage for repo in repositories for usage in repo.usages]
    total_files = sum(repo.files_scanned for repo in repositories)

    by_repository = tuple(
        RepositoryReport(
            name=repo.name,
            path=repo.path,
            metrics=calculate_metrics(repo.usages, config, repo.files_scanned),
        )
        for repo in repositories
    )
    summary = calculate_metrics(all_usages, config, total_files)
    logger.info(
        "Aggregated %d repositories, %d usages, adoption %.1f%%",
        len(repositories),
        len(all_usages),
        summary.adoption_rate,
    )

    return ScanReport(
        meta=ReportMeta(
            version=version,
            timestamp=timestamp or datetime.now(tz=UTC).isoformat(),
            scan_duration_ms=scan_duration_ms,
            config_path=config.config_path,
            files_scanned=total_files,
            repositories_scanned=len(repositories),
            design_systems_configured=tuple(config.design_system_names),
        ),
        summary=summary,
        by_repository=by_repository,
        by_component=build_component_index(all_usages, config),
    )

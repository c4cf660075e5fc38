"""Reduce categorized usages into adoption figures.

Formulas for one scope::

    denominator           = |design-system| + |local-library| (+ |local|)
    adoption_rate         = |design-system| / denominator * 100
    weighted_transitive   = sum(coverage) over annotated local-library/third-party
    effective_denominator = denominator + |annotated third-party|
    effective_rate        = (|design-system| + weighted_transitive) / effective_denominator * 100

``|local|`` is left out when ``exclude_local_from_adoption`` is set.  Every
rate is ``0.0`` when its denominator is zero.  Coverage sums use
``math.fsum`` so the result does not depend on usage order.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dsadopt.models.metrics import (
    CategoryMetrics,
    ComponentStat,
    DesignSystemMetrics,
    PropCount,
    ScanMetrics,
    TransitiveBreakdown,
    TransitiveSummary,
)
from dsadopt.models.usage import Category

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dsadopt.config import AdoptionConfig, DesignSystemDef
    from dsadopt.models.usage import CategorizedUsage

TOP_COMPONENTS_PER_CATEGORY = 10
TOP_PROPS_PER_COMPONENT = 5


def percentage(part: float, whole: float) -> float:
    """``part / whole * 100``, or ``0.0`` when *whole* is zero."""
    return part / whole * 100 if whole > 0 else 0.0


@dataclass
class _ComponentAccumulator:
    first: CategorizedUsage
    instances: int = 0
    files: set[str] = field(default_factory=set)
    props: Counter[str] = field(default_factory=Counter)


def build_component_stats(usages: Sequence[CategorizedUsage]) -> list[ComponentStat]:
    """Group usages by component name and rank them by instance count.

    Ties keep discovery order (the sort is stable and has no secondary key).
    Prop ties likewise keep first-seen order.
    """
    groups: dict[str, _ComponentAccumulator] = {}
    for usage in usages:
        entry = groups.get(usage.component_name)
        if entry is None:
            entry = groups[usage.component_name] = _ComponentAccumulator(first=usage)
        entry.instances += 1
        entry.files.add(usage.file_path)
        entry.props.update(usage.prop_names)

    stats = [
        ComponentStat(
            name=name,
            design_system_name=entry.first.design_system_name,
            dependency_name=entry.first.dependency_name,
            resolved_path=entry.first.resolved_path,
            instances=entry.instances,
            files_used_in=len(entry.files),
            top_props=tuple(
                PropCount(name=prop, count=count)
                for prop, count in entry.props.most_common(TOP_PROPS_PER_COMPONENT)
            ),
        )
        for name, entry in groups.items()
    ]
    return sorted(stats, key=lambda stat: stat.instances, reverse=True)


def build_category_metrics(
    usages: Sequence[CategorizedUsage], top_n: int = TOP_COMPONENTS_PER_CATEGORY
) -> CategoryMetrics:
    stats = build_component_stats(usages)
    return CategoryMetrics(
        instances=len(usages),
        unique_components=len(stats),
        top_components=tuple(stats[:top_n]),
    )


def _group_by_category(
    usages: Sequence[CategorizedUsage],
) -> dict[Category, list[CategorizedUsage]]:
    groups: dict[Category, list[CategorizedUsage]] = {category: [] for category in Category}
    for usage in usages:
        groups[usage.category].append(usage)
    return groups


def _design_system_metrics(
    design_system: DesignSystemDef,
    direct_usages: Sequence[CategorizedUsage],
    transitive_usages: Sequence[CategorizedUsage],
    *,
    denominator: int,
    effective_denominator: int,
    files_in_scope: int,
) -> DesignSystemMetrics:
    direct = [u for u in direct_usages if u.design_system_name == design_system.name]
    backed = [
        u
        for u in transitive_usages
        if u.transitive is not None and u.transitive.design_system_name == design_system.name
    ]
    weighted = math.fsum(u.transitive.coverage for u in backed if u.transitive is not None)
    category = build_category_metrics(direct)

    return DesignSystemMetrics(
        name=design_system.name,
        packages=tuple(design_system.packages),
        adoption_rate=percentage(len(direct), denominator),
        effective_adoption_rate=percentage(len(direct) + weighted, effective_denominator),
        instances=len(direct),
        transitive_instances=len(backed),
        transitive_weighted=weighted,
        unique_components=category.unique_components,
        top_components=category.top_components,
        file_penetration=percentage(len({u.file_path for u in direct}), files_in_scope),
    )


def calculate_metrics(
    usages: Sequence[CategorizedUsage],
    config: AdoptionConfig,
    files_scanned: int,
) -> ScanMetrics:
    """Compute ``ScanMetrics`` for one scope."""
    groups = _group_by_category(usages)
    ds_usages = groups[Category.DESIGN_SYSTEM]
    local_library_usages = groups[Category.LOCAL_LIBRARY]
    local_usages = groups[Category.LOCAL]
    third_party_usages = groups[Category.THIRD_PARTY]

    local_in_denominator = 0 if config.exclude_local_from_adoption else len(local_usages)
    denominator = len(ds_usages) + len(local_library_usages) + local_in_denominator

    transitive_usages = [
        u for u in (*local_library_usages, *third_party_usages) if u.transitive is not None
    ]
    weighted_transitive = math.fsum(
        u.transitive.coverage for u in transitive_usages if u.transitive is not None
    )
    annotated_third_party = sum(1 for u in third_party_usages if u.transitive is not None)
    effective_denominator = denominator + annotated_third_party

    files_in_scope = len({u.file_path for u in usages})
    design_systems = tuple(
        _design_system_metrics(
            design_system,
            ds_usages,
            transitive_usages,
            denominator=denominator,
            effective_denominator=effective_denominator,
            files_in_scope=files_in_scope,
        )
        for design_system in config.design_systems
    )

    return ScanMetrics(
        adoption_rate=percentage(len(ds_usages), denominator),
        effective_adoption_rate=percentage(
            len(ds_usages) + weighted_transitive, effective_denominator
        ),
        denominator=denominator,
        effective_denominator=effective_denominator,
        local_library_share=percentage(len(local_library_usages), denominator),
        local_share=percentage(local_in_denominator, denominator),
        transitive=TransitiveSummary(
            total_instances=len(transitive_usages),
            weighted_instances=weighted_transitive,
            by_design_system=tuple(
                TransitiveBreakdown(
                    name=ds.name,
                    instances=ds.transitive_instances,
                    weighted_instances=ds.transitive_weighted,
                )
                for ds in design_systems
            ),
        ),
        design_systems=design_systems,
        design_system_total=build_category_metrics(ds_usages),
        local_library=build_category_metrics(local_library_usages),
        local=build_category_metrics(local_usages),
        third_party=build_category_metrics(third_party_usages),
        html_native=build_category_metrics(groups[Category.HTML_NATIVE]),
        file_penetration=percentage(len({u.file_path for u in ds_usages}), files_scanned),
        total_component_instances=len(usages) - len(groups[Category.HTML_NATIVE]),
        files_scanned=files_scanned,
    )

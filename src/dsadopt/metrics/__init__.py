"""Adoption metrics: calculation, aggregation, comparison, and thresholds."""

from dsadopt.metrics.aggregator import RepoScanData, aggregate_results
from dsadopt.metrics.calculator import calculate_metrics

__all__ = [
    "RepoScanData",
    "aggregate_results",
    "calculate_metrics",
]

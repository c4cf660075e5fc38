"""Tests for the terminal (Rich) reporter."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from rich.table import Table

from dsadopt.config import AdoptionConfig, DesignSystemDef
from dsadopt.metrics.aggregator import RepoScanData, aggregate_results
from dsadopt.models.usage import CategorizedUsage, Category, ImportFact, UsageRecord
from dsadopt.reporters.terminal import CLIReporter, _rate_color

# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def mock_console() -> MagicMock:
    """Return a MagicMock that replaces the console."""
    return MagicMock()


@pytest.fixture
def cli_reporter(mock_console: MagicMock) -> CLIReporter:
    instance = CLIReporter()
    instance.console = mock_console
    return instance


# ── Tests ───────────────────────────────────────────────────────


class TestRateColor:
    @pytest.mark.parametrize(
        ("rate", "color"), [(95.0, "green"), (80.0, "green"), (60.0, "yellow"), (10.0, "red")]
    )
    def test_thresholds(self, rate: float, color: str) -> None:
        assert _rate_color(rate) == color


class TestMessages:
    def test_success(self, cli_reporter: CLIReporter, mock_console: MagicMock) -> None:
        cli_reporter.print_success("done")
        assert "done" in mock_console.print.call_args[0][0]

    def test_error(self, cli_reporter: CLIReporter, mock_console: MagicMock) -> None:
        cli_reporter.print_error("broken")
        assert "[red]" in mock_console.print.call_args[0][0]

    def test_warning(self, cli_reporter: CLIReporter, mock_console: MagicMock) -> None:
        cli_reporter.print_warning("careful")
        message = mock_console.print.call_args[0][0]
        assert "[yellow]" in message
        assert "careful" in message


class TestScanSummary:
    def test_prints_table_with_total_row(
        self, cli_reporter: CLIReporter, mock_console: MagicMock
    ) -> None:
        config = AdoptionConfig(
            design_systems=[DesignSystemDef("TUI", ["@tui/components"]), DesignSystemDef("B", ["b"])]
        )
        usage = CategorizedUsage(
            usage=UsageRecord("Button", "Button", ImportFact("@tui/components"), "a.tsx"),
            category=Category.DESIGN_SYSTEM,
            design_system_name="TUI",
        )
        report = aggregate_results(
            [RepoScanData(name="web", path="/w", usages=[usage], files_scanned=1)], config
        )

        cli_reporter.print_scan_summary(report)

        table = mock_console.print.call_args_list[0][0][0]
        assert isinstance(table, Table)
        assert table.row_count == 3
        assert "1 files in 1 repositories" in mock_console.print.call_args_list[1][0][0]

"""Terminal status output with rich formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from dsadopt.models.metrics import ScanReport

# Status output goes to stderr; stdout carries the JSON report.
console = Console(stderr=True)

_GOOD_RATE = 80.0
_FAIR_RATE = 50.0


def _rate_color(rate: float) -> str:
    """Return a Rich color name for an adoption percentage."""
    if rate >= _GOOD_RATE:
        return "green"
    if rate >= _FAIR_RATE:
        return "yellow"
    return "red"


class CLIReporter:
    """Rich status messages for the command line."""

    def __init__(self) -> None:
        self.console = console

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")

    def print_scan_summary(self, report: ScanReport) -> None:
        """Print the per-design-system figures of a finished scan."""
        summary = report.summary
        table = Table(title="Design-system adoption", show_lines=False)
        table.add_column("Design system")
        table.add_column("Adoption", justify="right")
        table.add_column("Effective", justify="right")
        table.add_column("Instances", justify="right")
        table.add_column("Transitive", justify="right")

        for ds in summary.design_systems:
            color = _rate_color(ds.adoption_rate)
            table.add_row(
                ds.name,
                f"[{color}]{ds.adoption_rate:.1f}%[/{color}]",
                f"{ds.effective_adoption_rate:.1f}%",
                str(ds.instances),
                str(ds.transitive_instances),
            )

        color = _rate_color(summary.adoption_rate)
        table.add_row(
            "[bold]Total[/bold]",
            f"[bold {color}]{summary.adoption_rate:.1f}%[/bold {color}]",
            f"{summary.effective_adoption_rate:.1f}%",
            str(summary.design_system_total.instances),
            str(summary.transitive.total_instances),
        )
        self.console.print(table)
        self.print_info(
            f"{report.meta.files_scanned} files in {report.meta.repositories_scanned} "
            f"repositories, {summary.total_component_instances} component instances"
        )


reporter = CLIReporter()

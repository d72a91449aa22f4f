"""
CLI Reporter Module
===================

Rich terminal output for discovery and nuke results.

This module renders:
- A header panel per run
- The inventory of resources selected for deletion
- Per-identifier outcomes, colored by status
- A summary table and any general errors

Classes
-------
CLIReporter
    Main reporter class for terminal output.

Example
-------
>>> from cloudnuke.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report_inventory(collector, regions)
>>> reporter.report_outcomes(collector)

Notes
-----
Identifiers and error messages are escaped before rendering, so AWS
text containing square brackets is never read as Rich markup.

See Also
--------
rich : Python library for rich text and formatting.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from cloudnuke.core.report import OutcomeStatus, ReportCollector

# Module logger
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    OutcomeStatus.DELETED: "green",
    OutcomeStatus.FAILED: "red",
    OutcomeStatus.SKIPPED_PERMISSION: "yellow",
    OutcomeStatus.SKIPPED_FILTERED: "dim",
    OutcomeStatus.DRY_RUN: "cyan",
}


class CLIReporter:
    """
    Reporter for displaying run results in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.
    show_filtered : bool, default=False
        Include ``skipped-filtered`` identifiers in the outcomes table.

    Examples
    --------
    >>> reporter = CLIReporter()
    >>> reporter.report_outcomes(collector)

    >>> from rich.console import Console
    >>> reporter = CLIReporter(console=Console(force_terminal=True))

    >>> with reporter.create_progress() as progress:
    ...     task = progress.add_task("Inspecting regions...", total=3)
    ...     progress.update(task, advance=1)
    """

    def __init__(self, console: Optional[Console] = None, show_filtered: bool = False) -> None:
        """Initialize the CLI reporter with a Rich Console."""
        self.console = console or Console()
        self.show_filtered = show_filtered
        logger.debug("Initialized CLIReporter")

    def print_header(self, title: str, regions: Sequence[str], dry_run: bool = False) -> None:
        """
        Print the run header panel.

        Parameters
        ----------
        title : str
            Panel title.
        regions : sequence of str
            Regions included in the run.
        dry_run : bool
            Adds a dry-run marker.
        """
        region_text = (
            ", ".join(regions) if len(regions) <= 5
            else f"{len(regions)} regions"
        )

        header_text = Text()
        header_text.append(f"\n{title}\n", style="bold blue")
        header_text.append(f"Regions: {region_text}", style="dim")
        if dry_run:
            header_text.append("\nDRY RUN: nothing will be deleted", style="bold cyan")

        self.console.print(Panel(header_text, border_style="blue"))

    def report_inventory(self, collector: ReportCollector) -> int:
        """
        Print every resource selected for deletion.

        Returns
        -------
        int
            Number of resources listed.
        """
        table = Table(
            title="\nResources Selected for Deletion",
            title_style="bold",
            show_lines=False,
        )
        table.add_column("Region", style="yellow", no_wrap=True)
        table.add_column("Resource Type", style="magenta", no_wrap=True)
        table.add_column("Identifier", style="cyan")
        table.add_column("Name", style="white")
        table.add_column("Created / First Seen", style="dim")

        count = 0
        for (resource_type, region), candidates in collector.found.items():
            for candidate in candidates:
                table.add_row(
                    escape(region),
                    escape(resource_type),
                    escape(candidate.identifier),
                    escape(self._truncate(candidate.value.name or "", 40)),
                    self._format_time(candidate.value.time),
                )
                count += 1

        if count:
            self.console.print(table)
        else:
            self.console.print("\n[green]No resources matched the selection.[/green]")

        self._print_general_errors(collector)
        return count

    def report_outcomes(self, collector: ReportCollector) -> None:
        """Print per-identifier outcomes, the summary and general errors."""
        outcomes = [
            o for o in collector.outcomes
            if self.show_filtered or o.status != OutcomeStatus.SKIPPED_FILTERED
        ]

        if outcomes:
            table = Table(title="\nNuke Results", title_style="bold", show_lines=False)
            table.add_column("Region", style="yellow", no_wrap=True)
            table.add_column("Resource Type", style="magenta", no_wrap=True)
            table.add_column("Identifier", style="cyan")
            table.add_column("Status", no_wrap=True)
            table.add_column("Error", style="dim", max_width=60)

            for outcome in sorted(outcomes, key=lambda o: (o.region, o.resource_type)):
                style = STATUS_STYLES[outcome.status]
                table.add_row(
                    escape(outcome.region),
                    escape(outcome.resource_type),
                    escape(outcome.identifier),
                    f"[{style}]{outcome.status.value}[/]",
                    escape(self._truncate(outcome.error_message or "", 60)),
                )
            self.console.print(table)

        self._print_summary(collector)
        self._print_general_errors(collector)

    # =========================================================================
    # Private Methods: Output Formatting
    # =========================================================================

    def _print_summary(self, collector: ReportCollector) -> None:
        summary = Table(show_header=False, box=None, padding=(0, 2))
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")

        counts = collector.counts()
        for status in OutcomeStatus:
            value = counts[status.value]
            style = STATUS_STYLES[status] if value else "dim"
            summary.add_row(f"{status.value.replace('-', ' ').title()}:", f"[{style}]{value}[/]")

        if collector.general_errors:
            summary.add_row("General Errors:", f"[red]{len(collector.general_errors)}[/]")
        if collector.end_time:
            elapsed = (collector.end_time - collector.start_time).total_seconds()
            summary.add_row("Duration:", f"{elapsed:.1f}s")

        self.console.print("\n")
        self.console.print(summary)

    def _print_general_errors(self, collector: ReportCollector) -> None:
        if not collector.general_errors:
            return

        self.console.print("\n[yellow bold]Errors encountered:[/yellow bold]")
        for error in collector.general_errors:
            self.console.print(
                f"  [red]• {escape(error.resource_type)} in {escape(error.region)}: "
                f"{escape(error.description)}: {escape(error.error_message)}[/red]"
            )

    @staticmethod
    def _format_time(value: Optional[datetime]) -> str:
        if value is None:
            return "N/A"
        return value.strftime("%Y-%m-%d %H:%M:%S UTC")

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        """Truncate text to maximum length with ellipsis."""
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    # =========================================================================
    # Public Methods: Progress and Messages
    # =========================================================================

    def create_progress(self) -> Progress:
        """
        Create a spinner progress indicator for region inspection.

        Example
        -------
        >>> with reporter.create_progress() as progress:
        ...     task = progress.add_task("Inspecting regions...", total=10)
        """
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
        )

    def print_regions(self, regions: List[str]) -> None:
        """Print a list of enabled regions."""
        table = Table(title="\nEnabled Regions", title_style="bold")
        table.add_column("Region", style="cyan")
        for region in regions:
            table.add_row(region)
        self.console.print(table)

    def print_resource_types(self, names: List[str], global_names: List[str]) -> None:
        """Print the supported resource types in processing order."""
        table = Table(title="\nSupported Resource Types", title_style="bold")
        table.add_column("Resource Type", style="cyan")
        table.add_column("Scope", style="dim")
        for name in names:
            table.add_row(name, "global" if name in global_names else "regional")
        self.console.print(table)

    def print_completion_message(self, output_file: Optional[str] = None) -> None:
        self.console.print("\n[green bold]Done.[/green bold]")
        if output_file:
            self.console.print(f"[dim]Report saved to: {escape(output_file)}[/dim]")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"\n[red bold]Error:[/red bold] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"\n[yellow bold]Warning:[/yellow bold] {escape(message)}")

    def __repr__(self) -> str:
        """Return string representation."""
        return "CLIReporter()"

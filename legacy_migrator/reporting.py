"""Console rendering of run summaries."""

import sys
from typing import List, Optional, TextIO

from .models.migration import MigrationStatus, RunSummary

MAX_WARNINGS_SHOWN = 10


class ConsoleReport:
    """
    Prints a counts table for each finished run.

    Usable directly as an orchestrator report sink.
    """

    def __init__(self, stream: Optional[TextIO] = None, max_warnings: int = MAX_WARNINGS_SHOWN):
        self.stream = stream or sys.stdout
        self.max_warnings = max_warnings

    def __call__(self, summary: RunSummary) -> None:
        self.render(summary)

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def render(self, summary: RunSummary) -> None:
        """Print one run summary."""
        counters = summary.counters
        title = f"{summary.entity.upper()} - scope {summary.scope.source}"
        if summary.scope.target != summary.scope.source:
            title += f" -> {summary.scope.target}"

        self._print("\n" + "=" * 60)
        self._print(title)
        self._print("=" * 60)

        if summary.status == MigrationStatus.FAILED:
            self._print(f"FAILED: {summary.error}")
            if summary.committed:
                self._print("Rows were committed; identity map was NOT saved.")
            else:
                self._print("No changes were made (rolled back).")
            return

        self._print(f"{'Created':<12}{counters.created:>10}")
        self._print(f"{'Updated':<12}{counters.updated:>10}")
        self._print(f"{'Skipped':<12}{counters.skipped:>10}")
        self._print(f"{'Errors':<12}{counters.errors:>10}")
        self._print("-" * 22)
        self._print(f"{'Rows seen':<12}{counters.rows_seen:>10}")
        self._print(f"{'Warnings':<12}{counters.warning_count:>10}")

        if summary.duration_seconds is not None:
            self._print(f"Duration: {summary.duration_seconds:.2f} seconds")

        if counters.warnings:
            self._print("\nWarnings:")
            for warning in counters.warnings[:self.max_warnings]:
                self._print(f"  - {warning}")
            remaining = len(counters.warnings) - self.max_warnings
            if remaining > 0:
                self._print(f"  ... and {remaining} more")

        if summary.dry_run:
            self._print("\nDRY RUN - no changes were written and no identity map was saved.")
        else:
            self._print(f"\nLIVE RUN - committed; identity map holds {summary.map_size} entries.")

    def render_pipeline(self, summaries: List[RunSummary]) -> None:
        """Print a one-line-per-entity overview of a pipeline run."""
        self._print("\n" + "=" * 60)
        self._print("PIPELINE SUMMARY")
        self._print("=" * 60)
        self._print(f"{'Entity':<20}{'Status':<14}{'Created':>9}{'Updated':>9}{'Skipped':>9}{'Errors':>8}")
        for summary in summaries:
            counters = summary.counters
            self._print(
                f"{summary.entity:<20}{summary.status.value:<14}{counters.created:>9}"
                f"{counters.updated:>9}{counters.skipped:>9}{counters.errors:>8}"
            )

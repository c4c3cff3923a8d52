"""Console sink for printing reports."""

import json
import sys
from typing import Any, TextIO

from loanbook.reports.dashboard import DashboardSummary
from loanbook.sinks.serialization import to_dict


class ConsoleSink:
    """Output report records to a text stream (stdout by default)."""

    def __init__(
        self,
        pretty: bool = True,
        max_records: int | None = None,
        stream: TextIO | None = None,
    ) -> None:
        """Initialize console sink.

        Parameters
        ----------
        pretty : bool
            Pretty-print JSON output.
        max_records : int | None
            Maximum records to print per batch (None for all).
        stream : TextIO | None
            Destination stream (default: ``sys.stdout``).
        """
        self.pretty = pretty
        self.max_records = max_records
        self.stream = stream or sys.stdout
        self._counts: dict[str, int] = {}

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def _dump(self, data: Any) -> str:
        if self.pretty:
            return json.dumps(data, indent=2, ensure_ascii=False, default=str)
        return json.dumps(data, ensure_ascii=False, default=str)

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records."""
        self._print(f"\n{'='*60}")
        self._print(f"Entity: {entity_type} ({len(records)} records)")
        self._print("=" * 60)

        display_records = records[: self.max_records] if self.max_records else records

        for record in display_records:
            self._print(self._dump(to_dict(record)))

        if self.max_records and len(records) > self.max_records:
            self._print(f"... and {len(records) - self.max_records} more records")

        self._counts[entity_type] = self._counts.get(entity_type, 0) + len(records)

    def write_dashboard(self, summary: DashboardSummary) -> None:
        """Write monthly totals followed by the alert list."""
        self._print(f"\n{'='*60}")
        self._print(f"Dashboard: {summary.reference_month:%m/%Y}")
        self._print("=" * 60)
        for name, value in summary.totals().items():
            self._print(f"  {name:<20} {value:>14}")
        self._print(f"  {'pending_rentals':<20} {summary.pending_rentals:>14}")

        if summary.alerts:
            self._print("\nAlerts:")
            for alert in summary.alerts:
                self._print(f"  [{alert.level.value.upper()}] {alert.title}: {alert.subtitle}")

        self._counts["alerts"] = self._counts.get("alerts", 0) + len(summary.alerts)

    def close(self) -> None:
        """Print summary and close."""
        self._print(f"\n{'='*60}")
        self._print("Console Sink Summary")
        self._print("=" * 60)
        for entity_type, count in self._counts.items():
            self._print(f"  {entity_type}: {count} records")

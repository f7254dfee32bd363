"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Callable, Mapping

from .analytics import AnalyticsReport

Echo = Callable[[str], None]


class SummaryPrinter:
    """Render human-readable analytics in the console."""

    def __init__(self, echo: Echo = print) -> None:
        self.echo = echo

    def print_report(self, report: AnalyticsReport) -> None:
        self.echo(
            f"Coding time {report.start.strftime('%Y-%m-%d')} to "
            f"{report.end.strftime('%Y-%m-%d')} ({report.period})"
        )
        self.echo("-" * 40)
        self.echo(f"Total: {format_minutes(report.total_minutes)}")

        for title, breakdown in (
            ("Languages", report.language),
            ("Workspaces", report.workspace),
            ("Platforms", report.platform),
        ):
            entries = sort_breakdown(breakdown)
            if not entries:
                continue
            self.echo("")
            self.echo(f"{title}:")
            for label, minutes in entries[:5]:
                self.echo(f"  {label:<30} {format_minutes(minutes)}")

        self.echo("")
        self.echo("Daily:")
        for entry in report.time_series:
            day_total = sum(entry.breakdown.values())
            top = sort_breakdown(entry.breakdown)
            detail = ", ".join(f"{label} {minutes}m" for label, minutes in top[:3])
            line = f"  {entry.date.isoformat()}  {format_minutes(day_total)}"
            self.echo(f"{line}  {detail}" if detail else line)


def sort_breakdown(breakdown: Mapping[str, int]) -> list[tuple[str, int]]:
    return sorted(breakdown.items(), key=lambda item: (-item[1], item[0]))


def format_minutes(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins:02d}m"

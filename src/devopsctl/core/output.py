"""
Output formatting and report rendering
"""

import json
from abc import ABC, abstractmethod
from typing import IO

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .framework import Report
from .scoring import Summary
from .severity import Severity

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "yellow",
    Severity.MEDIUM: "green",
    Severity.LOW: "green",
}

# Width used when the stream is not a terminal, so rows are not wrapped
PLAIN_WIDTH = 200


class Reporter(ABC):
    """Renders one module's findings to a text stream"""

    @abstractmethod
    def render(self, stream: IO[str], report: Report):
        pass


class JSONReporter(Reporter):
    """Render a report as a JSON document"""

    def __init__(self, pretty: bool = True):
        self.pretty = pretty

    def render(self, stream: IO[str], report: Report):
        json.dump(report.to_dict(), stream, indent=2 if self.pretty else None)
        stream.write("\n")


class TableReporter(Reporter):
    """Render a report as a rich table; colors only on a terminal"""

    def render(self, stream: IO[str], report: Report):
        is_terminal = hasattr(stream, "isatty") and stream.isatty()
        console = Console(
            file=stream,
            width=None if is_terminal else PLAIN_WIDTH,
            no_color=not is_terminal,
            highlight=False,
        )

        console.print(f"=== {report.module} Audit Results ===", markup=False)
        console.print()
        if not report.findings:
            console.print("No issues found.")
            return

        table = Table(show_header=True, header_style="bold magenta", box=None)
        table.add_column("SEVERITY")
        table.add_column("CHECK NAME", style="cyan")
        table.add_column("RESOURCE")
        table.add_column("MESSAGE")

        for finding in report.findings:
            style = SEVERITY_STYLES.get(Severity.parse(finding.severity), "")
            table.add_row(
                Text(str(finding.severity), style=style),
                Text(finding.check_name),
                Text(finding.resource_id),
                Text(finding.message),
            )

        console.print(table)


def _cell(value: str) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


class MarkdownReporter(Reporter):
    """Render a report as a Markdown table with a recommendations section"""

    def render(self, stream: IO[str], report: Report):
        title = report.module[:1].upper() + report.module[1:]
        stream.write(f"# {title} Audit Report\n\n")

        if not report.findings:
            stream.write("No findings.\n\n")
            return

        stream.write("| Severity | Check | Resource | Message |\n")
        stream.write("| --- | --- | --- | --- |\n")
        for finding in report.findings:
            stream.write(
                f"| {_cell(finding.severity)} | {_cell(finding.check_name)} "
                f"| {_cell(finding.resource_id)} | {_cell(finding.message)} |\n"
            )
        stream.write("\n")

        stream.write("## Recommendations\n\n")
        for finding in report.findings:
            if finding.recommendation:
                stream.write(f"- **{finding.check_name}**: {finding.recommendation}\n")
        stream.write("\n")


REPORTERS = {
    "table": TableReporter,
    "json": JSONReporter,
    "markdown": MarkdownReporter,
}


def get_reporter(output_format: str = "table") -> Reporter:
    """Return the reporter for a format name"""
    try:
        return REPORTERS[output_format]()
    except KeyError:
        raise ValueError(f"unknown output format: {output_format}") from None


def summary_to_json(summary: Summary, pretty: bool = True) -> str:
    return json.dumps(summary.to_dict(), indent=2 if pretty else None)


"""Reader and writer for the sectioned analysis-history CSV format.

A document is a sequence of blank-line separated sections::

    16.01.2026: h1 projects
    Project,Last analysis,LOC,Languages,Status,Security,...
    my-project,"16/01/2026, 10:30",12k,"Java, XML",Passed,A (0),...

    16.01.2026: Diff 15.01.2026
    Project,Field,Value_15.01.2026,Value_16.01.2026,Delta,Degradation,Remark
    my-project,Coverage (%),82.0%,85.0%,+3.0 pp,No,Coverage improved

Parsing is permissive: short rows and empty sections are dropped, never raised.
Quoting has no escape sequence, so a '"' inside a value always toggles quote state.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path

from sonardiff.core.models import AnalysisReport, DiffEntry, DiffReport, FullReport, SonarProject

logger = logging.getLogger(__name__)

SECTION_HEADER_RE = re.compile(r"^(\d{2}\.\d{2}\.\d{4}):\s*(.+)$")
DIFF_BASELINE_RE = re.compile(r"diff\s+(\d{2}\.\d{2}\.\d{4})", re.IGNORECASE)

ANALYSIS_COLUMNS = (
    "Project",
    "Last analysis",
    "LOC",
    "Languages",
    "Status",
    "Security",
    "Reliability",
    "Maintainability",
    "Hotspots Reviewed",
    "Coverage (%)",
    "Duplications (%)",
)
ANALYSIS_FIELD_COUNT = len(ANALYSIS_COLUMNS)
DIFF_MIN_FIELD_COUNT = 5


class SectionKind(str, Enum):
    ANALYSIS = "analysis"
    DIFF = "diff"


@dataclass
class _OpenSection:
    """Section currently being filled while scanning."""

    kind: SectionKind
    date: str
    label: str
    rows: list = field(default_factory=list)
    awaiting_column_header: bool = True


def split_csv_line(line: str) -> list[str]:
    """Split a data row on commas outside double quotes.

    Quotes toggle the in-quotes state and are never emitted. Each field is
    stripped of surrounding whitespace; the last field needs no trailing comma.
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    values.append("".join(current).strip())

    return values


def _parse_project_row(values: list[str]) -> SonarProject | None:
    if len(values) < ANALYSIS_FIELD_COUNT:
        return None

    return SonarProject(
        project=values[0],
        last_analysis=values[1],
        loc=values[2],
        languages=values[3],
        status=values[4],
        security=values[5],
        reliability=values[6],
        maintainability=values[7],
        hotspots_reviewed=values[8],
        coverage=values[9],
        duplications=values[10],
    )


def _parse_diff_row(values: list[str]) -> DiffEntry | None:
    if len(values) < DIFF_MIN_FIELD_COUNT:
        return None

    return DiffEntry(
        project=values[0],
        field=values[1],
        old_value=values[2],
        new_value=values[3],
        delta=values[4],
        degradation=values[5] if len(values) > 5 else "",
        remark=values[6] if len(values) > 6 else "",
    )


def _open_section(section_date: str, title: str) -> _OpenSection:
    if "diff" in title.lower():
        match = DIFF_BASELINE_RE.search(title)
        return _OpenSection(kind=SectionKind.DIFF, date=section_date, label=match.group(1) if match else "")
    return _OpenSection(kind=SectionKind.ANALYSIS, date=section_date, label=title)


def _flush(section: _OpenSection | None, analysis: list[AnalysisReport], diffs: list[DiffReport]) -> None:
    if section is None or not section.rows:
        return

    if section.kind is SectionKind.DIFF:
        diffs.append(DiffReport(date=section.date, compared_to=section.label, entries=section.rows))
    else:
        analysis.append(AnalysisReport(date=section.date, title=section.label, projects=section.rows))


def parse_csv(text: str) -> FullReport:
    """Parse an analysis-history document.

    Args:
        text: Document contents

    Returns:
        FullReport with sections in document order. Unparseable input yields
        an empty report.
    """
    analysis_reports: list[AnalysisReport] = []
    diff_reports: list[DiffReport] = []
    section: _OpenSection | None = None
    dropped_rows = 0

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        header = SECTION_HEADER_RE.match(line)
        if header:
            _flush(section, analysis_reports, diff_reports)
            section = _open_section(header.group(1), header.group(2))
            continue

        values = split_csv_line(line)
        if values[0].lower() == "project":
            if section is not None:
                section.awaiting_column_header = False
            continue

        if section is None or section.awaiting_column_header:
            continue

        if section.kind is SectionKind.DIFF:
            row = _parse_diff_row(values)
        else:
            row = _parse_project_row(values)

        if row is None:
            dropped_rows += 1
            continue
        section.rows.append(row)

    _flush(section, analysis_reports, diff_reports)

    if dropped_rows:
        logger.debug(f"Dropped {dropped_rows} malformed CSV rows")

    return FullReport(analysis_reports=analysis_reports, diff_reports=diff_reports)


def _quote(value: str) -> str:
    return f'"{value}"'


def _cell(value: str) -> str:
    # Unquoted columns only get quotes when a comma would otherwise split them.
    return _quote(value) if "," in value else value


def _project_row(project: SonarProject) -> str:
    return ",".join(
        [
            _cell(project.project),
            _quote(project.last_analysis),
            _cell(project.loc),
            _quote(project.languages),
            _cell(project.status),
            _cell(project.security),
            _cell(project.reliability),
            _cell(project.maintainability),
            _cell(project.hotspots_reviewed),
            _cell(project.coverage),
            _cell(project.duplications),
        ]
    )


def _diff_row(entry: DiffEntry) -> str:
    return ",".join(
        _cell(value)
        for value in (
            entry.project,
            entry.field,
            entry.old_value,
            entry.new_value,
            entry.delta,
            entry.degradation,
            entry.remark or "",
        )
    )


def generate_csv(report: FullReport) -> str:
    """Serialize a report to the sectioned CSV format.

    Analysis sections come first, then diff sections, each followed by a blank line.
    """
    lines: list[str] = []

    for analysis in report.analysis_reports:
        lines.append(f"{analysis.date}: {analysis.title}")
        lines.append(",".join(ANALYSIS_COLUMNS))
        lines.extend(_project_row(project) for project in analysis.projects)
        lines.append("")

    for diff in report.diff_reports:
        lines.append(f"{diff.date}: Diff {diff.compared_to}")
        lines.append(f"Project,Field,Value_{diff.compared_to},Value_{diff.date},Delta,Degradation,Remark")
        lines.extend(_diff_row(entry) for entry in diff.entries)
        lines.append("")

    return "\n".join(lines)


def export_filename(day: date | None = None) -> str:
    """Conventional download name for a history export."""
    day = day or date.today()
    return f"sonar-analysis-{day.isoformat()}.csv"


def load_report(path: Path) -> FullReport:
    """Load a history CSV from disk."""
    return parse_csv(path.read_text(encoding="utf-8"))


def save_report(report: FullReport, path: Path) -> Path:
    """Write a history CSV to disk, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_csv(report), encoding="utf-8")
    return path

"""Rich formatting utilities for displaying analysis reports."""

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from sonardiff.core.models import AnalysisCost, AnalysisReport, Degradation, DiffReport, FullReport, QualityGateStatus
from sonardiff.display.console import console

GRADE_STYLES = {
    "A": "green",
    "B": "cyan",
    "C": "yellow",
    "D": "dark_orange",
    "E": "red",
}

DEGRADATION_STYLES = {
    Degradation.YES: "red",
    Degradation.NO: "green",
    Degradation.NOTE: "yellow",
}


def format_cost(amount: float) -> str:
    """Format a dollar amount, keeping more precision below one cent."""
    return f"${amount:.4f}" if amount < 0.01 else f"${amount:.3f}"


def format_tokens(tokens: int) -> str:
    return f"{tokens / 1000:.1f}k" if tokens >= 1000 else str(tokens)


def grade_style(value: str) -> str:
    """Style for a letter-grade value such as 'C (2)'."""
    return GRADE_STYLES.get(value[:1].upper(), "dim")


def status_style(status: str) -> str:
    return "green" if status == QualityGateStatus.PASSED.value else "red"


def degradation_style(degradation: str) -> str:
    try:
        return DEGRADATION_STYLES[Degradation(degradation.strip().capitalize())]
    except ValueError:
        return "dim"


def _styled(value: str, style: str = "") -> Text:
    # Values come from the model or a CSV file and are never markup
    return Text(value, style=style)


def create_projects_table(report: AnalysisReport) -> Table:
    """Create a table of all projects in an analysis report."""
    table = Table(title=Text(f"{report.date}: {report.title}"))
    table.add_column("Project", style="cyan")
    table.add_column("Last analysis")
    table.add_column("LOC", justify="right")
    table.add_column("Languages")
    table.add_column("Status")
    table.add_column("Security")
    table.add_column("Reliability")
    table.add_column("Maintainability")
    table.add_column("Hotspots Reviewed")
    table.add_column("Coverage", justify="right")
    table.add_column("Duplications", justify="right")

    for project in report.projects:
        table.add_row(
            _styled(project.project),
            _styled(project.last_analysis),
            _styled(project.loc),
            _styled(project.languages),
            _styled(project.status, status_style(project.status)),
            _styled(project.security, grade_style(project.security)),
            _styled(project.reliability, grade_style(project.reliability)),
            _styled(project.maintainability, grade_style(project.maintainability)),
            _styled(project.hotspots_reviewed, grade_style(project.hotspots_reviewed)),
            _styled(project.coverage),
            _styled(project.duplications),
        )

    return table


def create_diff_table(diff: DiffReport) -> Table:
    """Create a table of the changes in a diff report."""
    table = Table(title=Text(f"{diff.date}: Diff {diff.compared_to}"))
    table.add_column("Project", style="cyan")
    table.add_column("Field")
    table.add_column(Text(f"Value {diff.compared_to}"))
    table.add_column(Text(f"Value {diff.date}"))
    table.add_column("Delta", justify="right")
    table.add_column("Degradation")
    table.add_column("Remark", style="dim")

    for entry in diff.entries:
        table.add_row(
            _styled(entry.project),
            _styled(entry.field),
            _styled(entry.old_value),
            _styled(entry.new_value),
            _styled(entry.delta),
            _styled(entry.degradation or "-", degradation_style(entry.degradation)),
            _styled(entry.remark),
        )

    return table


def create_cost_table(cost: AnalysisCost) -> Table:
    """Create a per-stage cost breakdown table."""
    table = Table(title="Estimated Cost")
    table.add_column("Stage", style="cyan")
    table.add_column("Model")
    table.add_column("Input tokens", justify="right")
    table.add_column("Output tokens", justify="right")
    table.add_column("Cost", justify="right", style="green")

    stages = [("Extraction", cost.extraction)]
    if cost.comparison is not None:
        stages.append(("Comparison", cost.comparison))

    for name, stage in stages:
        table.add_row(
            name,
            _styled(stage.model),
            format_tokens(stage.input_tokens),
            format_tokens(stage.output_tokens),
            format_cost(stage.cost),
        )

    table.add_row(
        "[bold]Total[/bold]",
        "",
        format_tokens(cost.total_input_tokens),
        format_tokens(cost.total_output_tokens),
        f"[bold]{format_cost(cost.total_cost)}[/bold]",
    )
    return table


def display_full_report(report: FullReport, latest_only: bool = False) -> None:
    """Print analysis and diff sections of a report.

    Args:
        report: Report to display
        latest_only: Show only the newest analysis and diff sections
    """
    if report.is_empty:
        console.print("[yellow]No analysis data found[/yellow]")
        return

    analysis_reports = report.analysis_reports[-1:] if latest_only else report.analysis_reports
    diff_reports = report.diff_reports[-1:] if latest_only else report.diff_reports

    for analysis in analysis_reports:
        console.print(create_projects_table(analysis))

    for diff in diff_reports:
        if diff.entries:
            console.print(create_diff_table(diff))
        else:
            console.print(f"[green]No changes since {escape(diff.compared_to)}[/green]")


def display_analysis_cost(cost: AnalysisCost) -> None:
    console.print(create_cost_table(cost))
    console.print(
        f"Est. Cost: [bold]{format_cost(cost.total_cost)}[/bold] "
        f"({format_tokens(cost.total_input_tokens)} tokens in, {format_tokens(cost.total_output_tokens)} out)"
    )

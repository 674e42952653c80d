"""Tests for display/formatters.py."""

import io

import pytest
from conftest import make_entry, make_project
from rich.console import Console

from sonardiff.core.models import AnalysisCost, AnalysisReport, Degradation, DiffReport, FullReport, StageCost
from sonardiff.display.formatters import (
    create_cost_table,
    create_diff_table,
    create_projects_table,
    degradation_style,
    display_full_report,
    format_cost,
    format_tokens,
    grade_style,
    status_style,
)


@pytest.fixture
def cost() -> AnalysisCost:
    return AnalysisCost.from_stages(
        StageCost(model="gpt-5.2", input_tokens=2000, output_tokens=800, cost=0.015),
        StageCost(model="gpt-5-mini", input_tokens=1500, output_tokens=500, cost=0.006),
    )


def test_format_cost__uses_four_decimals_below_a_cent():
    assert format_cost(0.0042) == "$0.0042"
    assert format_cost(0.021) == "$0.021"


def test_format_tokens__abbreviates_thousands():
    assert format_tokens(999) == "999"
    assert format_tokens(1500) == "1.5k"


def test_grade_style__colours_by_letter():
    assert grade_style("A (0)") == "green"
    assert grade_style("e (40)") == "red"
    assert grade_style("N/A") == "dim"


def test_status_and_degradation_styles():
    assert status_style("Passed") == "green"
    assert status_style("Failed") == "red"
    assert degradation_style("Yes") == "red"
    assert degradation_style(Degradation.NO) == "green"
    assert degradation_style(" note ") == "yellow"
    assert degradation_style("") == "dim"


def test_create_projects_table__one_row_per_project():
    report = AnalysisReport(date="16.01.2026", projects=[make_project(project="a"), make_project(project="b")])

    table = create_projects_table(report)

    assert table.row_count == 2
    assert len(table.columns) == 11


def test_create_diff_table__titles_with_both_dates():
    diff = DiffReport(date="16.01.2026", compared_to="15.01.2026", entries=[make_entry()])

    table = create_diff_table(diff)

    assert table.title.plain == "16.01.2026: Diff 15.01.2026"
    assert table.row_count == 1


def test_create_cost_table__has_stage_rows_and_total(cost):
    assert create_cost_table(cost).row_count == 3


def test_create_cost_table__extraction_only(cost):
    extraction_only = AnalysisCost.from_stages(cost.extraction)

    assert create_cost_table(extraction_only).row_count == 2


def test_display_full_report__empty_report(capsys: pytest.CaptureFixture[str]):
    display_full_report(FullReport())

    assert "No analysis data found" in capsys.readouterr().out


def test_display_full_report__diff_without_entries_says_no_changes(capsys: pytest.CaptureFixture[str]):
    report = FullReport(
        analysis_reports=[AnalysisReport(date="16.01.2026", projects=[make_project()])],
        diff_reports=[DiffReport(date="16.01.2026", compared_to="15.01.2026")],
    )

    display_full_report(report, latest_only=True)

    assert "No changes since 15.01.2026" in capsys.readouterr().out


def test_display_full_report__bracketed_values_do_not_break_rendering(capsys: pytest.CaptureFixture[str]):
    report = FullReport(
        analysis_reports=[AnalysisReport(date="16.01.2026", projects=[make_project(project="[red]svc")])],
        diff_reports=[
            DiffReport(
                date="16.01.2026",
                compared_to="15.01.2026",
                entries=[make_entry(project="[red]svc", remark="Hotspots reviewed [/] dropped")],
            )
        ],
    )

    display_full_report(report, latest_only=True)

    assert "16.01.2026: Diff 15.01.2026" in capsys.readouterr().out


def test_create_diff_table__renders_bracketed_text_literally():
    diff = DiffReport(
        date="16.01.2026",
        compared_to="15.01.2026",
        entries=[make_entry(project="[red]svc", remark="see [bold] tag [/] here")],
    )
    wide = Console(file=io.StringIO(), width=200)

    wide.print(create_diff_table(diff))

    output = wide.file.getvalue()
    assert "see [bold] tag [/] here" in output
    assert "[red]svc" in output


def test_create_projects_table__title_is_not_markup():
    report = AnalysisReport(date="16.01.2026", title="[/] projects", projects=[make_project()])

    assert create_projects_table(report).title.plain == "16.01.2026: [/] projects"

"""Pipeline orchestration: extract, optionally compare, price, and merge history."""

import logging
from collections.abc import Sequence
from datetime import date

from sonardiff.core.errors import PreconditionError
from sonardiff.core.models import (
    DEFAULT_REPORT_TITLE,
    AnalysisCost,
    AnalysisReport,
    AnalysisResult,
    DiffReport,
    FullReport,
    calculate_stage_cost,
)
from sonardiff.core.settings import settings
from sonardiff.services.comparison_service import compare_metrics
from sonardiff.services.extraction_service import extract_metrics
from sonardiff.services.llm_wrapper import require_api_key

logger = logging.getLogger(__name__)


def format_report_date(day: date | None = None) -> str:
    """Format a date the way report section headers use it (DD.MM.YYYY)."""
    day = day or date.today()
    return day.strftime("%d.%m.%Y")


async def analyze_screenshots(
    images: Sequence[str],
    api_key: str,
    baseline: FullReport | None = None,
    *,
    report_date: date | None = None,
) -> AnalysisResult:
    """Run one analysis over a set of screenshots.

    Extraction always runs. Comparison runs only when the baseline holds at
    least one analysis report, against the last of them. History is only ever
    appended to: the baseline's reports are returned unchanged, followed by
    the new ones.

    Args:
        images: Base64 image payloads or data URIs
        api_key: Provider credential, passed explicitly to each stage
        baseline: Previously saved history, if any
        report_date: Date stamped on the new reports (default: today)

    Returns:
        AnalysisResult with the merged history and the per-stage cost.
    """
    api_key = require_api_key(api_key)
    if not images:
        raise PreconditionError("At least one screenshot is required")

    today = format_report_date(report_date)

    extraction = await extract_metrics(images, api_key)
    extraction_cost = calculate_stage_cost(settings.extraction_model, extraction.usage)
    logger.info(f"Extracted {len(extraction.projects)} projects for ${extraction_cost.cost:.4f}")

    new_report = AnalysisReport(date=today, title=DEFAULT_REPORT_TITLE, projects=extraction.projects)

    comparison_target = baseline.latest_analysis if baseline is not None else None
    if comparison_target is None:
        return AnalysisResult(
            report=FullReport(analysis_reports=(new_report,), diff_reports=()),
            cost=AnalysisCost.from_stages(extraction_cost),
        )

    comparison = await compare_metrics(extraction.projects, comparison_target, api_key)
    comparison_cost = calculate_stage_cost(settings.comparison_model, comparison.usage)
    logger.info(
        f"Found {len(comparison.entries)} changes since {comparison_target.date} for ${comparison_cost.cost:.4f}"
    )

    new_diff = DiffReport(date=today, compared_to=comparison_target.date, entries=comparison.entries)
    merged = FullReport(
        analysis_reports=(*baseline.analysis_reports, new_report),
        diff_reports=(*baseline.diff_reports, new_diff),
    )
    return AnalysisResult(report=merged, cost=AnalysisCost.from_stages(extraction_cost, comparison_cost))

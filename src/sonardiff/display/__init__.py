"""Display and formatting utilities for sonardiff."""

from sonardiff.display.formatters import (
    create_cost_table,
    create_diff_table,
    create_projects_table,
    display_analysis_cost,
    display_full_report,
)

__all__ = [
    "create_cost_table",
    "create_diff_table",
    "create_projects_table",
    "display_analysis_cost",
    "display_full_report",
]

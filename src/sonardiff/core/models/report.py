"""Report models shared by the CSV codec and the AI stages.

All metric values are kept as the display strings SonarCloud shows ("12k",
"A (0)", "58.9%"). Nothing in the core parses them into numbers; judging what a
change means is left to the comparison stage.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

COMPARABLE_FIELDS: tuple[str, ...] = (
    "LOC",
    "Status",
    "Security",
    "Reliability",
    "Maintainability",
    "Hotspots Reviewed",
    "Coverage (%)",
    "Duplications (%)",
)

DEFAULT_REPORT_TITLE = "h1 projects"


class QualityGateStatus(str, Enum):
    """Quality gate verdict as shown on the dashboard."""

    PASSED = "Passed"
    FAILED = "Failed"


class Degradation(str, Enum):
    """Whether a detected change is a regression."""

    YES = "Yes"
    NO = "No"
    NOTE = "Note"


class ReportModel(BaseModel):
    """Base for report models: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    def to_wire(self) -> dict:
        """Dump using the camelCase keys the AI prompts and JSON exports use."""
        return self.model_dump(by_alias=True)


class SonarProject(ReportModel):
    """One project's metrics snapshot."""

    project: str = Field(description="Project name, unique within a report")
    last_analysis: str = Field(description="Last analysis timestamp, DD/MM/YYYY, HH:MM")
    loc: str = Field(description="Lines of code, abbreviated (e.g. '12k')")
    languages: str = Field(description="Comma-joined language list")
    status: str = Field(description="Quality gate status, 'Passed' or 'Failed'")
    security: str = Field(description="Grade with issue count, e.g. 'A (0)'")
    reliability: str = Field(description="Grade with issue count, e.g. 'E (40)'")
    maintainability: str = Field(description="Grade with code smell count, e.g. 'A (246)'")
    hotspots_reviewed: str = Field(description="Grade with reviewed percentage, e.g. 'E (0.0%)'")
    coverage: str = Field(description="Coverage percentage including '%'")
    duplications: str = Field(description="Duplication percentage including '%'")


class AnalysisReport(ReportModel):
    """A dated snapshot of all extracted projects."""

    date: str = Field(description="Report date, DD.MM.YYYY")
    title: str = DEFAULT_REPORT_TITLE
    projects: tuple[SonarProject, ...] = ()


class DiffEntry(ReportModel):
    """One detected change between a baseline and a new snapshot."""

    project: str
    field: str = Field(description="One of COMPARABLE_FIELDS")
    old_value: str
    new_value: str
    delta: str = Field(description="Pre-formatted signed delta, e.g. '+1.4 pp' or 'C → A'")
    degradation: str = ""
    remark: str = ""

    @field_validator("degradation", "remark", mode="before")
    @classmethod
    def none_as_empty(cls, v: str | None) -> str:
        return "" if v is None else v


class DiffReport(ReportModel):
    """Changes detected on `date` against the report dated `compared_to`."""

    date: str
    compared_to: str = ""
    entries: tuple[DiffEntry, ...] = ()


class FullReport(ReportModel):
    """Complete analysis history, oldest first."""

    analysis_reports: tuple[AnalysisReport, ...] = ()
    diff_reports: tuple[DiffReport, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.analysis_reports and not self.diff_reports

    @property
    def latest_analysis(self) -> AnalysisReport | None:
        """The chronologically last analysis report, used as comparison baseline."""
        if not self.analysis_reports:
            return None
        return self.analysis_reports[-1]

"""Outputs of the AI stages and of a full pipeline run."""

from pydantic import BaseModel, ConfigDict

from sonardiff.core.models.cost import AnalysisCost, TokenUsage
from sonardiff.core.models.report import DiffEntry, FullReport, SonarProject


class ExtractionResult(BaseModel):
    """Projects read from the screenshots plus the request's token usage."""

    model_config = ConfigDict(frozen=True)

    projects: tuple[SonarProject, ...]
    usage: TokenUsage


class ComparisonResult(BaseModel):
    """Diff entries produced against a baseline plus the request's token usage."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[DiffEntry, ...]
    usage: TokenUsage


class AnalysisResult(BaseModel):
    """Merged history and cost breakdown returned by one pipeline run."""

    model_config = ConfigDict(frozen=True)

    report: FullReport
    cost: AnalysisCost

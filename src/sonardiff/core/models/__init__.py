"""Models package for sonardiff.

Re-exports all model types from submodules for convenience.
"""

from sonardiff.core.models.cost import (
    MODEL_PRICING,
    AnalysisCost,
    ModelPricing,
    StageCost,
    TokenUsage,
    calculate_stage_cost,
)
from sonardiff.core.models.report import (
    COMPARABLE_FIELDS,
    DEFAULT_REPORT_TITLE,
    AnalysisReport,
    Degradation,
    DiffEntry,
    DiffReport,
    FullReport,
    QualityGateStatus,
    SonarProject,
)
from sonardiff.core.models.results import AnalysisResult, ComparisonResult, ExtractionResult

__all__ = [
    "AnalysisCost",
    "AnalysisReport",
    "AnalysisResult",
    "COMPARABLE_FIELDS",
    "ComparisonResult",
    "DEFAULT_REPORT_TITLE",
    "Degradation",
    "DiffEntry",
    "DiffReport",
    "ExtractionResult",
    "FullReport",
    "MODEL_PRICING",
    "ModelPricing",
    "QualityGateStatus",
    "SonarProject",
    "StageCost",
    "TokenUsage",
    "calculate_stage_cost",
]

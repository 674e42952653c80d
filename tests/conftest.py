"""Shared test fixtures and helpers."""

import json

import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.usage import RequestUsage

from sonardiff.core.models import AnalysisReport, DiffEntry, DiffReport, FullReport, SonarProject

ANALYSIS_HEADER = (
    "Project,Last analysis,LOC,Languages,Status,Security,Reliability,Maintainability,"
    "Hotspots Reviewed,Coverage (%),Duplications (%)"
)

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def make_project(**overrides) -> SonarProject:
    """Create a SonarProject with realistic defaults.

    Args:
        **overrides: Any fields to override from defaults.
    """
    defaults = {
        "project": "my-project",
        "last_analysis": "16/01/2026, 10:30",
        "loc": "12k",
        "languages": "Java, XML",
        "status": "Passed",
        "security": "A (0)",
        "reliability": "A (0)",
        "maintainability": "A (150)",
        "hotspots_reviewed": "A (100%)",
        "coverage": "85.0%",
        "duplications": "2.1%",
    }
    defaults.update(overrides)
    return SonarProject(**defaults)


def make_entry(**overrides) -> DiffEntry:
    defaults = {
        "project": "my-project",
        "field": "Coverage (%)",
        "old_value": "82.0%",
        "new_value": "85.0%",
        "delta": "+3.0 pp",
        "degradation": "No",
        "remark": "Coverage improved",
    }
    defaults.update(overrides)
    return DiffEntry(**defaults)


def json_response_model(
    payload: dict | str, input_tokens: int = 1200, output_tokens: int = 300
) -> tuple[FunctionModel, list[list[ModelMessage]]]:
    """FunctionModel that answers every request with the given JSON payload.

    Returns:
        The model and the list it records each request's messages into.
    """
    text = payload if isinstance(payload, str) else json.dumps(payload)
    requests: list[list[ModelMessage]] = []

    def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        requests.append(list(messages))
        return ModelResponse(
            parts=[TextPart(content=text)],
            usage=RequestUsage(input_tokens=input_tokens, output_tokens=output_tokens),
        )

    return FunctionModel(respond), requests


def request_parts(messages: list[ModelMessage], part_kind: str) -> list:
    """All parts of the given kind across the request messages."""
    return [part for message in messages for part in getattr(message, "parts", []) if part.part_kind == part_kind]


@pytest.fixture
def sample_project() -> SonarProject:
    return make_project()


@pytest.fixture
def two_day_history() -> FullReport:
    """History with two analysis sections and one diff between them."""
    return FullReport(
        analysis_reports=[
            AnalysisReport(
                date="14.01.2026",
                projects=[make_project(last_analysis="14/01/2026, 09:00", coverage="80.0%")],
            ),
            AnalysisReport(
                date="15.01.2026",
                projects=[make_project(last_analysis="15/01/2026, 10:00", coverage="82.0%")],
            ),
        ],
        diff_reports=[
            DiffReport(
                date="15.01.2026",
                compared_to="14.01.2026",
                entries=[make_entry(old_value="80.0%", new_value="82.0%", delta="+2.0 pp")],
            )
        ],
    )


@pytest.fixture
def mixed_csv() -> str:
    return f"""15.01.2026: h1 projects
{ANALYSIS_HEADER}
my-project,"15/01/2026, 10:00",10k,Java,Passed,A (0),A (0),A (100),A (100%),82.0%,1.0%

16.01.2026: h1 projects
{ANALYSIS_HEADER}
my-project,"16/01/2026, 10:30",12k,Java,Passed,A (0),A (0),A (150),A (100%),85.0%,2.1%

16.01.2026: Diff 15.01.2026
Project,Field,Value_15.01.2026,Value_16.01.2026,Delta,Degradation,Remark
my-project,Coverage (%),82.0%,85.0%,+3.0 pp,No,Coverage improved
"""

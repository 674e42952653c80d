"""Reasoning stage: diff freshly extracted metrics against a baseline report."""

import json
import logging
from collections.abc import Sequence

from pydantic import ValidationError
from pydantic_ai.models import Model

from sonardiff.core.errors import ShapeValidationError
from sonardiff.core.models import COMPARABLE_FIELDS, AnalysisReport, ComparisonResult, DiffEntry, SonarProject
from sonardiff.core.settings import settings
from sonardiff.services.llm_wrapper import build_stage_agent, parse_json_array, require_api_key, run_stage_agent

logger = logging.getLogger(__name__)

STAGE = "comparison"

COMPARISON_SYSTEM_PROMPT = """You are an expert code quality analyst comparing two SonarCloud metric snapshots of the same projects.

You receive a baseline snapshot and a current snapshot as JSON. Report every meaningful change between them and judge whether it is a quality regression.

## Rules

1. Compare ONLY these fields: {fields}
2. NEVER compare the last analysis timestamp
3. Omit a project entirely when none of its compared fields changed meaningfully
4. Group entries by project name (alphabetical), then by field in the order listed above
5. Use exactly the field labels listed above in the "field" property
6. Return ONLY valid JSON - no explanations, no markdown code blocks"""

COMPARISON_USER_PROMPT = """## TASK: Compare Current Metrics with Baseline Data

### Baseline ({baseline_date})

{baseline_projects}

### Current

{current_projects}

## Required JSON Output Format:

{{
  "entries": [
    {{
      "project": "project-name",
      "field": "Coverage (%)",
      "oldValue": "85.6%",
      "newValue": "87.0%",
      "delta": "+1.4 pp",
      "degradation": "No",
      "remark": "Test coverage improved - good progress"
    }}
  ]
}}

## Diff Report Guidelines:

**Fields to compare:** {fields}

**Delta format examples:**
- LOC: "+2k", "-500"
- Coverage: "+1.4 pp", "-0.5 pp" (percentage points)
- Issues/Smells: "+23 Issues", "-5 Issues"
- Status: "Failed → Passed", "Passed → Failed"
- Grades: "C → A", "A → E"

**Degradation values:**
- "Yes" = Quality got worse (more issues, less coverage, worse grade)
- "No" = Quality improved or stayed same
- "Note" = Neutral observation (e.g., LOC growth is neither good nor bad)

**Remark guidelines (in English):**
- Be specific about what changed and why it matters
- Examples:
  - "Coverage significantly improved"
  - "Reliability issues increased - fix bugs"
  - "Codebase grew, coverage remained stable"
  - "Security hotspots not reviewed - risk"
  - "Technical debt reduced"
  - "Status improved - Quality Gate passed"

Projects with no meaningful changes must not appear in "entries"."""


def _projects_json(projects: Sequence[SonarProject]) -> str:
    return json.dumps([project.to_wire() for project in projects], indent=2, ensure_ascii=False)


def build_comparison_prompts(projects: Sequence[SonarProject], baseline: AnalysisReport) -> tuple[str, str]:
    """Build the (system, user) prompt pair embedding both project lists."""
    fields = ", ".join(COMPARABLE_FIELDS)
    system_prompt = COMPARISON_SYSTEM_PROMPT.format(fields=fields)
    user_prompt = COMPARISON_USER_PROMPT.format(
        baseline_date=baseline.date,
        baseline_projects=_projects_json(baseline.projects),
        current_projects=_projects_json(projects),
        fields=fields,
    )
    return system_prompt, user_prompt


def _entry_sort_key(entry: DiffEntry) -> tuple[str, int]:
    return entry.project.lower(), COMPARABLE_FIELDS.index(entry.field)


def _validate_entries(items: list) -> tuple[DiffEntry, ...]:
    try:
        entries = [DiffEntry.model_validate(item) for item in items]
    except ValidationError as e:
        logger.error(f"Diff entry failed validation: {e}")
        raise ShapeValidationError(
            f"Invalid {STAGE} response structure: {e.error_count()} invalid entry fields", stage=STAGE
        ) from e

    unknown = sorted({entry.field for entry in entries if entry.field not in COMPARABLE_FIELDS})
    if unknown:
        raise ShapeValidationError(
            f"Invalid {STAGE} response structure: unknown fields {', '.join(unknown)}", stage=STAGE
        )

    # Grouping is requested in the prompt; sorting keeps it true regardless of the model.
    return tuple(sorted(entries, key=_entry_sort_key))


async def compare_metrics(
    projects: Sequence[SonarProject],
    baseline: AnalysisReport,
    api_key: str,
    *,
    model: Model | None = None,
) -> ComparisonResult:
    """Ask the reasoning model which metrics changed since the baseline.

    Args:
        projects: Freshly extracted projects
        baseline: Most recent saved analysis report
        api_key: Provider credential
        model: Optional pre-built model, replacing the configured comparison model

    Returns:
        ComparisonResult with entries sorted by project then field, and the token usage.
    """
    api_key = require_api_key(api_key, stage=STAGE)

    system_prompt, user_prompt = build_comparison_prompts(projects, baseline)
    agent = build_stage_agent(settings.comparison_model, api_key, system_prompt, model=model)
    logger.debug(
        f"Comparing {len(projects)} projects against {len(baseline.projects)} from {baseline.date} "
        f"on {settings.comparison_model}"
    )
    response, usage = await run_stage_agent(agent, user_prompt, STAGE)

    entries = _validate_entries(parse_json_array(response, "entries", STAGE))
    return ComparisonResult(entries=entries, usage=usage)

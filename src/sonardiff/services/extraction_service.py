"""Vision stage: read SonarCloud project metrics from dashboard screenshots."""

import logging
from collections.abc import Sequence

from pydantic import ValidationError
from pydantic_ai.models import Model

from sonardiff.core.errors import PreconditionError, ShapeValidationError
from sonardiff.core.models import ExtractionResult, SonarProject
from sonardiff.core.settings import settings
from sonardiff.services.llm_wrapper import (
    build_stage_agent,
    image_content,
    parse_json_array,
    require_api_key,
    run_stage_agent,
)

logger = logging.getLogger(__name__)

STAGE = "extraction"

EXTRACTION_SYSTEM_PROMPT = """You are an expert code quality analyst specializing in SonarCloud/SonarQube metrics extraction.

Your task is to carefully analyze screenshots from SonarCloud project dashboards and extract ALL visible project quality metrics with 100% accuracy.
{multi_image_note}
## What to Extract from SonarCloud Screenshots

SonarCloud project lists typically show these columns:
- **Project name**: The name/identifier of the project
- **Last analysis**: Date and time of the most recent analysis (format: DD/MM/YYYY, HH:MM)
- **LOC (Lines of Code)**: Usually shown as "12k", "1.1k", "44k" etc.
- **Languages**: Programming languages used (e.g., "Java, XML", "TypeScript, HTML")
- **Quality Gate Status**: "Passed" (green) or "Failed" (red)
- **Security**: Letter grade A-E with issue count in parentheses, e.g., "A (0)", "C (2)"
- **Reliability**: Letter grade A-E with issue count, e.g., "A (0)", "E (40)"
- **Maintainability**: Letter grade A-E with code smell count, e.g., "A (246)"
- **Security Hotspots Reviewed**: Percentage with letter grade, e.g., "A (100%)", "E (0.0%)"
- **Coverage**: Test coverage percentage, e.g., "58.9%", "77.1%"
- **Duplications**: Code duplication percentage, e.g., "3.8%", "0.0%"

## Important Rules

1. Extract ALL projects visible across ALL screenshots - do not skip any
2. DEDUPLICATE: If a project appears in multiple screenshots, include it only once
3. Be PRECISE with values - copy exactly what you see
4. Status must be exactly "Passed" or "Failed"
5. Preserve the exact format of metrics (e.g., "A (0)" not just "A")
6. Keep LOC format as shown (e.g., "12k" not "12000")
7. Coverage and Duplications should include the % symbol
8. If a value is not visible or unclear, use "N/A"
9. Return ONLY valid JSON - no explanations, no markdown code blocks

## Quality Metrics Grading Scale
- A = Best (typically 0 issues or 100% coverage)
- B = Good
- C = Acceptable
- D = Poor
- E = Worst (many issues or 0% coverage)"""

MULTI_IMAGE_NOTE = (
    "\nIMPORTANT: You are receiving {count} screenshots from the same page (scrolled). "
    "Combine data from ALL screenshots into a single unified list. "
    "Remove any duplicate projects that appear in multiple screenshots.\n"
)

EXTRACTION_USER_PROMPT = """## TASK: Extract Project Metrics from {subject}

{scope}

Look carefully at every row in the project list and extract:
- Project name
- Last analysis date/time
- Lines of code (LOC)
- Programming languages
- Quality gate status (Passed/Failed)
- Security rating and issues
- Reliability rating and issues
- Maintainability rating and code smells
- Security hotspots reviewed percentage
- Test coverage percentage
- Code duplication percentage

## Required JSON Output Format:

{{
  "projects": [
    {{
      "project": "project-name",
      "lastAnalysis": "DD/MM/YYYY, HH:MM",
      "loc": "12k",
      "languages": "Java, XML",
      "status": "Passed",
      "security": "A (0)",
      "reliability": "E (40)",
      "maintainability": "A (246)",
      "hotspotsReviewed": "E (0.0%)",
      "coverage": "58.9%",
      "duplications": "3.8%"
    }}
  ]
}}

Extract data for EVERY project visible across {where}. Be precise and accurate."""


def build_extraction_prompts(image_count: int) -> tuple[str, str]:
    """Build the (system, user) prompt pair for a request carrying `image_count` images."""
    multiple = image_count > 1
    system_prompt = EXTRACTION_SYSTEM_PROMPT.format(
        multi_image_note=MULTI_IMAGE_NOTE.format(count=image_count) if multiple else ""
    )

    if multiple:
        subject = f"{image_count} Screenshots"
        scope = (
            f"You have {image_count} screenshots showing different parts of the same SonarCloud page "
            "(scrolled view). Extract ALL projects from ALL screenshots and combine them into one unified "
            "list. If a project appears in multiple screenshots, include it only once."
        )
        where = "all screenshots"
    else:
        subject = "Screenshot"
        scope = "Analyze this SonarCloud screenshot and extract ALL project quality metrics."
        where = "the screenshot"

    return system_prompt, EXTRACTION_USER_PROMPT.format(subject=subject, scope=scope, where=where)


def _validate_projects(items: list) -> tuple[SonarProject, ...]:
    try:
        projects = [SonarProject.model_validate(item) for item in items]
    except ValidationError as e:
        logger.error(f"Extracted project failed validation: {e}")
        raise ShapeValidationError(
            f"Invalid {STAGE} response structure: {e.error_count()} invalid project fields", stage=STAGE
        ) from e

    unique: dict[str, SonarProject] = {}
    for project in projects:
        if project.project in unique:
            logger.warning(f"Dropping duplicate project '{project.project}' from extraction response")
            continue
        unique[project.project] = project
    return tuple(unique.values())


async def extract_metrics(
    images: Sequence[str],
    api_key: str,
    *,
    model: Model | None = None,
) -> ExtractionResult:
    """Extract per-project metrics from one or more dashboard screenshots.

    Args:
        images: Base64 image payloads or data URIs, in capture order
        api_key: Provider credential
        model: Optional pre-built model, replacing the configured vision model

    Returns:
        ExtractionResult with projects deduplicated by name and the token usage.

    Raises:
        PreconditionError: No images or no credential.
        AnalysisError: Any transport, empty-response, parse, or shape failure.
    """
    api_key = require_api_key(api_key, stage=STAGE)
    if not images:
        raise PreconditionError("At least one screenshot is required", stage=STAGE)

    system_prompt, user_prompt = build_extraction_prompts(len(images))
    content = [user_prompt, *(image_content(image) for image in images)]

    agent = build_stage_agent(settings.extraction_model, api_key, system_prompt, model=model)
    logger.debug(f"Sending {len(images)} screenshot(s) to {settings.extraction_model}")
    response, usage = await run_stage_agent(agent, content, STAGE)

    projects = _validate_projects(parse_json_array(response, "projects", STAGE))
    return ExtractionResult(projects=projects, usage=usage)

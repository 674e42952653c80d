"""Tests for extraction_service.py."""

import pytest
from conftest import PNG_BASE64, json_response_model, make_project, request_parts
from pydantic_ai import BinaryContent
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import ModelMessage, ModelResponse
from pydantic_ai.models.function import AgentInfo, FunctionModel

from sonardiff.core.errors import (
    MissingCredentialError,
    PreconditionError,
    ResponseParseError,
    ShapeValidationError,
    TransportError,
)
from sonardiff.services.extraction_service import build_extraction_prompts, extract_metrics


def _project_json(**overrides) -> dict:
    return make_project(**overrides).to_wire()


class TestBuildExtractionPrompts:
    """Tests for prompt construction."""

    def test_build_extraction_prompts__single_image_has_no_dedup_note(self):
        system_prompt, user_prompt = build_extraction_prompts(1)

        assert "screenshots from the same page" not in system_prompt
        assert "Analyze this SonarCloud screenshot" in user_prompt

    def test_build_extraction_prompts__multiple_images_ask_for_dedup(self):
        system_prompt, user_prompt = build_extraction_prompts(3)

        assert "receiving 3 screenshots from the same page" in system_prompt
        assert "include it only once" in user_prompt
        assert "3 Screenshots" in user_prompt

    def test_build_extraction_prompts__describes_fields_and_status_literals(self):
        system_prompt, user_prompt = build_extraction_prompts(1)

        assert 'Status must be exactly "Passed" or "Failed"' in system_prompt
        assert '"A (0)"' in system_prompt
        for key in ("lastAnalysis", "hotspotsReviewed", "duplications"):
            assert f'"{key}"' in user_prompt


class TestExtractMetrics:
    """Tests for extract_metrics against a scripted model."""

    @pytest.mark.asyncio
    async def test_extract_metrics__returns_projects_and_usage(self):
        model, _ = json_response_model(
            {"projects": [_project_json(project="api"), _project_json(project="web")]},
            input_tokens=2000,
            output_tokens=800,
        )

        result = await extract_metrics([PNG_BASE64], "sk-test", model=model)

        assert [p.project for p in result.projects] == ["api", "web"]
        assert result.projects[0] == make_project(project="api")
        assert result.usage.input_tokens == 2000
        assert result.usage.output_tokens == 800

    @pytest.mark.asyncio
    async def test_extract_metrics__accepts_fenced_json(self):
        fenced = '```json\n{"projects": [' + make_project().model_dump_json(by_alias=True) + "]}\n```"
        model, _ = json_response_model(fenced)

        result = await extract_metrics([PNG_BASE64], "sk-test", model=model)

        assert result.projects == (make_project(),)

    @pytest.mark.asyncio
    async def test_extract_metrics__sends_every_image_with_high_detail(self):
        model, requests = json_response_model({"projects": []})

        await extract_metrics([PNG_BASE64, f"data:image/jpeg;base64,{PNG_BASE64}"], "sk-test", model=model)

        user_parts = request_parts(requests[0], "user-prompt")
        images = [item for item in user_parts[0].content if isinstance(item, BinaryContent)]
        assert [image.media_type for image in images] == ["image/png", "image/jpeg"]
        assert all(image.vendor_metadata == {"detail": "high"} for image in images)

        system_parts = request_parts(requests[0], "system-prompt")
        assert "receiving 2 screenshots" in system_parts[0].content

    @pytest.mark.asyncio
    async def test_extract_metrics__drops_duplicate_projects(self):
        model, _ = json_response_model(
            {
                "projects": [
                    _project_json(project="api", coverage="50.0%"),
                    _project_json(project="web"),
                    _project_json(project="api", coverage="51.0%"),
                ]
            }
        )

        result = await extract_metrics([PNG_BASE64, PNG_BASE64], "sk-test", model=model)

        assert [p.project for p in result.projects] == ["api", "web"]
        assert result.projects[0].coverage == "50.0%"

    @pytest.mark.asyncio
    async def test_extract_metrics__missing_projects_array_is_shape_error(self):
        model, _ = json_response_model({"analysisReports": []})

        with pytest.raises(ShapeValidationError):
            await extract_metrics([PNG_BASE64], "sk-test", model=model)

    @pytest.mark.asyncio
    async def test_extract_metrics__incomplete_project_is_shape_error(self):
        model, _ = json_response_model({"projects": [{"project": "api", "loc": "12k"}]})

        with pytest.raises(ShapeValidationError):
            await extract_metrics([PNG_BASE64], "sk-test", model=model)

    @pytest.mark.asyncio
    async def test_extract_metrics__non_json_is_parse_error(self):
        model, _ = json_response_model("I could not find any projects in this image.")

        with pytest.raises(ResponseParseError):
            await extract_metrics([PNG_BASE64], "sk-test", model=model)

    @pytest.mark.asyncio
    async def test_extract_metrics__http_failure_is_transport_error(self):
        def fail(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            raise ModelHTTPError(status_code=429, model_name="gpt-5.2", body={"message": "Rate limit reached"})

        with pytest.raises(TransportError, match="Rate limit reached"):
            await extract_metrics([PNG_BASE64], "sk-test", model=FunctionModel(fail))

    @pytest.mark.asyncio
    async def test_extract_metrics__requires_api_key(self):
        model, requests = json_response_model({"projects": []})

        with pytest.raises(MissingCredentialError):
            await extract_metrics([PNG_BASE64], "", model=model)

        assert requests == []

    @pytest.mark.asyncio
    async def test_extract_metrics__requires_images(self):
        model, requests = json_response_model({"projects": []})

        with pytest.raises(PreconditionError):
            await extract_metrics([], "sk-test", model=model)

        assert requests == []

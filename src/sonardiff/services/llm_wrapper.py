"""pydantic-ai plumbing shared by the extraction and comparison stages.

Every stage call builds its own provider from the credential it was handed;
nothing here reads the API key from settings.
"""

import base64
import binascii
import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from openai import APIConnectionError, AsyncOpenAI
from pydantic_ai import Agent, BinaryContent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.messages import UserContent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from sonardiff.core.errors import (
    EmptyResponseError,
    MissingCredentialError,
    PreconditionError,
    ResponseParseError,
    ShapeValidationError,
    TransportError,
)
from sonardiff.core.models import TokenUsage
from sonardiff.core.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MEDIA_TYPE = "image/png"
IMAGE_DETAIL = "high"

CODE_FENCE_RE = re.compile(r"```(?:json)?\n?", re.IGNORECASE)


def require_api_key(api_key: str | None, stage: str | None = None) -> str:
    if not api_key or not api_key.strip():
        raise MissingCredentialError(stage=stage)
    return api_key.strip()


def get_openai_model(model_name: str, api_key: str) -> OpenAIChatModel:
    """Create a chat model bound to the given credential.

    The OpenAI client's own retries are disabled: a failed request is reported once.
    """
    client = AsyncOpenAI(api_key=api_key, base_url=settings.openai_base_url, max_retries=0)
    return OpenAIChatModel(model_name, provider=OpenAIProvider(openai_client=client))


def build_stage_agent(
    model_name: str,
    api_key: str,
    system_prompt: str,
    model: Model | None = None,
) -> Agent[None, str]:
    """Build a single-shot text agent for one pipeline stage.

    Args:
        model_name: Provider model name, used when no model is supplied
        api_key: Credential for the provider
        system_prompt: Instructions sent as the system message
        model: Pre-built model to use instead (e.g. a test double)
    """
    return Agent(
        model or get_openai_model(model_name, api_key),
        output_type=str,
        system_prompt=system_prompt,
        model_settings=ModelSettings(max_tokens=settings.max_completion_tokens),
        retries=0,
    )


def normalize_image_payload(payload: str) -> str:
    """Return the payload as a data URI, assuming PNG for raw base64."""
    payload = payload.strip()
    if payload.startswith("data:"):
        return payload
    return f"data:{DEFAULT_IMAGE_MEDIA_TYPE};base64,{payload}"


def image_content(payload: str) -> BinaryContent:
    """Decode an image payload into content the model request can carry.

    Raises:
        PreconditionError: If the payload is not a base64 image.
    """
    data_uri = normalize_image_payload(payload)
    header, _, encoded = data_uri.partition(",")
    params = header[len("data:") :].split(";")
    media_type = params[0] or DEFAULT_IMAGE_MEDIA_TYPE

    if "base64" not in params[1:]:
        raise PreconditionError("Image payload must be base64 encoded", stage="extraction")

    try:
        data = base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise PreconditionError(f"Image payload is not valid base64: {e}", stage="extraction") from e

    return BinaryContent(data=data, media_type=media_type, vendor_metadata={"detail": IMAGE_DETAIL})


def strip_code_fences(text: str) -> str:
    return CODE_FENCE_RE.sub("", text).strip()


def provider_error_message(body: Any, status_code: int | None) -> str:
    """Pick the provider's error message out of an error body, if it has one."""
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"API error: {status_code}"


def parse_json_array(content: str, key: str, stage: str) -> list[Any]:
    """Parse a model response and return the array stored under `key`.

    Raises:
        ResponseParseError: If the content is not JSON after removing code fences.
        ShapeValidationError: If the JSON is not an object holding an array at `key`.
    """
    try:
        document = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse {stage} response: {content}")
        raise ResponseParseError(
            f"Failed to parse {stage} response. The AI response was not valid JSON. Please try again.",
            stage=stage,
        ) from e

    if not isinstance(document, dict) or not isinstance(document.get(key), list):
        logger.error(f"Unexpected {stage} response structure: {content}")
        raise ShapeValidationError(f"Invalid {stage} response structure: missing '{key}' array", stage=stage)

    return document[key]


async def run_stage_agent(
    agent: Agent[None, str], user_prompt: str | Sequence[UserContent], stage: str
) -> tuple[str, TokenUsage]:
    """Send one request and return the response text with its token usage.

    Raises:
        TransportError: On a non-success status or when the provider is unreachable.
        EmptyResponseError: When the provider returned no content.
    """
    try:
        result = await agent.run(user_prompt)
    except ModelHTTPError as e:
        raise TransportError(
            provider_error_message(e.body, e.status_code), status_code=e.status_code, stage=stage
        ) from e
    except APIConnectionError as e:
        raise TransportError(f"API error: {e}", stage=stage) from e
    except UnexpectedModelBehavior as e:
        raise EmptyResponseError(f"No response content from the {stage} model", stage=stage) from e

    content = result.output
    if not content or not content.strip():
        raise EmptyResponseError(f"No response content from the {stage} model", stage=stage)

    # A method up to pydantic-ai 1.x, a property afterwards
    run_usage = result.usage() if callable(result.usage) else result.usage
    usage = TokenUsage(
        input_tokens=run_usage.input_tokens or 0,
        output_tokens=run_usage.output_tokens or 0,
    )
    logger.debug(
        f"{stage} usage: {usage.total_tokens} tokens "
        f"({usage.input_tokens} input / {usage.output_tokens} output)"
    )
    return content, usage

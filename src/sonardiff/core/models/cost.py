"""Token usage, pricing, and per-run cost models."""

import logging

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

TOKENS_PER_MILLION = 1_000_000


class TokenUsage(BaseModel):
    """Token counts reported by the provider for one request."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ModelPricing(BaseModel):
    """Published price of a model in dollars per million tokens."""

    model_config = ConfigDict(frozen=True)

    input_per_million: float = Field(description="USD per 1M input tokens")
    output_per_million: float = Field(description="USD per 1M output tokens")


# Vision extraction runs on the expensive model; comparison is text-only and cheap.
MODEL_PRICING: dict[str, ModelPricing] = {
    "gpt-5.2": ModelPricing(input_per_million=1.75, output_per_million=14.00),
    "gpt-5-mini": ModelPricing(input_per_million=0.25, output_per_million=2.00),
}


class StageCost(BaseModel):
    """Cost breakdown of a single pipeline stage."""

    model_config = ConfigDict(frozen=True)

    model: str
    input_tokens: int
    output_tokens: int
    cost: float = Field(description="Estimated cost in USD")


class AnalysisCost(BaseModel):
    """Cost of one pipeline run. Never persisted."""

    model_config = ConfigDict(frozen=True)

    extraction: StageCost
    comparison: StageCost | None = None
    total_cost: float

    @classmethod
    def from_stages(cls, extraction: StageCost, comparison: StageCost | None = None) -> "AnalysisCost":
        total = extraction.cost + (comparison.cost if comparison else 0.0)
        return cls(extraction=extraction, comparison=comparison, total_cost=total)

    @property
    def total_input_tokens(self) -> int:
        return self.extraction.input_tokens + (self.comparison.input_tokens if self.comparison else 0)

    @property
    def total_output_tokens(self) -> int:
        return self.extraction.output_tokens + (self.comparison.output_tokens if self.comparison else 0)


def calculate_stage_cost(model: str, usage: TokenUsage) -> StageCost:
    """Price a stage's token usage with the fixed per-model table.

    Args:
        model: Model name the stage ran on
        usage: Token counts reported by the provider

    Returns:
        StageCost with cost = (input * input_price + output * output_price) / 1M.
        Models missing from MODEL_PRICING are priced at zero.
    """
    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        logger.warning(f"No pricing known for model '{model}', reporting zero cost")
        pricing = ModelPricing(input_per_million=0.0, output_per_million=0.0)

    cost = (
        usage.input_tokens * pricing.input_per_million + usage.output_tokens * pricing.output_per_million
    ) / TOKENS_PER_MILLION

    return StageCost(
        model=model,
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        cost=cost,
    )

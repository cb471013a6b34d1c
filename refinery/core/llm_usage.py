"""Centralized LLM usage logger for token/cost tracking."""

import logging

from refinery.core.logging import get_logger, log_with_context

logger = get_logger(__name__)

# Pricing per 1M tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    # Anthropic
    "claude-opus-4-5-20251101": (15.0, 75.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-sonnet-4-20250514": (3.0, 15.0),
    "claude-haiku-4-5-20251001": (0.80, 4.0),
    "claude-3-5-haiku-20241022": (0.80, 4.0),
    # OpenAI
    "gpt-4o": (2.50, 10.0),
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4o-mini": (0.15, 0.60),
}


def _estimate_cost(
    model: str,
    tokens_input: int,
    tokens_output: int,
    tokens_cache_read: int = 0,
) -> float:
    """Estimate cost in USD based on model pricing."""
    pricing = MODEL_PRICING.get(model)
    if not pricing:
        # Try prefix match for model variants
        for key, val in MODEL_PRICING.items():
            if model.startswith(key.rsplit("-", 1)[0]):
                pricing = val
                break
    if not pricing:
        logger.warning(f"No pricing found for model '{model}', using $0")
        return 0.0

    input_rate, output_rate = pricing
    # Cache reads are billed at a tenth of the input rate
    cache_discount = 0.1
    effective_input = (tokens_input - tokens_cache_read) + (tokens_cache_read * cache_discount)
    cost = (effective_input * input_rate / 1_000_000) + (tokens_output * output_rate / 1_000_000)
    return round(cost, 6)


def log_llm_usage(
    workflow: str,
    model: str,
    provider: str,
    tokens_input: int,
    tokens_output: int,
    duration_ms: int = 0,
    template: str | None = None,
    layer_id: str | None = None,
    tokens_cache_read: int = 0,
    tokens_cache_create: int = 0,
) -> float:
    """Log an LLM call with its estimated cost. Returns the estimate."""
    estimated_cost = _estimate_cost(model, tokens_input, tokens_output, tokens_cache_read)

    context = {
        "workflow": workflow,
        "model": model,
        "provider": provider,
        "tokens_input": tokens_input,
        "tokens_output": tokens_output,
        "tokens_cache_read": tokens_cache_read,
        "tokens_cache_create": tokens_cache_create,
        "estimated_cost_usd": estimated_cost,
        "duration_ms": duration_ms,
    }
    if template:
        context["template"] = template
    if layer_id:
        context["layer_id"] = layer_id

    log_with_context(logger, logging.DEBUG, "LLM usage", **context)
    return estimated_cost

"""LLM client utilities for LangChain integration."""

import json
import re
from typing import TypeVar

from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from refinery.core.config import Settings, get_settings

T = TypeVar("T", bound=BaseModel)


def get_llm(
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
    settings: Settings | None = None,
) -> ChatOpenAI:
    """
    Get configured LLM instance for LangChain calls.

    Args:
        model: Model name override (defaults to config setting)
        temperature: Temperature override (defaults to config setting)
        max_tokens: Output token cap override (defaults to config setting)
        timeout: Request timeout in seconds (defaults to config setting)
        settings: Settings to read keys and defaults from (defaults to cached settings)

    Returns:
        ChatOpenAI instance configured with API key, model and timeout
    """
    settings = settings or get_settings()

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.OPENAI_MODEL,
        temperature=settings.TEXT_GENERATION_TEMPERATURE if temperature is None else temperature,
        max_tokens=max_tokens or settings.TEXT_GENERATION_MAX_TOKENS,
        timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS,
        max_retries=settings.TEXT_GENERATION_MAX_RETRIES,
    )


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _extract_json_object(cleaned: str) -> str:
    """Cut the outermost {...} span out of prose-wrapped output."""
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return cleaned
    return cleaned[start : end + 1]


def parse_llm_json(raw_output: str, model: type[T]) -> T:
    """
    Parse LLM output as JSON and validate against a Pydantic model.

    Handles common LLM response quirks:
    - Markdown code fences (```json ... ```)
    - Leading/trailing whitespace or prose around the object
    - JSON encoded twice (a string holding the object)

    Args:
        raw_output: Raw string from LLM response
        model: Pydantic model class to validate against

    Returns:
        Validated Pydantic model instance

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        pydantic.ValidationError: If parsed JSON doesn't match schema
    """
    return model.model_validate(parse_llm_json_dict(raw_output))


def parse_llm_json_dict(raw_output: str) -> dict:
    """
    Parse LLM output as JSON, returning a raw dict.

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        TypeError: If the decoded JSON is not an object
    """
    cleaned = _strip_llm_fences(raw_output)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        parsed = json.loads(_extract_json_object(cleaned))
    if isinstance(parsed, str):
        parsed = json.loads(parsed)
    if not isinstance(parsed, dict):
        raise TypeError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed

"""Text generation providers used to refine a layer's text.

Each provider turns a (system, user) instruction pair into raw reply text.
Transport, auth and configuration failures surface as TextGenerationError,
or as the mock reply when the caller asks for a mock fallback.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

import anthropic
import openai
from langchain_core.messages import HumanMessage, SystemMessage

from refinery.core.config import Settings, get_settings
from refinery.core.llm import get_llm
from refinery.core.llm_usage import log_llm_usage
from refinery.core.logging import get_logger, log_with_context

logger = get_logger(__name__)

WORKFLOW = "layer_refinement"

MOCK_REPLY = (
    "Thanks for sharing that! It sounds like a promising direction. "
    "Tell me a little more about what you have in mind and we can shape it together."
)


class TextGenerationError(Exception):
    """Raised when a provider cannot produce a reply."""


class BaseTextGenerationService(ABC):
    """Shared call wrapper: request options, timing and mock fallback."""

    provider = "base"

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @abstractmethod
    async def _generate(
        self,
        system_instruction: str,
        user_instruction: str,
        *,
        timeout: float,
        max_tokens: int,
        temperature: float,
        template: str | None = None,
        layer_id: str | None = None,
    ) -> str:
        """Return the provider's reply text or raise TextGenerationError."""

    async def call(
        self,
        system_instruction: str,
        user_instruction: str,
        *,
        timeout: float | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        fallback_to_mock: bool = False,
        template: str | None = None,
        layer_id: str | None = None,
    ) -> str:
        """
        Generate a reply for an instruction pair.

        Args:
            system_instruction: Role and rules for the provider
            user_instruction: The concrete request
            timeout: Seconds before the request is abandoned
            max_tokens: Output token cap
            temperature: Sampling temperature
            fallback_to_mock: Return the mock reply instead of raising on failure
            template: Template name recorded with usage
            layer_id: Layer being refined, recorded with usage

        Returns:
            Raw reply text

        Raises:
            TextGenerationError: If the provider fails and fallback_to_mock is False
        """
        try:
            return await self._generate(
                system_instruction,
                user_instruction,
                timeout=timeout if timeout is not None else self.settings.REQUEST_TIMEOUT_SECONDS,
                max_tokens=max_tokens or self.settings.TEXT_GENERATION_MAX_TOKENS,
                temperature=(
                    temperature
                    if temperature is not None
                    else self.settings.TEXT_GENERATION_TEMPERATURE
                ),
                template=template,
                layer_id=layer_id,
            )
        except TextGenerationError as e:
            if not fallback_to_mock:
                raise
            log_with_context(
                logger,
                logging.WARNING,
                "Text generation failed, using mock reply",
                provider=self.provider,
                error=str(e),
            )
            return MOCK_REPLY


class AnthropicTextGenerationService(BaseTextGenerationService):
    provider = "anthropic"

    async def _generate(
        self,
        system_instruction: str,
        user_instruction: str,
        *,
        timeout: float,
        max_tokens: int,
        temperature: float,
        template: str | None = None,
        layer_id: str | None = None,
    ) -> str:
        if not self.settings.ANTHROPIC_API_KEY:
            raise TextGenerationError("ANTHROPIC_API_KEY is not configured")

        client = anthropic.AsyncAnthropic(
            api_key=self.settings.ANTHROPIC_API_KEY,
            timeout=timeout,
            max_retries=self.settings.TEXT_GENERATION_MAX_RETRIES,
        )
        model = self.settings.ANTHROPIC_MODEL

        try:
            start = time.time()
            response = await client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_instruction,
                messages=[{"role": "user", "content": user_instruction}],
            )
            duration_ms = int((time.time() - start) * 1000)
        except anthropic.APIError as e:
            raise TextGenerationError(f"Anthropic request failed: {e}") from e

        usage = response.usage
        log_llm_usage(
            workflow=WORKFLOW,
            model=model,
            provider=self.provider,
            tokens_input=usage.input_tokens,
            tokens_output=usage.output_tokens,
            duration_ms=duration_ms,
            template=template,
            layer_id=layer_id,
            tokens_cache_read=getattr(usage, "cache_read_input_tokens", 0) or 0,
            tokens_cache_create=getattr(usage, "cache_creation_input_tokens", 0) or 0,
        )

        text = "".join(
            block.text for block in response.content if isinstance(getattr(block, "text", None), str)
        )
        if not text.strip():
            raise TextGenerationError("Anthropic returned an empty reply")
        return text


class OpenAITextGenerationService(BaseTextGenerationService):
    provider = "openai"

    async def _generate(
        self,
        system_instruction: str,
        user_instruction: str,
        *,
        timeout: float,
        max_tokens: int,
        temperature: float,
        template: str | None = None,
        layer_id: str | None = None,
    ) -> str:
        if not self.settings.OPENAI_API_KEY:
            raise TextGenerationError("OPENAI_API_KEY is not configured")

        llm = get_llm(
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            settings=self.settings,
        )
        messages = [
            SystemMessage(content=system_instruction),
            HumanMessage(content=user_instruction),
        ]

        try:
            start = time.time()
            response = await llm.ainvoke(messages)
            duration_ms = int((time.time() - start) * 1000)
        except openai.OpenAIError as e:
            raise TextGenerationError(f"OpenAI request failed: {e}") from e

        usage = response.usage_metadata or {}
        log_llm_usage(
            workflow=WORKFLOW,
            model=self.settings.OPENAI_MODEL,
            provider=self.provider,
            tokens_input=usage.get("input_tokens", 0),
            tokens_output=usage.get("output_tokens", 0),
            duration_ms=duration_ms,
            template=template,
            layer_id=layer_id,
        )

        content = response.content
        if not isinstance(content, str) or not content.strip():
            raise TextGenerationError("OpenAI returned an empty reply")
        return content


class MockTextGenerationService(BaseTextGenerationService):
    """Conversational canned reply. Never structured, never fails."""

    provider = "mock"

    async def _generate(
        self,
        system_instruction: str,
        user_instruction: str,
        *,
        timeout: float,
        max_tokens: int,
        temperature: float,
        template: str | None = None,
        layer_id: str | None = None,
    ) -> str:
        return MOCK_REPLY


def get_text_generation_service(settings: Settings | None = None) -> BaseTextGenerationService:
    """Service for the configured provider, or the mock when it has no API key."""
    settings = settings or get_settings()
    provider = settings.TEXT_GENERATION_PROVIDER.strip().lower()

    if provider == "anthropic" and settings.ANTHROPIC_API_KEY:
        return AnthropicTextGenerationService(settings)
    if provider == "openai" and settings.OPENAI_API_KEY:
        return OpenAITextGenerationService(settings)
    if provider not in ("anthropic", "openai", "mock"):
        logger.warning(f"Unknown text generation provider '{provider}', using mock")

    return MockTextGenerationService(settings)

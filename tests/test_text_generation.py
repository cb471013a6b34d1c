"""Tests for refinery.services.text_generation — provider adapters.

Provider SDK clients are mocked.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from refinery.core.config import Settings
from refinery.services.text_generation import (
    MOCK_REPLY,
    AnthropicTextGenerationService,
    MockTextGenerationService,
    OpenAITextGenerationService,
    TextGenerationError,
    get_text_generation_service,
)

# =============================================================================
# Helpers
# =============================================================================


def _settings(**overrides) -> Settings:
    values = {
        "REFINERY_ENV": "test",
        "TEXT_GENERATION_PROVIDER": "mock",
        "ANTHROPIC_API_KEY": None,
        "OPENAI_API_KEY": None,
    }
    values.update(overrides)
    return Settings(**values)


def _mock_anthropic_response(content_text, input_tokens=100, output_tokens=50):
    """Create a mock Anthropic messages.create response."""
    response = MagicMock()
    response.content = [MagicMock(text=content_text)]
    response.usage = MagicMock(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_read_input_tokens=0,
        cache_creation_input_tokens=0,
    )
    return response


# =============================================================================
# Anthropic
# =============================================================================


class TestAnthropicService:
    @pytest.mark.asyncio
    @patch("refinery.services.text_generation.log_llm_usage")
    @patch("anthropic.AsyncAnthropic")
    async def test_returns_reply_text(self, mock_anthropic_cls, mock_log):
        mock_client = AsyncMock()
        mock_anthropic_cls.return_value = mock_client
        mock_client.messages.create.return_value = _mock_anthropic_response('{"refined_prompt": "x"}')

        service = AnthropicTextGenerationService(_settings(ANTHROPIC_API_KEY="test-key"))
        reply = await service.call(
            "system", "user", max_tokens=200, temperature=0.2, template="Venture Template", layer_id="A"
        )

        assert reply == '{"refined_prompt": "x"}'
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]
        assert kwargs["max_tokens"] == 200
        assert kwargs["temperature"] == 0.2
        assert mock_anthropic_cls.call_args.kwargs["timeout"] == 30.0
        assert mock_log.call_args.kwargs["tokens_input"] == 100
        assert mock_log.call_args.kwargs["provider"] == "anthropic"
        assert mock_log.call_args.kwargs["template"] == "Venture Template"
        assert mock_log.call_args.kwargs["layer_id"] == "A"

    @pytest.mark.asyncio
    @patch("anthropic.AsyncAnthropic")
    async def test_api_error_becomes_text_generation_error(self, mock_anthropic_cls):
        mock_client = AsyncMock()
        mock_anthropic_cls.return_value = mock_client
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_client.messages.create.side_effect = anthropic.APIConnectionError(request=request)

        service = AnthropicTextGenerationService(_settings(ANTHROPIC_API_KEY="test-key"))

        with pytest.raises(TextGenerationError, match="Anthropic request failed"):
            await service.call("system", "user")

    @pytest.mark.asyncio
    @patch("anthropic.AsyncAnthropic")
    async def test_fallback_to_mock_on_failure(self, mock_anthropic_cls):
        mock_client = AsyncMock()
        mock_anthropic_cls.return_value = mock_client
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_client.messages.create.side_effect = anthropic.APITimeoutError(request=request)

        service = AnthropicTextGenerationService(_settings(ANTHROPIC_API_KEY="test-key"))

        assert await service.call("system", "user", fallback_to_mock=True) == MOCK_REPLY

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_failure(self):
        service = AnthropicTextGenerationService(_settings())
        with pytest.raises(TextGenerationError, match="ANTHROPIC_API_KEY"):
            await service.call("system", "user")


# =============================================================================
# OpenAI
# =============================================================================


class TestOpenAIService:
    @pytest.mark.asyncio
    @patch("refinery.services.text_generation.log_llm_usage")
    @patch("refinery.services.text_generation.get_llm")
    async def test_returns_reply_content(self, mock_get_llm, mock_log):
        mock_llm = MagicMock()
        mock_llm.ainvoke = AsyncMock(
            return_value=MagicMock(
                content='{"refined_prompt": "y"}',
                usage_metadata={"input_tokens": 40, "output_tokens": 12},
            )
        )
        mock_get_llm.return_value = mock_llm

        service = OpenAITextGenerationService(_settings(OPENAI_API_KEY="test-openai-key"))
        reply = await service.call("system", "user")

        assert reply == '{"refined_prompt": "y"}'
        messages = mock_llm.ainvoke.call_args.args[0]
        assert [m.content for m in messages] == ["system", "user"]
        assert mock_log.call_args.kwargs["tokens_output"] == 12
        assert mock_log.call_args.kwargs["template"] is None

    @pytest.mark.asyncio
    async def test_missing_key_falls_back_to_mock(self):
        service = OpenAITextGenerationService(_settings())
        assert await service.call("system", "user", fallback_to_mock=True) == MOCK_REPLY


# =============================================================================
# Factory
# =============================================================================


class TestGetTextGenerationService:
    def test_anthropic_with_key(self):
        settings = _settings(TEXT_GENERATION_PROVIDER="anthropic", ANTHROPIC_API_KEY="k")
        assert isinstance(get_text_generation_service(settings), AnthropicTextGenerationService)

    def test_openai_with_key(self):
        settings = _settings(TEXT_GENERATION_PROVIDER="openai", OPENAI_API_KEY="k")
        assert isinstance(get_text_generation_service(settings), OpenAITextGenerationService)

    @pytest.mark.parametrize("provider", ["anthropic", "openai", "mock", "something-else"])
    def test_without_key_uses_mock(self, provider):
        settings = _settings(TEXT_GENERATION_PROVIDER=provider)
        assert isinstance(get_text_generation_service(settings), MockTextGenerationService)

    @pytest.mark.asyncio
    async def test_mock_reply_is_not_structured(self):
        reply = await MockTextGenerationService(_settings()).call("system", "user")
        assert reply == MOCK_REPLY
        assert "{" not in reply

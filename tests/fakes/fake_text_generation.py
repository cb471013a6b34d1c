"""Scripted text generation services for refinement tests."""

import json

from refinery.core.config import Settings
from refinery.services.text_generation import BaseTextGenerationService, TextGenerationError


def _test_settings() -> Settings:
    return Settings(
        REFINERY_ENV="test",
        TEXT_GENERATION_PROVIDER="mock",
        ANTHROPIC_API_KEY=None,
        OPENAI_API_KEY=None,
    )


class ScriptedTextGenerationService(BaseTextGenerationService):
    """Replies with queued strings in order, repeating the last one."""

    provider = "scripted"

    def __init__(self, *replies: str):
        super().__init__(_test_settings())
        self.replies = list(replies)
        self.calls: list[dict] = []

    @classmethod
    def refining_to(cls, refined_prompt: str, questions: list[str] | None = None):
        reply = json.dumps({"refined_prompt": refined_prompt, "questions": questions or []})
        return cls(reply)

    async def _generate(self, system_instruction, user_instruction, *, timeout, max_tokens, temperature, **context):
        self.calls.append({"system": system_instruction, "user": user_instruction, **context})
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


class RejectingTextGenerationService(BaseTextGenerationService):
    """Provider that always fails, as an unreachable or unauthorised one would."""

    provider = "rejecting"

    def __init__(self):
        super().__init__(_test_settings())
        self.attempts = 0

    async def _generate(self, system_instruction, user_instruction, *, timeout, max_tokens, temperature, **context):
        self.attempts += 1
        raise TextGenerationError("Service unavailable: 503")


class RaisingTextGenerationService(RejectingTextGenerationService):
    """Ignores fallback_to_mock and lets the failure escape call()."""

    async def call(self, system_instruction, user_instruction, **kwargs):
        self.attempts += 1
        raise TextGenerationError("Service unavailable: 503")


class BrokenTextGenerationService(BaseTextGenerationService):
    """Provider whose transport raises something other than TextGenerationError."""

    provider = "broken"

    def __init__(self, error: BaseException):
        super().__init__(_test_settings())
        self.error = error
        self.attempts = 0

    async def _generate(self, system_instruction, user_instruction, *, timeout, max_tokens, temperature, **context):
        self.attempts += 1
        raise self.error


class NullReplyTextGenerationService(BaseTextGenerationService):
    """Provider that answers with no text at all."""

    provider = "null"

    def __init__(self):
        super().__init__(_test_settings())

    async def _generate(self, system_instruction, user_instruction, *, timeout, max_tokens, temperature, **context):
        return None

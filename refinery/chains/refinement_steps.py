"""Steps shared by the altitude and template refinement chains.

Layer resolution, instruction payload, the single delegated call with its
local fallback, and default question selection.
"""

import logging
import re
from functools import lru_cache

from pydantic import BaseModel

from refinery.core.fallback_rewriter import fallback_rewrite
from refinery.core.layer_sequence import LayerSequence
from refinery.core.llm import parse_llm_json
from refinery.core.logging import get_logger, log_with_context
from refinery.core.schemas_refinement import (
    LayerDefinition,
    ReadinessStatus,
    RefinementSuggestion,
)
from refinery.services.text_generation import BaseTextGenerationService

logger = get_logger(__name__)

DEFAULT_QUESTION_COUNT = 2

READINESS_GUIDANCE = {
    ReadinessStatus.RED: "The text is too vague and needs more specificity.",
    ReadinessStatus.YELLOW: "The text is improving but could be more specific.",
    ReadinessStatus.GREEN: "The text is specific and actionable.",
}

# =============================================================================
# Prompts
# =============================================================================

REFINEMENT_SYSTEM = """You are an expert {template_name} assistant. Your job is to help users progress through a structured refinement process, one layer at a time.

YOUR TASK: Provide a refined version of the user's text that moves it from the current layer to the next layer, plus exactly 2 specific questions to help them think deeper.

RULES FOR REFINEMENT:
1. Make it SPECIFIC and ACTIONABLE for the next layer
2. Include concrete examples, details, or actions relevant to the next layer
3. Keep it concise but detailed enough to be useful
4. Focus on what the user should DO next, not just what they should think about
5. If moving to the final output layer, focus on concrete, immediate actions

RULES FOR QUESTIONS:
1. Make them SPECIFIC to the user's text and the next layer
2. Include examples or options in parentheses where helpful
3. One question should be about WHAT to focus on, one about HOW to approach it

Return ONLY a JSON object. No markdown fences:
{{
  "refined_prompt": "Your specific, actionable refinement here",
  "questions": [
    "Specific question 1 with examples?",
    "Specific question 2 with examples?"
  ]
}}"""

REFINEMENT_USER = """TEMPLATE: {template_name}
DESCRIPTION: {template_description}

LAYER STRUCTURE:
{layer_structure}

CURRENT LAYER: {current_id} - {current_name}
CURRENT LAYER FOCUS: {current_focus}
CURRENT READINESS: {readiness} - {readiness_guidance}

NEXT LAYER: {next_id} - {next_name}
NEXT LAYER FOCUS: {next_focus}
TRANSITION: {transition}
{context_block}
USER TEXT: "{text}"

Now provide a refinement and 2 questions for this text at the {current_id} layer."""


class RefinementPayload(BaseModel):
    """Instruction pair sent to the text generation service."""

    system_instruction: str
    user_instruction: str
    template: str | None = None
    layer_id: str | None = None

    @property
    def combined(self) -> str:
        return f"{self.system_instruction}\n\n{self.user_instruction}"


class RefinementOutcome(BaseModel):
    refined_prompt: str
    questions: list[str]
    used_fallback: bool = False


# =============================================================================
# Layer resolution
# =============================================================================


@lru_cache(maxsize=512)
def _indicator_pattern(term: str) -> re.Pattern:
    # Word start only, so "goal" also matches "goals"
    return re.compile(r"(?<!\w)" + re.escape(term.lower()))


def mentions(text_lower: str, term: str) -> bool:
    return _indicator_pattern(term).search(text_lower) is not None


def detect_layer_from_text(template: LayerSequence, text: str) -> str:
    """First layer, in order, whose indicators the text mentions, else the first layer."""
    text_lower = text.lower()
    for layer in template.iter_layers():
        if any(mentions(text_lower, term) for term in layer.vocabulary.indicators):
            return layer.id
    return template.first_layer_id


def determine_current_layer(
    template: LayerSequence,
    text: str,
    represented_layer_ids: list[str],
) -> str:
    """Deepest layer already represented, or a text-based guess for a fresh session."""
    deepest = template.deepest_layer(represented_layer_ids)
    if deepest is not None:
        return deepest
    return detect_layer_from_text(template, text)


def determine_next_layer(template: LayerSequence, current_layer: str, yolo_mode: bool = False) -> str | None:
    if yolo_mode:
        return template.last_layer_id
    return template.get_next_layer(current_layer)


# =============================================================================
# Questions
# =============================================================================


def select_questions(
    layer: LayerDefinition | None,
    text: str,
    user_responses: list[str] | None = None,
    limit: int = DEFAULT_QUESTION_COUNT,
) -> list[str]:
    """Declared questions for a layer, skipping the ones the text already answers.

    A question counts as answered when it mentions the layer name or one of its
    indicators and the text mentions the same term.
    """
    if layer is None or not layer.questions:
        return []

    answered_lower = " ".join([text, *(user_responses or [])]).lower()
    terms = [layer.name.lower(), *(term.lower() for term in layer.vocabulary.indicators)]
    covered = [term for term in terms if term and mentions(answered_lower, term)]

    relevant = [
        question
        for question in layer.questions
        if not any(mentions(question.lower(), term) for term in covered)
    ]
    return (relevant or list(layer.questions))[:limit]


# =============================================================================
# Payload & delegation
# =============================================================================


def _layer_structure(template: LayerSequence) -> str:
    lines = []
    for layer in template.iter_layers():
        marker = " (OUTPUT LAYER)" if layer.is_output_layer else ""
        lines.append(f"- {layer.id}: {layer.name} - {layer.description}{marker}")
    return "\n".join(lines)


def build_refinement_payload(
    template: LayerSequence,
    current_layer: str,
    next_layer: str,
    text: str,
    readiness: ReadinessStatus,
    user_responses: list[str] | None = None,
    tree_context: str | None = None,
) -> RefinementPayload:
    current = template.layers[current_layer]
    upcoming = template.layers[next_layer]

    context_lines = []
    if tree_context:
        context_lines.append(f"IDEA TREE: {tree_context}")
    if user_responses:
        context_lines.append(f"USER RESPONSES TO PREVIOUS QUESTIONS: {' | '.join(user_responses)}")
    context_block = "\n" + "\n".join(context_lines) + "\n" if context_lines else ""

    return RefinementPayload(
        template=template.name,
        layer_id=current.id,
        system_instruction=REFINEMENT_SYSTEM.format(template_name=template.name),
        user_instruction=REFINEMENT_USER.format(
            template_name=template.name,
            template_description=template.description,
            layer_structure=_layer_structure(template),
            current_id=current.id,
            current_name=current.name,
            current_focus=current.focus,
            readiness=readiness.value,
            readiness_guidance=READINESS_GUIDANCE[readiness],
            next_id=upcoming.id,
            next_name=upcoming.name,
            next_focus=upcoming.focus,
            transition=template.get_transition_guidance(current.id, upcoming.id),
            context_block=context_block,
            text=text,
        ),
    )


async def request_refinement(
    service: BaseTextGenerationService,
    payload: RefinementPayload,
    text: str,
    fallback_questions: list[str],
) -> RefinementOutcome:
    """One delegated refinement. Any failure yields the local rewrite instead."""
    try:
        raw = await service.call(
            payload.system_instruction,
            payload.user_instruction,
            fallback_to_mock=True,
            template=payload.template,
            layer_id=payload.layer_id,
        )
        suggestion = parse_llm_json(raw, RefinementSuggestion)
    except Exception as e:
        log_with_context(
            logger,
            logging.WARNING,
            "Refinement fell back to local rewrite",
            error_type=type(e).__name__,
            error=str(e)[:200],
        )
        return RefinementOutcome(
            refined_prompt=fallback_rewrite(text),
            questions=list(fallback_questions),
            used_fallback=True,
        )

    return RefinementOutcome(
        refined_prompt=suggestion.refined_prompt,
        questions=suggestion.questions[:DEFAULT_QUESTION_COUNT] or list(fallback_questions),
    )

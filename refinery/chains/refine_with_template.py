"""Layer-by-layer refinement over any blueprint.

The caller owns the layer history. Every non-terminal call appends one entry
for the current layer; moving on to the next layer is an explicit
advance_layer() call. Once the output layer is reached the declared output
format is assembled instead.
"""

import logging
from typing import Any

from refinery.chains.refinement_steps import (
    build_refinement_payload,
    determine_current_layer,
    determine_next_layer,
    request_refinement,
    select_questions,
)
from refinery.core.branches import extract_branches, merge_unique
from refinery.core.layer_sequence import LayerSequence, coerce_history, resolve_template
from refinery.core.logging import get_logger, log_with_context
from refinery.core.output_assembler import generate_output
from refinery.core.readiness import assess_readiness
from refinery.core.schemas_refinement import (
    Blueprint,
    LayerHistoryEntry,
    ReadinessStatus,
    RefinementInputError,
    RefinementResult,
)
from refinery.services.text_generation import (
    BaseTextGenerationService,
    get_text_generation_service,
)

logger = get_logger(__name__)


async def refine_with_template(
    blueprint: LayerSequence | Blueprint | dict[str, Any],
    text: str,
    history: list[Any] | None = None,
    user_responses: list[str] | None = None,
    yolo_mode: bool = False,
    *,
    service: BaseTextGenerationService | None = None,
) -> RefinementResult:
    """
    Refine text at the session's current layer of a template.

    Args:
        blueprint: Template, blueprint model, or blueprint dict
        text: The user's current text
        history: Layer history from previous calls
        user_responses: Answers to the previously suggested questions
        yolo_mode: Jump straight to the output layer
        service: Text generation service (defaults to the configured provider)

    Returns:
        RefinementResult with the updated layer history

    Raises:
        RefinementInputError: If the text is empty, or the blueprint or history is malformed
    """
    template = resolve_template(blueprint)
    entries = coerce_history(history)
    if not text or not text.strip():
        raise RefinementInputError("Text to refine must not be empty")

    responses = [r for r in (user_responses or []) if r and r.strip()]

    current_layer = determine_current_layer(template, text, [e.layer_id for e in entries])
    next_layer = determine_next_layer(template, current_layer, yolo_mode)
    input_readiness = assess_readiness(text, current_layer, template)

    if (
        next_layer is None
        or template.is_output_layer(current_layer)
        or template.is_output_layer(next_layer)
    ):
        # The final submission counts toward the output but is not recorded
        final_entry = LayerHistoryEntry(
            layer_id=current_layer,
            prompt=text,
            refined_prompt=text,
            responses=responses,
        )
        log_with_context(
            logger,
            logging.INFO,
            "Output layer reached, assembling output",
            template=template.name,
            current_layer=current_layer,
            output_type=template.output_format.type_name,
        )
        return RefinementResult(
            original_prompt=text,
            refined_prompt=text,
            current_layer=current_layer,
            next_layer=next_layer or current_layer,
            readiness_status=ReadinessStatus.GREEN,
            input_readiness=input_readiness,
            layer_history=entries,
            layer_info=template.get_layer_info(current_layer),
            next_layer_info=template.get_layer_info(next_layer or current_layer),
            is_output_layer=True,
            output=generate_output(template, [*entries, final_entry]),
            template_name=template.name,
        )

    new_branches = merge_unique([], extract_branches(text, next_layer, template))

    payload = build_refinement_payload(
        template,
        current_layer,
        next_layer,
        text,
        input_readiness,
        user_responses=responses,
    )
    outcome = await request_refinement(
        service or get_text_generation_service(),
        payload,
        text,
        fallback_questions=select_questions(template.get_layer_info(current_layer), text, responses),
    )
    readiness_status = assess_readiness(outcome.refined_prompt, next_layer, template)

    entry = LayerHistoryEntry(
        layer_id=current_layer,
        prompt=text,
        refined_prompt=outcome.refined_prompt,
        responses=responses,
    )

    log_with_context(
        logger,
        logging.INFO,
        "Template refinement complete",
        template=template.name,
        current_layer=current_layer,
        next_layer=next_layer,
        input_readiness=input_readiness.value,
        readiness=readiness_status.value,
        used_fallback=outcome.used_fallback,
    )

    return RefinementResult(
        original_prompt=text,
        refined_prompt=outcome.refined_prompt,
        current_layer=current_layer,
        next_layer=next_layer,
        readiness_status=readiness_status,
        input_readiness=input_readiness,
        idea_tree=new_branches,
        layer_history=[*entries, entry],
        new_branches=new_branches,
        suggested_questions=outcome.questions,
        layer_info=template.get_layer_info(current_layer),
        next_layer_info=template.get_layer_info(next_layer),
        transition_guidance=template.get_transition_guidance(current_layer, next_layer),
        instruction_prompt=payload.combined,
        used_fallback=outcome.used_fallback,
        template_name=template.name,
    )

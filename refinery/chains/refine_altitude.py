"""Altitude refinement: walk an idea from 30k (vision) down to 5k (execution).

The idea tree is owned by the caller. Each call reads the tree to find where the
idea stands, extracts branches for the altitude it is heading to, and returns
the updated tree alongside the refined text. Reaching 5k returns an execution
plan instead of another refinement.
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
from refinery.core.altitude_blueprint import create_altitude_template
from refinery.core.branches import (
    coerce_tree,
    extract_branches,
    merge_unique,
    prune_tree,
    tree_context,
)
from refinery.core.config import get_settings
from refinery.core.layer_sequence import LayerSequence, resolve_template
from refinery.core.logging import get_logger, log_with_context
from refinery.core.output_assembler import assemble_output, generate_output
from refinery.core.readiness import assess_readiness
from refinery.core.schemas_refinement import (
    Blueprint,
    Branch,
    ReadinessStatus,
    RefinementInputError,
    RefinementResult,
)
from refinery.services.text_generation import (
    BaseTextGenerationService,
    get_text_generation_service,
)

logger = get_logger(__name__)


async def refine_altitude(
    text: str,
    tree: list[Any] | None = None,
    yolo_mode: bool = False,
    *,
    direction_change: bool = False,
    core_idea: str | None = None,
    domain: str | None = None,
    template: LayerSequence | Blueprint | dict[str, Any] | None = None,
    service: BaseTextGenerationService | None = None,
) -> RefinementResult:
    """
    Refine text one altitude lower.

    Args:
        text: The user's current text
        tree: Idea tree from previous calls (Branch objects or dicts)
        yolo_mode: Jump straight to the last altitude
        direction_change: Prune the tree against the new text first
        core_idea: Core idea for the structured export (defaults to the text)
        domain: Altitude domain variant (defaults to DEFAULT_ALTITUDE_DOMAIN)
        template: Alternative layer sequence to walk instead of the altitudes
        service: Text generation service (defaults to the configured provider)

    Returns:
        RefinementResult with the updated tree

    Raises:
        RefinementInputError: If the text is empty or the tree is malformed
    """
    if not text or not text.strip():
        raise RefinementInputError("Text to refine must not be empty")

    if template is not None:
        template = resolve_template(template)
    else:
        template = create_altitude_template(domain or get_settings().DEFAULT_ALTITUDE_DOMAIN)

    branches = coerce_tree(tree)
    if direction_change:
        pruned = prune_tree(branches, text)
        log_with_context(
            logger,
            logging.INFO,
            "Pruned idea tree for new direction",
            template=template.name,
            kept=len(pruned),
            dropped=len(branches) - len(pruned),
        )
        branches = pruned

    current_layer = determine_current_layer(template, text, [b.layer_id for b in branches])
    next_layer = determine_next_layer(template, current_layer, yolo_mode)
    input_readiness = assess_readiness(text, current_layer, template)

    if (
        next_layer is None
        or template.is_output_layer(current_layer)
        or template.is_output_layer(next_layer)
    ):
        return _execution_result(
            template,
            text,
            branches,
            current_layer,
            next_layer or current_layer,
            input_readiness,
            core_idea,
        )

    new_branches = _new_branches(branches, extract_branches(text, next_layer, template))
    idea_tree = branches + new_branches

    payload = build_refinement_payload(
        template,
        current_layer,
        next_layer,
        text,
        input_readiness,
        tree_context=tree_context(idea_tree),
    )
    outcome = await request_refinement(
        service or get_text_generation_service(),
        payload,
        text,
        fallback_questions=select_questions(template.get_layer_info(current_layer), text),
    )
    readiness_status = assess_readiness(outcome.refined_prompt, next_layer, template)

    log_with_context(
        logger,
        logging.INFO,
        "Altitude refinement complete",
        template=template.name,
        current_layer=current_layer,
        next_layer=next_layer,
        input_readiness=input_readiness.value,
        readiness=readiness_status.value,
        new_branches=len(new_branches),
        used_fallback=outcome.used_fallback,
    )

    return RefinementResult(
        original_prompt=text,
        refined_prompt=outcome.refined_prompt,
        current_layer=current_layer,
        next_layer=next_layer,
        readiness_status=readiness_status,
        input_readiness=input_readiness,
        idea_tree=idea_tree,
        new_branches=new_branches,
        suggested_questions=outcome.questions,
        layer_info=template.get_layer_info(current_layer),
        next_layer_info=template.get_layer_info(next_layer),
        transition_guidance=template.get_transition_guidance(current_layer, next_layer),
        instruction_prompt=payload.combined,
        used_fallback=outcome.used_fallback,
        structured_output=assemble_output(idea_tree, core_idea or text, readiness_status),
        template_name=template.name,
    )


def _new_branches(tree: list[Branch], candidates: list[Branch]) -> list[Branch]:
    merged = merge_unique(tree, candidates)
    return merged[len(tree):]


def _execution_result(
    template: LayerSequence,
    text: str,
    branches: list[Branch],
    current_layer: str,
    next_layer: str,
    input_readiness: ReadinessStatus,
    core_idea: str | None,
) -> RefinementResult:
    """Terminal altitude reached: execution plan, tree unchanged."""
    log_with_context(
        logger,
        logging.INFO,
        "Execution layer reached, assembling plan",
        template=template.name,
        current_layer=current_layer,
        next_layer=next_layer,
        branches=len(branches),
    )
    return RefinementResult(
        original_prompt=text,
        refined_prompt=text,
        current_layer=current_layer,
        next_layer=next_layer,
        readiness_status=ReadinessStatus.GREEN,
        input_readiness=input_readiness,
        idea_tree=branches,
        layer_info=template.get_layer_info(current_layer),
        next_layer_info=template.get_layer_info(next_layer),
        transition_guidance=template.get_transition_guidance(current_layer, next_layer),
        is_output_layer=True,
        output=generate_output(template, [], tree=branches),
        structured_output=assemble_output(branches, core_idea or text, ReadinessStatus.GREEN),
        template_name=template.name,
    )

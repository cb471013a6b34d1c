"""Where a template session stands, and moving it to the next layer."""

import logging
from typing import Any

from refinery.core.layer_sequence import (
    LayerSequence,
    coerce_history,
    resolve_template,
)
from refinery.core.logging import get_logger, log_with_context
from refinery.core.output_assembler import generate_output
from refinery.core.schemas_refinement import (
    Blueprint,
    LayerAdvance,
    LayerHistoryEntry,
    LayerProgress,
    LayerStatus,
    RefinementInputError,
)

logger = get_logger(__name__)


def get_layer_progression(
    template: LayerSequence | Blueprint | dict[str, Any],
    history: list[Any] | None = None,
) -> list[LayerProgress]:
    """Status of every layer in execution order.

    The deepest layer with history is current, or the first layer when there
    is no history. Layers before it are completed and later ones upcoming.
    """
    template = resolve_template(template)
    entries = coerce_history(history)

    current = template.deepest_layer(entry.layer_id for entry in entries) or template.first_layer_id
    current_index = template.index_of(current)

    progression = []
    for index, layer in enumerate(template.iter_layers()):
        layer_entries = [entry for entry in entries if entry.layer_id == layer.id]
        if index < current_index:
            status = LayerStatus.COMPLETED
        elif index == current_index:
            status = LayerStatus.CURRENT
        else:
            status = LayerStatus.UPCOMING

        progression.append(
            LayerProgress(
                layer_id=layer.id,
                name=layer.name,
                description=layer.description,
                status=status,
                iterations=len(layer_entries),
                last_prompt=layer_entries[-1].prompt if layer_entries else None,
            )
        )
    return progression


def advance_layer(
    template: LayerSequence | Blueprint | dict[str, Any],
    history: list[Any],
    user_responses: list[str] | None = None,
) -> LayerAdvance:
    """Move a session past its current layer.

    Seeds the next layer's history with the latest refined prompt, or
    assembles the final output when the current layer is the last one.

    Raises:
        RefinementInputError: If there is no history to advance from.
    """
    template = resolve_template(template)
    entries = coerce_history(history)
    if not entries:
        raise RefinementInputError("Cannot advance a session with no layer history")

    current = template.deepest_layer(entry.layer_id for entry in entries)
    if current is None:
        raise RefinementInputError("Layer history does not reference any layer of this template")

    next_layer = template.get_next_layer(current)
    if next_layer is None:
        log_with_context(
            logger,
            logging.INFO,
            "Generating output",
            template=template.name,
            current_layer=current,
        )
        return LayerAdvance(
            action="generate_output",
            current_layer=current,
            layer_info=template.get_layer_info(current),
            layer_history=entries,
            output=generate_output(template, entries, user_responses),
        )

    latest = entries[-1]
    seed = LayerHistoryEntry(
        layer_id=next_layer,
        prompt=latest.refined_prompt or latest.prompt,
        responses=list(user_responses or []),
    )

    log_with_context(
        logger,
        logging.INFO,
        "Advancing layer",
        template=template.name,
        current_layer=current,
        next_layer=next_layer,
    )
    return LayerAdvance(
        action="next_layer",
        current_layer=current,
        next_layer=next_layer,
        layer_info=template.get_layer_info(next_layer),
        layer_history=[*entries, seed],
    )

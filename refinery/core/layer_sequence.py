"""Layer sequences (templates) built from declarative blueprints.

A sequence is an ordered, named collection of layer definitions plus an output
format. Declaration order is execution order and the last layer is the output
layer. Sequences are immutable once built and are shared across refinement
calls through an explicit TemplateRegistry.
"""

from typing import Any, Iterable, Iterator

from pydantic import ValidationError

from refinery.core.schemas_refinement import (
    Blueprint,
    LayerDefinition,
    LayerHistoryEntry,
    OutputFormat,
    RefinementInputError,
)

# Id of the synthetic layer a blueprint without layers collapses to
DEGENERATE_LAYER_ID = "output"


class BlueprintError(RefinementInputError):
    """Raised when a blueprint is structurally invalid."""


class MalformedHistoryError(RefinementInputError):
    """Raised when a layer history entry cannot be decoded."""


# =============================================================================
# Layer sequence
# =============================================================================


class LayerSequence:
    """Ordered layers with next/previous lookups and a terminal output layer."""

    def __init__(
        self,
        name: str,
        description: str,
        layers: list[LayerDefinition],
        output_format: OutputFormat | None = None,
    ):
        self.name = name
        self.description = description
        self.output_format = output_format or OutputFormat()

        if not layers:
            layers = [
                LayerDefinition(
                    id=DEGENERATE_LAYER_ID,
                    name=name,
                    description=description,
                    focus="Assemble the final output",
                )
            ]

        self.layers: dict[str, LayerDefinition] = {}
        self.layer_order: list[str] = []
        last_index = len(layers) - 1
        for index, layer in enumerate(layers):
            if layer.id in self.layers:
                raise BlueprintError(f"Duplicate layer id '{layer.id}' in template '{name}'")
            self.layers[layer.id] = layer.model_copy(
                update={"is_output_layer": index == last_index}
            )
            self.layer_order.append(layer.id)

    def __len__(self) -> int:
        return len(self.layer_order)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self.layers

    def __repr__(self) -> str:
        return f"LayerSequence(name={self.name!r}, layers={self.layer_order!r})"

    @property
    def first_layer_id(self) -> str:
        return self.layer_order[0]

    @property
    def last_layer_id(self) -> str:
        return self.layer_order[-1]

    def iter_layers(self) -> Iterator[LayerDefinition]:
        for layer_id in self.layer_order:
            yield self.layers[layer_id]

    def index_of(self, layer_id: str | None) -> int:
        """Position of a layer in execution order, -1 when unknown."""
        if layer_id is None or layer_id not in self.layers:
            return -1
        return self.layer_order.index(layer_id)

    def deepest_layer(self, layer_ids: Iterable[str]) -> str | None:
        """Highest-index layer among ``layer_ids``; unknown ids are ignored."""
        indexes = [self.index_of(layer_id) for layer_id in layer_ids]
        known = [index for index in indexes if index >= 0]
        if not known:
            return None
        return self.layer_order[max(known)]

    def get_layer_info(self, layer_id: str | None) -> LayerDefinition | None:
        if layer_id is None:
            return None
        return self.layers.get(layer_id)

    def get_next_layer(self, layer_id: str | None) -> str | None:
        index = self.index_of(layer_id)
        if index == -1 or index == len(self.layer_order) - 1:
            return None
        return self.layer_order[index + 1]

    def get_previous_layer(self, layer_id: str | None) -> str | None:
        index = self.index_of(layer_id)
        if index <= 0:
            return None
        return self.layer_order[index - 1]

    def is_output_layer(self, layer_id: str | None) -> bool:
        return self.get_next_layer(layer_id) is None

    def get_layer_questions(self, layer_id: str | None) -> list[str]:
        layer = self.get_layer_info(layer_id)
        return list(layer.questions) if layer else []

    def get_transition_guidance(self, from_layer_id: str | None, to_layer_id: str | None = None) -> str:
        """Transition text declared on the layer being left.

        A jump over several layers joins the transitions of every layer crossed.
        """
        layer = self.get_layer_info(from_layer_id)
        if layer is None:
            return ""
        start, end = self.index_of(from_layer_id), self.index_of(to_layer_id)
        if end <= start + 1:
            return layer.transition
        crossed = (self.layers[layer_id].transition for layer_id in self.layer_order[start:end])
        return " ".join(text for text in crossed if text)


def create_template_from_blueprint(blueprint: Blueprint | dict[str, Any]) -> LayerSequence:
    """Build a layer sequence from a blueprint object or its plain-dict form.

    Layers without an id get ``layer_{index+1}``. Only structure is validated;
    the content of names, questions and vocabularies is taken as declared.

    Raises:
        BlueprintError: If the blueprint does not have the expected shape.
    """
    if not isinstance(blueprint, Blueprint):
        try:
            blueprint = Blueprint.model_validate(blueprint)
        except ValidationError as e:
            raise BlueprintError(f"Invalid blueprint: {e}") from e

    layers = []
    for index, layer in enumerate(blueprint.layers):
        definition = {
            "id": layer.id or f"layer_{index + 1}",
            "name": layer.name,
            "description": layer.description,
            "focus": layer.focus,
            "questions": list(layer.questions),
            "transition": layer.transition,
        }
        if layer.vocabulary is not None:
            definition["vocabulary"] = layer.vocabulary
        layers.append(LayerDefinition(**definition))

    return LayerSequence(
        name=blueprint.name,
        description=blueprint.description,
        layers=layers,
        output_format=blueprint.output_format,
    )


def resolve_template(template: LayerSequence | Blueprint | dict[str, Any]) -> LayerSequence:
    """Accept an already-built sequence or anything a blueprint can be built from."""
    if isinstance(template, LayerSequence):
        return template
    return create_template_from_blueprint(template)


def coerce_history(raw_history: list[Any] | None) -> list[LayerHistoryEntry]:
    """Decode a caller-owned layer history.

    Raises:
        MalformedHistoryError: On the first entry that does not decode.
    """
    entries: list[LayerHistoryEntry] = []
    for index, item in enumerate(raw_history or []):
        if isinstance(item, LayerHistoryEntry):
            entries.append(item)
            continue
        try:
            entries.append(LayerHistoryEntry.model_validate(item))
        except ValidationError as e:
            raise MalformedHistoryError(f"Layer history entry {index} is malformed: {e}") from e
    return entries


# =============================================================================
# Template registry
# =============================================================================


class TemplateRegistry:
    """Named templates owned by whoever composes the application."""

    def __init__(self) -> None:
        self._templates: dict[str, LayerSequence] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def register(self, template: LayerSequence | Blueprint | dict[str, Any]) -> LayerSequence:
        """Register a template, replacing any existing one with the same name."""
        sequence = resolve_template(template)
        self._templates[sequence.name] = sequence
        return sequence

    def get(self, name: str) -> LayerSequence | None:
        return self._templates.get(name)

    def list_names(self) -> list[str]:
        return list(self._templates)

    def remove(self, name: str) -> bool:
        return self._templates.pop(name, None) is not None

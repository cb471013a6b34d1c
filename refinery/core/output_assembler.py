"""Output assembly once a session reaches its terminal layer.

Aggregates layer history (and, for altitude sessions, the idea tree) into the
export declared by the template's output format. Renderers are looked up by
OutputFormatKind; every kind has exactly one renderer.
"""

from typing import Any, Callable

from refinery.core.altitude_blueprint import EXECUTION_PLAYBOOKS, EXECUTION_TIMELINE
from refinery.core.branches import most_specific_branch
from refinery.core.layer_sequence import LayerSequence
from refinery.core.schemas_refinement import (
    Branch,
    LayerHistoryEntry,
    OutputFormatKind,
    ReadinessStatus,
    StructuredOutput,
    StructureField,
    StructureFieldType,
)

LayerData = dict[str, dict[str, Any]]


def assemble_output(
    tree: list[Branch],
    core_idea: str,
    readiness_status: ReadinessStatus,
) -> StructuredOutput:
    """Simple export shape of an idea tree."""
    return StructuredOutput(
        core_idea=core_idea,
        branches=list(tree),
        readiness_status=readiness_status,
    )


# =============================================================================
# Layer data
# =============================================================================


def collect_layer_data(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    user_responses: list[str] | None = None,
) -> LayerData:
    """Per-layer data in execution order: latest prompt plus every response.

    Layers with no history are left out. Responses submitted with the final
    call are attached to the output layer.
    """
    layer_data: LayerData = {}
    for layer_id in template.layer_order:
        entries = [entry for entry in history if entry.layer_id == layer_id]
        if not entries:
            continue
        layer_data[layer_id] = {
            "prompt": entries[-1].prompt,
            "responses": [response for entry in entries for response in entry.responses],
        }

    if user_responses:
        terminal = layer_data.setdefault(template.last_layer_id, {"prompt": "", "responses": []})
        terminal["responses"] = terminal["responses"] + list(user_responses)

    return layer_data


def _compute_value(
    field: StructureField,
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    layer_data: LayerData,
) -> Any:
    if field.compute == "layer_count":
        return len(template)
    if field.compute == "completed_layers":
        return len(layer_data)
    if field.compute == "latest_prompt":
        if not history:
            return field.default
        latest = history[-1]
        return latest.refined_prompt or latest.prompt
    if field.compute == "template_name":
        return template.name
    return field.default


def build_structured_output(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    layer_data: LayerData,
) -> dict[str, Any]:
    """Walk the declared structure map, one output key per field."""
    output: dict[str, Any] = {}
    for key, field in template.output_format.structure.items():
        data = layer_data.get(field.layer_id or "", {})
        if field.type == StructureFieldType.LAYER_DATA:
            output[key] = data.get("prompt", "")
        elif field.type == StructureFieldType.LAYER_RESPONSES:
            output[key] = list(data.get("responses", []))
        elif field.type == StructureFieldType.STATIC:
            output[key] = field.value
        elif field.type == StructureFieldType.COMPUTED:
            output[key] = _compute_value(field, template, history, layer_data)
    return output


# =============================================================================
# Renderers
# =============================================================================


def _render_json(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    layer_data: LayerData,
    tree: list[Branch],
) -> dict[str, Any]:
    layers = {
        layer_id: {
            "name": template.layers[layer_id].name,
            "prompt": data["prompt"],
            "responses": data["responses"],
        }
        for layer_id, data in layer_data.items()
    }
    final_output = None
    if template.output_format.structure:
        final_output = build_structured_output(template, history, layer_data)

    return {
        "template": template.name,
        "summary": template.description,
        "layers": layers,
        "final_output": final_output,
    }


def _render_markdown(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    layer_data: LayerData,
    tree: list[Branch],
) -> dict[str, Any]:
    lines = [f"# {template.name}", "", template.description, ""]
    for layer_id, data in layer_data.items():
        lines += [f"## {template.layers[layer_id].name}", "", f"**Prompt:** {data['prompt']}", ""]
        if data["responses"]:
            lines.append("**Responses:**")
            lines += [f"- {response}" for response in data["responses"]]
            lines.append("")

    return {"type": OutputFormatKind.MARKDOWN.value, "content": "\n".join(lines)}


def _render_text(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    layer_data: LayerData,
    tree: list[Branch],
) -> dict[str, Any]:
    lines = [template.name, "", template.description, ""]
    for layer_id, data in layer_data.items():
        lines += [f"{template.layers[layer_id].name}:", f"Prompt: {data['prompt']}"]
        if data["responses"]:
            lines.append(f"Responses: {', '.join(data['responses'])}")
        lines.append("")

    return {"type": OutputFormatKind.TEXT.value, "content": "\n".join(lines)}


def _render_custom(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    layer_data: LayerData,
    tree: list[Branch],
) -> dict[str, Any]:
    # A decodable record per the declared mapping, never generated source code
    return {
        "type": template.output_format.type_name,
        "template": template.name,
        "data": build_structured_output(template, history, layer_data),
    }


def _select_playbook(branch: Branch | None) -> dict[str, Any]:
    value = branch.value.lower() if branch else ""
    for playbook in EXECUTION_PLAYBOOKS:
        keywords = playbook["keywords"]
        if not keywords or any(keyword in value for keyword in keywords):
            return playbook
    return EXECUTION_PLAYBOOKS[-1]


def _render_execution_plan(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    layer_data: LayerData,
    tree: list[Branch],
) -> dict[str, Any]:
    branch = most_specific_branch(tree, template)
    playbook = _select_playbook(branch)
    return {
        "type": OutputFormatKind.EXECUTION_PLAN.value,
        "template": template.name,
        "focus": branch.value if branch else "General plan",
        "playbook": playbook["id"],
        "immediate_actions": list(playbook["immediate_actions"]),
        "timeline": [dict(phase) for phase in EXECUTION_TIMELINE],
        "success_metrics": list(playbook["success_metrics"]),
        "resources_needed": list(playbook["resources_needed"]),
        "branches": [branch.model_dump() for branch in tree],
    }


Renderer = Callable[
    [LayerSequence, list[LayerHistoryEntry], LayerData, list[Branch]],
    dict[str, Any],
]

RENDERERS: dict[OutputFormatKind, Renderer] = {
    OutputFormatKind.JSON: _render_json,
    OutputFormatKind.MARKDOWN: _render_markdown,
    OutputFormatKind.TEXT: _render_text,
    OutputFormatKind.CUSTOM: _render_custom,
    OutputFormatKind.EXECUTION_PLAN: _render_execution_plan,
}

_unrendered = set(OutputFormatKind) - set(RENDERERS)
if _unrendered:
    raise RuntimeError(f"No renderer for output kinds: {sorted(k.value for k in _unrendered)}")


def generate_output(
    template: LayerSequence,
    history: list[LayerHistoryEntry],
    user_responses: list[str] | None = None,
    tree: list[Branch] | None = None,
) -> dict[str, Any]:
    """Assemble the final export declared by ``template.output_format``."""
    layer_data = collect_layer_data(template, history, user_responses)
    renderer = RENDERERS[template.output_format.kind]
    return renderer(template, history, layer_data, list(tree or []))

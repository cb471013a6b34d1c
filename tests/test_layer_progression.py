"""Tests for refinery.core.layer_progression — session status and layer advance."""

import pytest

from refinery.core.layer_progression import advance_layer, get_layer_progression
from refinery.core.schemas_refinement import LayerStatus, RefinementInputError


def _history(*layer_ids: str) -> list[dict]:
    return [
        {"layerId": layer_id, "prompt": f"prompt {i}", "refinedPrompt": f"refined {i}"}
        for i, layer_id in enumerate(layer_ids)
    ]


class TestGetLayerProgression:
    def test_fresh_session_starts_at_first_layer(self, business_template):
        progression = get_layer_progression(business_template)

        assert [p.status for p in progression] == [
            LayerStatus.CURRENT,
            LayerStatus.UPCOMING,
            LayerStatus.UPCOMING,
        ]
        assert all(p.iterations == 0 and p.last_prompt is None for p in progression)

    def test_deepest_layer_is_current(self, business_template):
        progression = get_layer_progression(business_template, _history("A", "A", "B"))

        assert [(p.layer_id, p.status, p.iterations) for p in progression] == [
            ("A", LayerStatus.COMPLETED, 2),
            ("B", LayerStatus.CURRENT, 1),
            ("C", LayerStatus.UPCOMING, 0),
        ]
        assert progression[0].last_prompt == "prompt 1"

    def test_accepts_blueprint_dict(self, business_blueprint):
        progression = get_layer_progression(business_blueprint, _history("A"))
        assert progression[0].name == "Intent"


class TestAdvanceLayer:
    def test_seeds_next_layer_with_latest_refinement(self, business_template):
        advance = advance_layer(business_template, _history("A", "A"))

        assert advance.action == "next_layer"
        assert advance.current_layer == "A"
        assert advance.next_layer == "B"
        assert advance.layer_info.name == "Shape"
        assert len(advance.layer_history) == 3
        seed = advance.layer_history[-1]
        assert seed.layer_id == "B"
        assert seed.prompt == "refined 1"

    def test_generates_output_at_last_layer(self, business_template):
        advance = advance_layer(business_template, _history("A", "B", "C"), ["ship it"])

        assert advance.action == "generate_output"
        assert advance.current_layer == "C"
        assert advance.next_layer is None
        assert advance.output["template"] == "Venture Template"
        assert advance.output["layers"]["C"]["responses"] == ["ship it"]
        assert advance.output["final_output"] == {"intent": "prompt 0", "shape": "prompt 1"}

    def test_empty_history_rejected(self, business_template):
        with pytest.raises(RefinementInputError):
            advance_layer(business_template, [])

    def test_history_from_another_template_rejected(self, business_template):
        with pytest.raises(RefinementInputError):
            advance_layer(business_template, _history("30k"))

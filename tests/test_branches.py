"""Tests for refinery.core.branches — extraction, merge and pruning."""

import pytest

from refinery.core.branches import (
    MalformedTreeError,
    coerce_tree,
    extract_branches,
    merge_unique,
    most_specific_branch,
    prune_tree,
    tree_context,
)
from refinery.core.schemas_refinement import Branch


def _branch(label: str, value: str, layer_id: str = "20k") -> Branch:
    return Branch(label=label, value=value, layer_id=layer_id)


# =============================================================================
# Extraction
# =============================================================================


class TestExtractBranches:
    def test_bare_insurance_only_matches_industry_at_20k(self, altitude_template):
        at_20k = extract_branches("I sell insurance", "20k", altitude_template)
        at_10k = extract_branches("I sell insurance", "10k", altitude_template)

        assert [(b.label, b.value) for b in at_20k] == [("Industry", "Insurance")]
        assert at_10k == []

    def test_life_insurance_matches_specialization_at_10k(self, altitude_template):
        branches = extract_branches("I want to sell Life Insurance", "10k", altitude_template)

        assert Branch(label="Specialization", value="Life Insurance", layer_id="10k") in branches

    def test_many_phrasings_one_branch(self, altitude_template):
        branches = extract_branches(
            "We offer car insurance and auto insurance", "10k", altitude_template
        )
        auto = [b for b in branches if b.value == "Auto Insurance"]
        assert len(auto) == 1

    def test_branches_tagged_with_extraction_layer(self, altitude_template):
        branches = extract_branches("a mobile app for families", "10k", altitude_template)
        assert {b.layer_id for b in branches} == {"10k"}
        assert [b.value for b in branches] == ["Mobile App", "Families"]

    def test_unknown_layer_or_empty_text(self, altitude_template):
        assert extract_branches("insurance", "1k", altitude_template) == []
        assert extract_branches("", "20k", altitude_template) == []


# =============================================================================
# Merge
# =============================================================================


class TestMergeUnique:
    def test_appends_only_new_keys_in_order(self):
        tree = [_branch("Industry", "Insurance")]
        candidates = [
            _branch("Industry", "Insurance", "10k"),
            _branch("Specialization", "Life Insurance", "10k"),
            _branch("Specialization", "Life Insurance", "10k"),
        ]

        merged = merge_unique(tree, candidates)

        assert [b.key for b in merged] == [
            ("Industry", "Insurance"),
            ("Specialization", "Life Insurance"),
        ]
        assert merged[0].layer_id == "20k"

    def test_does_not_mutate_input(self):
        tree = [_branch("Industry", "Insurance")]
        merge_unique(tree, [_branch("Goal", "Helping Others", "30k")])
        assert len(tree) == 1

    def test_merged_tree_has_unique_keys(self, altitude_template):
        tree: list[Branch] = []
        for text, layer in [
            ("insurance business consulting", "20k"),
            ("insurance agency for families", "20k"),
            ("life insurance for families and seniors", "10k"),
            ("life insurance for seniors", "10k"),
        ]:
            tree = merge_unique(tree, extract_branches(text, layer, altitude_template))

        keys = [b.key for b in tree]
        assert len(keys) == len(set(keys))


# =============================================================================
# Pruning
# =============================================================================


class TestPruneTree:
    def test_unrelated_direction_prunes_everything(self):
        tree = [_branch("Industry", "Insurance")]
        assert prune_tree(tree, "I want to pivot to software development") == []

    def test_direction_mentioning_value_keeps_branch(self):
        tree = [_branch("Industry", "Insurance"), _branch("Goal", "Helping Others", "30k")]
        kept = prune_tree(tree, "Stay in insurance but sell online")
        assert [b.value for b in kept] == ["Insurance"]

    def test_direction_mentioning_label_keeps_branch(self):
        tree = [_branch("Industry", "Insurance")]
        assert prune_tree(tree, "a different industry entirely") == tree

    def test_value_containing_direction_keeps_branch(self):
        tree = [_branch("Specialization", "Life Insurance", "10k")]
        assert prune_tree(tree, "life") == tree


# =============================================================================
# Decoding & helpers
# =============================================================================


class TestCoerceTree:
    def test_accepts_dicts_with_altitude_key(self):
        tree = coerce_tree([{"label": "Industry", "value": "Insurance", "altitude": "20k"}])
        assert tree == [_branch("Industry", "Insurance")]

    @pytest.mark.parametrize(
        "entry",
        [
            {"label": "Industry", "layer_id": "20k"},
            {"label": "Industry", "value": "", "layer_id": "20k"},
            {"label": "Industry", "value": "Insurance"},
            "Industry: Insurance",
        ],
    )
    def test_malformed_entries_rejected(self, entry):
        with pytest.raises(MalformedTreeError, match="entry 0"):
            coerce_tree([entry])


class TestTreeHelpers:
    def test_most_specific_branch_is_deepest_latest(self, altitude_template):
        tree = [
            _branch("Industry", "Insurance", "20k"),
            _branch("Specialization", "Life Insurance", "10k"),
            _branch("Target Audience", "Families", "10k"),
            _branch("Goal", "Helping Others", "30k"),
        ]
        assert most_specific_branch(tree, altitude_template).value == "Families"
        assert most_specific_branch([], altitude_template) is None

    def test_tree_context(self):
        assert tree_context([]) == "Starting fresh exploration"
        assert tree_context([_branch("Industry", "Insurance")]) == "Exploring: Insurance"

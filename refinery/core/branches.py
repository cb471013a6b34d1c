"""Idea tree branches: extraction, de-duplicated merge, and pruning.

Branches are extracted from a layer's declared branch rules by case-insensitive
containment. A tree never holds two branches with the same (label, value) key.
"""

from typing import Any

from pydantic import ValidationError

from refinery.core.layer_sequence import LayerSequence
from refinery.core.schemas_refinement import Branch, RefinementInputError


class MalformedTreeError(RefinementInputError):
    """Raised when an idea tree entry cannot be decoded into a Branch."""


def coerce_tree(raw_tree: list[Any] | None) -> list[Branch]:
    """Decode a caller-owned idea tree of Branch objects or plain dicts.

    Raises:
        MalformedTreeError: On the first entry that does not decode.
    """
    tree: list[Branch] = []
    for index, item in enumerate(raw_tree or []):
        if isinstance(item, Branch):
            tree.append(item)
            continue
        try:
            tree.append(Branch.model_validate(item))
        except ValidationError as e:
            raise MalformedTreeError(f"Idea tree entry {index} is malformed: {e}") from e
    return tree


def extract_branches(text: str, layer_id: str, template: LayerSequence) -> list[Branch]:
    """Candidate branches for ``layer_id`` found in ``text``.

    One branch per matching rule, in rule order. Each rule may list several
    trigger phrasings; the first one present wins.
    """
    layer = template.get_layer_info(layer_id)
    if layer is None or not text:
        return []

    text_lower = text.lower()
    branches: list[Branch] = []
    for rule in layer.vocabulary.branch_rules:
        if any(trigger.lower() in text_lower for trigger in rule.triggers):
            branches.append(Branch(label=rule.label, value=rule.value, layer_id=layer_id))
    return branches


def merge_unique(tree: list[Branch], candidates: list[Branch]) -> list[Branch]:
    """Append candidates whose (label, value) key is not already in the tree."""
    merged = list(tree)
    seen = {branch.key for branch in merged}
    for candidate in candidates:
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        merged.append(candidate)
    return merged


def prune_tree(tree: list[Branch], new_direction: str) -> list[Branch]:
    """Keep the branches that still relate to a new direction.

    A branch survives when the direction mentions its value or its label, or
    when its value contains the whole direction text.
    """
    direction = new_direction.lower()
    kept = []
    for branch in tree:
        value = branch.value.lower()
        label = branch.label.lower()
        if value in direction or label in direction or direction in value:
            kept.append(branch)
    return kept


def most_specific_branch(tree: list[Branch], template: LayerSequence) -> Branch | None:
    """The branch from the deepest layer, latest one on ties."""
    best: Branch | None = None
    best_index = -2
    for branch in tree:
        index = template.index_of(branch.layer_id)
        if index >= best_index:
            best, best_index = branch, index
    return best


def tree_context(tree: list[Branch]) -> str:
    if not tree:
        return "Starting fresh exploration"
    return f"Exploring: {', '.join(branch.value for branch in tree)}"

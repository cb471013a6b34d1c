"""Readiness assessment.

Pure scoring, no LLM. Scores how ready a piece of text is for a layer from its
length and the layer's declared vocabulary, then maps the score onto the
layer's red/yellow/green thresholds.
"""

import re
from functools import lru_cache

from refinery.core.layer_sequence import LayerSequence
from refinery.core.schemas_refinement import (
    LayerDefinition,
    ReadinessSignal,
    ReadinessStatus,
    ReadinessThresholds,
)

# Length scoring
WORDS_FOR_FULL_LENGTH_SCORE = 30
LENGTH_SCORE_CAP = 0.3

# Short-text penalties (cumulative)
VERY_SHORT_WORD_COUNT = 5
VERY_SHORT_PENALTY = 0.3
SHORT_WORD_COUNT = 10
SHORT_PENALTY = 0.1

# Generic check for layers that declare no signals
FOCUS_KEYWORD_WEIGHT = 0.15
FOCUS_KEYWORD_BONUS = 0.1
FOCUS_KEYWORD_MIN_LENGTH = 4

# Earlier layers are more lenient, later layers stricter
FIRST_LAYER_THRESHOLDS = ReadinessThresholds(red=0.2, yellow=0.5, green=0.7)
MIDDLE_LAYER_THRESHOLDS = ReadinessThresholds(red=0.3, yellow=0.6, green=0.8)
LAST_LAYER_THRESHOLDS = ReadinessThresholds(red=0.4, yellow=0.7, green=0.9)

_STOP_WORDS = frozenset(
    {
        "about", "across", "after", "also", "and", "from", "have", "into", "make",
        "more", "that", "their", "them", "then", "they", "this", "through", "what",
        "when", "where", "which", "while", "will", "with", "within", "your",
    }
)


@lru_cache(maxsize=1024)
def _term_pattern(term: str) -> re.Pattern:
    return re.compile(r"(?<!\w)" + re.escape(term.lower()) + r"(?!\w)")


def count_term(text_lower: str, term: str) -> int:
    """Whole-word / whole-phrase occurrences of ``term`` in lowercased text."""
    return len(_term_pattern(term).findall(text_lower))


def word_count(text: str) -> int:
    return len(text.split())


def focus_keywords(focus: str) -> list[str]:
    """Content words of a layer's focus text, in order, without duplicates."""
    keywords: list[str] = []
    for word in re.findall(r"[a-z][a-z'-]*", focus.lower()):
        if len(word) < FOCUS_KEYWORD_MIN_LENGTH or word in _STOP_WORDS:
            continue
        if word not in keywords:
            keywords.append(word)
    return keywords


def signals_for(layer: LayerDefinition) -> list[ReadinessSignal]:
    """Declared signals, or the focus-overlap signal when none are declared."""
    if layer.vocabulary.signals:
        return list(layer.vocabulary.signals)
    keywords = focus_keywords(layer.focus)
    if not keywords:
        return []
    return [
        ReadinessSignal(
            name="focus",
            terms=keywords,
            weight=FOCUS_KEYWORD_WEIGHT,
            bonus=FOCUS_KEYWORD_BONUS,
        )
    ]


def thresholds_for(layer_id: str, template: LayerSequence) -> ReadinessThresholds:
    """Declared thresholds, else the positional defaults."""
    layer = template.get_layer_info(layer_id)
    if layer and layer.vocabulary.thresholds:
        return layer.vocabulary.thresholds

    index = template.index_of(layer_id)
    if index <= 0:
        return FIRST_LAYER_THRESHOLDS
    if index == len(template) - 1:
        return LAST_LAYER_THRESHOLDS
    return MIDDLE_LAYER_THRESHOLDS


def score_readiness(text: str, layer_id: str, template: LayerSequence) -> float:
    """Score text against a layer's heuristics, clamped to [0, 1]."""
    layer = template.get_layer_info(layer_id)
    if layer is None or not text or not text.strip():
        return 0.0

    words = word_count(text)
    text_lower = text.lower()

    score = min(words / WORDS_FOR_FULL_LENGTH_SCORE, LENGTH_SCORE_CAP)

    for signal in signals_for(layer):
        hits = sum(count_term(text_lower, term) for term in signal.terms)
        if hits:
            score += signal.weight * hits + signal.bonus

    if words < VERY_SHORT_WORD_COUNT:
        score -= VERY_SHORT_PENALTY
    if words < SHORT_WORD_COUNT:
        score -= SHORT_PENALTY

    return max(0.0, min(1.0, score))


def classify_score(score: float, thresholds: ReadinessThresholds) -> ReadinessStatus:
    if score < thresholds.red:
        return ReadinessStatus.RED
    if score < thresholds.green:
        # Both the [red, yellow) and [yellow, green) bands read as yellow
        return ReadinessStatus.YELLOW
    return ReadinessStatus.GREEN


def assess_readiness(text: str, layer_id: str, template: LayerSequence) -> ReadinessStatus:
    """Classify how ready ``text`` is for ``layer_id``.

    Empty text and unknown layers are always red.
    """
    if not text or not text.strip() or layer_id not in template:
        return ReadinessStatus.RED
    score = score_readiness(text, layer_id, template)
    return classify_score(score, thresholds_for(layer_id, template))

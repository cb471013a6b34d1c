"""Deterministic local rewrite used when text generation is unavailable."""

import re

# Filler the rewrite never keeps
FILLER_PHRASES = [
    re.compile(r"please be specific in your response\.?", re.IGNORECASE),
    re.compile(r"please provide more details\.?", re.IGNORECASE),
    re.compile(r"be more specific\.?", re.IGNORECASE),
    re.compile(r"add more context\.?", re.IGNORECASE),
]

# Vague term -> more specific synonym
VAGUE_TERM_REPLACEMENTS = {
    "a lot of": "many",
    "lots of": "many",
    "things": "elements",
    "thing": "element",
    "stuff": "resources",
    "good": "effective",
    "bad": "ineffective",
    "nice": "valuable",
}

_VAGUE_TERM_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(term) for term in VAGUE_TERM_REPLACEMENTS) + r")\b",
    re.IGNORECASE,
)

SHORT_TEXT_CHARS = 50
SHORT_TEXT_NUDGE = "What specific aspects would you like me to address?"
LONG_TEXT_NUDGE = "Include concrete details, constraints, and a measurable outcome."

TERMINAL_PUNCTUATION = (".", "?", "!")


def _replace_vague_term(match: re.Match) -> str:
    found = match.group(0)
    replacement = VAGUE_TERM_REPLACEMENTS[found.lower()]
    if found[0].isupper():
        return replacement[0].upper() + replacement[1:]
    return replacement


def fallback_rewrite(text: str) -> str:
    """Refine text without any external call.

    Drops filler, collapses whitespace, swaps vague terms for specific ones,
    capitalises the first letter and ensures terminal punctuation. The result
    always differs from a non-blank input and is never empty.
    """
    cleaned = text
    for phrase in FILLER_PHRASES:
        cleaned = phrase.sub("", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    if not cleaned:
        return text

    cleaned = _VAGUE_TERM_PATTERN.sub(_replace_vague_term, cleaned)
    cleaned = cleaned[0].upper() + cleaned[1:]
    if not cleaned.endswith(TERMINAL_PUNCTUATION):
        cleaned += "."

    if cleaned == text:
        if len(cleaned) < SHORT_TEXT_CHARS and "?" not in cleaned:
            cleaned = f"{cleaned} {SHORT_TEXT_NUDGE}"
        else:
            cleaned = f"{cleaned} {LONG_TEXT_NUDGE}"

    return cleaned

"""
Free-text answer normalisation and fuzzy matching

Used to grade fill-in-the-blank answers, where "paris " and "Pari"
should both count as "Paris" but "London" should not.
"""
import re

_PUNCTUATION_RE = re.compile(r"[^\w\s\-']")
_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_ARTICLES_RE = re.compile(r"^(?:(?:a|an|the)\s+)+")

# Allowed edit distance as a fraction of the longer normalised answer
SHORT_ANSWER_LENGTH = 10
SHORT_ANSWER_THRESHOLD = 0.2
LONG_ANSWER_THRESHOLD = 0.1


def normalize_answer(text: str) -> str:
    """
    Canonical form of a free-text answer

    Lowercases, strips punctuation except hyphens and apostrophes,
    collapses whitespace and drops leading articles (a/an/the).
    Applying it twice gives the same result as applying it once.
    """
    if not text:
        return ""
    normalized = _PUNCTUATION_RE.sub("", text.lower())
    normalized = _WHITESPACE_RE.sub(" ", normalized).strip()
    return _LEADING_ARTICLES_RE.sub("", normalized).strip()


def levenshtein_distance(first: str, second: str) -> int:
    """Character-level edit distance (insertions, deletions, substitutions)"""
    if first == second:
        return 0
    if not first:
        return len(second)
    if not second:
        return len(first)

    previous = list(range(len(second) + 1))
    for i, ch_first in enumerate(first, start=1):
        current = [i]
        for j, ch_second in enumerate(second, start=1):
            cost = 0 if ch_first == ch_second else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution/match
            ))
        previous = current
    return previous[-1]


def similarity(first: str, second: str) -> float:
    """1.0 for identical normalised answers, falling towards 0.0 with edit distance"""
    a, b = normalize_answer(first), normalize_answer(second)
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def is_fuzzy_match(submitted: str, canonical: str) -> bool:
    """
    Decide whether a submitted free-text answer matches the canonical one

    Identical normalised strings always match. Otherwise the edit
    distance divided by the longer normalised length must be at most
    0.2 for answers shorter than 10 characters and 0.1 for longer ones.
    """
    a, b = normalize_answer(submitted), normalize_answer(canonical)
    if a == b:
        return True

    longest = max(len(a), len(b))
    threshold = SHORT_ANSWER_THRESHOLD if longest < SHORT_ANSWER_LENGTH else LONG_ANSWER_THRESHOLD
    return levenshtein_distance(a, b) / longest <= threshold

"""
Question validation and normalisation

Takes the loosely-typed objects recovered by the repair-parser and keeps
only those that can be turned into a well-formed question. Soft problems
(missing question text, missing explanation, unknown type) are
defaulted; hard problems (missing options, an answer that is not an
option label) drop the candidate.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MULTIPLE_CHOICE = "multiple-choice"
TRUE_FALSE = "true-false"
FILL_IN_THE_BLANK = "fill-in-the-blank"
QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, FILL_IN_THE_BLANK)

DIFFICULTIES = ("easy", "medium", "hard")
OPTION_LABELS = ("A", "B", "C", "D")
TRUE_FALSE_OPTIONS = {"A": "True", "B": "False"}

DEFAULT_EXPLANATION = "No explanation provided"

_TYPE_ALIASES = {
    "mcq": MULTIPLE_CHOICE,
    "multiple-choice": MULTIPLE_CHOICE,
    "multiplechoice": MULTIPLE_CHOICE,
    "true-false": TRUE_FALSE,
    "truefalse": TRUE_FALSE,
    "true/false": TRUE_FALSE,
    "boolean": TRUE_FALSE,
    "fill-in-the-blank": FILL_IN_THE_BLANK,
    "fill-in-blank": FILL_IN_THE_BLANK,
    "fill-in-the-blanks": FILL_IN_THE_BLANK,
}
_LABEL_RE = re.compile(r"^\s*([A-Da-d])\s*[\.\):\-]?\s*$")


class CandidateRejected(ValueError):
    """A candidate violates a hard shape rule"""


@dataclass
class ValidationOutcome:
    """Questions that passed validation plus how many candidates were dropped"""

    questions: List[Dict[str, Any]] = field(default_factory=list)
    rejected: int = 0


def normalize_question_type(value: Any) -> str:
    """Map a free-form type name to one of the known types, defaulting to multiple-choice"""
    if not isinstance(value, str):
        return MULTIPLE_CHOICE
    key = re.sub(r"[\s_]+", "-", value.strip().lower())
    return _TYPE_ALIASES.get(key, MULTIPLE_CHOICE)


def _text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _normalize_options(raw_options: Any, question_type: str) -> Dict[str, str]:
    if question_type == TRUE_FALSE:
        return dict(TRUE_FALSE_OPTIONS)

    if isinstance(raw_options, list):
        raw_options = dict(zip(OPTION_LABELS, raw_options))
    if not isinstance(raw_options, dict):
        raise CandidateRejected("options missing")

    lookup = {str(key).strip().upper(): value for key, value in raw_options.items()}
    options = {label: _text(lookup.get(label)) for label in OPTION_LABELS}
    missing = [label for label, text in options.items() if not text]
    if missing:
        raise CandidateRejected(f"options {', '.join(missing)} empty")
    return options


def _normalize_answer(raw_answer: Any, question_type: str) -> str:
    answer = _text(raw_answer)
    if question_type == TRUE_FALSE and answer.lower() in ("true", "false"):
        return "A" if answer.lower() == "true" else "B"

    match = _LABEL_RE.match(answer)
    if not match:
        raise CandidateRejected(f"answer {answer!r} is not an option label")

    label = match.group(1).upper()
    if question_type == TRUE_FALSE and label not in TRUE_FALSE_OPTIONS:
        raise CandidateRejected(f"answer {label} invalid for true-false")
    return label


def _optional_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def validate_question(candidate: Any, position: int, default_difficulty: str = "medium") -> Dict[str, Any]:
    """
    Normalise one candidate into a question document

    Args:
        candidate: Object recovered from generator output
        position: 1-based position, used for the id and placeholder text
        default_difficulty: Difficulty used when the candidate has none

    Raises:
        CandidateRejected: if a hard shape rule is violated
    """
    if not isinstance(candidate, dict):
        raise CandidateRejected("not an object")

    question_type = normalize_question_type(candidate.get("type"))
    options = _normalize_options(candidate.get("options", candidate.get("choices")), question_type)
    answer = _normalize_answer(candidate.get("answer", candidate.get("correct_answer")), question_type)

    difficulty = _text(candidate.get("difficulty")).lower()
    if difficulty not in DIFFICULTIES:
        difficulty = default_difficulty

    try:
        points = float(candidate.get("points", 1))
    except (TypeError, ValueError):
        points = 1.0

    tags = candidate.get("tags")
    return {
        "id": f"q{position}",
        "question": _text(candidate.get("question")) or f"Question {position}",
        "type": question_type,
        "options": options,
        "answer": answer,
        "explanation": _text(candidate.get("explanation")) or DEFAULT_EXPLANATION,
        "difficulty": difficulty,
        "points": points if points > 0 else 1.0,
        "time_limit": _optional_int(candidate.get("time_limit", candidate.get("timeLimit"))),
        "tags": [_text(tag) for tag in tags if _text(tag)] if isinstance(tags, list) else [],
    }


def validate_questions(candidates: List[Any], default_difficulty: str = "medium") -> ValidationOutcome:
    """
    Validate a batch of candidates, dropping the ones that fail hard rules

    Kept questions get sequential ids ``q1..qn`` so ids are unique within the quiz.
    """
    outcome = ValidationOutcome()

    for index, candidate in enumerate(candidates or [], start=1):
        try:
            question = validate_question(candidate, len(outcome.questions) + 1, default_difficulty)
        except CandidateRejected as e:
            outcome.rejected += 1
            logger.warning(f"Rejected question candidate #{index}: {str(e)}")
            continue
        outcome.questions.append(question)

    return outcome

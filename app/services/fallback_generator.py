"""
Deterministic local question generator

Used in mock/offline mode and when the provider output cannot be
salvaged. Always returns exactly the requested number of questions,
each already in the validator's output shape. For math topics the
correct answer is computed from the drawn operands and the distractors
are common mistakes, so the marked option is always right.
"""
import hashlib
import random
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.services.question_validator import (
    FILL_IN_THE_BLANK,
    MULTIPLE_CHOICE,
    OPTION_LABELS,
    TRUE_FALSE,
    TRUE_FALSE_OPTIONS,
)

MATH_KEYWORDS = (
    "math", "mathematics", "algebra", "geometry", "calculus", "trigonometry",
    "statistics", "probability", "arithmetic", "equation", "function", "integral",
    "derivative", "matrix", "vector", "coordinate", "graph", "number", "fraction",
    "decimal", "percentage", "ratio", "proportion", "sequence", "series",
)

ARITHMETIC_OPERATIONS = ("+", "-", "*")
OPERATION_NAMES = {"+": "addition", "-": "subtraction", "*": "multiplication"}
OPERATION_SYMBOLS = {"+": "+", "-": "-", "*": "×"}


def is_math_topic(topic: Optional[str]) -> bool:
    """True when the topic mentions any of the math keywords"""
    lowered = (topic or "").lower()
    return any(keyword in lowered for keyword in MATH_KEYWORDS)


def _seed_for(topic: str, content: Optional[str], difficulty: str, num_questions: int,
              question_types: Sequence[str]) -> int:
    signature = "|".join([topic or "", content or "", difficulty, str(num_questions), ",".join(question_types)])
    return int(hashlib.sha256(signature.encode()).hexdigest()[:16], 16)


def _truncate(text: str, limit: int) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[:limit - 1] + "…"


def _distractors(correct: int, mistakes: Sequence[int]) -> List[int]:
    """Three distinct wrong values, preferring the given common mistakes"""
    chosen: List[int] = []
    for value in mistakes:
        if value != correct and value not in chosen:
            chosen.append(value)
    offset = 1
    while len(chosen) < 3:
        for value in (correct + offset, correct - offset):
            if value != correct and value not in chosen and len(chosen) < 3:
                chosen.append(value)
        offset += 1
    return chosen[:3]


def _numeric_options(correct: int, mistakes: Sequence[int], rng: random.Random) -> Tuple[Dict[str, str], str]:
    values = [correct] + _distractors(correct, mistakes)
    rng.shuffle(values)
    options = {label: str(value) for label, value in zip(OPTION_LABELS, values)}
    return options, OPTION_LABELS[values.index(correct)]


def _arithmetic_question(index: int, rng: random.Random) -> Dict[str, Any]:
    first = rng.randint(1, 20)
    second = rng.randint(1, 20)
    operation = ARITHMETIC_OPERATIONS[index % len(ARITHMETIC_OPERATIONS)]

    if operation == "+":
        result = first + second
        mistakes = [result + 1, result - 1, result + 2]
    elif operation == "-":
        result = first - second
        mistakes = [result + 1, result - 1, first + second]
    else:
        result = first * second
        mistakes = [first + second, first * (second + 1), (first + 1) * second]

    options, answer = _numeric_options(result, mistakes, rng)
    return {
        "question": f"What is {first} {OPERATION_SYMBOLS[operation]} {second}?",
        "options": options,
        "answer": answer,
        "explanation": f"The correct answer is {result}. This is a basic {OPERATION_NAMES[operation]} operation.",
        "tags": ["math", "arithmetic", OPERATION_NAMES[operation]],
    }


def _linear_equation_question(rng: random.Random) -> Dict[str, Any]:
    solution = rng.randint(1, 5)
    constant = rng.randint(1, 10)
    right_side = 2 * solution + constant

    options, answer = _numeric_options(solution, [solution + 1, solution - 1, solution + 2], rng)
    return {
        "question": f"Solve for x: 2x + {constant} = {right_side}",
        "options": options,
        "answer": answer,
        "explanation": (
            f"Subtract {constant} from both sides: 2x = {right_side - constant}. "
            f"Divide by 2: x = {solution}."
        ),
        "tags": ["math", "algebra", "linear-equation"],
    }


def _product_question(rng: random.Random) -> Dict[str, Any]:
    first = rng.randint(1, 10)
    second = rng.randint(1, 10)
    result = first * second

    options, answer = _numeric_options(result, [first + second, first * (second + 1), (first + 1) * second], rng)
    return {
        "question": f"What is {first} × {second}?",
        "options": options,
        "answer": answer,
        "explanation": f"The correct answer is {result}. This is a multiplication of {first} and {second}.",
        "tags": ["math", "multiplication"],
    }


def generate_math_question(topic: str, index: int, rng: random.Random) -> Dict[str, Any]:
    """Synthesize one math question whose marked answer is computed, not guessed"""
    lowered = (topic or "").lower()
    if "arithmetic" in lowered or "basic math" in lowered:
        return _arithmetic_question(index, rng)
    if "algebra" in lowered or "equation" in lowered:
        return _linear_equation_question(rng)
    return _product_question(rng)


def _placeholder_question(topic: str, content: Optional[str], question_type: str, index: int) -> Dict[str, Any]:
    seed_text = _truncate(content or topic, 40)
    base = f"Question {index + 1} about {topic}"
    if content:
        text = f"Based on the provided material: {_truncate(content, 200)} - {base}"
    else:
        text = f"{base}: What is a key idea related to {topic}?"

    return {
        "question": text,
        "options": {label: f"{seed_text} ({label})" for label in OPTION_LABELS},
        "answer": OPTION_LABELS[index % len(OPTION_LABELS)],
        "explanation": f"Auto-generated {question_type} question based on {topic}",
        "tags": [topic] if topic else [],
    }


def generate_fallback_questions(
    topic: Optional[str],
    difficulty: str,
    num_questions: int,
    question_types: Sequence[str],
    content: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """
    Produce exactly ``num_questions`` valid questions, cycling through ``question_types``

    The same parameters always yield the same questions unless an explicit
    ``rng`` is supplied.
    """
    question_types = list(question_types) or [MULTIPLE_CHOICE]
    topic = topic or "the provided material"
    if rng is None:
        rng = random.Random(_seed_for(topic, content, difficulty, num_questions, question_types))
    math_topic = is_math_topic(topic)

    questions = []
    for index in range(num_questions):
        question_type = question_types[index % len(question_types)]

        if question_type == TRUE_FALSE:
            body = {
                "question": f"True or false: {topic} question {index + 1} states a key fact about {topic}.",
                "options": dict(TRUE_FALSE_OPTIONS),
                "answer": "A" if index % 2 == 0 else "B",
                "explanation": f"Auto-generated true/false for {topic}",
                "tags": [topic],
            }
        elif math_topic and question_type in (MULTIPLE_CHOICE, FILL_IN_THE_BLANK):
            body = generate_math_question(topic, index, rng)
        else:
            body = _placeholder_question(topic, content, question_type, index)

        questions.append({
            "id": f"q{index + 1}",
            "question": body["question"],
            "type": question_type,
            "options": body["options"],
            "answer": body["answer"],
            "explanation": body["explanation"],
            "difficulty": difficulty,
            "points": 1.0,
            "time_limit": None,
            "tags": body["tags"],
        })

    return questions

import re

import pytest

from app.services.fallback_generator import generate_fallback_questions, is_math_topic
from app.services.question_validator import validate_questions

OPERATIONS = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "×": lambda a, b: a * b,
}


def _marked_value(question):
    return int(question["options"][question["answer"]])


@pytest.mark.parametrize("num_questions", [1, 5, 17, 50])
def test_exact_count_and_valid_shape(num_questions):
    questions = generate_fallback_questions(
        "World History", "medium", num_questions, ["multiple-choice", "true-false", "fill-in-the-blank"]
    )
    assert len(questions) == num_questions
    assert len({q["id"] for q in questions}) == num_questions

    # Everything produced must survive validation unchanged in count
    outcome = validate_questions(questions)
    assert outcome.rejected == 0
    assert len(outcome.questions) == num_questions


def test_arithmetic_answers_are_correct():
    questions = generate_fallback_questions("Arithmetic", "easy", 30, ["multiple-choice"])
    for question in questions:
        match = re.match(r"What is (-?\d+) ([+\-×]) (-?\d+)\?", question["question"])
        assert match, question["question"]
        first, operation, second = int(match.group(1)), match.group(2), int(match.group(3))
        assert _marked_value(question) == OPERATIONS[operation](first, second)
        assert len(set(question["options"].values())) == 4


def test_linear_equation_answers_are_correct():
    questions = generate_fallback_questions("Algebra basics", "medium", 10, ["multiple-choice"])
    for question in questions:
        match = re.match(r"Solve for x: 2x \+ (\d+) = (\d+)", question["question"])
        assert match
        constant, right_side = int(match.group(1)), int(match.group(2))
        assert 2 * _marked_value(question) + constant == right_side


def test_output_is_deterministic():
    first = generate_fallback_questions("Geometry", "hard", 8, ["multiple-choice"])
    second = generate_fallback_questions("Geometry", "hard", 8, ["multiple-choice"])
    assert first == second


def test_true_false_uses_two_options():
    questions = generate_fallback_questions("Biology", "easy", 4, ["true-false"])
    assert all(q["options"] == {"A": "True", "B": "False"} for q in questions)
    assert {q["answer"] for q in questions} == {"A", "B"}


def test_math_topic_detection():
    assert is_math_topic("Intro to Algebra")
    assert is_math_topic("fractions and decimals")
    assert not is_math_topic("French Revolution")
    assert not is_math_topic(None)

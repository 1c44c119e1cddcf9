from app.services.question_validator import (
    DEFAULT_EXPLANATION,
    CandidateRejected,
    normalize_question_type,
    validate_question,
    validate_questions,
)
import pytest

OPTIONS = {"A": "Red", "B": "Green", "C": "Blue", "D": "Yellow"}


def test_well_formed_question_is_kept():
    question = validate_question(
        {"question": "Sky colour?", "options": OPTIONS, "answer": "C", "type": "multiple-choice",
         "difficulty": "hard", "explanation": "Scattering"},
        position=3,
    )
    assert question["id"] == "q3"
    assert question["answer"] == "C"
    assert question["difficulty"] == "hard"
    assert question["points"] == 1.0
    assert question["options"] == OPTIONS


def test_soft_fields_are_defaulted():
    question = validate_question({"options": OPTIONS, "answer": "a)", "type": "weird"}, 2, "easy")
    assert question["question"] == "Question 2"
    assert question["type"] == "multiple-choice"
    assert question["explanation"] == DEFAULT_EXPLANATION
    assert question["difficulty"] == "easy"
    assert question["answer"] == "A"


def test_list_options_are_labelled():
    question = validate_question({"question": "?", "options": ["1", "2", "3", "4"], "answer": "D"}, 1)
    assert question["options"] == {"A": "1", "B": "2", "C": "3", "D": "4"}


@pytest.mark.parametrize("candidate", [
    {"question": "?", "answer": "A"},
    {"question": "?", "options": {"A": "x", "B": "y", "C": "", "D": "z"}, "answer": "A"},
    {"question": "?", "options": OPTIONS, "answer": "E"},
    {"question": "?", "options": OPTIONS, "answer": "Blue"},
    {"question": "?", "options": OPTIONS},
    ["not", "an", "object"],
])
def test_hard_violations_are_rejected(candidate):
    with pytest.raises(CandidateRejected):
        validate_question(candidate, 1)


def test_true_false_normalisation():
    question = validate_question({"question": "Water is wet", "type": "True/False", "answer": "true"}, 1)
    assert question["type"] == "true-false"
    assert question["options"] == {"A": "True", "B": "False"}
    assert question["answer"] == "A"

    with pytest.raises(CandidateRejected):
        validate_question({"question": "x", "type": "true-false", "answer": "C"}, 1)


def test_batch_drops_invalid_and_renumbers():
    outcome = validate_questions([
        {"question": "one", "options": OPTIONS, "answer": "A"},
        {"question": "bad", "options": OPTIONS, "answer": "Z"},
        {"question": "two", "options": OPTIONS, "answer": "B"},
    ])
    assert outcome.rejected == 1
    assert [q["id"] for q in outcome.questions] == ["q1", "q2"]
    assert [q["question"] for q in outcome.questions] == ["one", "two"]


def test_type_aliases():
    assert normalize_question_type("MCQ") == "multiple-choice"
    assert normalize_question_type("fill in the blank") == "fill-in-the-blank"
    assert normalize_question_type(None) == "multiple-choice"

from app.services.question_validator import validate_questions
from app.utils.json_repair import (
    clean_response,
    extract_object_strings,
    parse_question_candidates,
    sanitize_json_string,
)

VALID_OBJECT = '{"question": "Q%d?", "options": {"A": "1", "B": "2", "C": "3", "D": "4"}, "answer": "A"}'


def test_plain_array():
    raw = "[" + VALID_OBJECT % 1 + "," + VALID_OBJECT % 2 + "]"
    candidates = parse_question_candidates(raw)
    assert [c["question"] for c in candidates] == ["Q1?", "Q2?"]


def test_prose_fences_and_trailing_commas():
    raw = "Here is your quiz:\n```json\n[" + VALID_OBJECT % 1 + ",]\n```\nGood luck!"
    candidates = parse_question_candidates(raw)
    assert len(candidates) == 1
    assert candidates[0]["answer"] == "A"


def test_questions_envelope_is_unwrapped():
    raw = '{"questions": [' + VALID_OBJECT % 1 + "]}"
    assert len(parse_question_candidates(raw)) == 1


def test_bare_keys_and_stray_backslash_are_sanitized():
    raw = '[{question: "Path C:\\data?", answer: "B"}]'
    candidates = parse_question_candidates(raw)
    assert candidates == [{"question": "Path C:\\data?", "answer": "B"}]


def test_object_scan_recovers_from_broken_array():
    raw = "[" + VALID_OBJECT % 1 + " " + VALID_OBJECT % 2 + ", {\"question\": \"broken"
    candidates = parse_question_candidates(raw)
    assert [c["question"] for c in candidates] == ["Q1?", "Q2?"]


def test_object_scan_without_any_array():
    raw = "First: " + VALID_OBJECT % 1 + "\nSecond: " + VALID_OBJECT % 2
    assert len(parse_question_candidates(raw)) == 2


def test_single_object_with_list_options_survives_bracket_cut():
    raw = 'Here is one question: {"question": "2+2?", "options": ["3", "4", "5", "6"], "answer": "B"}'
    candidates = parse_question_candidates(raw)
    assert candidates == [{"question": "2+2?", "options": ["3", "4", "5", "6"], "answer": "B"}]

    outcome = validate_questions(candidates)
    assert len(outcome.questions) == 1
    assert outcome.questions[0]["options"]["B"] == "4"


def test_unrecoverable_input_returns_empty_list():
    assert parse_question_candidates("I cannot help with that.") == []
    assert parse_question_candidates("") == []
    assert parse_question_candidates(None) == []
    assert parse_question_candidates('[1, 2, "three"]') == []


def test_extract_object_strings_ignores_braces_in_strings():
    text = '{"a": "}{"} junk {"b": "\\"}"} {"open": '
    assert extract_object_strings(text) == ['{"a": "}{"}', '{"b": "\\"}"}']


def test_clean_response_cuts_to_brackets():
    assert clean_response("prefix [1, 2,] suffix") == "[1, 2]"


def test_sanitize_keeps_valid_escapes():
    assert sanitize_json_string('{"a": "line\\nbreak \\\\ ok"}') == '{"a": "line\\nbreak \\\\ ok"}'

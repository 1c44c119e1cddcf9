import json

import pytest
from google.api_core import exceptions as google_exceptions

from app.exceptions import InputError, ProviderUnavailable
from app.services.generation_service import (
    MODEL_FALLBACK,
    MODEL_MOCK,
    GenerationRequest,
    GenerationService,
    build_prompt,
)
from conftest import FakeCache, FakeProvider


def _question(n, answer="A"):
    return {
        "question": f"Question number {n}?",
        "options": {"A": "w", "B": "x", "C": "y", "D": "z"},
        "answer": answer,
        "type": "multiple-choice",
    }


def _request(**overrides):
    params = dict(
        topic="Cell biology",
        difficulty="medium",
        num_questions=3,
        question_types=["multiple-choice"],
        owner_id="user-1",
    )
    params.update(overrides)
    return GenerationRequest(**params)


def _service(responses, cache=None, mock_mode=False):
    provider = FakeProvider(responses)
    return GenerationService(provider=provider, cache=cache or FakeCache(), mock_mode=mock_mode), provider


def test_provider_output_is_used():
    service, provider = _service([json.dumps([_question(1), _question(2), _question(3)])])
    result = service.generate(_request())

    assert len(result.questions) == 3
    assert result.model_used == "fake-model"
    assert not result.is_partial
    assert not result.cache_hit
    assert result.stage == "provider"
    assert len(provider.prompts) == 1


def test_extra_questions_are_truncated():
    service, _ = _service([json.dumps([_question(n) for n in range(5)])])
    result = service.generate(_request(num_questions=2))
    assert [q["id"] for q in result.questions] == ["q1", "q2"]


def test_malformed_output_gives_partial_quiz_without_fallback():
    valid = [json.dumps(_question(n)) for n in range(4)]
    broken = ['{"question": "no options", "answer": "A"}', '{"question": "bad answer", "options": ["1","2","3","4"], "answer": "Q"}']
    raw = "Sure! Here are your questions:\n[" + ",\n".join(valid + broken) + ",\n]\nHope this helps."

    service, provider = _service([raw])
    result = service.generate(_request(num_questions=6))

    assert len(result.questions) == 4
    assert result.is_partial
    assert result.model_used == "fake-model"
    assert result.stage == "provider"
    assert len(provider.prompts) == 1


def test_retry_then_fallback():
    service, provider = _service(["nothing useful", "still nothing"])
    result = service.generate(_request(num_questions=4))

    assert len(provider.prompts) == 2
    assert result.model_used == MODEL_FALLBACK
    assert len(result.questions) == 4
    assert not result.is_partial


def test_retry_can_succeed():
    service, provider = _service(["garbage", json.dumps([_question(1)])])
    result = service.generate(_request(num_questions=1))
    assert len(provider.prompts) == 2
    assert result.model_used == "fake-model"


def test_mock_mode_skips_provider():
    service, provider = _service([], mock_mode=True)
    result = service.generate(_request(topic="Arithmetic", num_questions=5))

    assert provider.prompts == []
    assert result.model_used == MODEL_MOCK
    assert len(result.questions) == 5


def test_provider_unavailable_is_not_repaired():
    service, provider = _service([ProviderUnavailable("quota")])
    with pytest.raises(ProviderUnavailable):
        service.generate(_request())
    assert len(provider.prompts) == 1


def test_other_provider_errors_propagate():
    service, _ = _service([google_exceptions.InvalidArgument("bad prompt")])
    with pytest.raises(google_exceptions.InvalidArgument):
        service.generate(_request())


def test_cache_hit_on_second_call():
    cache = FakeCache()
    service, provider = _service([json.dumps([_question(1), _question(2), _question(3)])], cache=cache)

    first = service.generate(_request())
    second = service.generate(_request())

    assert not first.cache_hit
    assert second.cache_hit
    assert second.questions == first.questions
    assert len(provider.prompts) == 1


@pytest.mark.parametrize("overrides", [
    {"topic": None, "content": None},
    {"topic": "   ", "content": ""},
    {"num_questions": 0},
    {"num_questions": 51},
    {"difficulty": "extreme"},
    {"question_types": []},
    {"question_types": ["essay"]},
])
def test_input_errors_are_raised_before_provider_call(overrides):
    service, provider = _service([json.dumps([_question(1)])])
    with pytest.raises(InputError):
        service.generate(_request(**overrides))
    assert provider.prompts == []


def test_content_request_metadata():
    content = "Mitochondria produce ATP through cellular respiration."
    service, _ = _service([json.dumps([_question(1)])])
    result = service.generate(_request(topic=None, content=content, num_questions=1))
    assert result.metadata["content_length"] == len(content)
    assert result.metadata["model_used"] == "fake-model"
    assert result.metadata["cache_hit"] is False


def test_prompt_mentions_count_types_and_math_rule():
    prompt = build_prompt(_request(topic="Algebra", num_questions=7, question_types=["multiple-choice", "true-false"]))
    assert "EXACTLY 7" in prompt
    assert "multiple-choice, true-false" in prompt
    assert "calculations are accurate" in prompt
    assert "calculations are accurate" not in build_prompt(_request())

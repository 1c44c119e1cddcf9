import pytest
from google.api_core import exceptions as google_exceptions

from app.exceptions import ProviderUnavailable
from app.services.gemini_service import GeminiService


class FakeResponse:
    def __init__(self, text=None, blocked=False):
        self._text = text
        self.blocked = blocked

    @property
    def text(self):
        if self.blocked:
            raise ValueError("The response candidate was blocked")
        return self._text


class FakeModel:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def generate_content(self, prompt, generation_config=None):
        self.calls.append((prompt, generation_config))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _service(outcome):
    service = GeminiService(model_name="test-model")
    service.model = FakeModel(outcome)
    return service


def test_returns_response_text():
    service = _service(FakeResponse('[{"question": "Q?"}]'))
    assert service.generate_text("prompt") == '[{"question": "Q?"}]'
    assert service.model.calls[0][0] == "prompt"


@pytest.mark.parametrize("error", [
    google_exceptions.ResourceExhausted("Resource has been exhausted"),
    google_exceptions.TooManyRequests("Too many requests"),
    google_exceptions.DeadlineExceeded("Deadline exceeded"),
    google_exceptions.ServiceUnavailable("Service unavailable"),
])
def test_throttling_and_timeouts_become_provider_unavailable(error):
    with pytest.raises(ProviderUnavailable) as exc_info:
        _service(error).generate_text("prompt")
    assert exc_info.value.__cause__ is error


def test_quota_message_becomes_provider_unavailable():
    error = google_exceptions.GoogleAPIError("You exceeded your current quota, please check your plan and billing details")
    with pytest.raises(ProviderUnavailable):
        _service(error).generate_text("prompt")


def test_other_api_errors_propagate():
    error = google_exceptions.InvalidArgument("Request contains an invalid argument")
    with pytest.raises(google_exceptions.InvalidArgument):
        _service(error).generate_text("prompt")


def test_blocked_or_empty_response_returns_empty_string():
    assert _service(FakeResponse(blocked=True)).generate_text("prompt") == ""
    assert _service(FakeResponse(None)).generate_text("prompt") == ""

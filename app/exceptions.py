"""
Domain error kinds raised by the quiz engine

Each kind carries the HTTP status the API layer maps it to.
"""
from typing import Optional


class QuizEngineError(Exception):
    """Base class for all expected quiz engine failures"""

    status_code = 500
    error = "quiz_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputError(QuizEngineError):
    """Request rejected before any provider call (missing topic/content, bad count or types)"""

    status_code = 400
    error = "invalid_input"


class ProviderUnavailable(QuizEngineError):
    """Generative-text provider refused the call (quota, rate limit, timeout)"""

    status_code = 503
    error = "provider_unavailable"

    def __init__(self, message: str, retry_after: Optional[int] = 60):
        super().__init__(message)
        self.retry_after = retry_after


class GenerationExhausted(QuizEngineError):
    """Repair, validation and fallback all failed to produce a question"""

    status_code = 502
    error = "generation_exhausted"


class QuizNotFound(QuizEngineError):
    status_code = 404
    error = "quiz_not_found"


class SessionNotFound(QuizEngineError):
    status_code = 404
    error = "session_not_found"


class SessionStateConflict(QuizEngineError):
    """Operation not allowed in the session's current status; nothing was changed"""

    status_code = 409
    error = "session_state_conflict"

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status

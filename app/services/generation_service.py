"""
Quiz generation orchestrator

Runs a fixed sequence of named stages until one produces questions:

    cache -> mock -> provider (repair-parse + validate, with retries) -> fallback

Each stage returns a ``StageResult`` or ``None`` ("insufficient, go on").
Provider quota/rate-limit failures are raised immediately and never
reach the repair pipeline.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.config import settings
from app.exceptions import GenerationExhausted, InputError
from app.services.fallback_generator import generate_fallback_questions, is_math_topic
from app.services.question_validator import DIFFICULTIES, QUESTION_TYPES, validate_questions
from app.utils.json_repair import parse_question_candidates

logger = logging.getLogger(__name__)

MODEL_MOCK = "mock"
MODEL_FALLBACK = "fallback"

DIFFICULTY_GUIDELINES = {
    "easy": (
        "Questions should require some analytical thinking and application of concepts, "
        "not just direct recall. They should be suitable for a knowledgeable high school student."
    ),
    "medium": (
        "Include questions that require application and analysis of concepts, going beyond "
        "basic recall but not requiring advanced standardized exam-level reasoning."
    ),
    "hard": (
        "Create questions equivalent to standardized exams (SAT, ACT, GCSE A-Levels, JEE, NEET): "
        "require analytical reasoning, inference from complex scenarios, application of advanced "
        "concepts, critical evaluation, and discrimination between nuanced ideas. Avoid simple recall."
    ),
}


@dataclass
class GenerationRequest:
    """Parameters of one Generate call"""

    difficulty: str
    num_questions: int
    question_types: List[str]
    owner_id: str
    topic: Optional[str] = None
    content: Optional[str] = None


@dataclass
class StageResult:
    questions: List[Dict[str, Any]]
    model_used: str
    is_partial: bool = False
    cache_hit: bool = False


@dataclass
class GenerationResult:
    """Questions plus the metadata block returned to the client"""

    questions: List[Dict[str, Any]]
    model_used: str
    is_partial: bool
    cache_hit: bool
    generation_time_ms: int
    content_length: int = 0
    stage: str = ""

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "generation_time_ms": self.generation_time_ms,
            "model_used": self.model_used,
            "cache_hit": self.cache_hit,
            "content_length": self.content_length,
            "is_partial": self.is_partial,
        }


def validate_request(request: GenerationRequest) -> GenerationRequest:
    """
    Reject malformed requests before any provider call

    Raises:
        InputError: missing topic and content, count out of range, bad difficulty or types
    """
    topic = (request.topic or "").strip()
    content = (request.content or "").strip()
    if not topic and not content:
        raise InputError("Either topic or content must be provided")

    if not settings.MIN_QUIZ_QUESTIONS <= request.num_questions <= settings.MAX_QUIZ_QUESTIONS:
        raise InputError(
            f"Number of questions must be between {settings.MIN_QUIZ_QUESTIONS} "
            f"and {settings.MAX_QUIZ_QUESTIONS}"
        )

    if request.difficulty not in DIFFICULTIES:
        raise InputError(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}")

    if not request.question_types:
        raise InputError("At least one question type is required")
    unknown = [t for t in request.question_types if t not in QUESTION_TYPES]
    if unknown:
        raise InputError(f"Unsupported question types: {', '.join(map(str, unknown))}")

    request.topic = topic or None
    request.content = content or None
    request.question_types = list(dict.fromkeys(request.question_types))
    return request


def build_prompt(request: GenerationRequest) -> str:
    """Create the single instruction block sent to the provider"""
    if request.content:
        context = f"based on the following content:\n{request.content}"
    else:
        context = f'on the topic "{request.topic}"'

    math_rule = ""
    if is_math_topic(request.topic):
        math_rule = "7. For math questions: ensure calculations are accurate and wrong options are common mistakes\n"

    return f"""
Generate EXACTLY {request.num_questions} quiz questions {context} at {request.difficulty} difficulty level.

DIFFICULTY GUIDELINES ({request.difficulty}):
- {DIFFICULTY_GUIDELINES[request.difficulty]}

REQUIREMENTS:
1. Generate EXACTLY {request.num_questions} questions
2. Include question types: {", ".join(request.question_types)}
3. Multiple-choice: 4 options (A, B, C, D) with one correct answer
4. True-false: 2 options (A: True, B: False)
5. Fill-in-the-blank: 4 options (A, B, C, D) with meaningful values
6. All answers must be option keys (A, B, C, or D)
{math_rule}
Return ONLY a valid JSON array (no markdown, no preamble):
[{{
  "question": "Question text?",
  "options": {{"A": "Option A", "B": "Option B", "C": "Option C", "D": "Option D"}},
  "answer": "A",
  "explanation": "Explanation here",
  "type": "{request.question_types[0]}",
  "difficulty": "{request.difficulty}"
}}]
"""


class GenerationService:
    """Drives the generation stages for one request at a time; holds no per-request state"""

    def __init__(self, provider=None, cache=None, mock_mode: Optional[bool] = None):
        if provider is None:
            from app.services.gemini_service import gemini_service
            provider = gemini_service
        if cache is None:
            from app.utils.cache import cache_service
            cache = cache_service
        self.provider = provider
        self.cache = cache
        self.mock_mode = settings.MOCK_AI if mock_mode is None else mock_mode

    def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Produce a non-empty question set for the request

        Raises:
            InputError: request rejected before generation
            ProviderUnavailable: provider quota/rate-limit/timeout
            GenerationExhausted: no stage produced a question
        """
        validate_request(request)
        start_time = time.time()

        stages = (
            ("cache", self._from_cache),
            ("mock", self._from_mock),
            ("provider", self._from_provider),
            ("fallback", self._from_fallback),
        )
        for name, stage in stages:
            result = stage(request)
            if result is not None and result.questions:
                break
        else:
            raise GenerationExhausted("Failed to generate any valid quiz questions. Please try again.")

        generation_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Generated {len(result.questions)}/{request.num_questions} questions "
            f"via {name} stage (model: {result.model_used}, {generation_time_ms}ms)"
        )
        return GenerationResult(
            questions=result.questions,
            model_used=result.model_used,
            is_partial=result.is_partial,
            cache_hit=result.cache_hit,
            generation_time_ms=generation_time_ms,
            content_length=len(request.content or ""),
            stage=name,
        )

    def _cache_key(self, request: GenerationRequest) -> str:
        return self.cache.generate_cache_key(
            request.topic, request.content, request.difficulty,
            request.num_questions, request.question_types,
        )

    def _from_cache(self, request: GenerationRequest) -> Optional[StageResult]:
        if self.mock_mode:
            return None
        cached = self.cache.get(self._cache_key(request))
        if not cached:
            return None
        return StageResult(
            questions=cached["questions"],
            model_used=cached["model_used"],
            is_partial=cached.get("is_partial", False),
            cache_hit=True,
        )

    def _from_mock(self, request: GenerationRequest) -> Optional[StageResult]:
        if not self.mock_mode:
            return None
        return StageResult(questions=self._fallback_questions(request), model_used=MODEL_MOCK)

    def _from_provider(self, request: GenerationRequest) -> Optional[StageResult]:
        prompt = build_prompt(request)
        model_used = getattr(self.provider, "model_name", "provider")
        attempts = 1 + max(settings.GENERATION_RETRIES, 0)

        for attempt in range(1, attempts + 1):
            raw = self.provider.generate_text(prompt)
            candidates = parse_question_candidates(raw)
            outcome = validate_questions(candidates, default_difficulty=request.difficulty)

            if not outcome.questions:
                logger.warning(
                    f"Attempt {attempt}/{attempts}: no valid questions "
                    f"({len(candidates)} candidates, {outcome.rejected} rejected)"
                )
                continue

            questions = outcome.questions[:request.num_questions]
            is_partial = len(questions) < request.num_questions
            if is_partial:
                logger.warning(
                    f"Partial response: {len(questions)} valid questions "
                    f"out of {request.num_questions} requested"
                )

            self.cache.set(self._cache_key(request), {
                "questions": questions,
                "model_used": model_used,
                "is_partial": is_partial,
            })
            return StageResult(questions=questions, model_used=model_used, is_partial=is_partial)

        return None

    def _from_fallback(self, request: GenerationRequest) -> Optional[StageResult]:
        logger.warning("Falling back to local question generation")
        return StageResult(questions=self._fallback_questions(request), model_used=MODEL_FALLBACK)

    def _fallback_questions(self, request: GenerationRequest) -> List[Dict[str, Any]]:
        return generate_fallback_questions(
            topic=request.topic,
            difficulty=request.difficulty,
            num_questions=request.num_questions,
            question_types=request.question_types,
            content=request.content,
        )

"""
Pydantic schemas for quiz generation, listing and result submission
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Dict, Any, Optional, Literal
from datetime import datetime
from uuid import UUID

from app.services.analytics_service import performance_rating


class QuizGenerateRequest(BaseModel):
    """Request schema for quiz generation"""
    topic: Optional[str] = Field(None, max_length=255, description="Quiz topic")
    content: Optional[str] = Field(None, max_length=100_000, description="Source text to generate questions from")
    difficulty: str = Field("easy", description="easy, medium or hard")
    num_questions: int = Field(5, description="Number of questions (1-50)")
    question_types: List[str] = Field(default_factory=lambda: ["multiple-choice"])

    @field_validator("question_types", mode="before")
    @classmethod
    def wrap_single_type(cls, value):
        # A single type may be sent as a plain string
        if isinstance(value, str):
            return [value]
        return value


class GenerationMetadata(BaseModel):
    generation_time_ms: int
    model_used: str
    cache_hit: bool
    content_length: int = 0
    is_partial: bool = False


class QuizGenerateResponse(BaseModel):
    """Generated quiz plus the session started for it"""
    quiz_id: UUID
    session_token: str
    questions: List[Dict[str, Any]]
    metadata: GenerationMetadata
    total_time: int  # seconds


class QuizStatistics(BaseModel):
    total_attempts: int
    average_score: float
    average_time: float
    success_rate: float


class QuizSummary(BaseModel):
    id: UUID
    title: Optional[str]
    topic: Optional[str]
    source: str
    category: Optional[str]
    difficulty: str
    num_questions: int
    estimated_time: Optional[int]
    tags: List[str] = []
    model_used: Optional[str]
    is_partial: bool
    is_public: bool
    status: str
    created_at: Optional[datetime]
    metadata: QuizStatistics

    @classmethod
    def from_quiz(cls, quiz) -> "QuizSummary":
        # ORM models expose SQLAlchemy's own ``metadata``; statistics are mapped explicitly
        return cls(
            id=quiz.id,
            title=quiz.title,
            topic=quiz.topic,
            source=quiz.source,
            category=quiz.category,
            difficulty=quiz.difficulty,
            num_questions=quiz.num_questions,
            estimated_time=quiz.estimated_time,
            tags=quiz.tags or [],
            model_used=quiz.model_used,
            is_partial=quiz.is_partial,
            is_public=quiz.is_public,
            status=quiz.status,
            created_at=quiz.created_at,
            metadata=QuizStatistics(**quiz.statistics),
        )


class QuizDetail(QuizSummary):
    questions: List[Dict[str, Any]]

    @classmethod
    def from_quiz(cls, quiz) -> "QuizDetail":
        summary = QuizSummary.from_quiz(quiz)
        return cls(**summary.model_dump(), questions=quiz.questions or [])


class QuizListResponse(BaseModel):
    quizzes: List[QuizSummary]
    total: int
    page: int
    limit: int


class Feedback(BaseModel):
    """Optional user feedback attached to a result"""
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    difficulty_perception: Optional[Literal["too-easy", "appropriate", "too-hard"]] = None


class QuizResultSubmission(BaseModel):
    """Whole answer map graded without a session"""
    answers: Dict[str, Any]  # {question_id: answer}
    time_taken: float = Field(0, ge=0, description="Seconds spent")
    feedback: Optional[Feedback] = None


class QuizResultResponse(BaseModel):
    """Graded result of one attempt"""
    id: UUID
    quiz_id: UUID
    session_id: Optional[UUID] = None
    score: int
    total_questions: int
    percentage: int
    performance_rating: str
    time_taken: float
    status: str
    difficulty: Optional[str]
    selected_answers: Dict[str, Any]
    breakdown: List[Dict[str, Any]]
    analytics: Dict[str, Any]
    feedback: Optional[Dict[str, Any]] = None
    completed_at: datetime
    insights: List[str] = []

    @classmethod
    def from_result(cls, result, insights: Optional[List[str]] = None) -> "QuizResultResponse":
        return cls(
            id=result.id,
            quiz_id=result.quiz_id,
            session_id=result.session_id,
            score=result.score,
            total_questions=result.total_questions,
            percentage=result.percentage,
            performance_rating=performance_rating(result.percentage),
            time_taken=result.time_taken,
            status=result.status,
            difficulty=result.difficulty,
            selected_answers=result.selected_answers or {},
            breakdown=result.breakdown or [],
            analytics=result.analytics or {},
            feedback=result.feedback,
            completed_at=result.completed_at,
            insights=insights or [],
        )


class QuizResultListResponse(BaseModel):
    results: List[QuizResultResponse]
    total: int
    page: int
    limit: int

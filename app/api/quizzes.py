"""
Quiz generation, listing and result submission API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.api.deps import get_owner_id
from app.database import get_db
from app.schemas.quiz import (
    QuizGenerateRequest,
    QuizGenerateResponse,
    GenerationMetadata,
    QuizDetail,
    QuizListResponse,
    QuizSummary,
    QuizResultSubmission,
    QuizResultResponse,
    QuizResultListResponse,
)
from app.services.analytics_service import analytics_service
from app.services.generation_service import GenerationRequest, GenerationService
from app.services.quiz_service import quiz_service
from app.services.session_service import session_service

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


def get_generation_service() -> GenerationService:
    return GenerationService()


@router.post("/generate", response_model=QuizGenerateResponse, status_code=201)
def generate_quiz(
    request: QuizGenerateRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    generator: GenerationService = Depends(get_generation_service),
):
    """
    Generate a quiz and start a session for it

    - Cached response, mock questions, provider output or local fallback, in that order
    - Returns fewer questions than requested when only some provider output was valid
    - Provider quota/rate-limit failures return 503 with retry_after
    """
    generation_request = GenerationRequest(
        topic=request.topic,
        content=request.content,
        difficulty=request.difficulty,
        num_questions=request.num_questions,
        question_types=request.question_types,
        owner_id=owner_id,
    )

    logger.info(f"Generating quiz for user {owner_id} (topic={request.topic!r}, n={request.num_questions})")
    generation = generator.generate(generation_request)

    quiz = quiz_service.create_quiz(db, generation_request, generation)
    session = session_service.start(db, quiz, owner_id)

    return QuizGenerateResponse(
        quiz_id=quiz.id,
        session_token=session.session_token,
        questions=quiz.questions,
        metadata=GenerationMetadata(**generation.metadata),
        total_time=session.time_limit,
    )


@router.get("", response_model=QuizListResponse)
def list_quizzes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    difficulty: Optional[str] = None,
    category: Optional[str] = None,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """List the caller's quizzes, newest first"""
    quizzes, total = quiz_service.list_quizzes(db, owner_id, page, limit, difficulty, category)
    return QuizListResponse(
        quizzes=[QuizSummary.from_quiz(quiz) for quiz in quizzes],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/results/me", response_model=QuizResultListResponse)
def list_my_results(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    results, total = quiz_service.list_results(db, owner_id, page, limit)
    return QuizResultListResponse(
        results=[QuizResultResponse.from_result(result) for result in results],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{quiz_id}", response_model=QuizDetail)
def get_quiz(
    quiz_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return QuizDetail.from_quiz(quiz_service.get_quiz(db, quiz_id, owner_id))


@router.post("/{quiz_id}/results", response_model=QuizResultResponse, status_code=201)
def submit_quiz_result(
    quiz_id: UUID,
    submission: QuizResultSubmission,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Grade a whole answer map without a session

    Uses the same grading rules and rolling statistics update as
    completing a session.
    """
    quiz = quiz_service.get_quiz(db, quiz_id, owner_id)
    feedback = submission.feedback.model_dump(exclude_none=True) if submission.feedback else None

    result = quiz_service.submit_answers(
        db, quiz, owner_id, submission.answers, submission.time_taken, feedback
    )
    insights = analytics_service.generate_insights(result.analytics)
    return QuizResultResponse.from_result(result, insights)

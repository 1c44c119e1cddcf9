"""
Quiz session API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.api.deps import get_owner_id
from app.database import get_db
from app.schemas.quiz import QuizResultResponse
from app.schemas.session import (
    SessionStartRequest,
    AnswerSubmission,
    NavigateRequest,
    FlagRequest,
    CompleteRequest,
    SessionResponse,
    SessionDetail,
    SessionCompleteResponse,
)
from app.services.analytics_service import analytics_service
from app.services.quiz_service import quiz_service
from app.services.session_service import session_service

router = APIRouter(prefix="/api/sessions", tags=["sessions"])
logger = logging.getLogger(__name__)


@router.post("", response_model=SessionResponse, status_code=201)
def start_session(
    request: SessionStartRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Start a session for a quiz; an already open session is returned instead"""
    quiz = quiz_service.get_quiz(db, request.quiz_id, owner_id)
    return SessionResponse.from_session(session_service.start(db, quiz, owner_id))


@router.get("/{session_token}", response_model=SessionDetail)
def get_session(
    session_token: str,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    row = session_service.get(db, session_token, owner_id)
    quiz = quiz_service.get_quiz(db, row.quiz_id, owner_id)
    return SessionDetail(
        **SessionResponse.from_session(row).model_dump(),
        questions=quiz.questions or [],
    )


@router.post("/{session_token}/answers", response_model=SessionResponse)
def submit_answer(
    session_token: str,
    submission: AnswerSubmission,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Save (or overwrite) one answer; only allowed while the session is active"""
    row = session_service.submit_answer(
        db,
        session_token,
        owner_id,
        submission.question_id,
        submission.answer,
        submission.current_question_index,
    )
    return SessionResponse.from_session(row)


@router.post("/{session_token}/navigate", response_model=SessionResponse)
def navigate(
    session_token: str,
    request: NavigateRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    row = session_service.navigate(db, session_token, owner_id, request.current_question_index)
    return SessionResponse.from_session(row)


@router.post("/{session_token}/flag", response_model=SessionResponse)
def flag_question(
    session_token: str,
    request: FlagRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    row = session_service.set_flag(db, session_token, owner_id, request.question_id, request.flagged)
    return SessionResponse.from_session(row)


@router.post("/{session_token}/pause", response_model=SessionResponse)
def pause_session(
    session_token: str,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return SessionResponse.from_session(session_service.pause(db, session_token, owner_id))


@router.post("/{session_token}/resume", response_model=SessionResponse)
def resume_session(
    session_token: str,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    return SessionResponse.from_session(session_service.resume(db, session_token, owner_id))


@router.post("/{session_token}/complete", response_model=SessionCompleteResponse)
def complete_session(
    session_token: str,
    request: Optional[CompleteRequest] = None,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Complete the session and return its graded result

    Returns:
    - Session in its final state
    - Score, percentage, per-question breakdown and analytics
    - Insights derived from the weak areas
    """
    request = request or CompleteRequest()
    feedback = request.feedback.model_dump(exclude_none=True) if request.feedback else None

    row, result = session_service.complete(db, session_token, owner_id, request.answers, feedback)
    insights = analytics_service.generate_insights(result.analytics)

    return SessionCompleteResponse(
        session=SessionResponse.from_session(row),
        result=QuizResultResponse.from_result(result, insights),
    )

"""
Performance analytics API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from app.api.deps import get_owner_id
from app.database import get_db
from app.schemas.analytics import UserAnalytics, QuizAnalytics
from app.services.analytics_service import analytics_service
from app.services.quiz_service import quiz_service

router = APIRouter(prefix="/api/analytics", tags=["analytics"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserAnalytics)
def get_my_analytics(
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Performance analytics for the caller

    Returns:
    - Totals and average percentage/time
    - Score distribution and per-difficulty / per-type averages
    - Weak areas and the ten most recent results
    """
    logger.info(f"Fetching analytics for user {owner_id}")
    return UserAnalytics(**analytics_service.get_user_analytics(db, owner_id))


@router.get("/quizzes/{quiz_id}", response_model=QuizAnalytics)
def get_quiz_analytics(
    quiz_id: UUID,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    quiz = quiz_service.get_quiz(db, quiz_id, owner_id)
    return QuizAnalytics(**analytics_service.get_quiz_analytics(db, quiz))

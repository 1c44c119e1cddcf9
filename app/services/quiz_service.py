"""
Quiz service - persists generated quizzes and grades whole answer maps
submitted without a session
"""
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import QuizNotFound
from app.models import Quiz, QuizResult
from app.services.generation_service import GenerationRequest, GenerationResult
from app.services.scoring_service import scoring_service
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

CONTENT_EXCERPT_CHARS = 500

# First matching keyword group wins
CATEGORY_KEYWORDS = (
    (("math", "mathematics", "algebra", "arithmetic", "geometry", "calculus"), "Mathematics"),
    (("physics",), "Physics"),
    (("chemistry",), "Chemistry"),
    (("biology",), "Biology"),
    (("english", "literature"), "English/Literature"),
    (("history",), "History"),
    (("geography",), "Geography"),
    (("government", "civics"), "Government"),
    (("economics", "commerce"), "Economics/Commerce"),
    (("computer", "programming"), "Computer Science"),
    (("agricultural",), "Agricultural Science"),
)


def determine_category(topic: Optional[str]) -> str:
    lowered = (topic or "").lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "General"


def estimated_minutes(num_questions: int) -> int:
    return math.ceil(num_questions * settings.SESSION_SECONDS_PER_QUESTION / 60)


class QuizService:
    """Create, read and grade quizzes"""

    def create_quiz(self, db: Session, request: GenerationRequest, generation: GenerationResult) -> Quiz:
        """
        Persist a generated quiz

        Args:
            db: Database session
            request: The validated generation request
            generation: Orchestrator output

        Returns:
            The committed Quiz
        """
        topic = request.topic or "Custom content"
        category = determine_category(request.topic)
        num_questions = len(generation.questions)

        quiz = Quiz(
            owner_id=request.owner_id,
            title=f"Quiz: {topic} ({request.difficulty}) - {utcnow().date().isoformat()}",
            topic=topic,
            source="content" if request.content else "topic",
            category=category,
            difficulty=request.difficulty,
            num_questions=request.num_questions,
            questions=generation.questions,
            tags=[topic, request.difficulty, category],
            estimated_time=estimated_minutes(num_questions),
            model_used=generation.model_used,
            is_partial=generation.is_partial,
            content_excerpt=(request.content or "")[:CONTENT_EXCERPT_CHARS] or None,
        )
        db.add(quiz)
        db.commit()
        db.refresh(quiz)

        logger.info(f"Quiz created: {quiz.id} ({num_questions} questions, model {quiz.model_used})")
        return quiz

    def get_quiz(self, db: Session, quiz_id, owner_id: str) -> Quiz:
        """Quiz visible to the owner (their own, or public)"""
        quiz = db.query(Quiz).filter(
            Quiz.id == quiz_id,
            or_(Quiz.owner_id == owner_id, Quiz.is_public.is_(True)),
        ).first()
        if quiz is None:
            raise QuizNotFound("Quiz not found")
        return quiz

    def list_quizzes(
        self,
        db: Session,
        owner_id: str,
        page: int = 1,
        limit: int = 10,
        difficulty: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Quiz], int]:
        query = db.query(Quiz).filter(Quiz.owner_id == owner_id)
        if difficulty:
            query = query.filter(Quiz.difficulty == difficulty)
        if category:
            query = query.filter(Quiz.category == category)

        total = query.count()
        quizzes = query.order_by(Quiz.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return quizzes, total

    def list_results(self, db: Session, owner_id: str, page: int = 1, limit: int = 10) -> Tuple[List[QuizResult], int]:
        query = db.query(QuizResult).filter(QuizResult.owner_id == owner_id)
        total = query.count()
        results = query.order_by(QuizResult.completed_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return results, total

    def submit_answers(
        self,
        db: Session,
        quiz: Quiz,
        owner_id: str,
        answers: Dict[str, Any],
        time_taken: float,
        feedback: Optional[Dict[str, Any]] = None,
    ) -> QuizResult:
        """
        Grade a complete answer map for a quiz without a session

        Runs the same grading and rolling statistics update as session completion.
        """
        try:
            result = scoring_service.record_result(
                db,
                quiz,
                owner_id=owner_id,
                answers={str(k): v for k, v in (answers or {}).items()},
                time_taken=time_taken,
                completed_at=utcnow(),
                feedback=feedback,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(result)
        return result


# Global instance
quiz_service = QuizService()

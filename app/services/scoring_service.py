"""
Scoring service - grades an attempt, stores the QuizResult and folds
the attempt into the quiz's rolling statistics
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models import Quiz, QuizResult
from app.services.analytics_service import analytics_service
from app.services.grading_service import grading_service

logger = logging.getLogger(__name__)


class ScoringService:
    """Turns a finished answer map into a persisted, immutable result"""

    def record_result(
        self,
        db: Session,
        quiz: Quiz,
        owner_id: str,
        answers: Dict[str, Any],
        time_taken: float,
        completed_at: datetime,
        question_times: Optional[Dict[str, float]] = None,
        session_id=None,
        feedback: Optional[Dict[str, Any]] = None,
    ) -> QuizResult:
        """
        Grade, persist and update statistics; the caller commits

        Args:
            db: Database session
            quiz: Quiz that was attempted
            owner_id: User who made the attempt
            answers: {question_id: submitted value}
            time_taken: Active seconds spent
            completed_at: Completion timestamp
            question_times: Seconds per question id, if tracked
            session_id: Originating session, if any
            feedback: Optional user feedback block

        Returns:
            The new QuizResult (flushed, not committed)
        """
        questions = quiz.questions or []
        report = grading_service.grade_answers(questions, answers)
        analytics = analytics_service.compute_result_analytics(
            questions, report, time_taken, question_times
        )

        known_ids = {question.get("id") for question in questions}
        result = QuizResult(
            owner_id=owner_id,
            quiz_id=quiz.id,
            session_id=session_id,
            score=report.score,
            total_questions=report.total_questions,
            selected_answers={k: v for k, v in (answers or {}).items() if k in known_ids},
            breakdown=report.breakdown,
            time_taken=time_taken,
            status="completed",
            difficulty=quiz.difficulty,
            analytics=analytics,
            feedback=feedback,
            completed_at=completed_at,
        )
        db.add(result)

        self.update_quiz_statistics(db, quiz, report.score, time_taken, report.total_questions)
        db.flush()

        logger.info(
            f"Recorded result for quiz {quiz.id}: {report.score}/{report.total_questions} "
            f"({analytics['accuracy']}%) in {time_taken:.0f}s"
        )
        return result

    def update_quiz_statistics(
        self,
        db: Session,
        quiz: Quiz,
        score: int,
        time_taken: float,
        total_questions: int,
    ) -> None:
        """
        Fold one attempt into the rolling averages

        new_avg = (old_avg * (n - 1) + value) / n with n the post-increment
        attempt count. Written as one UPDATE so concurrent completions of
        the same quiz do not lose increments.
        """
        success = 1.0 if total_questions and score / total_questions >= settings.SUCCESS_RATE_THRESHOLD else 0.0
        new_count = Quiz.total_attempts + 1

        db.query(Quiz).filter(Quiz.id == quiz.id).update(
            {
                Quiz.average_score: (Quiz.average_score * Quiz.total_attempts + float(score)) / new_count,
                Quiz.average_time: (Quiz.average_time * Quiz.total_attempts + float(time_taken)) / new_count,
                Quiz.success_rate: (Quiz.success_rate * Quiz.total_attempts + success) / new_count,
                Quiz.total_attempts: new_count,
            },
            synchronize_session=False,
        )
        db.expire(quiz)


# Global instance
scoring_service = ScoringService()

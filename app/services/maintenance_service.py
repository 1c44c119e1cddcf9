"""
Background maintenance sweeps

- Expire open sessions whose deadline has passed
- Abandon open sessions with no activity for SESSION_ABANDON_AFTER_HOURS
- Recompute rolling statistics of busy quizzes from their stored results

Sessions are closed through the same state machine as lazy expiry, one
versioned write per row, so a sweep never overwrites a concurrent
transition. Statistics are aggregated and written in a single UPDATE.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import Float, and_, case, cast, func
from sqlalchemy.orm import Query, Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.database import SessionLocal
from app.exceptions import SessionStateConflict
from app.models import Quiz, QuizResult, QuizSession
from app.services.session_service import state_from_row, write_state
from app.services.session_state import OPEN_STATUSES, Abandon, Expire, SessionEvent, apply_event
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Idempotent sweeps over sessions and quiz statistics"""

    def expire_overdue_sessions(self, db: Session, now: Optional[datetime] = None) -> int:
        """Mark every open session past its expiry as expired; returns the row count"""
        now = now or utcnow()
        candidates = db.query(QuizSession.id).filter(
            QuizSession.status.in_(OPEN_STATUSES),
            QuizSession.expires_at <= now,
        )
        count = self._close_sessions(db, candidates, Expire(), now)
        if count:
            logger.info(f"Expired {count} overdue sessions")
        return count

    def abandon_inactive_sessions(self, db: Session, now: Optional[datetime] = None) -> int:
        """Mark open sessions idle longer than the abandon window as abandoned"""
        now = now or utcnow()
        cutoff = now - timedelta(hours=settings.SESSION_ABANDON_AFTER_HOURS)
        candidates = db.query(QuizSession.id).filter(
            QuizSession.status.in_(OPEN_STATUSES),
            QuizSession.last_activity_at < cutoff,
        )
        count = self._close_sessions(db, candidates, Abandon(), now)
        if count:
            logger.info(f"Abandoned {count} inactive sessions (idle since before {cutoff.isoformat()})")
        return count

    def _close_sessions(self, db: Session, candidates: Query, event: SessionEvent, now: datetime) -> int:
        """Apply ``event`` to each candidate session, committing row by row"""
        closed = 0
        for (session_id,) in candidates.all():
            row = db.get(QuizSession, session_id, populate_existing=True)
            if row is None:
                continue
            try:
                write_state(row, apply_event(state_from_row(row), event, now).state)
                db.commit()
            except (SessionStateConflict, StaleDataError):
                # Completed or closed by another transaction since the scan
                db.rollback()
                logger.info(f"Session {session_id} changed during sweep, skipped")
                continue
            closed += 1
        return closed

    def recompute_quiz_statistics(self, db: Session, quiz: Quiz) -> Dict[str, float]:
        """
        Rebuild a quiz's rolling statistics from its completed results

        The quiz row is locked first, so completions in flight finish
        before the aggregates are read; the aggregates are computed and
        written by one UPDATE.

        Args:
            db: Database session
            quiz: Quiz to recompute

        Returns:
            The statistics written back to the quiz
        """
        quiz_id = quiz.id
        db.query(Quiz.id).filter(Quiz.id == quiz_id).with_for_update().one()

        completed = and_(QuizResult.quiz_id == quiz_id, QuizResult.status == "completed")
        succeeded = and_(
            QuizResult.total_questions > 0,
            cast(QuizResult.score, Float) / QuizResult.total_questions >= settings.SUCCESS_RATE_THRESHOLD,
        )

        def aggregate(expression, default):
            return func.coalesce(db.query(expression).filter(completed).scalar_subquery(), default)

        db.query(Quiz).filter(Quiz.id == quiz_id).update(
            {
                Quiz.total_attempts: aggregate(func.count(QuizResult.id), 0),
                Quiz.average_score: aggregate(func.avg(QuizResult.score), 0.0),
                Quiz.average_time: aggregate(func.avg(QuizResult.time_taken), 0.0),
                Quiz.success_rate: aggregate(func.avg(case((succeeded, 1.0), else_=0.0)), 0.0),
            },
            synchronize_session=False,
        )
        db.commit()
        db.refresh(quiz)

        statistics = quiz.statistics
        logger.debug(f"Recomputed statistics for quiz {quiz_id}: {statistics}")
        return statistics

    def recompute_busy_quizzes(self, db: Session) -> int:
        """Recompute statistics for quizzes with at least STATS_RECOMPUTE_MIN_ATTEMPTS results"""
        busy_ids = [
            quiz_id for (quiz_id,) in db.query(QuizResult.quiz_id).filter(
                QuizResult.status == "completed",
            ).group_by(QuizResult.quiz_id).having(
                func.count(QuizResult.id) >= settings.STATS_RECOMPUTE_MIN_ATTEMPTS
            ).all()
        ]
        if not busy_ids:
            return 0

        for quiz in db.query(Quiz).filter(Quiz.id.in_(busy_ids)).all():
            self.recompute_quiz_statistics(db, quiz)

        logger.info(f"Recomputed statistics for {len(busy_ids)} quizzes")
        return len(busy_ids)

    def run_maintenance(self, db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
        """Run every sweep once"""
        now = now or utcnow()
        return {
            "expired": self.expire_overdue_sessions(db, now),
            "abandoned": self.abandon_inactive_sessions(db, now),
            "recomputed": self.recompute_busy_quizzes(db),
        }


async def maintenance_loop(interval_seconds: Optional[int] = None):
    """Run the sweeps forever on a fixed interval; started from the app's startup hook"""
    interval_seconds = interval_seconds or settings.MAINTENANCE_INTERVAL_SECONDS
    logger.info(f"Maintenance loop started (every {interval_seconds}s)")

    while True:
        db = SessionLocal()
        try:
            summary = await asyncio.to_thread(maintenance_service.run_maintenance, db)
            logger.info(f"Maintenance run complete: {summary}")
        except Exception as e:
            db.rollback()
            logger.error(f"Maintenance run failed: {str(e)}", exc_info=True)
        finally:
            db.close()
        await asyncio.sleep(interval_seconds)


# Global instance
maintenance_service = MaintenanceService()
